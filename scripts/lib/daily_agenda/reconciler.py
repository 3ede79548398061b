"""Match open pull requests to Jira tickets and report discrepancies."""

from __future__ import annotations

import logging
from dataclasses import replace

from .models import (
    JiraTicket,
    PullRequest,
    ReconciliationResult,
    ReconciliationWarning,
    WarningType,
)

logger = logging.getLogger(__name__)

IN_REVIEW = "In Review"
IN_PROGRESS = "In Progress"


def _status_discrepancies(pr: PullRequest, ticket: JiraTicket) -> list[ReconciliationWarning]:
    """Checks for a matched PR/ticket pair. Several may fire at once."""
    warnings = []

    if ticket.status == IN_REVIEW and not pr.has_approval:
        warnings.append(ReconciliationWarning(
            type=WarningType.NEEDS_APPROVAL,
            message=f'{ticket.key} is "{IN_REVIEW}" but PR #{pr.number} needs approval',
            pr_number=pr.number,
            jira_key=ticket.key,
        ))

    if pr.has_approval and ticket.status == IN_PROGRESS:
        warnings.append(ReconciliationWarning(
            type=WarningType.STATUS_MISMATCH,
            message=(
                f'PR #{pr.number} is approved but {ticket.key} is still "{IN_PROGRESS}" '
                f'- consider moving to "{IN_REVIEW}"'
            ),
            pr_number=pr.number,
            jira_key=ticket.key,
        ))

    # None means checks are still running
    if pr.hil_checks_passing is False:
        warnings.append(ReconciliationWarning(
            type=WarningType.STATUS_MISMATCH,
            message=f"PR #{pr.number} ({ticket.key}) has failing HIL checks",
            pr_number=pr.number,
            jira_key=ticket.key,
        ))

    return warnings


def reconcile(
    pull_requests: list[PullRequest], tickets: list[JiraTicket]
) -> ReconciliationResult:
    """
    Reconcile PRs with Jira tickets by the Jira ID found in each PR title.

    Tickets are indexed by uppercased key. The input lists are not modified;
    matched tickets in the result are copies carrying the linked PR number.
    """
    result = ReconciliationResult()

    ticket_copies = [replace(ticket) for ticket in tickets]
    by_key = {ticket.key.upper(): ticket for ticket in ticket_copies}

    for pr in pull_requests:
        if not pr.jira_id:
            result.unmatched_prs.append(pr)
            result.warnings.append(ReconciliationWarning(
                type=WarningType.PR_NO_TICKET,
                message=f'PR #{pr.number} "{pr.title}" has no Jira ticket ID in title',
                pr_number=pr.number,
            ))
            continue

        ticket = by_key.get(pr.jira_id.upper())
        if ticket is None:
            result.unmatched_prs.append(pr)
            result.warnings.append(ReconciliationWarning(
                type=WarningType.PR_NO_TICKET,
                message=(
                    f"PR #{pr.number} references {pr.jira_id} but ticket is not "
                    f'"{IN_PROGRESS}" or "{IN_REVIEW}"'
                ),
                pr_number=pr.number,
                jira_key=pr.jira_id,
            ))
            continue

        ticket.has_linked_pr = True
        ticket.linked_pr_number = pr.number
        result.matched_prs.append(pr)
        result.warnings.extend(_status_discrepancies(pr, ticket))

    for ticket in ticket_copies:
        if ticket.has_linked_pr:
            result.matched_tickets.append(ticket)
            continue

        result.unmatched_tickets.append(ticket)
        # Tickets in other statuses are expected to have no PR yet
        if ticket.status == IN_REVIEW:
            result.warnings.append(ReconciliationWarning(
                type=WarningType.TICKET_NO_PR,
                message=f'{ticket.key} is "{IN_REVIEW}" but has no open PR',
                jira_key=ticket.key,
            ))

    logger.debug(
        "Reconciled %d PRs with %d tickets: %d matched PRs, %d matched tickets, %d warnings",
        len(pull_requests),
        len(tickets),
        len(result.matched_prs),
        len(result.matched_tickets),
        len(result.warnings),
    )
    return result


def apply_ticket_links(
    tickets: list[JiraTicket], result: ReconciliationResult
) -> list[JiraTicket]:
    """Return tickets with linked-PR info taken from the matched set."""
    matched = {ticket.key: ticket for ticket in result.matched_tickets}
    return [matched.get(ticket.key, ticket) for ticket in tickets]
