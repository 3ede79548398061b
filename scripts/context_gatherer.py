#!/usr/bin/env python3
"""
Gather planning context: recent daily agendas, meeting notes, open PRs and
active Jira tickets, plus their reconciliation.

PRs and tickets are fetched concurrently. A failed fetch is logged and
treated as an empty list so the rest of the context is still usable.
"""

import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta
from pathlib import Path

_SCRIPT_DIR = Path(__file__).parent.resolve()
if str(_SCRIPT_DIR / "lib") not in sys.path:
    sys.path.insert(0, str(_SCRIPT_DIR / "lib"))

from daily_agenda.models import (
    DailyAgendaSnapshot,
    GatheredContext,
    MeetingNeedingAttention,
    MeetingNote,
)
from daily_agenda.parser import has_action_items_section, parse_action_items, parse_tasks
from daily_agenda.reconciler import apply_ticket_links, reconcile

import github_prs
import jira_tickets
import vault_reader
from utils import CommandError, FocusConfig, format_date

logger = logging.getLogger(__name__)

# A meeting note touched this recently is assumed to be a fresh template
FRESH_NOTE_WINDOW = timedelta(minutes=5)


def build_snapshots(daily_files: list[dict]) -> list[DailyAgendaSnapshot]:
    return [
        DailyAgendaSnapshot(
            date=f["date"],
            content=f["content"],
            tasks=tuple(parse_tasks(f["content"])),
        )
        for f in daily_files
    ]


def build_meeting_notes(meeting_files: list[dict]) -> list[MeetingNote]:
    notes = []
    for f in meeting_files:
        has_section = has_action_items_section(f["content"])
        notes.append(MeetingNote(
            date=f["date"],
            title=f["title"],
            filepath=f["filepath"],
            modified_at=f["modified_at"],
            has_action_items_section=has_section,
            action_items=parse_action_items(f["content"]) if has_section else [],
        ))
    return notes


def identify_meetings_needing_attention(
    meetings: list[MeetingNote],
    today: str,
    now: datetime | None = None,
) -> list[MeetingNeedingAttention]:
    """
    Meetings to nudge the user about before planning:
    - no action items section at all
    - today's meeting, just created, still without action items
    """
    now = now or datetime.now()
    needing = []

    for meeting in meetings:
        if not meeting.has_action_items_section:
            needing.append(MeetingNeedingAttention(
                filepath=meeting.filepath,
                reason="No action items section found",
            ))
            continue

        if (
            meeting.date == today
            and not meeting.action_items
            and now - meeting.modified_at < FRESH_NOTE_WINDOW
        ):
            needing.append(MeetingNeedingAttention(
                filepath=meeting.filepath,
                reason="Created today, not yet updated with action items",
            ))

    return needing


def gather_context(config: FocusConfig, today: date | None = None) -> GatheredContext:
    """Read and parse vault notes within the lookback window."""
    today = today or datetime.now().date()
    daily_files = vault_reader.read_daily_files(config.daily_path, config.lookback_days, today)
    meeting_files = vault_reader.read_meeting_files(config.meetings_path, config.lookback_days, today)

    meetings = build_meeting_notes(meeting_files)
    return GatheredContext(
        recent_agendas=build_snapshots(daily_files),
        recent_meetings=meetings,
        meetings_needing_attention=identify_meetings_needing_attention(meetings, format_date(today)),
    )


def _fetch_prs(config: FocusConfig):
    return github_prs.fetch_open_prs(
        config.github_repo,
        cli_path=config.gh_cli,
        timeout=config.cli_timeout,
        project_key=config.jira_project or None,
    )


def _fetch_tickets(config: FocusConfig):
    return jira_tickets.fetch_active_tickets(
        config.jira_project,
        config.jira_base_url,
        cli_path=config.jira_cli,
        timeout=config.cli_timeout,
    )


def _result_or_empty(future, label: str) -> list:
    if future is None:
        return []
    try:
        return future.result()
    except CommandError as e:
        logger.warning(f"Failed to fetch {label}: {e}")
        return []


def fetch_integrations(config: FocusConfig) -> tuple[list, list]:
    """Fetch (pull_requests, tickets) concurrently; disabled or failed sources give []."""
    if not config.github_enabled:
        logger.info("GitHub integration disabled (DAILY_FOCUS_GITHUB_REPO not set)")
    if not config.jira_enabled:
        logger.info("Jira integration disabled (DAILY_FOCUS_JIRA_PROJECT not set)")

    with ThreadPoolExecutor(max_workers=2) as pool:
        pr_future = pool.submit(_fetch_prs, config) if config.github_enabled else None
        ticket_future = pool.submit(_fetch_tickets, config) if config.jira_enabled else None
        pull_requests = _result_or_empty(pr_future, "GitHub PRs")
        tickets = _result_or_empty(ticket_future, "Jira tickets")

    return pull_requests, tickets


def gather_enhanced_context(config: FocusConfig, today: date | None = None) -> GatheredContext:
    """Vault context plus PRs, tickets and their reconciliation."""
    context = gather_context(config, today)
    pull_requests, tickets = fetch_integrations(config)

    result = reconcile(pull_requests, tickets)
    context.pull_requests = pull_requests
    context.jira_tickets = apply_ticket_links(tickets, result)
    context.reconciliation = result
    return context
