#!/usr/bin/env python3
"""
Fetch the current user's open pull requests via the gh CLI.

Each PR is reduced to the fields reconciliation needs: the Jira ID from the
title, the HIL check tri-state (True/False/None while pending) and whether
the PR has an approval.
"""

import logging
import re
import sys
from pathlib import Path

_SCRIPT_DIR = Path(__file__).parent.resolve()
if str(_SCRIPT_DIR / "lib") not in sys.path:
    sys.path.insert(0, str(_SCRIPT_DIR / "lib"))

from daily_agenda.models import PullRequest
from utils import CommandError, run_cli, run_cli_json

logger = logging.getLogger(__name__)


def extract_jira_id(title: str, project_key: str | None = None) -> str | None:
    """
    Find a Jira ID like FSW-1234 or [FSW-1234] in a PR title.

    With a project key the match is case-insensitive (fsw-12 -> FSW-12).
    Without one only uppercase keys count, so node-18 or utf-8 are not IDs.
    """
    if project_key:
        match = re.search(rf"\[?({re.escape(project_key)}-\d+)\]?", title, re.IGNORECASE)
    else:
        match = re.search(r"\[?([A-Z]+-\d+)\]?", title)
    return match.group(1).upper() if match else None


def hil_checks_status(checks: list[dict] | None) -> bool | None:
    """
    Tri-state for the HIL status check.
    - True: completed successfully
    - False: completed with any other conclusion
    - None: still running, or no HIL check on the PR
    """
    for check in checks or []:
        name = (check.get("name") or "").lower()
        if "hil" not in name:
            continue
        if check.get("status") == "COMPLETED":
            return check.get("conclusion") == "SUCCESS"
        return None
    return None


def has_approval(details: dict) -> bool:
    if details.get("reviewDecision") == "APPROVED":
        return True
    return any(r.get("state") == "APPROVED" for r in details.get("reviews") or [])


def review_state(details: dict) -> str:
    if details.get("reviewDecision"):
        return details["reviewDecision"]
    reviews = details.get("reviews") or []
    if reviews:
        return reviews[-1].get("state", "PENDING")
    return "PENDING"


def fetch_open_prs(
    repo: str,
    cli_path: str = "gh",
    timeout: int = 30,
    project_key: str | None = None,
) -> list[PullRequest]:
    """
    Fetch open PRs authored by the current user in repo.

    Raises CommandError when the list call fails or its output has an
    unexpected shape. A failed or malformed detail call keeps the PR with
    review_state "UNKNOWN".
    """
    listed = run_cli_json(
        cli_path,
        [
            "pr", "list",
            "--repo", repo,
            "--author", "@me",
            "--state", "open",
            "--json", "number,title,url,state,headRefName",
        ],
        timeout,
    )
    if not isinstance(listed, list):
        raise CommandError(f"gh pr list returned {type(listed).__name__}, expected a list")
    logger.info(f"Found {len(listed)} open PRs in {repo}")

    pull_requests = []
    for pr in listed:
        try:
            number = pr["number"]
            title = pr.get("title") or ""
            base = {
                "number": number,
                "title": title,
                "url": pr.get("url", ""),
                "jira_id": extract_jira_id(title, project_key),
                "state": pr.get("state", "OPEN"),
                "branch": pr.get("headRefName"),
            }
        except (KeyError, TypeError, AttributeError) as e:
            raise CommandError(f"Unexpected gh pr list entry {pr!r}: {e}") from e

        try:
            details = run_cli_json(
                cli_path,
                [
                    "pr", "view", str(number),
                    "--repo", repo,
                    "--json", "statusCheckRollup,reviews,reviewDecision",
                ],
                timeout,
            )
            pull_requests.append(
                PullRequest(
                    **base,
                    hil_checks_passing=hil_checks_status(details.get("statusCheckRollup")),
                    has_approval=has_approval(details),
                    review_state=review_state(details),
                )
            )
        except (CommandError, TypeError, AttributeError) as e:
            logger.warning(f"Failed to get details for PR #{number}: {e}")
            pull_requests.append(
                PullRequest(**base, hil_checks_passing=None, has_approval=False, review_state="UNKNOWN")
            )

    return pull_requests


def check_auth(cli_path: str = "gh", timeout: int = 30) -> bool:
    try:
        run_cli(cli_path, ["auth", "status"], timeout)
        return True
    except CommandError:
        return False
