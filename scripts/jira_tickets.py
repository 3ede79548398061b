#!/usr/bin/env python3
"""
Fetch the current user's active Jira tickets via the jira CLI.

Active means "In Progress" or "In Review" in the configured project. The
plain tab-separated output of jira-cli is tried first, then the JSON output
of other jira CLIs. If both fail the ticket list is empty.
"""

import logging
import sys
from pathlib import Path

_SCRIPT_DIR = Path(__file__).parent.resolve()
if str(_SCRIPT_DIR / "lib") not in sys.path:
    sys.path.insert(0, str(_SCRIPT_DIR / "lib"))

from daily_agenda.models import JiraTicket
from utils import CommandError, run_cli, run_cli_json

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ("In Progress", "In Review")


def build_jql(project_key: str, order: bool = True) -> str:
    statuses = ", ".join(f'"{s}"' for s in ACTIVE_STATUSES)
    jql = f"project = {project_key} AND assignee = currentUser() AND status IN ({statuses})"
    if order:
        jql += " ORDER BY updated DESC"
    return jql


def build_ticket_url(base_url: str, key: str) -> str:
    return f"{base_url.rstrip('/')}/browse/{key}"


def parse_plain_output(output: str, base_url: str) -> list[JiraTicket]:
    """Parse `key<TAB>summary<TAB>status` lines; short lines are skipped."""
    tickets = []
    for line in output.strip().splitlines():
        parts = line.split("\t")
        if len(parts) < 3:
            continue
        key, summary, status = (p.strip() for p in parts[:3])
        if not key:
            continue
        tickets.append(JiraTicket(
            key=key,
            summary=summary,
            status=status,
            url=build_ticket_url(base_url, key),
        ))
    return tickets


def parse_json_issues(issues: list[dict], base_url: str) -> list[JiraTicket]:
    tickets = []
    for issue in issues:
        fields = issue.get("fields") or {}
        key = issue["key"]
        tickets.append(JiraTicket(
            key=key,
            summary=fields.get("summary", ""),
            status=(fields.get("status") or {}).get("name", ""),
            url=build_ticket_url(base_url, key),
        ))
    return tickets


def fetch_active_tickets(
    project_key: str,
    base_url: str,
    cli_path: str = "jira",
    timeout: int = 30,
) -> list[JiraTicket]:
    """Fetch In Progress / In Review tickets assigned to the current user."""
    try:
        output = run_cli(
            cli_path,
            [
                "issue", "list",
                "--jql", build_jql(project_key),
                "--plain",
                "--columns", "key,summary,status",
                "--no-headers",
            ],
            timeout,
        )
        tickets = parse_plain_output(output, base_url)
        logger.info(f"Found {len(tickets)} active tickets in {project_key}")
        return tickets
    except CommandError as e:
        logger.info(f"Plain jira output failed ({e}), trying JSON format")

    try:
        issues = run_cli_json(
            cli_path,
            ["issue", "list", "-q", build_jql(project_key, order=False), "--json"],
            timeout,
        )
        return parse_json_issues(issues, base_url)
    except (CommandError, KeyError, TypeError, AttributeError) as e:
        logger.warning(f"All jira CLI formats failed, continuing without Jira data: {e}")
        return []


def check_auth(cli_path: str = "jira", timeout: int = 30) -> bool:
    for args in (["me"], ["myself"]):
        try:
            run_cli(cli_path, args, timeout)
            return True
        except CommandError:
            continue
    return False
