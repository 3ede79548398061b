"""Daily agenda composer: render, parse and merge the three-bucket draft."""

import re

from .models import (
    FOCUS_TODAY,
    LATER,
    QUICK_WINS,
    DraftAgenda,
    JiraTicket,
    PullRequest,
    ReconciliationResult,
    ResolvedItem,
)


# Heading title -> DraftAgenda attribute, in render order
SECTION_BUCKETS = {
    FOCUS_TODAY: "focus_today",
    QUICK_WINS: "quick_wins",
    LATER: "later",
}

RESOLUTION_BUCKETS = {
    "focus_today": "focus_today",
    "quick_win": "quick_wins",
    "later": "later",
}

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*$")
_TASK_RE = re.compile(r"^-\s*\[([ xX])\]\s*(.+)$")


def render_agenda(draft: DraftAgenda, date_str: str | None = None) -> str:
    """
    Render a draft agenda as markdown.

    Sections, always in this order and always present:
    - ## Focus today
    - ## Quick wins
    - ## Later
    """
    lines = []
    if date_str:
        lines.extend([f"# Daily Focus — {date_str}", ""])

    for title, bucket in SECTION_BUCKETS.items():
        tasks = getattr(draft, bucket)
        lines.append(f"## {title}")
        for task in tasks:
            lines.append(f"- [ ] {task}")
        if not tasks:
            lines.append("")
        lines.append("")

    return "\n".join(lines) + "\n"


def generate_empty_agenda(date_str: str | None = None) -> str:
    return render_agenda(DraftAgenda(), date_str)


def parse_agenda(markdown: str) -> DraftAgenda:
    """
    Parse a rendered (and possibly hand-edited) agenda back into a draft.

    Rules:
    - Only level-2 (##) headings are section headings; other levels are ignored
    - ## Focus today / ## Quick wins / ## Later open their bucket
    - Any other ## heading, or the first --- line, ends parsing
    - Only unchecked - [ ] lines are kept; checked items are dropped
    """
    agenda = DraftAgenda()
    bucket = None

    for line in markdown.splitlines():
        heading = _HEADING_RE.match(line)
        if heading:
            if len(heading.group(1)) != 2:
                continue
            bucket = SECTION_BUCKETS.get(heading.group(2))
            if bucket is None:
                break
            continue

        # Status tables are appended below a horizontal rule
        if line.strip() == "---":
            break

        if bucket is None:
            continue

        match = _TASK_RE.match(line)
        if match and match.group(1) == " ":
            getattr(agenda, bucket).append(match.group(2).strip())

    return agenda


def merge_with_resolutions(
    draft: DraftAgenda, resolutions: list[ResolvedItem]
) -> DraftAgenda:
    """
    Fold resolved unclear items into a draft agenda.

    Every entry whose lowercased text contains the resolved task text is
    removed from all buckets first, so a short resolved task can also remove
    a longer, unrelated entry that happens to contain it. done and drop stop
    there; other resolutions re-add the task (with " — context" when given)
    to the matching bucket. The input draft is left untouched.
    """
    merged = draft.copy()

    for resolved in resolutions:
        needle = resolved.task.lower()

        for bucket in SECTION_BUCKETS.values():
            setattr(
                merged,
                bucket,
                [t for t in getattr(merged, bucket) if needle not in t.lower()],
            )

        target = RESOLUTION_BUCKETS.get(resolved.resolution)
        if target is None:
            continue

        text = resolved.task
        if resolved.context:
            text = f"{resolved.task} — {resolved.context}"
        getattr(merged, target).append(text)

    return merged


# ---------------------------------------------------------------------------
# Status tables
# ---------------------------------------------------------------------------

def _cell(value: str) -> str:
    return value.replace("|", "\\|").strip()


def _hil_status(pr: PullRequest) -> str:
    if pr.hil_checks_passing is None:
        return "—"
    return "✓ Passing" if pr.hil_checks_passing else "✗ Failing"


def _pr_title(pr: PullRequest) -> str:
    if not pr.jira_id:
        return pr.title.strip()
    bare = re.sub(rf"\[?{re.escape(pr.jira_id)}\]?", "", pr.title, flags=re.IGNORECASE)
    bare = re.sub(r"^[\s:\-]+", "", bare).strip()
    return f"[{pr.jira_id}] {bare}".strip()


def recommended_pr_action(pr: PullRequest) -> tuple[str, str]:
    """Return (action, label) for the most useful next step on a PR."""
    if pr.hil_checks_passing is False:
        return "ci", "Investigate CI failure"
    if str(pr.review_state).upper() == "CHANGES_REQUESTED":
        return "respond", "Respond to requested changes"
    if not pr.has_approval:
        return "respond", "Respond / request review"
    return "merge", "Merge readiness check"


def render_status_tables(
    pull_requests: list[PullRequest],
    tickets: list[JiraTicket],
    reconciliation: ReconciliationResult,
    include_next_steps: bool = False,
) -> str:
    """
    Render PR/ticket tables and reconciliation notes.

    Output starts with a --- rule so parse_agenda() stops before it.
    """
    lines = ["---", "", "## Open Pull Requests", ""]

    if not pull_requests:
        lines.extend(["_No open PRs_", ""])
    else:
        if include_next_steps:
            lines.append("| PR | Title | HIL Checks | Approved | Next |")
            lines.append("|:---|:------|:-----------|:---------|:-----|")
        else:
            lines.append("| PR | Title | HIL Checks | Approved |")
            lines.append("|:---|:------|:-----------|:---------|")
        for pr in pull_requests:
            approval = "✓ Yes" if pr.has_approval else "✗ No"
            row = f"| [#{pr.number}]({pr.url}) | {_cell(_pr_title(pr))} | {_hil_status(pr)} | {approval} |"
            if include_next_steps:
                _, label = recommended_pr_action(pr)
                row += f" {label} |"
            lines.append(row)
        lines.append("")

    lines.extend(["## In-Progress Tickets", ""])
    if not tickets:
        lines.extend(["_No in-progress tickets_", ""])
    else:
        lines.append("| Ticket | Summary | Status | PR |")
        lines.append("|:-------|:--------|:-------|:---|")
        for ticket in tickets:
            pr_link = f"#{ticket.linked_pr_number}" if ticket.linked_pr_number else "—"
            lines.append(
                f"| [{ticket.key}]({ticket.url}) | {_cell(ticket.summary)} | {ticket.status} | {pr_link} |"
            )
        lines.append("")

    if reconciliation.warnings:
        lines.extend(["## Reconciliation Notes", ""])
        for warning in reconciliation.warnings:
            lines.append(f"- ⚠️ {warning.message}")
        lines.append("")

    return "\n".join(lines) + "\n"
