"""Markdown task parser."""

import re

from .models import AGENDA_SECTIONS, ActionItem, Task


# ATX heading, levels 1-6. "#tag" is not a heading.
_HEADING_RE = re.compile(r"^\s{0,3}#{1,6}(?:\s+(.*?))?\s*$")
_BOLD_ONLY_RE = re.compile(r"^\s*\*\*(.+?)\*\*\s*:?\s*$")
_CHECKBOX_RE = re.compile(r"^\s*-\s*\[([ xX])\]\s*(.+)$")
_BULLET_RE = re.compile(r"^\s*[-*+]\s+(.+)$")
_JIRA_ID_RE = re.compile(r"\[([A-Z]+-\d+)\]")
_TRAILING_PUNCT_RE = re.compile(r"[\s.:;,!?\-–—]+$")

ACTION_ITEM_SECTIONS = (
    "action items",
    "action item",
    "suggested next steps",
    "next steps",
    "action points",
    "todos",
    "to-dos",
    "to dos",
    "todo",
    "to-do",
    "tasks",
    "follow-ups",
    "follow ups",
)


def _heading_text(line: str) -> str | None:
    match = _HEADING_RE.match(line)
    if not match:
        return None
    return (match.group(1) or "").strip()


def _normalize_title(title: str) -> str:
    """Lowercase, collapse whitespace and drop trailing punctuation."""
    text = re.sub(r"\s+", " ", title).strip().lower()
    return _TRAILING_PUNCT_RE.sub("", text)


def _is_action_item_title(title: str) -> bool:
    normalized = _normalize_title(title)
    if not normalized:
        return False
    return any(
        normalized == name or normalized.startswith(name)
        for name in ACTION_ITEM_SECTIONS
    )


def _section_marker(line: str) -> tuple[str, bool] | None:
    """
    Classify a line as a section marker for action-item scanning.

    Returns (title, explicit) where explicit is True for headings and
    bold-only lines, or None when the line is not a marker. A bare line
    only counts as a marker when it names an action items section.
    """
    heading = _heading_text(line)
    if heading is not None:
        return heading, True

    bold = _BOLD_ONLY_RE.match(line)
    if bold:
        return bold.group(1).strip(), True

    stripped = line.strip()
    if not stripped or _BULLET_RE.match(line) or _CHECKBOX_RE.match(line):
        return None
    if _is_action_item_title(stripped):
        return stripped, False
    return None


def extract_jira_id(text: str) -> str | None:
    """Return the first bracketed Jira ID (e.g. [FSW-123]) in text."""
    match = _JIRA_ID_RE.search(text)
    return match.group(1) if match else None


def parse_tasks(content: str) -> list[Task]:
    """
    Parse all checkbox tasks from a daily agenda.

    Rules:
    - Any ATX heading (# to ######) sets the current section
    - - [ ] / - [x] / - [X] lines become tasks tagged with that section
    - Tasks before the first heading get an empty section
    - Everything else is ignored
    """
    tasks = []
    current_section = ""

    for line in content.splitlines():
        heading = _heading_text(line)
        if heading is not None:
            current_section = heading
            continue

        match = _CHECKBOX_RE.match(line)
        if not match:
            continue

        text = match.group(2).strip()
        tasks.append(
            Task(
                text=text,
                section=current_section,
                complete=match.group(1).lower() == "x",
                jira_id=extract_jira_id(text),
            )
        )

    return tasks


def parse_action_items(content: str) -> list[ActionItem]:
    """
    Parse action items from a meeting note.

    A section opens on a heading, a bold-only line or a bare line whose
    title is one of ACTION_ITEM_SECTIONS (exactly, or as a prefix). Any other
    heading or bold-only line closes it. Inside the section both checkbox
    lines and plain -, * and + bullets are collected.
    """
    items = []
    in_section = False

    for line in content.splitlines():
        marker = _section_marker(line)
        if marker is not None:
            title, explicit = marker
            if _is_action_item_title(title):
                in_section = True
            elif explicit:
                in_section = False
            continue

        if not in_section:
            continue

        match = _CHECKBOX_RE.match(line)
        if match:
            text = match.group(2).strip()
        else:
            bullet = _BULLET_RE.match(line)
            if not bullet:
                continue
            text = bullet.group(1).strip()

        if text:
            items.append(ActionItem(text=text, jira_id=extract_jira_id(text)))

    return items


def has_action_items_section(content: str) -> bool:
    """Check whether any line opens an action items section."""
    for line in content.splitlines():
        marker = _section_marker(line)
        if marker is not None and _is_action_item_title(marker[0]):
            return True
    return False


def count_incomplete_tasks(content: str) -> int:
    return sum(1 for task in parse_tasks(content) if not task.complete)


def get_incomplete_tasks_from_section(content: str, section: str) -> list[Task]:
    return [
        task for task in parse_tasks(content)
        if not task.complete and task.section == section
    ]


def is_valid_agenda_section(section: str) -> bool:
    return section in AGENDA_SECTIONS


def parse_section_contents(content: str) -> dict[str, list[str]]:
    """Map each heading to the raw lines below it, up to the next heading."""
    sections: dict[str, list[str]] = {}
    current = None

    for line in content.splitlines():
        heading = _heading_text(line)
        if heading is not None:
            current = heading
            sections[current] = []
        elif current is not None:
            sections[current].append(line)

    return sections
