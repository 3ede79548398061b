"""Unit tests for carry-over (stale task) detection."""

import sys
from pathlib import Path

import pytest

# Add scripts and lib directories to path
sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))
sys.path.insert(0, str(Path(__file__).parent.parent / "scripts" / "lib"))

from daily_agenda.carry_over import CLARIFYING_QUESTION, detect_unclear_items
from daily_agenda.deduper import merge_unclear_items, normalize_task_key
from daily_agenda.models import DailyAgendaSnapshot, UnclearItem
from daily_agenda.parser import parse_tasks


def snapshot(date_str: str, content: str) -> DailyAgendaSnapshot:
    return DailyAgendaSnapshot(date=date_str, content=content, tasks=tuple(parse_tasks(content)))


def later_note(date_str: str, *tasks: str) -> DailyAgendaSnapshot:
    body = "\n".join(f"- [ ] {t}" for t in tasks)
    return snapshot(date_str, f"## Later\n{body}\n")


def focus_note(date_str: str, *tasks: str) -> DailyAgendaSnapshot:
    body = "\n".join(f"- [ ] {t}" for t in tasks)
    return snapshot(date_str, f"## Focus today\n{body}\n")


class TestIncompleteStreak:
    def test_three_consecutive_days_flags_once(self):
        snapshots = [
            later_note("2024-01-03", "Write report"),
            later_note("2024-01-02", "Write report"),
            later_note("2024-01-01", "Write report"),
        ]
        items = detect_unclear_items(snapshots)
        assert len(items) == 1
        assert items[0].task == "Write report"
        assert items[0].reason == "Incomplete for 3 consecutive days"
        assert items[0].question == CLARIFYING_QUESTION

    def test_two_days_is_not_enough(self):
        snapshots = [
            later_note("2024-01-02", "Write report"),
            later_note("2024-01-01", "Write report"),
        ]
        assert detect_unclear_items(snapshots) == []

    def test_gap_resets_streak(self):
        snapshots = [
            later_note("2024-01-03", "Write report"),
            later_note("2024-01-01", "Write report"),
        ]
        assert detect_unclear_items(snapshots) == []

    def test_gap_resets_all_streaks(self):
        snapshots = [
            later_note("2024-01-06", "Write report"),
            later_note("2024-01-05", "Write report"),
            # 01-04 missing: the earlier run does not carry over
            later_note("2024-01-03", "Write report", "Other task"),
            later_note("2024-01-02", "Write report", "Other task"),
        ]
        assert detect_unclear_items(snapshots) == []

    def test_completed_day_breaks_streak(self):
        snapshots = [
            later_note("2024-01-04", "Write report"),
            snapshot("2024-01-03", "## Later\n- [x] Write report\n"),
            later_note("2024-01-02", "Write report"),
            later_note("2024-01-01", "Write report"),
        ]
        assert detect_unclear_items(snapshots) == []

    def test_key_ignores_case_and_whitespace(self):
        snapshots = [
            later_note("2024-01-03", "write   REPORT"),
            later_note("2024-01-02", "Write report"),
            later_note("2024-01-01", " Write Report"),
        ]
        items = detect_unclear_items(snapshots)
        assert len(items) == 1
        # Text comes from the day the threshold was crossed
        assert items[0].task == "Write Report"

    def test_different_phrasing_is_a_different_task(self):
        snapshots = [
            later_note("2024-01-03", "Write report"),
            later_note("2024-01-02", "Write the report"),
            later_note("2024-01-01", "Write report"),
        ]
        assert detect_unclear_items(snapshots) == []

    def test_longer_streak_still_flags_once(self):
        snapshots = [later_note(f"2024-01-0{d}", "Write report") for d in range(6, 0, -1)]
        items = detect_unclear_items(snapshots)
        assert len(items) == 1
        assert items[0].reason == "Incomplete for 3 consecutive days"

    def test_source_uses_first_walked_date(self):
        # Snapshots arrive newest first, so the streak's start is the newest date
        snapshots = [
            later_note("2024-01-03", "Write report"),
            later_note("2024-01-02", "Write report"),
            later_note("2024-01-01", "Write report"),
        ]
        items = detect_unclear_items(snapshots, daily_folder="journal")
        assert items[0].source == "journal/2024-01-03.md"

    def test_crosses_month_boundary(self):
        snapshots = [
            later_note("2024-03-01", "Write report"),
            later_note("2024-02-29", "Write report"),
            later_note("2024-02-28", "Write report"),
        ]
        assert len(detect_unclear_items(snapshots)) == 1

    def test_empty_input(self):
        assert detect_unclear_items([]) == []


class TestFocusStreak:
    def test_two_days_in_focus_flags(self):
        snapshots = [
            focus_note("2024-01-02", "Ship feature"),
            focus_note("2024-01-01", "Ship feature"),
        ]
        items = detect_unclear_items(snapshots)
        assert len(items) == 1
        assert items[0].reason == 'In "Focus today" for 2 consecutive days without completion'

    def test_focus_then_later_does_not_count(self):
        snapshots = [
            later_note("2024-01-02", "Ship feature"),
            focus_note("2024-01-01", "Ship feature"),
        ]
        assert detect_unclear_items(snapshots) == []

    def test_flagged_at_most_once_across_rules(self):
        snapshots = [
            focus_note("2024-01-03", "Ship feature"),
            focus_note("2024-01-02", "Ship feature"),
            focus_note("2024-01-01", "Ship feature"),
        ]
        items = detect_unclear_items(snapshots)
        assert len(items) == 1
        assert items[0].reason.startswith('In "Focus today"')

    def test_focus_section_must_match_exactly(self):
        snapshots = [
            snapshot("2024-01-02", "## Focus Today\n- [ ] Ship feature\n"),
            snapshot("2024-01-01", "## Focus Today\n- [ ] Ship feature\n"),
        ]
        assert detect_unclear_items(snapshots) == []

    def test_multiple_tasks_in_crossing_order(self):
        snapshots = [
            snapshot("2024-01-03", "## Focus today\n- [ ] B\n## Later\n- [ ] A\n"),
            snapshot("2024-01-02", "## Focus today\n- [ ] B\n## Later\n- [ ] A\n"),
            snapshot("2024-01-01", "## Later\n- [ ] A\n"),
        ]
        items = detect_unclear_items(snapshots)
        assert [(i.task, i.reason) for i in items] == [
            ("B", 'In "Focus today" for 2 consecutive days without completion'),
            ("A", "Incomplete for 3 consecutive days"),
        ]

    def test_pure_function(self):
        snapshots = [
            focus_note("2024-01-02", "Ship feature"),
            focus_note("2024-01-01", "Ship feature"),
        ]
        assert detect_unclear_items(snapshots) == detect_unclear_items(snapshots)


class TestDeduper:
    @pytest.mark.parametrize("raw, expected", [
        ("Write report", "write report"),
        ("  Write   Report  ", "write report"),
        ("Write\treport", "write report"),
        ("", ""),
    ])
    def test_normalize_task_key(self, raw, expected):
        assert normalize_task_key(raw) == expected

    def test_merge_unclear_items_appends_only_new(self):
        existing = [UnclearItem(task="Write Report", source="llm", reason="stale", question="?")]
        detected = [
            UnclearItem(task="write report", source="daily/2024-01-03.md", reason="r", question="q"),
            UnclearItem(task="Ship feature", source="daily/2024-01-03.md", reason="r", question="q"),
        ]
        merged = merge_unclear_items(existing, detected)
        assert [i.task for i in merged] == ["Write Report", "Ship feature"]
        assert merged[0].source == "llm"

    def test_merge_unclear_items_empty(self):
        assert merge_unclear_items([], []) == []
