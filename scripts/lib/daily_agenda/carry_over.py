"""Carry-over detection across consecutive daily agendas.

A task that stays open for several days in a row is probably blocked,
mis-scoped or no longer wanted. detect_unclear_items() walks the daily
snapshots and flags such tasks so the user can be asked about them.

Two rules, each firing at most once per task:

- open in any section for MIN_INCOMPLETE_DAYS consecutive days
- open under "Focus today" for MIN_FOCUS_DAYS consecutive days

A missing day (any date difference other than exactly one day between two
neighbouring snapshots) resets every streak.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from .deduper import normalize_task_key
from .models import FOCUS_TODAY, DailyAgendaSnapshot, UnclearItem

logger = logging.getLogger(__name__)

MIN_INCOMPLETE_DAYS = 3
MIN_FOCUS_DAYS = 2

CLARIFYING_QUESTION = (
    "This keeps carrying over. Is it still relevant, or should it be "
    "rescheduled, delegated or dropped?"
)


@dataclass
class Streak:
    key: str
    count: int
    start_date: str
    text: str


def _consecutive(previous: str, current: str) -> bool:
    """True when the two YYYY-MM-DD dates are exactly one day apart."""
    delta = date.fromisoformat(previous) - date.fromisoformat(current)
    return abs(delta.days) == 1


def _open_tasks_by_key(snapshot: DailyAgendaSnapshot) -> tuple[dict[str, str], dict[str, str]]:
    """Return (all open, open under Focus today) maps of key -> first text seen."""
    all_open: dict[str, str] = {}
    focus_open: dict[str, str] = {}

    for task in snapshot.tasks:
        if task.complete:
            continue
        key = normalize_task_key(task.text)
        if not key:
            continue
        all_open.setdefault(key, task.text)
        if task.section == FOCUS_TODAY:
            focus_open.setdefault(key, task.text)

    return all_open, focus_open


def _extend(previous: dict[str, Streak], key: str, text: str, day: str) -> Streak:
    prior = previous.get(key)
    if prior is None:
        return Streak(key=key, count=1, start_date=day, text=text)
    # start_date stays at the first date walked, which is the most recent
    # one because snapshots arrive newest first.
    return Streak(key=key, count=prior.count + 1, start_date=prior.start_date, text=text)


def detect_unclear_items(
    snapshots: list[DailyAgendaSnapshot],
    daily_folder: str = "daily",
) -> list[UnclearItem]:
    """
    Flag tasks that have stayed open across consecutive daily snapshots.

    Args:
        snapshots: Daily agendas ordered most recent first.
        daily_folder: Folder name used to build each item's source path.

    Returns:
        One UnclearItem per flagged task, in the order the thresholds were
        crossed.
    """
    all_streaks: dict[str, Streak] = {}
    focus_streaks: dict[str, Streak] = {}
    flagged: set[str] = set()
    items: list[UnclearItem] = []
    previous_date = None

    for snapshot in snapshots:
        if previous_date is not None and not _consecutive(previous_date, snapshot.date):
            all_streaks = {}
            focus_streaks = {}
        previous_date = snapshot.date

        all_open, focus_open = _open_tasks_by_key(snapshot)
        next_all: dict[str, Streak] = {}
        next_focus: dict[str, Streak] = {}

        for key, text in all_open.items():
            streak = _extend(all_streaks, key, text, snapshot.date)
            next_all[key] = streak

            focus_streak = None
            if key in focus_open:
                focus_streak = _extend(focus_streaks, key, focus_open[key], snapshot.date)
                next_focus[key] = focus_streak

            if key in flagged:
                continue

            if streak.count >= MIN_INCOMPLETE_DAYS:
                reason = f"Incomplete for {streak.count} consecutive days"
                source_streak = streak
            elif focus_streak is not None and focus_streak.count >= MIN_FOCUS_DAYS:
                reason = (
                    f'In "{FOCUS_TODAY}" for {focus_streak.count} '
                    "consecutive days without completion"
                )
                source_streak = focus_streak
            else:
                continue

            flagged.add(key)
            items.append(
                UnclearItem(
                    task=source_streak.text,
                    source=f"{daily_folder}/{source_streak.start_date}.md",
                    reason=reason,
                    question=CLARIFYING_QUESTION,
                )
            )

        all_streaks = next_all
        focus_streaks = next_focus

    logger.debug("Carry-over scan: %d snapshots, %d unclear items", len(snapshots), len(items))
    return items
