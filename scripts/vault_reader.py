#!/usr/bin/env python3
"""
Read daily agendas and meeting notes from the vault, and write today's agenda.

Daily agendas are named YYYY-MM-DD.md, meeting notes YYYY-MM-DD - Title.md.
Both readers return files inside the lookback window, most recent first.
"""

import logging
import os
import tempfile
from datetime import date, datetime
from pathlib import Path

from utils import (
    extract_date_and_title_from_meeting_filename,
    extract_date_from_daily_filename,
    get_today_date,
    is_within_lookback,
)

logger = logging.getLogger(__name__)


def _read_note(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except (PermissionError, UnicodeDecodeError, OSError) as e:
        logger.warning(f"Skipping unreadable note {path}: {e}")
        return None


def read_daily_files(
    daily_dir: Path, lookback_days: int, today: date | None = None
) -> list[dict]:
    """
    Read daily agenda files within the lookback window.

    Returns dicts with keys: date, content, path.
    """
    if not daily_dir.exists() or not daily_dir.is_dir():
        logger.warning(f"Daily folder not found: {daily_dir}")
        return []

    files = []
    for note in daily_dir.glob("*.md"):
        date_str = extract_date_from_daily_filename(note.name)
        if not date_str or not is_within_lookback(date_str, lookback_days, today):
            continue

        content = _read_note(note)
        if content is None:
            continue
        files.append({"date": date_str, "content": content, "path": note})

    files.sort(key=lambda f: f["date"], reverse=True)
    return files


def read_meeting_files(
    meetings_dir: Path, lookback_days: int, today: date | None = None
) -> list[dict]:
    """
    Read meeting notes within the lookback window.

    Returns dicts with keys: date, title, content, filepath, modified_at.
    """
    if not meetings_dir.exists() or not meetings_dir.is_dir():
        logger.warning(f"Meetings folder not found: {meetings_dir}")
        return []

    files = []
    for note in meetings_dir.glob("*.md"):
        parsed = extract_date_and_title_from_meeting_filename(note.name)
        if not parsed:
            continue
        date_str, title = parsed
        if not is_within_lookback(date_str, lookback_days, today):
            continue

        content = _read_note(note)
        if content is None:
            continue
        files.append({
            "date": date_str,
            "title": title,
            "content": content,
            "filepath": str(note),
            "modified_at": datetime.fromtimestamp(note.stat().st_mtime),
        })

    files.sort(key=lambda f: f["date"], reverse=True)
    return files


def today_agenda_path(daily_dir: Path, date_str: str | None = None) -> Path:
    return daily_dir / f"{date_str or get_today_date()}.md"


def write_agenda(path: Path, content: str) -> Path:
    """Atomically write an agenda file."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)

    return path
