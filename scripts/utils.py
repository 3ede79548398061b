#!/usr/bin/env python3
"""
Shared configuration and date helpers for the daily focus scripts.

Configuration via environment variables:
- DAILY_FOCUS_VAULT: Root of the notes vault
- DAILY_FOCUS_DAILY_DIR: Daily agenda folder, relative to the vault
- DAILY_FOCUS_MEETINGS_DIR: Meeting notes folder, relative to the vault
- DAILY_FOCUS_LOOKBACK_DAYS: How many days of notes to read
- DAILY_FOCUS_GITHUB_REPO: org/repo to read open PRs from (unset disables GitHub)
- DAILY_FOCUS_GH_CLI: Path to the gh CLI
- DAILY_FOCUS_JIRA_PROJECT: Jira project key (unset disables Jira)
- DAILY_FOCUS_JIRA_BASE_URL: Jira site URL, used to build ticket links
- DAILY_FOCUS_JIRA_CLI: Path to the jira CLI
- DAILY_FOCUS_CLI_TIMEOUT: Seconds to wait for gh/jira commands
"""

import json
import logging
import os
import re
import shutil
import subprocess
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path

logger = logging.getLogger(__name__)

DAILY_FILENAME_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})\.md$")
MEETING_FILENAME_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}) - (.+)\.md$")

# Checked when a CLI is not on PATH (GUI launchers often have a short PATH)
COMMON_BIN_DIRS = (
    Path("/opt/homebrew/bin"),
    Path("/usr/local/bin"),
    Path.home() / ".local" / "bin",
    Path.home() / "go" / "bin",
)


class CommandError(RuntimeError):
    """An external CLI (gh, jira) failed or returned unreadable output."""


def resolve_cli_path(cli_path: str) -> str:
    """Resolve a CLI name to an executable path, falling back to the name itself."""
    if cli_path.startswith("/"):
        return cli_path

    found = shutil.which(cli_path)
    if found:
        return found

    for bin_dir in COMMON_BIN_DIRS:
        candidate = bin_dir / cli_path
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)

    logger.debug(f"Could not locate {cli_path}, using it as given")
    return cli_path


def run_cli(cli_path: str, args: list[str], timeout: int = 30) -> str:
    """Run a CLI command and return stdout, raising CommandError on failure."""
    cmd = [resolve_cli_path(cli_path), *args]
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=True,
        )
    except (
        subprocess.TimeoutExpired,
        subprocess.CalledProcessError,
        FileNotFoundError,
    ) as e:
        raise CommandError(f"{' '.join(cmd)} failed: {e}") from e
    return result.stdout


def run_cli_json(cli_path: str, args: list[str], timeout: int = 30):
    output = run_cli(cli_path, args, timeout)
    try:
        return json.loads(output)
    except json.JSONDecodeError as e:
        raise CommandError(f"{cli_path} {' '.join(args)} returned invalid JSON: {e}") from e


@dataclass
class FocusConfig:
    vault: Path
    daily_dir: str = "daily"
    meetings_dir: str = "meetings"
    lookback_days: int = 7
    github_repo: str = ""
    gh_cli: str = "gh"
    jira_project: str = ""
    jira_base_url: str = ""
    jira_cli: str = "jira"
    cli_timeout: int = 30

    @property
    def daily_path(self) -> Path:
        return self.vault / self.daily_dir

    @property
    def meetings_path(self) -> Path:
        return self.vault / self.meetings_dir

    @property
    def github_enabled(self) -> bool:
        return bool(self.github_repo)

    @property
    def jira_enabled(self) -> bool:
        return bool(self.jira_project)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_config() -> FocusConfig:
    """Build the configuration from the environment, with sensible defaults."""
    return FocusConfig(
        vault=Path(os.getenv("DAILY_FOCUS_VAULT", "~/Obsidian")).expanduser(),
        daily_dir=os.getenv("DAILY_FOCUS_DAILY_DIR", "daily"),
        meetings_dir=os.getenv("DAILY_FOCUS_MEETINGS_DIR", "meetings"),
        lookback_days=_int_env("DAILY_FOCUS_LOOKBACK_DAYS", 7),
        github_repo=os.getenv("DAILY_FOCUS_GITHUB_REPO", ""),
        gh_cli=os.getenv("DAILY_FOCUS_GH_CLI", "gh"),
        jira_project=os.getenv("DAILY_FOCUS_JIRA_PROJECT", ""),
        jira_base_url=os.getenv("DAILY_FOCUS_JIRA_BASE_URL", ""),
        jira_cli=os.getenv("DAILY_FOCUS_JIRA_CLI", "jira"),
        cli_timeout=_int_env("DAILY_FOCUS_CLI_TIMEOUT", 30),
    )


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def parse_date(date_str: str) -> date | None:
    """Parse YYYY-MM-DD, returning None for anything else (including 2024-02-30)."""
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", date_str or ""):
        return None
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        return None


def get_today_date() -> str:
    return format_date(datetime.now().date())


def get_date_days_ago(days: int, today: date | None = None) -> str:
    today = today or datetime.now().date()
    return format_date(today - timedelta(days=days))


def extract_date_from_daily_filename(filename: str) -> str | None:
    """2024-12-15.md -> '2024-12-15'."""
    match = DAILY_FILENAME_RE.match(filename)
    return match.group(1) if match else None


def extract_date_and_title_from_meeting_filename(filename: str) -> tuple[str, str] | None:
    """'2024-12-15 - Sprint planning.md' -> ('2024-12-15', 'Sprint planning')."""
    match = MEETING_FILENAME_RE.match(filename)
    if not match:
        return None
    return match.group(1), match.group(2)


def is_within_lookback(date_str: str, lookback_days: int, today: date | None = None) -> bool:
    """True if the date falls between today - lookback_days and today, inclusive."""
    parsed = parse_date(date_str)
    if parsed is None:
        return False
    today = today or datetime.now().date()
    return today - timedelta(days=lookback_days) <= parsed <= today


def days_between(date_str1: str, date_str2: str) -> int:
    """Absolute number of days between two dates; 0 if either is invalid."""
    first = parse_date(date_str1)
    second = parse_date(date_str2)
    if first is None or second is None:
        return 0
    return abs((second - first).days)
