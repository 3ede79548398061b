#!/usr/bin/env python3
"""
Daily focus planner: carry-over detection, PR/Jira reconciliation and the
three-section daily agenda.

Usage:
  python3 focus.py carryover [--json]            # tasks stuck for several days
  python3 focus.py reconcile [--json] [--next]   # PR <-> Jira status tables
  python3 focus.py meetings [--json]             # action items from meeting notes
  python3 focus.py draft [--date D] [--status] [--write] [--force]
  python3 focus.py merge RESOLUTIONS.json [--date D] [--write]

Configuration is read from DAILY_FOCUS_* environment variables (see utils.py).
"""

import argparse
import json
import logging
import sys
from pathlib import Path

_SCRIPT_DIR = Path(__file__).parent.resolve()
if str(_SCRIPT_DIR / "lib") not in sys.path:
    sys.path.insert(0, str(_SCRIPT_DIR / "lib"))

from daily_agenda.carry_over import detect_unclear_items
from daily_agenda.composer import (
    merge_with_resolutions,
    parse_agenda,
    render_agenda,
    render_status_tables,
)
from daily_agenda.models import RESOLUTIONS, DraftAgenda, ResolvedItem
from daily_agenda.reconciler import apply_ticket_links, reconcile

import context_gatherer
import vault_reader
from utils import FocusConfig, get_today_date, load_config, parse_date

logger = logging.getLogger("daily-focus")

MAX_FOCUS_ITEMS = 3


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )


def cap_focus(draft: DraftAgenda, limit: int = MAX_FOCUS_ITEMS) -> DraftAgenda:
    """Keep at most `limit` focus items; overflow goes to the top of Quick wins."""
    capped = draft.copy()
    overflow = capped.focus_today[limit:]
    capped.focus_today = capped.focus_today[:limit]
    capped.quick_wins = overflow + capped.quick_wins
    return capped


def carried_forward_draft(config: FocusConfig, date_str: str) -> DraftAgenda:
    """Open items from the most recent agenda before date_str."""
    target = parse_date(date_str)
    for f in vault_reader.read_daily_files(config.daily_path, config.lookback_days, target):
        if f["date"] < date_str:
            logger.info(f"Carrying forward open items from {f['date']}")
            return parse_agenda(f["content"])
    return DraftAgenda()


def load_resolutions(raw: str) -> list[ResolvedItem]:
    """Parse a JSON list of {task, resolution, context?} objects."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"resolutions must be valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise ValueError("resolutions must be a JSON list")

    resolutions = []
    for entry in data:
        if not isinstance(entry, dict) or not entry.get("task"):
            raise ValueError(f"each resolution needs a task: {entry!r}")
        resolution = entry.get("resolution")
        if resolution not in RESOLUTIONS:
            raise ValueError(
                f"unknown resolution {resolution!r} (expected one of {', '.join(RESOLUTIONS)})"
            )
        resolutions.append(ResolvedItem(
            task=entry["task"],
            resolution=resolution,
            context=entry.get("context") or None,
        ))
    return resolutions


def _status_block(config: FocusConfig, next_steps: bool = False) -> str:
    pull_requests, tickets = context_gatherer.fetch_integrations(config)
    if not pull_requests and not tickets:
        return ""
    result = reconcile(pull_requests, tickets)
    return render_status_tables(
        pull_requests, apply_ticket_links(tickets, result), result, include_next_steps=next_steps
    )


def _emit_agenda(config: FocusConfig, args, content: str, date_str: str) -> int:
    if not args.write:
        print(content)
        return 0

    path = vault_reader.today_agenda_path(config.daily_path, date_str)
    if path.exists() and not getattr(args, "force", True):
        logger.warning(f"Agenda already exists: {path} (use --force to overwrite)")
        return 0
    written = vault_reader.write_agenda(path, content)
    logger.info(f"Wrote agenda: {written}")
    print(f"Wrote: {written}")
    return 0


def cmd_carryover(config: FocusConfig, args) -> int:
    context = context_gatherer.gather_context(config)
    items = detect_unclear_items(context.recent_agendas, daily_folder=config.daily_dir)

    if args.json:
        print(json.dumps([item.to_dict() for item in items], indent=2, ensure_ascii=False))
        return 0

    if not items:
        print("No carried-over tasks.")
        return 0
    for item in items:
        print(f"• {item.task}")
        print(f"    {item.reason} ({item.source})")
        print(f"    {item.question}")
    return 0


def cmd_reconcile(config: FocusConfig, args) -> int:
    pull_requests, tickets = context_gatherer.fetch_integrations(config)
    result = reconcile(pull_requests, tickets)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(render_status_tables(
            pull_requests,
            apply_ticket_links(tickets, result),
            result,
            include_next_steps=args.next,
        ))
    return 0


def cmd_meetings(config: FocusConfig, args) -> int:
    context = context_gatherer.gather_context(config)

    if args.json:
        payload = {
            "meetings": [
                {
                    "date": m.date,
                    "title": m.title,
                    "has_action_items_section": m.has_action_items_section,
                    "action_items": [item.text for item in m.action_items],
                }
                for m in context.recent_meetings
            ],
            "needing_attention": [
                {"filepath": m.filepath, "reason": m.reason}
                for m in context.meetings_needing_attention
            ],
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    for meeting in context.recent_meetings:
        print(f"{meeting.title} — {meeting.date}")
        if meeting.action_items:
            for item in meeting.action_items:
                print(f"  - [ ] {item.text}")
        elif not meeting.has_action_items_section:
            print("  _No action items section._")
        else:
            print("  _No action items._")
    for attention in context.meetings_needing_attention:
        print(f"⚠️ {attention.filepath}: {attention.reason}")
    return 0


def cmd_draft(config: FocusConfig, args) -> int:
    date_str = args.date or get_today_date()
    draft = cap_focus(carried_forward_draft(config, date_str))

    content = render_agenda(draft, date_str)
    if args.status:
        content += _status_block(config, next_steps=args.next)
    return _emit_agenda(config, args, content, date_str)


def cmd_merge(config: FocusConfig, args) -> int:
    date_str = args.date or get_today_date()
    raw = sys.stdin.read() if args.resolutions == "-" else Path(args.resolutions).read_text(encoding="utf-8")
    resolutions = load_resolutions(raw)

    path = vault_reader.today_agenda_path(config.daily_path, date_str)
    draft = parse_agenda(path.read_text(encoding="utf-8")) if path.exists() else DraftAgenda()
    merged = cap_focus(merge_with_resolutions(draft, resolutions))

    content = render_agenda(merged, date_str)
    if args.status:
        content += _status_block(config, next_steps=args.next)
    return _emit_agenda(config, args, content, date_str)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Daily focus planner")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--lookback", type=int, help="Days of notes to read (overrides env)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    carry = subparsers.add_parser("carryover", help="List tasks carried over for several days")
    carry.add_argument("--json", action="store_true", help="Output as JSON")
    carry.set_defaults(func=cmd_carryover)

    rec = subparsers.add_parser("reconcile", help="Reconcile open PRs with Jira tickets")
    rec.add_argument("--json", action="store_true", help="Output as JSON")
    rec.add_argument("--next", action="store_true", help="Add a next-step column for PRs")
    rec.set_defaults(func=cmd_reconcile)

    meet = subparsers.add_parser("meetings", help="Show meeting action items")
    meet.add_argument("--json", action="store_true", help="Output as JSON")
    meet.set_defaults(func=cmd_meetings)

    for name, func, help_text in (
        ("draft", cmd_draft, "Render today's agenda, carrying forward open items"),
        ("merge", cmd_merge, "Merge resolutions into today's agenda"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        if name == "merge":
            sub.add_argument("resolutions", help="JSON file of resolutions, or - for stdin")
        sub.add_argument("--date", help="Agenda date (YYYY-MM-DD), default: today")
        sub.add_argument("--status", action="store_true", help="Append PR/Jira status tables")
        sub.add_argument("--next", action="store_true", help="Add a next-step column for PRs")
        sub.add_argument("--write", action="store_true", help="Write to the daily folder instead of stdout")
        if name == "draft":
            sub.add_argument("--force", action="store_true", help="Overwrite an existing agenda")
        sub.set_defaults(func=func)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if getattr(args, "date", None) and parse_date(args.date) is None:
        logger.error(f"Invalid date format: {args.date}")
        return 1

    config = load_config()
    if args.lookback is not None:
        config.lookback_days = args.lookback

    try:
        return args.func(config, args)
    except (ValueError, OSError) as exc:
        logger.error(str(exc))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
