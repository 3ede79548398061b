"""Records passed between the agenda parser, tracker and reconciler."""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Optional


FOCUS_TODAY = "Focus today"
QUICK_WINS = "Quick wins"
LATER = "Later"

AGENDA_SECTIONS = (FOCUS_TODAY, QUICK_WINS, LATER)

RESOLUTIONS = ("done", "drop", "focus_today", "quick_win", "later")


@dataclass
class Task:
    """One checkbox line from a daily agenda."""

    text: str
    section: str
    complete: bool
    jira_id: Optional[str] = None


@dataclass
class ActionItem:
    """One entry from a meeting note's action items section."""

    text: str
    jira_id: Optional[str] = None


@dataclass(frozen=True)
class DailyAgendaSnapshot:
    date: str  # YYYY-MM-DD
    content: str
    tasks: tuple[Task, ...] = ()


@dataclass
class UnclearItem:
    task: str
    source: str
    reason: str
    question: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DraftAgenda:
    """Open work split into the three agenda buckets."""

    focus_today: list[str] = field(default_factory=list)
    quick_wins: list[str] = field(default_factory=list)
    later: list[str] = field(default_factory=list)

    def copy(self) -> "DraftAgenda":
        return DraftAgenda(
            focus_today=list(self.focus_today),
            quick_wins=list(self.quick_wins),
            later=list(self.later),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ResolvedItem:
    """The user's answer to an unclear item."""

    task: str
    resolution: str  # one of RESOLUTIONS
    context: Optional[str] = None


@dataclass
class PullRequest:
    number: int
    title: str
    url: str
    jira_id: Optional[str] = None
    hil_checks_passing: Optional[bool] = None  # None while checks are pending
    has_approval: bool = False
    review_state: str = "PENDING"
    state: str = "OPEN"
    branch: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class JiraTicket:
    key: str
    summary: str
    status: str
    url: str
    has_linked_pr: bool = False
    linked_pr_number: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)


class WarningType(str, Enum):
    NEEDS_APPROVAL = "needs_approval"
    STATUS_MISMATCH = "status_mismatch"
    PR_NO_TICKET = "pr_no_ticket"
    TICKET_NO_PR = "ticket_no_pr"


@dataclass
class ReconciliationWarning:
    type: WarningType
    message: str
    pr_number: Optional[int] = None
    jira_key: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "message": self.message,
            "pr_number": self.pr_number,
            "jira_key": self.jira_key,
        }


@dataclass
class ReconciliationResult:
    matched_prs: list[PullRequest] = field(default_factory=list)
    matched_tickets: list[JiraTicket] = field(default_factory=list)
    unmatched_prs: list[PullRequest] = field(default_factory=list)
    unmatched_tickets: list[JiraTicket] = field(default_factory=list)
    warnings: list[ReconciliationWarning] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "ReconciliationResult":
        return cls()

    def to_dict(self) -> dict:
        return {
            "matched_prs": [pr.to_dict() for pr in self.matched_prs],
            "matched_tickets": [t.to_dict() for t in self.matched_tickets],
            "unmatched_prs": [pr.to_dict() for pr in self.unmatched_prs],
            "unmatched_tickets": [t.to_dict() for t in self.unmatched_tickets],
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass
class MeetingNote:
    date: str
    title: str
    filepath: str
    modified_at: datetime
    has_action_items_section: bool
    action_items: list[ActionItem] = field(default_factory=list)


@dataclass
class MeetingNeedingAttention:
    filepath: str
    reason: str


@dataclass
class GatheredContext:
    """Everything collected for one planning pass."""

    recent_agendas: list[DailyAgendaSnapshot] = field(default_factory=list)
    recent_meetings: list[MeetingNote] = field(default_factory=list)
    meetings_needing_attention: list[MeetingNeedingAttention] = field(default_factory=list)
    pull_requests: list[PullRequest] = field(default_factory=list)
    jira_tickets: list[JiraTicket] = field(default_factory=list)
    reconciliation: ReconciliationResult = field(default_factory=ReconciliationResult)
