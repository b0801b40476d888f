"""
Application lifecycle.

One canonical status set and one transition table::

    pending -> reviewing -> shortlisted -> interview-scheduled -> hired
    (any non-terminal state) -> rejected

``hired`` and ``rejected`` are terminal.  ``transition`` is a pure
function: it validates the move against the table and returns a new
``Application`` whose status and appended history entry were produced
together, plus a notification intent for the caller to dispatch.  The
input application is never modified.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from ..errors import TransitionError, ValidationError
from ..score.schema import AnalysisResult

logger = logging.getLogger(__name__)


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    SHORTLISTED = "shortlisted"
    INTERVIEW_SCHEDULED = "interview-scheduled"
    HIRED = "hired"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self]


TRANSITIONS: Mapping[ApplicationStatus, FrozenSet[ApplicationStatus]] = {
    ApplicationStatus.PENDING: frozenset({ApplicationStatus.REVIEWING, ApplicationStatus.REJECTED}),
    ApplicationStatus.REVIEWING: frozenset({ApplicationStatus.SHORTLISTED, ApplicationStatus.REJECTED}),
    ApplicationStatus.SHORTLISTED: frozenset({ApplicationStatus.INTERVIEW_SCHEDULED, ApplicationStatus.REJECTED}),
    ApplicationStatus.INTERVIEW_SCHEDULED: frozenset({ApplicationStatus.HIRED, ApplicationStatus.REJECTED}),
    ApplicationStatus.HIRED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
}

# Older status names still found in stored data and filters.
STATUS_ALIASES: Dict[str, ApplicationStatus] = {
    "new": ApplicationStatus.PENDING,
    "screening": ApplicationStatus.REVIEWING,
    "interview": ApplicationStatus.INTERVIEW_SCHEDULED,
}

ACTIONS: Dict[str, ApplicationStatus] = {
    "review": ApplicationStatus.REVIEWING,
    "shortlist": ApplicationStatus.SHORTLISTED,
    "schedule-interview": ApplicationStatus.INTERVIEW_SCHEDULED,
    "reject": ApplicationStatus.REJECTED,
    "hire": ApplicationStatus.HIRED,
}


def normalize_status(value: "str | ApplicationStatus") -> ApplicationStatus:
    """Map a status name, canonical or legacy, onto ``ApplicationStatus``."""
    if isinstance(value, ApplicationStatus):
        return value
    key = str(value).strip().lower()
    if key in STATUS_ALIASES:
        return STATUS_ALIASES[key]
    try:
        return ApplicationStatus(key)
    except ValueError as exc:
        raise ValidationError(f"Unknown application status '{value}'") from exc


def allowed_targets(status: "str | ApplicationStatus") -> List[ApplicationStatus]:
    current = normalize_status(status)
    return [s for s in ApplicationStatus if s in TRANSITIONS[current]]


def allowed_actions(status: "str | ApplicationStatus") -> List[str]:
    """Actions a recruiter may take from ``status``, in workflow order."""
    targets = TRANSITIONS[normalize_status(status)]
    return [action for action, target in ACTIONS.items() if target in targets]


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class HistoryEntry:
    status: ApplicationStatus
    timestamp: str
    notes: str = ""
    changed_by: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "notes": self.notes,
            "changedBy": self.changed_by,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HistoryEntry":
        return cls(
            status=normalize_status(data["status"]),
            timestamp=str(data.get("timestamp", "")),
            notes=str(data.get("notes") or ""),
            changed_by=data.get("changedBy"),
        )


@dataclass(frozen=True)
class Application:
    """A candidate's application to one job."""

    id: str
    candidate_id: str
    job_id: str
    status: ApplicationStatus = ApplicationStatus.PENDING
    history: Tuple[HistoryEntry, ...] = field(default_factory=tuple)
    analysis: Optional[AnalysisResult] = None
    created_at: str = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.history and self.history[-1].status != self.status:
            raise ValidationError(
                f"Application {self.id} status '{self.status.value}' disagrees with its "
                f"last history entry '{self.history[-1].status.value}'"
            )

    @property
    def updated_at(self) -> str:
        return self.history[-1].timestamp if self.history else self.created_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "candidateId": self.candidate_id,
            "jobId": self.job_id,
            "status": self.status.value,
            "history": [entry.to_dict() for entry in self.history],
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Application":
        analysis = data.get("analysis")
        return cls(
            id=str(data["id"]),
            candidate_id=str(data["candidateId"]),
            job_id=str(data["jobId"]),
            status=normalize_status(data.get("status", ApplicationStatus.PENDING)),
            history=tuple(HistoryEntry.from_dict(h) for h in data.get("history") or []),
            analysis=AnalysisResult.from_dict(analysis) if analysis else None,
            created_at=str(data.get("createdAt") or _utcnow()),
        )


class NotificationKind(str, Enum):
    INTERVIEW_INVITATION = "interview-invitation"
    OFFER = "offer"
    REJECTION = "rejection"
    STATUS_CHANGED = "status-changed"


_NOTIFICATION_KINDS = {
    ApplicationStatus.INTERVIEW_SCHEDULED: NotificationKind.INTERVIEW_INVITATION,
    ApplicationStatus.HIRED: NotificationKind.OFFER,
    ApplicationStatus.REJECTED: NotificationKind.REJECTION,
}


@dataclass(frozen=True)
class Notification:
    """Something the candidate should be told; sending it is up to the caller."""

    kind: NotificationKind
    application_id: str
    candidate_id: str
    previous: ApplicationStatus
    current: ApplicationStatus
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "applicationId": self.application_id,
            "candidateId": self.candidate_id,
            "previous": self.previous.value,
            "current": self.current.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class TransitionResult:
    application: Application
    notification: Notification


def _notification_for(app: Application, previous: ApplicationStatus) -> Notification:
    kind = _NOTIFICATION_KINDS.get(app.status, NotificationKind.STATUS_CHANGED)
    if kind is NotificationKind.STATUS_CHANGED:
        message = f"Your application status changed from {previous.value} to {app.status.value}"
    elif kind is NotificationKind.INTERVIEW_INVITATION:
        message = "You have been invited to interview"
    elif kind is NotificationKind.OFFER:
        message = "Congratulations, you have received an offer"
    else:
        message = "Your application was not selected to move forward"
    return Notification(
        kind=kind,
        application_id=app.id,
        candidate_id=app.candidate_id,
        previous=previous,
        current=app.status,
        message=message,
    )


def transition(
    app: Application,
    target: "str | ApplicationStatus",
    notes: str = "",
    changed_by: Optional[str] = None,
    now: Optional[str] = None,
) -> TransitionResult:
    """Move ``app`` to ``target``.

    Args:
        app: Current application; left untouched.
        target: Target status (canonical or legacy name).
        notes: Free-text note stored on the history entry.
        changed_by: Who made the change, if known.
        now: ISO timestamp for the history entry; current UTC time if omitted.

    Returns:
        ``TransitionResult`` with the updated application and the
        notification intent.

    Raises:
        TransitionError: ``target`` is not reachable from ``app.status``.
    """
    target_status = normalize_status(target)
    if target_status not in TRANSITIONS[app.status]:
        if app.status.is_terminal:
            message = f"Application {app.id} is {app.status.value}; no further changes are allowed"
        else:
            allowed = ", ".join(s.value for s in allowed_targets(app.status))
            message = (
                f"Cannot move application {app.id} from {app.status.value} to "
                f"{target_status.value}; allowed: {allowed}"
            )
        raise TransitionError(app.status.value, target_status.value, message)

    entry = HistoryEntry(
        status=target_status,
        timestamp=now or _utcnow(),
        notes=notes or "",
        changed_by=changed_by,
    )
    updated = replace(app, status=target_status, history=app.history + (entry,))
    logger.info("Application %s: %s -> %s", app.id, app.status.value, target_status.value)
    return TransitionResult(application=updated, notification=_notification_for(updated, app.status))


def apply_action(
    app: Application,
    action: str,
    notes: str = "",
    changed_by: Optional[str] = None,
    now: Optional[str] = None,
) -> TransitionResult:
    """Apply a recruiter action (``review``, ``shortlist``, ...) to ``app``."""
    try:
        target = ACTIONS[action]
    except KeyError as exc:
        options = ", ".join(ACTIONS)
        raise ValidationError(f"Unknown action '{action}'; expected one of {options}") from exc
    return transition(app, target, notes=notes, changed_by=changed_by, now=now)
