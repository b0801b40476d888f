"""
Application tracking for hireflow.

* `state_machine` – canonical statuses, the transition table, pure
  ``transition``/``apply_action`` functions and notification intents.
* `ledger` – ``ApplicationLedger``: serialized per-application writes
  and JSON snapshots.
"""

from .state_machine import (  # noqa: F401
    ACTIONS,
    STATUS_ALIASES,
    TRANSITIONS,
    Application,
    ApplicationStatus,
    HistoryEntry,
    Notification,
    NotificationKind,
    TransitionResult,
    allowed_actions,
    allowed_targets,
    apply_action,
    normalize_status,
    transition,
)
from .ledger import ApplicationLedger  # noqa: F401
