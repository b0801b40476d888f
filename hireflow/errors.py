"""
Error taxonomy for hireflow.

Four families of failure are distinguished:

* ``ValidationError`` – malformed or empty input, rejected before any
  work starts.
* ``ScoringError`` – a single résumé could not be scored (API error,
  unparsable response, timeout).  Recovered at batch level and recorded
  as a failure alongside the successful results.
* ``TransitionError`` – an illegal application status change.  The
  application is left untouched.
* ``StreamError`` – a producer-side failure that ends a batch with a
  terminal ``error`` event.  ``BackendUnavailableError`` is the common
  case: the scoring backend cannot be reached at all.
"""

from __future__ import annotations

from typing import Optional


class HireflowError(Exception):
    """Base class for all hireflow errors."""

    http_status = 500


class ValidationError(HireflowError):
    """Input rejected before any work was scheduled."""

    http_status = 400


class ScoringError(HireflowError):
    """Scoring of one résumé failed."""

    http_status = 502

    def __init__(self, message: str, resume_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.resume_id = resume_id


class TransitionError(HireflowError):
    """An application cannot move from its current status to the target."""

    http_status = 409

    def __init__(self, current: str, target: str, message: Optional[str] = None) -> None:
        self.current = current
        self.target = target
        super().__init__(message or f"Cannot move application from '{current}' to '{target}'")


class StreamError(HireflowError):
    """The batch producer failed; surfaces as the terminal error event."""


class BackendUnavailableError(StreamError):
    """The scoring backend is unreachable or rejects every request."""

    http_status = 503
