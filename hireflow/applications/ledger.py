"""
In-memory owner of applications.

The ledger is the single writer of every application it holds.  Each
application has its own lock, so two transitions of the same
application are applied one after the other while transitions of
different applications proceed independently.  Snapshots are written as
JSON for the command line tools.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from ..errors import ValidationError
from ..score.schema import AnalysisResult
from .state_machine import (
    Application,
    ApplicationStatus,
    TransitionResult,
    apply_action,
    normalize_status,
    transition,
)

logger = logging.getLogger(__name__)


class ApplicationLedger:
    def __init__(self) -> None:
        self._applications: Dict[str, Application] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._pairs: Dict[Tuple[str, str], str] = {}
        self._registry_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._applications)

    def __contains__(self, application_id: object) -> bool:
        return application_id in self._applications

    def __iter__(self) -> Iterator[Application]:
        return iter(list(self._applications.values()))

    def create(
        self,
        candidate_id: str,
        job_id: str,
        application_id: Optional[str] = None,
        analysis: Optional[AnalysisResult] = None,
    ) -> Application:
        """Register a new ``pending`` application.

        Raises:
            ValidationError: Missing ids, or the candidate already applied
                to this job.
        """
        if not candidate_id or not job_id:
            raise ValidationError("candidate_id and job_id are required")
        with self._registry_lock:
            pair = (candidate_id, job_id)
            if pair in self._pairs:
                raise ValidationError(
                    f"Candidate {candidate_id} already applied to job {job_id} "
                    f"(application {self._pairs[pair]})"
                )
            app_id = application_id or uuid.uuid4().hex
            if app_id in self._applications:
                raise ValidationError(f"Application {app_id} already exists")
            app = Application(id=app_id, candidate_id=candidate_id, job_id=job_id, analysis=analysis)
            self._applications[app_id] = app
            self._locks[app_id] = threading.Lock()
            self._pairs[pair] = app_id
        logger.info("Created application %s (candidate=%s, job=%s)", app_id, candidate_id, job_id)
        return app

    def get(self, application_id: str) -> Application:
        try:
            return self._applications[application_id]
        except KeyError as exc:
            raise ValidationError(f"Application {application_id} not found") from exc

    def _lock_for(self, application_id: str) -> threading.Lock:
        with self._registry_lock:
            try:
                return self._locks[application_id]
            except KeyError as exc:
                raise ValidationError(f"Application {application_id} not found") from exc

    def transition(
        self,
        application_id: str,
        target: "str | ApplicationStatus",
        notes: str = "",
        changed_by: Optional[str] = None,
    ) -> TransitionResult:
        with self._lock_for(application_id):
            result = transition(self.get(application_id), target, notes=notes, changed_by=changed_by)
            self._applications[application_id] = result.application
        return result

    def act(
        self,
        application_id: str,
        action: str,
        notes: str = "",
        changed_by: Optional[str] = None,
    ) -> TransitionResult:
        with self._lock_for(application_id):
            result = apply_action(self.get(application_id), action, notes=notes, changed_by=changed_by)
            self._applications[application_id] = result.application
        return result

    def attach_analysis(self, application_id: str, analysis: AnalysisResult) -> Application:
        """Store the scoring result a recruiter reviews for this application."""
        with self._lock_for(application_id):
            current = self.get(application_id)
            updated = Application(
                id=current.id,
                candidate_id=current.candidate_id,
                job_id=current.job_id,
                status=current.status,
                history=current.history,
                analysis=analysis,
                created_at=current.created_at,
            )
            self._applications[application_id] = updated
        return updated

    def by_status(self, status: "str | ApplicationStatus") -> List[Application]:
        wanted = normalize_status(status)
        return [app for app in self if app.status == wanted]

    def to_dict(self) -> Dict[str, Any]:
        return {"applications": [app.to_dict() for app in self]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ApplicationLedger":
        ledger = cls()
        for raw in data.get("applications") or []:
            app = Application.from_dict(raw)
            pair = (app.candidate_id, app.job_id)
            if pair in ledger._pairs or app.id in ledger._applications:
                raise ValidationError(f"Duplicate application {app.id} in snapshot")
            ledger._applications[app.id] = app
            ledger._locks[app.id] = threading.Lock()
            ledger._pairs[pair] = app.id
        return ledger

    def save(self, path: Union[str, Path]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, ensure_ascii=False, indent=2)
        logger.info("Saved %d applications to %s", len(self), path)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ApplicationLedger":
        """Load a snapshot; a missing file yields an empty ledger."""
        path = Path(path)
        if not path.exists():
            return cls()
        with path.open("r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise ValidationError(f"{path} is not a valid application snapshot: {exc}") from exc
        return cls.from_dict(data)
