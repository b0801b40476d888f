"""Shared fixtures for the hireflow test suite.

The batch tests never talk to a real model.  ``FakeScoringClient`` is a
scripted client keyed by résumé text: each résumé can be given a score,
a delay (to provoke timeouts), an exception to raise, or the whole
backend can be marked unreachable.  It also records how many calls
were in flight at once so the concurrency limit can be asserted.
"""

from __future__ import annotations

import threading
import time
from typing import Dict, List, Optional

import pytest  # type: ignore

from hireflow.errors import BackendUnavailableError
from hireflow.resume.schema import ResumeInput
from hireflow.score.providers import ScoringClient
from hireflow.score.schema import AnalysisResult, AtsScore, SkillsAnalysis


def make_result(
    match: float,
    file_name: str = "",
    ats: float = 0.0,
    experience: float = 0.0,
    **kwargs,
) -> AnalysisResult:
    """Build an ``AnalysisResult`` with only the fields a test cares about."""
    return AnalysisResult(
        resume_id=kwargs.pop("resume_id", file_name),
        file_name=file_name,
        match_percentage=match,
        ats_score=AtsScore(overall=ats, experience_relevance=experience),
        skills_analysis=kwargs.pop("skills", SkillsAnalysis()),
        **kwargs,
    )


class FakeScoringClient(ScoringClient):
    name = "fake"

    def __init__(
        self,
        scores: Optional[Dict[str, float]] = None,
        delays: Optional[Dict[str, float]] = None,
        errors: Optional[Dict[str, Exception]] = None,
        default_delay: float = 0.0,
        backend_down: bool = False,
    ) -> None:
        self.scores = scores or {}
        self.delays = delays or {}
        self.errors = errors or {}
        self.default_delay = default_delay
        self.backend_down = backend_down
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def score(self, resume_text: str, job_text: str) -> AnalysisResult:
        with self._lock:
            self.calls.append(resume_text)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            time.sleep(self.delays.get(resume_text, self.default_delay))
            if self.backend_down:
                raise BackendUnavailableError("connection refused")
            error = self.errors.get(resume_text)
            if error is not None:
                raise error
            return make_result(self.scores.get(resume_text, 50.0))
        finally:
            with self._lock:
                self.in_flight -= 1


def make_resumes(*names: str) -> List[ResumeInput]:
    """One résumé per name; the text doubles as the fake client's key."""
    return [ResumeInput.create(name, f"text of {name}") for name in names]


@pytest.fixture
def fake_client() -> FakeScoringClient:
    return FakeScoringClient()


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer API keys and settings out of the tests."""
    for name in (
        "LLM_PROVIDER",
        "OPENAI_API_KEY",
        "GEMINI_API_KEY",
        "GOOGLE_API_KEY",
        "HIREFLOW_CONCURRENCY",
        "HIREFLOW_TIMEOUT",
        "HIREFLOW_RETRY_DELAYS",
        "HIREFLOW_BUFFER_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)
