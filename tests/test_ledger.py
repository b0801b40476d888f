"""
Unittest suite for the application ledger.

These tests cover creation (one application per candidate and job),
serialized transitions under concurrent callers, attaching a scoring
result and the JSON snapshot used by the command line tools.
"""

from __future__ import annotations

import json
import tempfile
import threading
import unittest
from pathlib import Path

from conftest import make_result
from hireflow.applications import ApplicationLedger, ApplicationStatus
from hireflow.errors import TransitionError, ValidationError


class TestApplicationLedger(unittest.TestCase):
    """Test cases for ``ApplicationLedger``."""

    def setUp(self) -> None:
        self.ledger = ApplicationLedger()
        self.app = self.ledger.create("cand-1", "job-1", application_id="app-1")

    def test_create_starts_pending_without_history(self) -> None:
        self.assertEqual(self.app.status, ApplicationStatus.PENDING)
        self.assertEqual(self.app.history, ())
        self.assertIn("app-1", self.ledger)
        self.assertEqual(len(self.ledger), 1)

    def test_duplicate_candidate_job_pair_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            self.ledger.create("cand-1", "job-1")
        # A different job for the same candidate is fine.
        other = self.ledger.create("cand-1", "job-2")
        self.assertNotEqual(other.id, "app-1")

    def test_unknown_application(self) -> None:
        with self.assertRaises(ValidationError):
            self.ledger.get("missing")
        with self.assertRaises(ValidationError):
            self.ledger.act("missing", "review")

    def test_actions_update_the_stored_application(self) -> None:
        self.ledger.act("app-1", "review", notes="phone screen booked", changed_by="rita")
        result = self.ledger.act("app-1", "shortlist")
        stored = self.ledger.get("app-1")
        self.assertEqual(stored, result.application)
        self.assertEqual(stored.status, ApplicationStatus.SHORTLISTED)
        self.assertEqual([h.status for h in stored.history], [ApplicationStatus.REVIEWING, ApplicationStatus.SHORTLISTED])
        self.assertEqual(stored.history[0].changed_by, "rita")

    def test_illegal_transition_leaves_application_unchanged(self) -> None:
        before = self.ledger.get("app-1")
        with self.assertRaises(TransitionError):
            self.ledger.transition("app-1", "hired")
        self.assertIs(self.ledger.get("app-1"), before)

    def test_concurrent_callers_are_serialized(self) -> None:
        # Many threads race to apply the same first step; exactly one wins.
        outcomes = []
        lock = threading.Lock()
        barrier = threading.Barrier(8)

        def worker() -> None:
            barrier.wait()
            try:
                self.ledger.act("app-1", "review")
                outcome = "ok"
            except TransitionError:
                outcome = "rejected"
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(outcomes.count("ok"), 1)
        self.assertEqual(outcomes.count("rejected"), 7)
        self.assertEqual(len(self.ledger.get("app-1").history), 1)

    def test_attach_analysis_keeps_status(self) -> None:
        self.ledger.act("app-1", "review")
        updated = self.ledger.attach_analysis("app-1", make_result(82, "cand-1.pdf"))
        self.assertEqual(updated.status, ApplicationStatus.REVIEWING)
        self.assertEqual(updated.analysis.match_percentage, 82)
        self.assertEqual(len(updated.history), 1)

    def test_by_status_accepts_legacy_names(self) -> None:
        self.ledger.create("cand-2", "job-1", application_id="app-2")
        self.ledger.act("app-2", "review")
        self.assertEqual([a.id for a in self.ledger.by_status("new")], ["app-1"])
        self.assertEqual([a.id for a in self.ledger.by_status("screening")], ["app-2"])

    def test_save_and_load_round_trip(self) -> None:
        self.ledger.act("app-1", "review", notes="strong profile")
        self.ledger.attach_analysis("app-1", make_result(77, "cand-1.pdf"))
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "store" / "applications.json"
            self.ledger.save(path)
            data = json.loads(path.read_text(encoding="utf-8"))
            self.assertEqual(data["applications"][0]["status"], "reviewing")
            loaded = ApplicationLedger.load(path)
        self.assertEqual(loaded.get("app-1"), self.ledger.get("app-1"))
        # The uniqueness rule survives a reload.
        with self.assertRaises(ValidationError):
            loaded.create("cand-1", "job-1")

    def test_load_missing_file_gives_empty_ledger(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            ledger = ApplicationLedger.load(Path(tmpdir) / "none.json")
        self.assertEqual(len(ledger), 0)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
