"""Tests for the application status state machine."""

from __future__ import annotations

import pytest  # type: ignore

from hireflow.applications import (
    Application,
    ApplicationStatus,
    NotificationKind,
    allowed_actions,
    allowed_targets,
    apply_action,
    normalize_status,
    transition,
)
from hireflow.errors import TransitionError, ValidationError

S = ApplicationStatus


def _app(status: ApplicationStatus = S.PENDING) -> Application:
    app = Application(id="app-1", candidate_id="cand-1", job_id="job-1")
    path = [S.REVIEWING, S.SHORTLISTED, S.INTERVIEW_SCHEDULED]
    if status is S.PENDING:
        return app
    if status is S.REJECTED:
        return transition(app, S.REJECTED).application
    for step in path + [S.HIRED]:
        app = transition(app, step).application
        if step is status:
            return app
    raise AssertionError(status)


def test_full_hiring_path() -> None:
    app = _app()
    steps = [S.REVIEWING, S.SHORTLISTED, S.INTERVIEW_SCHEDULED, S.HIRED]
    for i, step in enumerate(steps):
        app = transition(app, step, notes=f"step {i}", now=f"2024-01-0{i + 1}T00:00:00+00:00").application
        assert app.status is step
    assert len(app.history) == 4
    assert [h.status for h in app.history] == steps
    assert app.history[0].notes == "step 0"
    assert app.updated_at == "2024-01-04T00:00:00+00:00"


def test_transition_does_not_modify_input() -> None:
    app = _app()
    result = transition(app, "reviewing", notes="looks promising", changed_by="recruiter-7")
    assert app.status is S.PENDING
    assert app.history == ()
    assert result.application.history[-1].changed_by == "recruiter-7"
    assert result.application.status == result.application.history[-1].status


@pytest.mark.parametrize("terminal", [S.HIRED, S.REJECTED])
@pytest.mark.parametrize("target", list(ApplicationStatus))
def test_terminal_states_allow_nothing(terminal, target) -> None:
    app = _app(terminal)
    with pytest.raises(TransitionError) as excinfo:
        transition(app, target)
    assert excinfo.value.current == terminal.value
    assert excinfo.value.http_status == 409
    assert app.status is terminal


@pytest.mark.parametrize("target", [S.INTERVIEW_SCHEDULED, S.HIRED, S.SHORTLISTED, S.PENDING])
def test_steps_cannot_be_skipped_from_pending(target) -> None:
    with pytest.raises(TransitionError) as excinfo:
        transition(_app(), target)
    assert excinfo.value.target == target.value
    assert "allowed: reviewing, rejected" in str(excinfo.value)


@pytest.mark.parametrize("status", [S.PENDING, S.REVIEWING, S.SHORTLISTED, S.INTERVIEW_SCHEDULED])
def test_reject_from_any_open_state(status) -> None:
    result = transition(_app(status), S.REJECTED, notes="position filled")
    assert result.application.status is S.REJECTED
    assert result.notification.kind is NotificationKind.REJECTION


def test_notifications_follow_the_new_status() -> None:
    reviewing = transition(_app(), S.REVIEWING).notification
    assert reviewing.kind is NotificationKind.STATUS_CHANGED
    assert reviewing.previous is S.PENDING and reviewing.current is S.REVIEWING
    assert reviewing.candidate_id == "cand-1"
    invite = transition(_app(S.SHORTLISTED), S.INTERVIEW_SCHEDULED).notification
    assert invite.kind is NotificationKind.INTERVIEW_INVITATION
    offer = transition(_app(S.INTERVIEW_SCHEDULED), S.HIRED).notification
    assert offer.kind is NotificationKind.OFFER
    assert offer.to_dict()["kind"] == "offer"


def test_actions_map_to_targets() -> None:
    app = apply_action(_app(), "review", notes="first pass").application
    assert app.status is S.REVIEWING
    app = apply_action(app, "shortlist").application
    app = apply_action(app, "schedule-interview").application
    assert app.status is S.INTERVIEW_SCHEDULED
    assert apply_action(app, "hire").application.status is S.HIRED
    with pytest.raises(ValidationError):
        apply_action(app, "promote")
    with pytest.raises(TransitionError):
        apply_action(_app(), "hire")


def test_allowed_actions_and_targets() -> None:
    assert allowed_actions(S.PENDING) == ["review", "reject"]
    assert allowed_actions("interview-scheduled") == ["reject", "hire"]
    assert allowed_actions(S.HIRED) == []
    assert allowed_targets(S.SHORTLISTED) == [S.INTERVIEW_SCHEDULED, S.REJECTED]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("new", S.PENDING),
        ("screening", S.REVIEWING),
        ("interview", S.INTERVIEW_SCHEDULED),
        ("Shortlisted", S.SHORTLISTED),
        (S.HIRED, S.HIRED),
    ],
)
def test_legacy_status_names(raw, expected) -> None:
    assert normalize_status(raw) is expected


def test_unknown_status_is_rejected() -> None:
    with pytest.raises(ValidationError):
        normalize_status("on-hold")


def test_application_round_trip_and_consistency() -> None:
    app = _app(S.SHORTLISTED)
    restored = Application.from_dict(app.to_dict())
    assert restored == app
    data = app.to_dict()
    data["status"] = "hired"
    with pytest.raises(ValidationError):
        Application.from_dict(data)
