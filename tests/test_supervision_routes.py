"""Supervision session workflow through the API."""
from __future__ import annotations

from datetime import datetime

import pytest

from training_portal import db
from training_portal.models import Supervisor, SupervisionSession


@pytest.fixture
def supervisor(headers_for, program):
    return headers_for("supervisor", supervisor_id=program["supervisor"])


def _create(client, headers, **overrides):
    payload = {
        "intern_id": overrides.pop("intern_id"),
        "occurred_at": "2024-03-15T10:00:00Z",
        "duration_minutes": 90,
        "format": "individual",
    }
    payload.update(overrides)
    return client.post("/api/supervision/sessions", json=payload, headers=headers)


def test_supervisor_logs_draft_attributed_to_them(client, supervisor, program) -> None:
    response = _create(client, supervisor, intern_id=program["ready"], focus="<b>Case</b> review")
    assert response.status_code == 201
    body = response.get_json()
    assert body["status"] == "draft"
    assert body["is_locked"] is False
    assert body["supervisor_id"] == program["supervisor"]
    assert body["focus"] == "Case review"
    assert body["counts_for_hours"] is None


def test_occurred_at_is_stored_as_utc(app, client, executive, program) -> None:
    response = _create(client, executive, intern_id=program["ready"], occurred_at="2024-03-15T10:00:00-04:00")
    session_id = response.get_json()["id"]
    with app.app_context():
        stored = db.session.get(SupervisionSession, session_id)
        assert stored.occurred_at == datetime(2024, 3, 15, 14, 0)


def test_rejects_negative_duration_and_bad_dates(client, executive, program) -> None:
    response = _create(client, executive, intern_id=program["ready"], duration_minutes=-30)
    assert response.status_code == 400
    assert "duration_minutes" in response.get_json()["error"]["fields"]

    response = _create(client, executive, intern_id=program["ready"], occurred_at="someday")
    assert response.status_code == 400


def test_unknown_intern_is_not_found(client, executive) -> None:
    response = _create(client, executive, intern_id=999)
    assert response.status_code == 404


def test_supervisor_cannot_log_for_unassigned_intern(client, supervisor, program) -> None:
    response = _create(client, supervisor, intern_id=program["other"])
    assert response.status_code == 403


def test_submit_locks_the_session(client, supervisor, program) -> None:
    session_id = _create(client, supervisor, intern_id=program["ready"]).get_json()["id"]

    update = client.put(
        f"/api/supervision/sessions/{session_id}", json={"duration_minutes": 60}, headers=supervisor
    )
    assert update.status_code == 200
    assert update.get_json()["duration_minutes"] == 60

    submitted = client.post(f"/api/supervision/sessions/{session_id}/submit", headers=supervisor)
    assert submitted.status_code == 200
    assert submitted.get_json()["status"] == "submitted"
    assert submitted.get_json()["is_locked"] is True

    again = client.post(f"/api/supervision/sessions/{session_id}/submit", headers=supervisor)
    assert again.status_code == 409

    edit = client.put(
        f"/api/supervision/sessions/{session_id}", json={"duration_minutes": 30}, headers=supervisor
    )
    assert edit.status_code == 409
    delete = client.delete(f"/api/supervision/sessions/{session_id}", headers=supervisor)
    assert delete.status_code == 409


def test_draft_can_be_deleted(client, executive, program) -> None:
    session_id = _create(client, executive, intern_id=program["ready"]).get_json()["id"]
    assert client.delete(f"/api/supervision/sessions/{session_id}", headers=executive).status_code == 200
    assert client.get(f"/api/supervision/sessions/{session_id}", headers=executive).status_code == 404


def test_intern_sees_only_own_sessions(client, executive, headers_for, program) -> None:
    _create(client, executive, intern_id=program["ready"])
    _create(client, executive, intern_id=program["other"])
    intern = headers_for("intern", intern_id=program["ready"])

    listed = client.get("/api/supervision/sessions", headers=intern)
    assert listed.status_code == 200
    assert {s["intern_id"] for s in listed.get_json()} == {program["ready"]}

    assert client.get(
        f"/api/supervision/sessions?intern_id={program['other']}", headers=intern
    ).status_code == 403
    assert _create(client, intern, intern_id=program["ready"]).status_code == 403


def test_sessions_listed_newest_first(client, executive, program) -> None:
    _create(client, executive, intern_id=program["ready"], occurred_at="2024-01-01T12:00:00Z")
    _create(client, executive, intern_id=program["ready"], occurred_at="2024-02-01T12:00:00Z")
    listed = client.get("/api/supervision/sessions", headers=executive).get_json()
    assert [s["occurred_at"][:7] for s in listed] == ["2024-02", "2024-01"]


def test_occurred_at_round_trips_in_display_timezone(app, client, executive, program) -> None:
    app.config["DISPLAY_TIMEZONE"] = "America/Toronto"
    created = _create(client, executive, intern_id=program["ready"], occurred_at="2024-03-01T00:30:00")
    body = created.get_json()
    assert body["occurred_at"] == "2024-03-01T05:30:00+00:00"

    echoed = client.put(
        f"/api/supervision/sessions/{body['id']}", json={"occurred_at": body["occurred_at"]}, headers=executive
    )
    assert echoed.status_code == 200
    assert echoed.get_json()["occurred_at"] == body["occurred_at"]
    with app.app_context():
        stored = db.session.get(SupervisionSession, body["id"])
        assert stored.occurred_at == datetime(2024, 3, 1, 5, 30)


def test_supervisor_write_scope(app, client, supervisor, program) -> None:
    with app.app_context():
        other_supervisor = Supervisor(full_name="Morgan Diaz")
        db.session.add(other_supervisor)
        db.session.commit()
        other_supervisor_id = other_supervisor.id

    refused = _create(client, supervisor, intern_id=program["ready"], supervisor_id=other_supervisor_id)
    assert refused.status_code == 403

    session_id = _create(client, supervisor, intern_id=program["ready"]).get_json()["id"]
    moved = client.put(
        f"/api/supervision/sessions/{session_id}", json={"intern_id": program["other"]}, headers=supervisor
    )
    assert moved.status_code == 403
    reattributed = client.put(
        f"/api/supervision/sessions/{session_id}", json={"supervisor_id": other_supervisor_id}, headers=supervisor
    )
    assert reattributed.status_code == 403
    with app.app_context():
        stored = db.session.get(SupervisionSession, session_id)
        assert stored.intern_id == program["ready"]
        assert stored.supervisor_id == program["supervisor"]
