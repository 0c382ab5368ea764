"""Shared pytest fixtures for the training portal tests.

Each test gets a fresh application bound to an in-memory SQLite
database. Tokens are minted directly with ``create_access_token`` so
tests can act as any role without going through ``/api/login``.
"""
from __future__ import annotations

import pytest
from flask_jwt_extended import create_access_token

from training_portal import create_app, db
from training_portal.models import Intern, InternStatus, Supervisor, SupervisorIntern


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "JWT_SECRET_KEY": "test-secret-key-that-is-long-enough-for-hs256",
        "DISPLAY_TIMEZONE": "UTC",
        "SUPERVISION_HOURLY_RATE": 100.0,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def headers_for(app):
    """Return a factory building ``Authorization`` headers for a role."""
    def make(role: str, intern_id: int | None = None, supervisor_id: int | None = None) -> dict:
        claims = {"role": role}
        if intern_id is not None:
            claims["intern_id"] = intern_id
        if supervisor_id is not None:
            claims["supervisor_id"] = supervisor_id
        with app.app_context():
            token = create_access_token(identity="1", additional_claims=claims)
        return {"Authorization": f"Bearer {token}"}

    return make


@pytest.fixture
def executive(headers_for):
    return headers_for("executive")


@pytest.fixture
def program(app):
    """A supervisor with two interns (one eligible for clients) and an unlinked intern.

    Returns a dict of ids.
    """
    with app.app_context():
        supervisor = Supervisor(full_name="Dana Okafor")
        ready = Intern(full_name="Alex Rivera", status=InternStatus.ACTIVE, ready_for_clients=True)
        not_ready = Intern(full_name="Jordan Smith", status=InternStatus.ACTIVE, ready_for_clients=False)
        other = Intern(full_name="Riley Chen", status=InternStatus.ONBOARDING)
        db.session.add_all([supervisor, ready, not_ready, other])
        db.session.flush()
        db.session.add_all([
            SupervisorIntern(supervisor_id=supervisor.id, intern_id=ready.id),
            SupervisorIntern(supervisor_id=supervisor.id, intern_id=not_ready.id),
        ])
        db.session.commit()
        return {
            "supervisor": supervisor.id,
            "ready": ready.id,
            "not_ready": not_ready.id,
            "other": other.id,
        }
