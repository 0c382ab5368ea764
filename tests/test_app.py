"""Application factory, error handling and authentication tests."""
from __future__ import annotations

from training_portal import create_app, db
from training_portal.models import Role, User


def test_health_endpoint() -> None:
    """Ensure the health check returns the expected response."""
    app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": "sqlite://"})
    with app.test_client() as client:
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.get_json() == {"status": "ok"}


def test_rate_is_configurable(app) -> None:
    assert app.config["SUPERVISION_HOURLY_RATE"] == 100.0
    assert app.config["INVOICE_RESPECT_COUNTS_FLAG"] is False


def test_protected_route_requires_token(client) -> None:
    response = client.get("/api/clients")
    assert response.status_code == 401


def test_first_account_bootstraps_then_requires_executive(client, headers_for) -> None:
    response = client.post("/api/register", json={
        "email": "Exec@Example.com", "password": "long-password", "role": "executive",
    })
    assert response.status_code == 201
    assert response.get_json()["email"] == "exec@example.com"
    assert "password_hash" not in response.get_json()

    response = client.post("/api/register", json={
        "email": "second@example.com", "password": "long-password", "role": "executive",
    })
    assert response.status_code == 401

    response = client.post(
        "/api/register",
        json={"email": "third@example.com", "password": "long-password", "role": "executive"},
        headers=headers_for("supervisor", supervisor_id=1),
    )
    assert response.status_code == 403
    assert response.get_json()["error"]["code"] == "FORBIDDEN"


def test_register_validates_input(client) -> None:
    response = client.post("/api/register", json={"email": "not-an-email", "password": "short"})
    assert response.status_code == 400
    body = response.get_json()["error"]
    assert body["code"] == "VALIDATION_ERROR"
    assert set(body["fields"]) == {"email", "password"}


def test_intern_account_needs_profile(client, executive, program) -> None:
    response = client.post(
        "/api/register",
        json={"email": "intern@example.com", "password": "long-password", "role": "intern"},
        headers=executive,
    )
    assert response.status_code == 400
    assert response.get_json()["error"]["fields"] == {"intern_id": ["Required."]}


def test_login_returns_token_with_role_claims(app, client, program) -> None:
    with app.app_context():
        user = User(email="alex@example.com", role=Role.INTERN, intern_id=program["ready"])
        user.set_password("long-password")
        db.session.add(user)
        db.session.commit()

    response = client.post("/api/login", json={"email": "alex@example.com", "password": "wrong"})
    assert response.status_code == 401

    response = client.post("/api/login", json={"email": "ALEX@example.com", "password": "long-password"})
    assert response.status_code == 200
    token = response.get_json()["access_token"]

    me = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.get_json()["role"] == "intern"
    assert me.get_json()["intern_id"] == program["ready"]

    own = client.get(f"/api/interns/{program['ready']}", headers={"Authorization": f"Bearer {token}"})
    assert own.status_code == 200
    other = client.get(f"/api/interns/{program['other']}", headers={"Authorization": f"Bearer {token}"})
    assert other.status_code == 403


def _login_as(app, client, email: str, **fields) -> dict:
    with app.app_context():
        user = User(email=email, **fields)
        user.set_password("long-password")
        db.session.add(user)
        db.session.commit()
    token = client.post("/api/login", json={"email": email, "password": "long-password"}).get_json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


def test_intern_edits_own_profile(app, client, program) -> None:
    headers = _login_as(app, client, "alex@example.com", role=Role.INTERN, intern_id=program["ready"])

    response = client.put("/api/me", json={
        "full_name": "Alex R. Rivera",
        "pronouns": "they/them",
        "school": "Adler University",
        "supervision_focus": "<b>Family</b> systems",
    }, headers=headers)
    assert response.status_code == 200
    body = response.get_json()
    assert body["full_name"] == "Alex R. Rivera"
    assert body["profile"]["full_name"] == "Alex R. Rivera"
    assert body["profile"]["pronouns"] == "they/them"
    assert body["profile"]["school"] == "Adler University"
    assert body["profile"]["supervision_focus"] == "Family systems"

    me = client.get("/api/me", headers=headers).get_json()
    assert me["profile"]["id"] == program["ready"]


def test_profile_fields_and_email_rules(app, client, program) -> None:
    _login_as(app, client, "taken@example.com", role=Role.EXECUTIVE)
    headers = _login_as(app, client, "dana@example.com", role=Role.SUPERVISOR, supervisor_id=program["supervisor"])

    response = client.put("/api/me", json={"school": "Nope"}, headers=headers)
    assert response.status_code == 400
    assert set(response.get_json()["error"]["fields"]) == {"school"}

    assert client.put("/api/me", json={"email": "TAKEN@example.com"}, headers=headers).status_code == 409

    response = client.put("/api/me", json={"email": "Dana.O@Example.com", "full_name": "Dana O."}, headers=headers)
    assert response.status_code == 200
    assert response.get_json()["email"] == "dana.o@example.com"
    assert response.get_json()["profile"]["full_name"] == "Dana O."


def test_change_password(app, client) -> None:
    headers = _login_as(app, client, "exec@example.com", role=Role.EXECUTIVE)

    wrong = client.post("/api/me/password", json={
        "current_password": "not-it", "new_password": "brand-new-pass", "confirm_password": "brand-new-pass",
    }, headers=headers)
    assert wrong.status_code == 400
    assert "current_password" in wrong.get_json()["error"]["fields"]

    mismatch = client.post("/api/me/password", json={
        "current_password": "long-password", "new_password": "brand-new-pass", "confirm_password": "other-pass",
    }, headers=headers)
    assert mismatch.status_code == 400
    assert "confirm_password" in mismatch.get_json()["error"]["fields"]

    changed = client.post("/api/me/password", json={
        "current_password": "long-password", "new_password": "brand-new-pass", "confirm_password": "brand-new-pass",
    }, headers=headers)
    assert changed.status_code == 200

    assert client.post("/api/login", json={"email": "exec@example.com", "password": "long-password"}).status_code == 401
    assert client.post("/api/login", json={"email": "exec@example.com", "password": "brand-new-pass"}).status_code == 200
