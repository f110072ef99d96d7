"""HTTP tests against the FastAPI app backed by the in-memory store."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from worktrack.dependencies import get_store
from worktrack.main import create_application

SIGNUP_BODY = {
    "organization_name": "Acme Corporation",
    "email_domain": "acme.com",
    "department_name": "General",
    "email": "john@acme.com",
    "first_name": "John",
    "last_name": "Doe",
    "password": "correct-horse",
    "confirm_password": "correct-horse",
}


@pytest.fixture
def client(memory_store):
    app = create_application()
    app.dependency_overrides[get_store] = lambda: memory_store
    return TestClient(app)


@pytest.fixture
def owner_headers(client):
    assert client.post("/signup", json=SIGNUP_BODY).status_code == 201
    return _login(client, "john@acme.com", "correct-horse")


def _login(client, email, password):
    response = client.post("/login", data={"username": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def _add_member(client, headers, email, role="employee"):
    return client.post(
        "/team/members",
        json={"email": email, "first_name": "Mary", "last_name": "Major", "role": role},
        headers=headers,
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_signup_returns_created_records(client):
    response = client.post("/signup", json=SIGNUP_BODY)

    assert response.status_code == 201
    body = response.json()
    assert body["organization"]["name"] == "Acme Corporation"
    assert body["department"]["name"] == "General"
    assert body["user"]["role"] == "owner"
    assert body["license"]["plan_name"] == "starter"
    assert "encrypted_password" not in body["credential"]


def test_signup_password_mismatch_is_rejected(client, memory_store):
    response = client.post("/signup", json={**SIGNUP_BODY, "confirm_password": "other-horse"})

    assert response.status_code == 422
    assert memory_store.count("organizations") == 0


def test_signup_without_confirmation_is_rejected(client, memory_store):
    body = {k: v for k, v in SIGNUP_BODY.items() if k != "confirm_password"}

    response = client.post("/signup", json=body)

    assert response.status_code == 422
    assert memory_store.count("organizations") == 0
    assert memory_store.count("auth_users") == 0


def test_signup_short_password_is_rejected(client):
    body = {**SIGNUP_BODY, "password": "short", "confirm_password": "short"}
    assert client.post("/signup", json=body).status_code == 422


def test_signup_missing_field_reports_it(client):
    response = client.post("/signup", json={**SIGNUP_BODY, "last_name": "  "})

    assert response.status_code == 422
    assert response.json()["error"] == "VALIDATION_ERROR"
    assert response.json()["details"]["missing"] == ["last_name"]


def test_duplicate_signup_reports_failed_step(client, memory_store):
    client.post("/signup", json=SIGNUP_BODY)

    response = client.post("/signup", json={**SIGNUP_BODY, "organization_name": "Acme Two"})

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "SIGNUP_STEP_FAILED"
    assert body["details"]["step"] == 3
    assert body["details"]["table"] == "auth_users"
    assert body["details"]["compensated"] == ["departments", "organizations"]
    assert memory_store.count("organizations") == 1


def test_login_with_wrong_password(client, owner_headers):
    response = client.post(
        "/login", data={"username": "john@acme.com", "password": "wrong-horse"}
    )
    assert response.status_code == 401
    assert response.json()["error"] == "INVALID_CREDENTIALS"


def test_anonymous_session_snapshot(client):
    response = client.get("/session")

    assert response.status_code == 200
    body = response.json()
    assert body["identity"] is None
    assert body["loading"] is False
    assert body["status"] == "anonymous"


def test_identified_session_snapshot(client, owner_headers):
    body = client.get("/session", headers=owner_headers).json()

    assert body["identity"]["email"] == "john@acme.com"
    assert body["user"]["role"] == "owner"
    assert body["organization"]["name"] == "Acme Corporation"
    assert body["error"] is None


def test_me_requires_a_token(client):
    response = client.get("/me")

    assert response.status_code == 401
    assert response.json()["error"] == "INVALID_SESSION"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_me_returns_profile(client, owner_headers):
    body = client.get("/me", headers=owner_headers).json()
    assert body["email"] == "john@acme.com"
    assert body["first_name"] == "John"


def test_navigation_for_owner(client, owner_headers):
    items = client.get("/navigation", headers=owner_headers).json()
    assert "team" in items
    assert "dashboard" in items


def test_owner_adds_member_who_can_sign_in(client, owner_headers):
    response = _add_member(client, owner_headers, "mary@acme.com")

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["role"] == "employee"
    headers = _login(client, "mary@acme.com", body["temporary_password"])

    items = client.get("/navigation", headers=headers).json()
    assert "team" not in items


def test_employee_cannot_add_members(client, owner_headers):
    body = _add_member(client, owner_headers, "mary@acme.com").json()
    headers = _login(client, "mary@acme.com", body["temporary_password"])

    response = _add_member(client, headers, "max@acme.com")
    assert response.status_code == 403
    assert response.json()["error"] == "PERMISSION_DENIED"
    assert response.json()["message"] == "Team management privileges required"


def test_manager_can_add_members(client, owner_headers):
    body = _add_member(client, owner_headers, "max@acme.com", role="manager").json()
    headers = _login(client, "max@acme.com", body["temporary_password"])

    assert _add_member(client, headers, "mary@acme.com").status_code == 201


def test_owner_role_cannot_be_assigned(client, owner_headers):
    response = _add_member(client, owner_headers, "mary@acme.com", role="owner")
    assert response.status_code == 422


def test_team_listings(client, owner_headers):
    _add_member(client, owner_headers, "mary@acme.com")

    members = client.get("/team/members", headers=owner_headers).json()
    departments = client.get("/team/departments", headers=owner_headers).json()

    assert {m["email"] for m in members} == {"john@acme.com", "mary@acme.com"}
    assert [d["name"] for d in departments] == ["General"]


def test_password_change_flow(client, owner_headers):
    response = client.put("/password", json={"password": "battery-staple"}, headers=owner_headers)
    assert response.status_code == 200

    _login(client, "john@acme.com", "battery-staple")


def test_identity_without_profile_is_forbidden(client, memory_store):
    owner = client.post("/signup", json=SIGNUP_BODY).json()["user"]
    asyncio.run(memory_store.delete_one("users", owner["id"]))
    headers = _login(client, "john@acme.com", "correct-horse")

    response = client.get("/me", headers=headers)

    assert response.status_code == 403
    assert response.json()["error"] == "PERMISSION_DENIED"


def test_request_id_is_echoed(client):
    assert client.get("/health").headers["X-Request-ID"]

    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
