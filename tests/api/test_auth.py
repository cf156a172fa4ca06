"""JSON identity endpoints: sign-up, sign-in, current session, sign-out."""

from __future__ import annotations

from tests.conftest import ADMIN_EMAIL, PASSWORD, auth, seed_user


def test_register_creates_pending_user(client) -> None:
    r = client.post("/auth/register", json={"email": "New@Example.com", "password": PASSWORD})
    assert r.status_code == 201
    body = r.json()
    assert body["home"] == "/dashboard"
    assert body["user"]["email"] == "new@example.com"
    assert body["user"]["status"] == "pending"
    assert body["user"]["groupId"] is None
    assert body["accessToken"]


def test_register_admin_email_goes_to_console(client) -> None:
    r = client.post("/auth/register", json={"email": ADMIN_EMAIL, "password": PASSWORD})
    assert r.status_code == 201
    assert r.json()["home"] == "/admin"
    assert r.json()["user"]["roles"] == ["admin"]
    assert r.json()["user"]["status"] == "pending"


def test_register_duplicate_email(client) -> None:
    seed_user("taken@example.com")
    r = client.post("/auth/register", json={"email": "taken@example.com", "password": PASSWORD})
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "email_taken"


def test_register_validation(client) -> None:
    r = client.post("/auth/register", json={"email": "not-an-email", "password": PASSWORD})
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "invalid_email"

    r = client.post("/auth/register", json={"email": "a@example.com", "password": "123"})
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "weak_password"


def test_login_and_session(client) -> None:
    seed_user("member@example.com")
    r = client.post("/auth/login", json={"email": "member@example.com", "password": PASSWORD})
    assert r.status_code == 200
    token = r.json()["accessToken"]

    r = client.get("/auth/session", headers=auth(token))
    assert r.status_code == 200
    assert r.json()["home"] == "/dashboard"
    assert r.json()["user"]["email"] == "member@example.com"


def test_login_wrong_password(client) -> None:
    seed_user("member@example.com")
    r = client.post("/auth/login", json={"email": "member@example.com", "password": "nope-nope"})
    assert r.status_code == 401
    assert r.json()["detail"] == {
        "code": "login_failed",
        "message": "Error al iniciar sesión",
    }


def test_login_unknown_email(client) -> None:
    r = client.post("/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})
    assert r.status_code == 401


def test_google_login_rejects_bad_token(client) -> None:
    r = client.post("/auth/google", json={"idToken": "not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["detail"]["code"] == "google_login_failed"


def test_session_requires_token(client) -> None:
    r = client.get("/auth/session")
    assert r.status_code == 401
    assert r.json()["detail"] == "Not authenticated"


def test_logout_revokes_token(client) -> None:
    seed_user("member@example.com")
    token = client.post(
        "/auth/login", json={"email": "member@example.com", "password": PASSWORD}
    ).json()["accessToken"]

    r = client.post("/auth/logout", headers=auth(token))
    assert r.status_code == 204

    r = client.get("/auth/session", headers=auth(token))
    assert r.status_code == 401
    assert r.json()["detail"] == "Token has been revoked"


def test_logout_without_token_is_idempotent(client) -> None:
    assert client.post("/auth/logout").status_code == 204
    assert client.post("/auth/logout", headers=auth("garbage")).status_code == 204
