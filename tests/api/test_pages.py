"""Server-rendered pages: cookie sessions, redirects and notices."""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from sharedplan.services.directory import directory
from tests.conftest import ADMIN_EMAIL, PASSWORD, seed_group, seed_user


def _login(client: TestClient, email: str, password: str = PASSWORD):
    return client.post(
        "/login",
        data={"email": email, "password": password},
        follow_redirects=False,
    )


def test_root_redirects_anonymous_to_login(client: TestClient) -> None:
    r = client.get("/", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"


def test_login_page_renders_notice(client: TestClient) -> None:
    r = client.get("/login?notice=login_failed")
    assert r.status_code == 200
    assert "Error al iniciar sesión" in r.text
    assert "{notice}" not in r.text


def test_login_form_sets_cookies_and_routes_home(client: TestClient) -> None:
    seed_user("member@example.com")
    r = _login(client, "member@example.com")
    assert r.status_code == 303
    assert r.headers["location"] == "/dashboard?notice=login_ok"
    assert "session" in r.cookies
    assert r.cookies["authSession"] == "true"

    r = client.get("/", follow_redirects=False)
    assert r.headers["location"] == "/dashboard"


def test_login_form_failure(client: TestClient) -> None:
    seed_user("member@example.com")
    r = _login(client, "member@example.com", "wrong-password")
    assert r.status_code == 303
    assert r.headers["location"] == "/login?notice=login_failed"
    assert "session" not in r.cookies


def test_admin_routes_to_console(client: TestClient) -> None:
    seed_user(ADMIN_EMAIL, roles=("admin",))
    r = _login(client, ADMIN_EMAIL)
    assert r.headers["location"] == "/admin?notice=login_ok"
    r = client.get("/admin")
    assert r.status_code == 200
    assert "Panel de administración" in r.text


def test_admin_page_redirects_anonymous(client: TestClient) -> None:
    r = client.get("/admin", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"


def test_admin_page_redirects_members(client: TestClient) -> None:
    seed_user("member@example.com")
    _login(client, "member@example.com")
    r = client.get("/admin", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"


def test_register_form(client: TestClient) -> None:
    r = client.post(
        "/register",
        data={"email": "nuevo@example.com", "password": PASSWORD},
        follow_redirects=False,
    )
    assert r.status_code == 303
    assert r.headers["location"] == "/dashboard?notice=register_ok"

    r = client.get("/dashboard")
    assert r.status_code == 200
    assert "Pendiente de asignación" in r.text
    assert "pendiente de aprobación" in r.text


def test_register_form_rejects_short_password(client: TestClient) -> None:
    r = client.post(
        "/register",
        data={"email": "nuevo@example.com", "password": "123"},
        follow_redirects=False,
    )
    assert r.headers["location"] == "/register?notice=weak_password"


def test_logout_clears_cookies_and_revokes_session(client: TestClient) -> None:
    seed_user("member@example.com")
    _login(client, "member@example.com")
    session_cookie = client.cookies.get("session")

    r = client.post("/logout", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/login?notice=signout_ok"
    assert client.get("/dashboard", follow_redirects=False).status_code == 303

    # Replaying the old cookie does not bring the session back
    client.cookies.set("session", session_cookie)
    r = client.get("/dashboard", follow_redirects=False)
    assert r.headers["location"] == "/login"


def test_admin_approves_from_console(client: TestClient) -> None:
    seed_user(ADMIN_EMAIL, roles=("admin",))
    member = seed_user("member@example.com")
    group = seed_group("Familia")
    _login(client, ADMIN_EMAIL)

    r = client.post(
        "/admin/approve",
        data={"user_id": str(member.id), "group_id": ""},
        follow_redirects=False,
    )
    assert r.headers["location"] == "/admin?notice=select_group"

    r = client.post(
        "/admin/approve",
        data={"user_id": str(member.id), "group_id": str(group.id)},
        follow_redirects=False,
    )
    assert r.headers["location"] == "/admin?notice=approval_ok"
    stored = asyncio.run(directory.users.get_by_id(member.id))
    assert stored.group_id == group.id


def test_admin_deletes_group_only_when_confirmed(client: TestClient) -> None:
    seed_user(ADMIN_EMAIL, roles=("admin",))
    group = seed_group()
    _login(client, ADMIN_EMAIL)

    r = client.post(f"/admin/groups/{group.id}/delete", follow_redirects=False)
    assert r.headers["location"] == "/admin?notice=confirm_delete"

    r = client.post(
        f"/admin/groups/{group.id}/delete",
        data={"confirm": "yes"},
        follow_redirects=False,
    )
    assert r.headers["location"] == "/admin?notice=group_deleted"
    assert asyncio.run(directory.groups.get(group.id)) is None


def test_dashboard_receipt_preview(client: TestClient) -> None:
    seed_user("member@example.com")
    _login(client, "member@example.com")
    r = client.post(
        "/dashboard/receipt",
        files={"file": ("pago.png", b"\x89PNG", "image/png")},
    )
    assert r.status_code == 200
    assert "Comprobante de pago enviado con éxito" in r.text
    assert "data:image/png;base64," in r.text


def test_group_name_with_braces_is_rendered_verbatim(client: TestClient) -> None:
    seed_user(ADMIN_EMAIL, roles=("admin",))
    seed_group("{notice}")
    _login(client, ADMIN_EMAIL)

    r = client.get("/admin?notice=group_created")
    assert r.status_code == 200
    assert r.text.count("Grupo creado exitosamente") == 1
    assert "<td>{notice}</td>" in r.text
