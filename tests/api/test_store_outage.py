"""A directory outage on a read answers with the generic notice, never a 500."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from sharedplan.repos.errors import StoreError
from sharedplan.services.directory import directory
from tests.conftest import PASSWORD, auth, seed_user, user_token

LOAD_FAILED = {"code": "load_failed", "message": "Error al cargar los datos"}


async def _unavailable(*args, **kwargs):
    raise StoreError("directory backend unavailable")


@pytest.mark.parametrize(
    "repo,method,path",
    [
        ("users", "list_pending", "/v1/admin/users/pending"),
        ("groups", "list_all", "/v1/admin/groups"),
        ("groups", "list_all", "/v1/admin/groups/selectable"),
    ],
)
def test_admin_reads_answer_503(
    client: TestClient, admin_token, monkeypatch, repo, method, path
) -> None:
    monkeypatch.setattr(getattr(directory, repo), method, _unavailable)
    r = client.get(path, headers=auth(admin_token))
    assert r.status_code == 503
    assert r.json()["detail"] == LOAD_FAILED


def test_member_view_answers_503(client: TestClient, monkeypatch) -> None:
    user = seed_user()
    monkeypatch.setattr(directory.users, "get_by_id", _unavailable)
    r = client.get("/v1/me", headers=auth(user_token(user)))
    assert r.status_code == 503
    assert r.json()["detail"]["code"] == "load_failed"


def test_dashboard_page_shows_notice(client: TestClient, monkeypatch) -> None:
    seed_user("member@example.com")
    client.post(
        "/login",
        data={"email": "member@example.com", "password": PASSWORD},
        follow_redirects=False,
    )
    monkeypatch.setattr(directory.users, "get_by_id", _unavailable)

    r = client.get("/dashboard", follow_redirects=False)
    assert r.status_code == 503
    assert r.headers["content-type"].startswith("text/html")
    assert "Error al cargar los datos" in r.text


def test_admin_page_shows_notice(client: TestClient, monkeypatch) -> None:
    seed_user("admin@example.com", roles=("admin",))
    client.post(
        "/login",
        data={"email": "admin@example.com", "password": PASSWORD},
        follow_redirects=False,
    )
    monkeypatch.setattr(directory.groups, "list_all", _unavailable)

    r = client.get("/admin")
    assert r.status_code == 503
    assert "Error al cargar los datos" in r.text
