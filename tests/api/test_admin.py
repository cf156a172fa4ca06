"""Admin console API: pending users, groups and approvals."""

from __future__ import annotations

import asyncio
import uuid
from datetime import date

from sharedplan.services.directory import directory
from tests.conftest import auth, seed_group, seed_user


def _user(user_id):
    return asyncio.run(directory.users.get_by_id(user_id))


def _group(group_id):
    return asyncio.run(directory.groups.get(group_id))


def test_pending_users_filtered_by_email(client, admin_token) -> None:
    seed_user("ana@example.com")
    seed_user("beto@example.com")

    r = client.get("/v1/admin/users/pending", headers=auth(admin_token))
    emails = {u["email"] for u in r.json()}
    assert emails == {"ana@example.com", "beto@example.com"}

    r = client.get("/v1/admin/users/pending?q=ANA", headers=auth(admin_token))
    assert [u["email"] for u in r.json()] == ["ana@example.com"]
    assert r.json()[0]["status"] == "pending"


def test_create_and_list_groups(client, admin_token) -> None:
    r = client.post(
        "/v1/admin/groups",
        json={"name": "Familia", "renewalDate": "2026-12-01"},
        headers=auth(admin_token),
    )
    assert r.status_code == 201
    created = r.json()
    assert created["name"] == "Familia"
    assert created["renewalDate"] == "2026-12-01"
    assert created["memberCount"] == 0
    assert created["capacity"] == 6

    r = client.get("/v1/admin/groups", headers=auth(admin_token))
    assert [g["id"] for g in r.json()] == [created["id"]]


def test_create_group_requires_all_fields(client, admin_token) -> None:
    r = client.post(
        "/v1/admin/groups",
        json={"name": "  ", "renewalDate": "2026-12-01"},
        headers=auth(admin_token),
    )
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "fill_all_fields"


def test_selectable_groups_exclude_full(client, admin_token) -> None:
    open_group = seed_group("Abierto", members=2)
    seed_group("Lleno", members=6)

    r = client.get("/v1/admin/groups/selectable", headers=auth(admin_token))
    assert [g["id"] for g in r.json()] == [str(open_group.id)]


def test_approve_assigns_user(client, admin_token) -> None:
    user = seed_user("pending@example.com")
    group = seed_group("Familia", renewal_date=date(2026, 12, 1))

    r = client.post(
        "/v1/admin/approvals",
        json={"userId": str(user.id), "groupId": str(group.id)},
        headers=auth(admin_token),
    )
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "approved"
    assert body["group"]["members"] == [str(user.id)]

    stored = _user(user.id)
    assert stored.status == "approved"
    assert stored.group_id == group.id


def test_approve_without_group(client, admin_token) -> None:
    user = seed_user("pending@example.com")
    r = client.post(
        "/v1/admin/approvals",
        json={"userId": str(user.id), "groupId": ""},
        headers=auth(admin_token),
    )
    assert r.status_code == 422
    assert r.json()["detail"] == {
        "code": "select_group",
        "message": "Por favor selecciona un grupo",
    }
    assert _user(user.id).status == "pending"


def test_approve_into_full_group(client, admin_token) -> None:
    user = seed_user("pending@example.com")
    group = seed_group("Lleno", members=6)

    r = client.post(
        "/v1/admin/approvals",
        json={"userId": str(user.id), "groupId": str(group.id)},
        headers=auth(admin_token),
    )
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "group_full"
    assert _user(user.id).status == "pending"
    assert _group(group.id).member_count == 6


def test_approve_twice(client, admin_token) -> None:
    user = seed_user("pending@example.com")
    group = seed_group()
    payload = {"userId": str(user.id), "groupId": str(group.id)}

    assert client.post("/v1/admin/approvals", json=payload, headers=auth(admin_token)).status_code == 200
    r = client.post("/v1/admin/approvals", json=payload, headers=auth(admin_token))
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "user_not_pending"
    assert _group(group.id).member_count == 1


def test_approve_unknown_targets(client, admin_token) -> None:
    user = seed_user("pending@example.com")
    group = seed_group()

    r = client.post(
        "/v1/admin/approvals",
        json={"userId": str(uuid.uuid4()), "groupId": str(group.id)},
        headers=auth(admin_token),
    )
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "user_not_found"

    for bad_group in (str(uuid.uuid4()), "not-a-uuid"):
        r = client.post(
            "/v1/admin/approvals",
            json={"userId": str(user.id), "groupId": bad_group},
            headers=auth(admin_token),
        )
        assert r.status_code == 404
        assert r.json()["detail"]["code"] == "group_not_found"


def test_delete_group_needs_confirmation(client, admin_token) -> None:
    group = seed_group()

    r = client.delete(f"/v1/admin/groups/{group.id}", headers=auth(admin_token))
    assert r.status_code == 428
    assert r.json()["detail"]["code"] == "confirm_delete"
    assert _group(group.id) is not None

    r = client.delete(f"/v1/admin/groups/{group.id}?confirm=true", headers=auth(admin_token))
    assert r.status_code == 204
    assert _group(group.id) is None

    r = client.delete(f"/v1/admin/groups/{group.id}?confirm=true", headers=auth(admin_token))
    assert r.status_code == 404


def test_deleting_group_leaves_members_dangling(client, admin_token) -> None:
    user = seed_user("pending@example.com")
    group = seed_group()
    client.post(
        "/v1/admin/approvals",
        json={"userId": str(user.id), "groupId": str(group.id)},
        headers=auth(admin_token),
    )
    client.delete(f"/v1/admin/groups/{group.id}?confirm=true", headers=auth(admin_token))

    stored = _user(user.id)
    assert stored.status == "approved"
    assert stored.group_id == group.id

    r = client.post("/v1/admin/reconcile", headers=auth(admin_token))
    assert r.status_code == 200
    assert r.json() == {"repaired": [], "reverted": [], "dangling": [str(user.id)]}


def test_reconcile_on_consistent_store(client, admin_token) -> None:
    seed_group(members=3)
    r = client.post("/v1/admin/reconcile", headers=auth(admin_token))
    assert r.json() == {"repaired": [], "reverted": [], "dangling": []}
