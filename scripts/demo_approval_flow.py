"""Demo: register → admin approval → member dashboard, in-process.

Run with:
    python scripts/demo_approval_flow.py
"""

from __future__ import annotations

import os

# Must be set before sharedplan.core.config is imported
os.environ.setdefault("ADMIN_EMAILS", "admin@example.com")
os.environ.setdefault("RECEIPT_DELAY_SECONDS", "0")

from fastapi.testclient import TestClient  # noqa: E402

from sharedplan.main import app  # noqa: E402

ADMIN_EMAIL = "admin@example.com"
MEMBER_EMAIL = "member@example.com"
PASSWORD = "demo-pass"


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def main() -> None:
    client = TestClient(app)

    # ── Step 1: register the admin and a member ─────────────────────
    r = client.post("/auth/register", json={"email": ADMIN_EMAIL, "password": PASSWORD})
    admin = r.json()
    print(f"1. admin registered        → {r.status_code}  home={admin['home']}")

    r = client.post("/auth/register", json={"email": MEMBER_EMAIL, "password": PASSWORD})
    member = r.json()
    print(
        f"   member registered       → {r.status_code}  status={member['user']['status']}"
    )

    # ── Step 2: member dashboard before approval ────────────────────
    r = client.get("/v1/me", headers=_bearer(member["accessToken"]))
    print(f"2. GET /v1/me (pending)    → {r.status_code}  group={r.json()['groupName']}")

    # ── Step 3: admin creates a group ───────────────────────────────
    admin_headers = _bearer(admin["accessToken"])
    r = client.post(
        "/v1/admin/groups",
        json={"name": "Grupo Demo", "renewalDate": "2026-12-01"},
        headers=admin_headers,
    )
    group = r.json()
    print(f"3. group created           → {r.status_code}  id={group['id']}")

    # ── Step 4: approve without a group, then with one ──────────────
    r = client.post(
        "/v1/admin/approvals",
        json={"userId": member["user"]["id"], "groupId": ""},
        headers=admin_headers,
    )
    print(f"4. approve, no group       → {r.status_code}  {r.json()['detail']['message']}")

    r = client.post(
        "/v1/admin/approvals",
        json={"userId": member["user"]["id"], "groupId": group["id"]},
        headers=admin_headers,
    )
    print(f"   approve into group      → {r.status_code}  members={r.json()['group']['memberCount']}")

    # ── Step 5: member dashboard after approval ─────────────────────
    r = client.get("/v1/me", headers=_bearer(member["accessToken"]))
    view = r.json()
    print(
        f"5. GET /v1/me (approved)   → {r.status_code}  "
        f"group={view['groupName']} renewal={view['renewalDate']}"
    )

    # ── Step 6: sign out; the token stops working ───────────────────
    r = client.post("/auth/logout", headers=_bearer(member["accessToken"]))
    print(f"6. POST /auth/logout       → {r.status_code}")
    r = client.get("/v1/me", headers=_bearer(member["accessToken"]))
    print(f"   GET /v1/me (revoked)    → {r.status_code}")


if __name__ == "__main__":
    main()
