from __future__ import annotations

import os
import sys
from pathlib import Path

# Settings are read once at import; pin them before sharedplan loads.
os.environ["APP_ENV"] = "test"
os.environ["ADMIN_EMAILS"] = "admin@example.com"
os.environ["RECEIPT_DELAY_SECONDS"] = "0"
os.environ.pop("DATABASE_URL", None)
os.environ.pop("REDIS_URL", None)

import asyncio  # noqa: E402
from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from sharedplan.api.ratelimit import _rate_limiter  # noqa: E402
from sharedplan.main import app  # noqa: E402
from sharedplan.models.group import Group  # noqa: E402
from sharedplan.models.user import APPROVED, PENDING, User, UserStatus  # noqa: E402
from sharedplan.services import auth_service, token_service  # noqa: E402
from sharedplan.services.directory import directory  # noqa: E402
from sharedplan.services.token_blacklist import token_blacklist  # noqa: E402

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

ADMIN_EMAIL = "admin@example.com"
PASSWORD = "secret-pass"


@pytest.fixture(autouse=True)
def reset_directory() -> None:
    """Empty the in-memory users, groups and feed between tests."""
    directory.users._by_id.clear()  # type: ignore[attr-defined]
    directory.users._by_email.clear()  # type: ignore[attr-defined]
    directory.groups._by_id.clear()  # type: ignore[attr-defined]
    directory.feed._subscribers.clear()  # type: ignore[attr-defined]


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    if hasattr(_rate_limiter, "_buckets"):
        _rate_limiter._buckets.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_token_blacklist() -> None:
    if hasattr(token_blacklist, "_revoked"):
        token_blacklist._revoked.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(username: str = "test-user", roles: list[str] | None = None) -> str:
    """Create a valid ES256 access token for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(token: str | None) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}


def seed_user(
    email: str = "member@example.com",
    *,
    password: str | None = PASSWORD,
    roles: tuple[str, ...] = ("user",),
    status: UserStatus = PENDING,
) -> User:
    """Store a user (pending by default) directly in the in-memory directory."""
    user = User.new(
        email=email,
        password_hash=auth_service.hash_password(password) if password else None,
        roles=roles,
        status=status,
    )
    asyncio.run(directory.users.add(user))
    return user


def seed_group(
    name: str = "Grupo 1", renewal_date: date = date(2026, 12, 1), members: int = 0
) -> Group:
    """Store a group, optionally pre-filled with ``members`` placeholder users."""
    group = Group.new(name=name, renewal_date=renewal_date)

    async def _seed() -> Group:
        await directory.groups.add(group)
        current = group
        for i in range(members):
            filler = User.new(email=f"filler-{group.id.hex[:6]}-{i}@example.com")
            await directory.users.add(filler)
            await directory.users.mark_approved(filler.id, group.id)
            current = await directory.groups.append_member(
                group.id, filler.id, capacity=max(members, 1)
            )
        return current

    return asyncio.run(_seed())


def user_token(user: User) -> str:
    return mint_token(username=str(user.id), roles=list(user.roles) or ["user"])


@pytest.fixture
def admin_token() -> str:
    admin = seed_user(ADMIN_EMAIL, roles=("admin",), status=APPROVED)
    return user_token(admin)
