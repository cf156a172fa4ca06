from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from sharedplan.models.user import User
from sharedplan.repos.user_repo import InMemoryUserRepo
from sharedplan.services.users_service import list_pending_users


def _seed(repo: InMemoryUserRepo) -> list[User]:
    base = datetime(2026, 1, 1, tzinfo=UTC)
    users = [
        replace(User.new(email="Carla@Example.com"), created_at=base + timedelta(days=2)),
        replace(User.new(email="ana@example.com"), created_at=base),
        replace(User.new(email="bob@other.org"), created_at=base + timedelta(days=1)),
    ]

    async def _add() -> None:
        for u in users:
            await repo.add(u)

    asyncio.run(_add())
    return users


def test_pending_users_oldest_first() -> None:
    repo = InMemoryUserRepo()
    _seed(repo)
    emails = [u.email for u in asyncio.run(list_pending_users(repo))]
    assert emails == ["ana@example.com", "bob@other.org", "Carla@Example.com"]


def test_pending_users_filter_is_case_insensitive_substring() -> None:
    repo = InMemoryUserRepo()
    _seed(repo)
    emails = [u.email for u in asyncio.run(list_pending_users(repo, " EXAMPLE "))]
    assert emails == ["ana@example.com", "Carla@Example.com"]


def test_pending_users_excludes_approved() -> None:
    repo = InMemoryUserRepo()
    ana = _seed(repo)[1]
    asyncio.run(repo.mark_approved(ana.id, uuid4()))
    emails = [u.email for u in asyncio.run(list_pending_users(repo))]
    assert "ana@example.com" not in emails
