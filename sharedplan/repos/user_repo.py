from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from sharedplan.models.user import APPROVED, PENDING, User
from sharedplan.repos.errors import DuplicateEmailError, UserNotFoundError


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def get_by_email(self, email: str) -> User | None: ...
    async def add(self, user: User) -> None: ...
    async def list_pending(self) -> list[User]: ...
    async def list_approved(self) -> list[User]: ...
    async def mark_approved(self, user_id: UUID, group_id: UUID) -> User: ...
    async def revert_to_pending(self, user_id: UUID) -> User: ...
    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_email: dict[str, User] = {}
        self._by_id: dict[UUID, User] = {}

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        return self._by_email.get(email)

    async def add(self, user: User) -> None:
        if user.email in self._by_email:
            raise DuplicateEmailError("email already exists")
        self._store(user)

    async def list_pending(self) -> list[User]:
        return [u for u in self._by_id.values() if u.status == PENDING]

    async def list_approved(self) -> list[User]:
        return [u for u in self._by_id.values() if u.status == APPROVED]

    async def mark_approved(self, user_id: UUID, group_id: UUID) -> User:
        return self._update(user_id, status=APPROVED, group_id=group_id)

    async def revert_to_pending(self, user_id: UUID) -> User:
        return self._update(user_id, status=PENDING, group_id=None)

    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None:
        self._update(user_id, password_hash=password_hash)

    def _update(self, user_id: UUID, **changes: object) -> User:
        u = self._by_id.get(user_id)
        if u is None:
            raise UserNotFoundError(user_id)
        updated = replace(u, **changes)  # type: ignore[arg-type]
        self._store(updated)
        return updated

    def _store(self, user: User) -> None:
        self._by_email[user.email] = user
        self._by_id[user.id] = user
