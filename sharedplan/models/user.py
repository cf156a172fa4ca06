from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

UserStatus = Literal["pending", "approved"]

PENDING: UserStatus = "pending"
APPROVED: UserStatus = "approved"


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    status: UserStatus
    created_at: datetime
    group_id: UUID | None = None
    password_hash: str | None = None  # None for OAuth-only accounts
    name: str = ""
    roles: tuple[str, ...] = ()

    @staticmethod
    def new(
        *,
        email: str,
        password_hash: str | None = None,
        name: str = "",
        roles: tuple[str, ...] = (),
        status: UserStatus = PENDING,
    ) -> User:
        return User(
            id=uuid4(),
            email=email,
            status=status,
            created_at=datetime.now(UTC),
            password_hash=password_hash,
            name=name,
            roles=roles,
        )

    @property
    def is_pending(self) -> bool:
        return self.status == PENDING

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles

    @property
    def display_name(self) -> str:
        # Local part of the email, as shown in the dashboard greeting
        return self.email.split("@", 1)[0] or "Usuario"
