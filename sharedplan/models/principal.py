from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    Carried through the request via FastAPI's dependency system, so route
    code never reaches for a global "current user".

        user_id: subject from the JWT
        roles:   server-side roles copied into the token at sign-in
        jti:     token id, needed to revoke the session on sign-out
        exp:     token expiry (Unix seconds)
    """

    user_id: str
    roles: frozenset[str]
    jti: str | None = None
    exp: float | None = None

    @property
    def user_uuid(self) -> UUID:
        return UUID(self.user_id)

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def is_admin(self) -> bool:
        return "admin" in self.roles
