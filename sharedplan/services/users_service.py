from __future__ import annotations

from sharedplan.models.user import User
from sharedplan.repos.user_repo import UserRepo


async def list_pending_users(users: UserRepo, query: str = "") -> list[User]:
    """Pending users, oldest first, whose email contains ``query``
    (case-insensitive). A blank query returns all of them."""
    needle = query.strip().lower()
    pending = await users.list_pending()
    if needle:
        pending = [u for u in pending if needle in u.email.lower()]
    return sorted(pending, key=lambda u: u.created_at)
