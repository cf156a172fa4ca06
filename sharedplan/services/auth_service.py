from __future__ import annotations

import logging

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from sharedplan.models.user import User
from sharedplan.repos.user_repo import UserRepo

logger = logging.getLogger(__name__)

_ph = PasswordHasher()


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    return _ph.hash(plain_password)


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


async def authenticate_user(repo: UserRepo, email: str, password: str) -> User | None:
    """Return the user for valid credentials, else None.

    OAuth-only accounts have no password hash and never authenticate here.
    """
    user = await repo.get_by_email(email)
    if user is None:
        return None
    if not verify_password(password, user.password_hash):
        return None

    try:
        if user.password_hash and _ph.check_needs_rehash(user.password_hash):
            await repo.update_password_hash(user.id, _ph.hash(password))
            logger.info("Rehashed password for user=%s", user.id)
    except InvalidHash:
        return None

    return user
