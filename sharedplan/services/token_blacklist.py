"""Revoked-token set used to end sessions before their JWTs expire.

Signing out adds the token's ``jti`` with a lifetime matching the token's
remaining validity; ``require_user`` rejects any token whose ``jti`` is
present.  Redis in production (shared by every API instance, entries
expire on their own), a dict in dev and tests.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable

from sharedplan.core.metrics import TOKEN_BLACKLIST_CHECKS
from sharedplan.db.redis import redis_pool


@runtime_checkable
class TokenBlacklist(Protocol):
    async def revoke(self, jti: str, expires_at: float) -> None: ...
    async def is_revoked(self, jti: str) -> bool: ...


class InMemoryTokenBlacklist:
    def __init__(self) -> None:
        # jti -> expiry (Unix seconds)
        self._revoked: dict[str, float] = {}

    async def revoke(self, jti: str, expires_at: float) -> None:
        self._revoked[jti] = expires_at

    async def is_revoked(self, jti: str) -> bool:
        exp = self._revoked.get(jti)
        if exp is None:
            TOKEN_BLACKLIST_CHECKS.labels(result="valid").inc()
            return False
        if exp < time.time():
            del self._revoked[jti]
            TOKEN_BLACKLIST_CHECKS.labels(result="valid").inc()
            return False
        TOKEN_BLACKLIST_CHECKS.labels(result="revoked").inc()
        return True


class RedisTokenBlacklist:
    _PREFIX = "blacklist:jti:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def revoke(self, jti: str, expires_at: float) -> None:
        ttl_seconds = int(expires_at - time.time())
        if ttl_seconds <= 0:
            return
        # SETEX: value and TTL in one atomic command
        await self._redis.setex(f"{self._PREFIX}{jti}", ttl_seconds, "1")

    async def is_revoked(self, jti: str) -> bool:
        revoked = bool(await self._redis.exists(f"{self._PREFIX}{jti}"))
        TOKEN_BLACKLIST_CHECKS.labels(result="revoked" if revoked else "valid").inc()
        return revoked


if redis_pool is not None:
    token_blacklist: TokenBlacklist = RedisTokenBlacklist(redis_pool)
else:
    token_blacklist = InMemoryTokenBlacklist()
