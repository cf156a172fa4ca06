"""Rate limiting as a per-route dependency.

Sign-in routes declare a strict limit; health and metrics declare none.
Keys are the authenticated user id when a bearer token is present and the
client IP otherwise.  A rejection is a 429 carrying Retry-After and the
X-RateLimit-* headers.
"""

from __future__ import annotations

import logging

import jwt as pyjwt
from fastapi import HTTPException, Request, status

from sharedplan.core.metrics import RATE_LIMIT_HITS
from sharedplan.db.redis import redis_pool
from sharedplan.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimiter,
    RateLimitResult,
    RedisRateLimiter,
)

logger = logging.getLogger(__name__)

if redis_pool is not None:
    _rate_limiter: RateLimiter = RedisRateLimiter(redis_pool)
else:
    _rate_limiter = InMemoryRateLimiter()

# 10 attempts in a burst, then roughly one every 6 seconds
SIGN_IN_LIMIT = RateLimitConfig(capacity=10, refill_rate=0.17)

_DEFAULT_CONFIG = RateLimitConfig()


def require_rate_limit(config: RateLimitConfig = _DEFAULT_CONFIG):
    async def _check(request: Request) -> None:
        key = _build_key(request)
        result: RateLimitResult = await _rate_limiter.check(key, config)
        if not result.allowed:
            RATE_LIMIT_HITS.labels(
                key_type="user" if key.startswith("user:") else "ip"
            ).inc()
            logger.warning("Rate limit exceeded key=%s", key)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded",
                headers={
                    "Retry-After": str(int(result.retry_after) + 1),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

    return _check


def _build_key(request: Request) -> str:
    # Unverified decode: only the bucket key depends on it, and a forged
    # sub just gets its own bucket.
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        try:
            claims = pyjwt.decode(
                auth_header[7:], options={"verify_signature": False}
            )
        except pyjwt.InvalidTokenError:
            claims = {}
        sub = claims.get("sub")
        if sub:
            return f"user:{sub}"

    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"
