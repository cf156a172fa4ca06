"""Liveness (/health) and readiness (/ready).

/health always answers 200 and reports each backing service; a degraded
dependency shows up in the body, not the status code.  /ready answers 503
while a configured backend is unreachable so the load balancer stops
routing here.  Unconfigured backends use in-memory fallbacks and never
block readiness.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response, status
from redis.exceptions import RedisError

from sharedplan.db.engine import engine, ping_database
from sharedplan.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_redis() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except (RedisError, OSError):
        logger.warning("Redis health check failed", exc_info=True)
        return "degraded"
    return "ok"


async def _check_database() -> str:
    if engine is None:
        return "not_configured"
    return "ok" if await ping_database() else "degraded"


async def _checks() -> dict[str, str]:
    return {"redis": await _check_redis(), "database": await _check_database()}


@router.get("/health")
async def health() -> dict:
    checks = await _checks()
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    checks = await _checks()
    if "degraded" in checks.values():
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
