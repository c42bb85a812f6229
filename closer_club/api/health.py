"""Health and readiness endpoints.

  /health  liveness plus per-dependency status.  Always 200; the ``status``
           field says ``degraded`` when a configured dependency is down.
  /ready   503 when the configured database is unreachable, so the load
           balancer stops routing here until it recovers.  Redis only
           backs upload bookkeeping and never makes the service unready.
"""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from closer_club.db import engine as db_engine
from closer_club.db import redis as db_redis

router = APIRouter(tags=["health"])


async def _redis_status() -> str:
    if db_redis.redis_pool is None:
        return "not_configured"
    try:
        await db_redis.redis_pool.ping()  # type: ignore[misc]
    except Exception:
        return "degraded"
    return "ok"


async def _database_status() -> str:
    if db_engine.engine is None:
        return "not_configured"
    return "ok" if await db_engine.ping_database() else "degraded"


@router.get("/health")
async def health() -> dict:
    checks = {
        "redis": await _redis_status(),
        "database": await _database_status(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _database_status() == "degraded":
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
