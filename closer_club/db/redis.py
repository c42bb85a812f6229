"""Redis connection management.

Redis holds the shared upload-session map used by server-side upload
jobs and the maintenance worker, so several processes see one view of
which chunks have landed.  Like engine.py, the client only exists when
REDIS_URL is configured; every consumer checks for None and falls back
to a local store.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from closer_club.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Verify Redis on startup and close the pool on shutdown.

    An unreachable Redis is logged, not fatal: grading and progress do not
    depend on it.
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured, upload sessions use local storage")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected")
    except Exception:
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
