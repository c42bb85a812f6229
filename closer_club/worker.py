"""Background maintenance process.

RUN:  python -m closer_club.worker

Same image as the API, different command:
  api:    uvicorn closer_club.main:app --host 0.0.0.0 --port 8000
  worker: python -m closer_club.worker

Jobs register with ``@register_job(name, interval_seconds)``.  The loop
runs every job that is due, sleeps until the next one is, and keeps going
when a job raises; the failure is logged with its traceback.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any

from closer_club.core.config import SETTINGS
from closer_club.core.logging import setup_logging
from closer_club.core.metrics import UPLOAD_SESSIONS_PRUNED
from closer_club.db import redis as db_redis
from closer_club.upload.session_store import (
    JsonFileSessionStore,
    RedisSessionStore,
    SessionStore,
    cleanup_old_sessions,
)

JobHandler = Callable[[], Coroutine[Any, Any, None]]

logger = logging.getLogger("worker")


@dataclass(frozen=True, slots=True)
class Job:
    name: str
    interval: float  # seconds
    handler: JobHandler


JOBS: dict[str, Job] = {}


def register_job(name: str, interval: float):
    """Decorator: run the coroutine every ``interval`` seconds."""

    def decorator(func: JobHandler) -> JobHandler:
        JOBS[name] = Job(name=name, interval=interval, handler=func)
        return func

    return decorator


def session_store() -> SessionStore:
    """The shared Redis store when configured, else the local JSON file."""
    if db_redis.redis_pool is not None:
        return RedisSessionStore(db_redis.redis_pool)
    return JsonFileSessionStore(SETTINGS.upload_session_path)


@register_job("upload_session_gc", interval=3600)
async def prune_upload_sessions() -> None:
    removed = await cleanup_old_sessions(
        session_store(), SETTINGS.upload_session_max_age_hours
    )
    UPLOAD_SESSIONS_PRUNED.inc(removed)
    logger.info("upload_session_gc done  removed=%d", removed)


async def run_job(name: str) -> bool:
    """Run one job now.  Returns False if it raised."""
    job = JOBS[name]
    try:
        await job.handler()
    except Exception:
        logger.exception("job %s failed", name)
        return False
    return True


async def run_worker(*, clock: Callable[[], float] = time.monotonic) -> None:
    logger.info("worker started  jobs=%s", sorted(JOBS))
    next_run = {name: clock() for name in JOBS}
    while True:
        now = clock()
        for name, job in JOBS.items():
            if next_run[name] <= now:
                await run_job(name)
                next_run[name] = now + job.interval
        await asyncio.sleep(max(min(next_run.values()) - clock(), 0.0))


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
