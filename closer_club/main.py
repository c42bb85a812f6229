from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from closer_club.api.health import router as health_router
from closer_club.api.lessons import router as lessons_router
from closer_club.api.metrics_endpoint import router as metrics_router
from closer_club.api.progress import router as progress_router
from closer_club.api.quizzes import router as quizzes_router
from closer_club.core.config import SETTINGS
from closer_club.core.errors import install_error_handlers
from closer_club.core.logging import setup_logging
from closer_club.db.engine import lifespan_db
from closer_club.db.redis import lifespan_redis
from closer_club.middleware.metrics import MetricsMiddleware
from closer_club.middleware.request_context import RequestContextMiddleware

setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # nested so teardown runs in reverse order
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="closer-club",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last added runs first: RequestContext -> Metrics -> CORS -> handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

install_error_handlers(app)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(quizzes_router)
app.include_router(lessons_router)
app.include_router(progress_router)

logger.info(
    "closer-club started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
