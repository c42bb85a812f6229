"""Request context middleware: request IDs, caller identity and timing.

Every request gets an ID (the client's ``X-Request-ID`` or a fresh UUID)
stored in a ContextVar, so any log line emitted while the request is being
handled can be correlated, whichever module writes it.  The auth gate adds
the caller's user id to a second ContextVar once the bearer token checks
out; both are stamped onto every LogRecord by ``_RequestContextFilter``.

ContextVars rather than thread-locals: concurrent requests share one event
loop thread, and each asyncio task gets its own copy of the context.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
user_id_var: ContextVar[str] = ContextVar("user_id", default="-")


class _RequestContextFilter(logging.Filter):
    """Stamp request_id and user_id onto every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        if getattr(record, "user_id", None) is None:
            record.user_id = user_id_var.get("-")  # type: ignore[attr-defined]
        return True


# Installed on the root logger so all loggers inherit it; guarded against
# double installation on module reload.
root_logger = logging.getLogger()
if not any(isinstance(f, _RequestContextFilter) for f in root_logger.filters):
    root_logger.addFilter(_RequestContextFilter())


def bind_user(request: Request, user_id: str) -> None:
    """Record the authenticated caller for log correlation.

    The ContextVar covers log lines emitted inside the handler; the copy on
    ``request.state`` lets the middleware's summary line see it too, since
    the handler runs in a child task whose context changes do not flow back.
    """
    user_id_var.set(user_id)
    request.state.user_id = user_id


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request, and log one summary line."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)
        user_id_var.set("-")

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        user_id = getattr(request.state, "user_id", "-")
        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "user_id": user_id,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
