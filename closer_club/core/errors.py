"""Error taxonomy and the FastAPI handlers that render it.

Every failure leaves the API as ``{"success": false, "message": ...}``:

  NotFoundError          -> 404
  ValidationFailure      -> 400
  RequestValidationError -> 400, always the generic "Invalid form submission"
  HTTPException          -> its own status/headers (401/403 from the auth gate)
  anything else          -> 500 "An unexpected error occurred", logged here

Callers never see which field failed validation or the text of an
unexpected error; both are logged server-side only.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

INVALID_SUBMISSION_MESSAGE = "Invalid form submission"
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


class ClubError(Exception):
    """Base class for failures that map onto a structured response."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ClubError):
    status_code = status.HTTP_404_NOT_FOUND


class ValidationFailure(ClubError):
    status_code = status.HTTP_400_BAD_REQUEST


def failure_body(message: str) -> dict[str, object]:
    return {"success": False, "message": message}


async def _club_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ClubError)
    return JSONResponse(status_code=exc.status_code, content=failure_body(exc.message))


async def _validation_error_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    assert isinstance(exc, RequestValidationError)
    logger.info(
        "Rejected malformed request body for %s: %s", request.url.path, exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=failure_body(INVALID_SUBMISSION_MESSAGE),
    )


async def _http_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, StarletteHTTPException)
    return JSONResponse(
        status_code=exc.status_code,
        content=failure_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=failure_body(UNEXPECTED_ERROR_MESSAGE),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ClubError, _club_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
