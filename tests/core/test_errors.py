"""Every failure leaves the API as {"success": false, "message": ...}."""

from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel

from closer_club.core.errors import (
    INVALID_SUBMISSION_MESSAGE,
    UNEXPECTED_ERROR_MESSAGE,
    NotFoundError,
    ValidationFailure,
    install_error_handlers,
)


class _Body(BaseModel):
    count: int


def _app() -> FastAPI:
    app = FastAPI()
    install_error_handlers(app)

    @app.get("/missing")
    async def missing() -> None:
        raise NotFoundError("Quiz not found")

    @app.get("/invalid")
    async def invalid() -> None:
        raise ValidationFailure("Quiz does not belong to this lesson")

    @app.post("/body")
    async def body(payload: _Body) -> dict:
        return {"count": payload.count}

    @app.get("/denied")
    async def denied() -> None:
        raise HTTPException(status_code=401, detail="Invalid token", headers={"WWW-Authenticate": "Bearer"})

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("database password is hunter2")

    return app


def test_not_found_error_renders_404() -> None:
    resp = TestClient(_app()).get("/missing")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Quiz not found"}


def test_validation_failure_renders_400() -> None:
    resp = TestClient(_app()).get("/invalid")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Quiz does not belong to this lesson"


def test_malformed_body_gets_generic_message() -> None:
    resp = TestClient(_app()).post("/body", json={"count": "many"})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": INVALID_SUBMISSION_MESSAGE}
    assert "count" not in resp.text


def test_http_exception_keeps_status_and_headers() -> None:
    resp = TestClient(_app()).get("/denied")
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"
    assert resp.json() == {"success": False, "message": "Invalid token"}


def test_unknown_route_uses_failure_shape() -> None:
    resp = TestClient(_app()).get("/nope")
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_unexpected_error_is_generic_500() -> None:
    resp = TestClient(_app(), raise_server_exceptions=False).get("/boom")
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": UNEXPECTED_ERROR_MESSAGE}
    assert "hunter2" not in resp.text
