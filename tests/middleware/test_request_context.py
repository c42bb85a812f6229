"""Tests for the request context middleware.

Verifies that every response gets an X-Request-ID header (generated or
echoed) and that the summary log line carries the authenticated caller.
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from tests.conftest import auth


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.get("/v1/progress/me")  # no token -> 401
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_summary_line_carries_user_id(
    client: TestClient, agent_token: str, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="closer_club.middleware.request_context"):
        client.get("/v1/progress/me", headers=auth(agent_token))

    summaries = [r for r in caplog.records if r.name == "closer_club.middleware.request_context"]
    assert summaries
    assert summaries[-1].user_id == "agent-1"  # type: ignore[attr-defined]
    assert summaries[-1].path == "/v1/progress/me"  # type: ignore[attr-defined]


def test_summary_line_anonymous_user_is_placeholder(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="closer_club.middleware.request_context"):
        client.get("/health")

    summaries = [r for r in caplog.records if r.name == "closer_club.middleware.request_context"]
    assert summaries[-1].user_id == "-"  # type: ignore[attr-defined]
