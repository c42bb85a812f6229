from __future__ import annotations

import logging
import time

import pytest
from prometheus_client import REGISTRY

from closer_club import worker
from closer_club.upload.session_store import (
    InMemorySessionStore,
    JsonFileSessionStore,
    RedisSessionStore,
    UploadSession,
)


def _pruned() -> float:
    return REGISTRY.get_sample_value("upload_sessions_pruned_total") or 0.0


def _session(file_id: str, age_hours: float) -> UploadSession:
    return UploadSession(
        file_id=file_id,
        upload_url="https://video.example/upload",
        access_key="key",
        created_at=time.time() - age_hours * 3600,
        strategy="chunked",
    )


def test_session_gc_is_registered() -> None:
    job = worker.JOBS["upload_session_gc"]
    assert job.interval == 3600
    assert job.handler is worker.prune_upload_sessions


async def test_session_gc_prunes_stale_sessions(monkeypatch: pytest.MonkeyPatch) -> None:
    store = InMemorySessionStore()
    await store.put(_session("stale", 30))
    await store.put(_session("fresh", 1))
    monkeypatch.setattr(worker, "session_store", lambda: store)
    before = _pruned()

    assert await worker.run_job("upload_session_gc") is True

    assert [s.file_id for s in await store.all()] == ["fresh"]
    assert _pruned() - before == 1


async def test_failing_job_is_logged_and_reported(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    def broken_store():
        raise RuntimeError("disk full")

    monkeypatch.setattr(worker, "session_store", broken_store)
    with caplog.at_level(logging.ERROR, logger="worker"):
        assert await worker.run_job("upload_session_gc") is False
    assert "job upload_session_gc failed" in caplog.text


def test_store_defaults_to_json_file(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(worker.db_redis, "redis_pool", None)
    assert isinstance(worker.session_store(), JsonFileSessionStore)


def test_store_uses_redis_when_connected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(worker.db_redis, "redis_pool", object())
    assert isinstance(worker.session_store(), RedisSessionStore)
