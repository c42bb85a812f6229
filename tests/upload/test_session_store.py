from __future__ import annotations

import json
import time
from pathlib import Path

import pytest

from closer_club.upload.session_store import (
    SESSION_NAMESPACE,
    InMemorySessionStore,
    JsonFileSessionStore,
    RedisSessionStore,
    UploadSession,
    cleanup_old_sessions,
)


class _FakeRedisHash:
    """Just the hash commands RedisSessionStore uses, with decode_responses=True."""

    def __init__(self) -> None:
        self.data: dict[str, dict[str, str]] = {}

    async def hget(self, key: str, field: str) -> str | None:
        return self.data.get(key, {}).get(field)

    async def hset(self, key: str, field: str, value: str) -> int:
        self.data.setdefault(key, {})[field] = value
        return 1

    async def hdel(self, key: str, field: str) -> int:
        return 1 if self.data.get(key, {}).pop(field, None) is not None else 0

    async def hgetall(self, key: str) -> dict[str, str]:
        return dict(self.data.get(key, {}))


def _session(file_id: str = "video.mp4-100-1", **overrides) -> UploadSession:
    fields = dict(
        file_id=file_id,
        upload_url="https://video.example/upload/1",
        access_key="key",
        created_at=time.time(),
        strategy="chunked",
        chunk_size=10,
        total_chunks=10,
        uploaded_chunks=frozenset({0, 1, 2}),
    )
    fields.update(overrides)
    return UploadSession(**fields)


@pytest.fixture(params=["memory", "json", "redis"])
def store(request: pytest.FixtureRequest, tmp_path: Path):
    if request.param == "memory":
        return InMemorySessionStore()
    if request.param == "json":
        return JsonFileSessionStore(tmp_path / "sessions" / "uploads.json")
    return RedisSessionStore(_FakeRedisHash())


async def test_put_get_delete(store) -> None:
    session = _session()
    await store.put(session)
    assert await store.get(session.file_id) == session

    await store.delete(session.file_id)
    assert await store.get(session.file_id) is None
    # deleting again is fine
    await store.delete(session.file_id)


async def test_find_requires_same_endpoint(store) -> None:
    session = _session()
    await store.put(session)
    assert await store.find(session.file_id, session.upload_url) == session
    assert await store.find(session.file_id, "https://video.example/upload/2") is None
    assert await store.find("other-file", session.upload_url) is None


async def test_cleanup_removes_only_old_sessions(store) -> None:
    now = 1_700_000_000.0
    await store.put(_session("old", created_at=now - 25 * 3600, completed=True))
    await store.put(_session("stale", created_at=now - 24 * 3600 - 1))
    await store.put(_session("fresh", created_at=now - 23 * 3600))

    removed = await cleanup_old_sessions(store, 24, now=now)
    assert removed == 2
    assert [s.file_id for s in await store.all()] == ["fresh"]


def test_session_dict_round_trip_keeps_chunk_set() -> None:
    session = _session(uploaded_chunks=frozenset({4, 1}), resume_url="https://tus/abc")
    data = session.to_dict()
    assert data["uploadedChunks"] == [1, 4]
    assert UploadSession.from_dict(json.loads(json.dumps(data))) == session


async def test_json_store_writes_one_namespaced_document(tmp_path: Path) -> None:
    path = tmp_path / "uploads.json"
    store = JsonFileSessionStore(path)
    await store.put(_session("a"))
    await store.put(_session("b"))

    doc = json.loads(path.read_text())
    assert list(doc) == [SESSION_NAMESPACE]
    assert sorted(doc[SESSION_NAMESPACE]) == ["a", "b"]


async def test_json_store_survives_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "uploads.json"
    path.write_text("{not json")
    store = JsonFileSessionStore(path)

    assert await store.all() == []
    await store.put(_session("a"))
    assert [s.file_id for s in await store.all()] == ["a"]


async def test_json_store_is_shared_between_instances(tmp_path: Path) -> None:
    path = tmp_path / "uploads.json"
    await JsonFileSessionStore(path).put(_session("a"))
    assert await JsonFileSessionStore(path).get("a") is not None
