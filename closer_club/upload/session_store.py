"""Persisted upload sessions.

A session records enough about an interrupted upload to resume it on a
later run: which chunks landed (chunked), whether the single PUT finished
(streaming) or the tus URL holding the server-side offset (tus).

Stores are injected into the uploaders.  Three implementations:

  InMemorySessionStore   tests and one-shot scripts
  JsonFileSessionStore   one JSON document on disk, rewritten on every change
  RedisSessionStore      one hash, a field per file id
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

SESSION_NAMESPACE = "video-upload-sessions"

STRATEGY_CHUNKED = "chunked"
STRATEGY_STREAMING = "streaming"
STRATEGY_TUS = "tus"


@dataclass(frozen=True, slots=True)
class UploadSession:
    file_id: str
    upload_url: str
    access_key: str
    created_at: float  # epoch seconds
    strategy: str
    chunk_size: int = 0
    total_chunks: int = 0
    uploaded_chunks: frozenset[int] = field(default_factory=frozenset)
    completed: bool = False
    resume_url: str | None = None

    def with_chunk(self, index: int) -> UploadSession:
        return replace(self, uploaded_chunks=self.uploaded_chunks | {index})

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileId": self.file_id,
            "uploadUrl": self.upload_url,
            "accessKey": self.access_key,
            "createdAt": self.created_at,
            "strategy": self.strategy,
            "chunkSize": self.chunk_size,
            "totalChunks": self.total_chunks,
            "uploadedChunks": sorted(self.uploaded_chunks),
            "completed": self.completed,
            "resumeUrl": self.resume_url,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> UploadSession:
        return UploadSession(
            file_id=data["fileId"],
            upload_url=data["uploadUrl"],
            access_key=data.get("accessKey", ""),
            created_at=float(data["createdAt"]),
            strategy=data.get("strategy", STRATEGY_CHUNKED),
            chunk_size=int(data.get("chunkSize", 0)),
            total_chunks=int(data.get("totalChunks", 0)),
            uploaded_chunks=frozenset(int(i) for i in data.get("uploadedChunks", [])),
            completed=bool(data.get("completed", False)),
            resume_url=data.get("resumeUrl"),
        )


class SessionStore(Protocol):
    async def get(self, file_id: str) -> UploadSession | None: ...

    async def find(self, file_id: str, upload_url: str) -> UploadSession | None: ...

    async def put(self, session: UploadSession) -> None: ...

    async def delete(self, file_id: str) -> None: ...

    async def all(self) -> list[UploadSession]: ...


class _FindMixin:
    async def find(self, file_id: str, upload_url: str) -> UploadSession | None:
        """Session for ``file_id`` only if it targets the same endpoint."""
        session = await self.get(file_id)  # type: ignore[attr-defined]
        if session is None or session.upload_url != upload_url:
            return None
        return session


class InMemorySessionStore(_FindMixin):
    def __init__(self) -> None:
        self._sessions: dict[str, UploadSession] = {}

    async def get(self, file_id: str) -> UploadSession | None:
        return self._sessions.get(file_id)

    async def put(self, session: UploadSession) -> None:
        self._sessions[session.file_id] = session

    async def delete(self, file_id: str) -> None:
        self._sessions.pop(file_id, None)

    async def all(self) -> list[UploadSession]:
        return list(self._sessions.values())


class JsonFileSessionStore(_FindMixin):
    """All sessions live under one namespace key of a single JSON file.

    Every mutation reads the whole document and writes it back through a
    temp file and ``os.replace``.  An unreadable document is treated as
    empty and gets overwritten by the next write.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> dict[str, dict[str, Any]]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            doc = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("upload session file unreadable, starting empty  path=%s", self.path)
            return {}
        sessions = doc.get(SESSION_NAMESPACE, {}) if isinstance(doc, dict) else {}
        return sessions if isinstance(sessions, dict) else {}

    def _write(self, sessions: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps({SESSION_NAMESPACE: sessions}, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    async def get(self, file_id: str) -> UploadSession | None:
        async with self._lock:
            sessions = await asyncio.to_thread(self._read)
        data = sessions.get(file_id)
        return UploadSession.from_dict(data) if data else None

    async def put(self, session: UploadSession) -> None:
        async with self._lock:
            sessions = await asyncio.to_thread(self._read)
            sessions[session.file_id] = session.to_dict()
            await asyncio.to_thread(self._write, sessions)

    async def delete(self, file_id: str) -> None:
        async with self._lock:
            sessions = await asyncio.to_thread(self._read)
            if sessions.pop(file_id, None) is not None:
                await asyncio.to_thread(self._write, sessions)

    async def all(self) -> list[UploadSession]:
        async with self._lock:
            sessions = await asyncio.to_thread(self._read)
        return [UploadSession.from_dict(data) for data in sessions.values()]


class RedisSessionStore(_FindMixin):
    def __init__(self, redis: Any, key: str = SESSION_NAMESPACE) -> None:
        self._redis = redis
        self._key = key

    async def get(self, file_id: str) -> UploadSession | None:
        raw = await self._redis.hget(self._key, file_id)
        return UploadSession.from_dict(json.loads(raw)) if raw else None

    async def put(self, session: UploadSession) -> None:
        await self._redis.hset(self._key, session.file_id, json.dumps(session.to_dict()))

    async def delete(self, file_id: str) -> None:
        await self._redis.hdel(self._key, file_id)

    async def all(self) -> list[UploadSession]:
        raw = await self._redis.hgetall(self._key)
        return [UploadSession.from_dict(json.loads(v)) for v in raw.values()]


async def cleanup_old_sessions(
    store: SessionStore, max_age_hours: int = 24, *, now: float | None = None
) -> int:
    """Delete sessions created before the cutoff, finished or not.

    Returns how many were removed.
    """
    cutoff = (time.time() if now is None else now) - max_age_hours * 3600
    removed = 0
    for session in await store.all():
        if session.created_at < cutoff:
            await store.delete(session.file_id)
            removed += 1
    if removed:
        logger.info("pruned stale upload sessions  count=%d max_age_hours=%d", removed, max_age_hours)
    return removed
