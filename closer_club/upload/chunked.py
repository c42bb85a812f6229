"""Chunked uploads over sequential PATCH requests.

The file is cut into fixed-size chunks sent strictly in order, each at its
own byte offset.  After every confirmed chunk the session is persisted, so
a rerun against the same endpoint skips what already landed.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx

from closer_club.upload.base import BaseUploader, UploadAbortedError, UploadError
from closer_club.upload.files import STREAM_BLOCK_SIZE, LocalFile
from closer_club.upload.session_store import STRATEGY_CHUNKED, UploadSession

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 50 * 1024 * 1024
DEFAULT_MAX_RETRIES = 3
CHUNK_TIMEOUT_SECONDS = 300.0
CHUNK_CONTENT_TYPE = "application/offset+octet-stream"


class ChunkedUploader(BaseUploader):
    strategy = STRATEGY_CHUNKED

    def __init__(
        self,
        file: LocalFile,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_retries: int = DEFAULT_MAX_RETRIES,
        on_chunk_progress: Callable[[int, int], None] | None = None,
        **kwargs: Any,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if max_retries <= 0:
            raise ValueError("max_retries must be positive")
        super().__init__(file, **kwargs)
        self.chunk_size = chunk_size
        self.max_retries = max_retries
        self.total_chunks = math.ceil(file.size / chunk_size)
        self._on_chunk_progress = on_chunk_progress

    def chunk_range(self, index: int) -> tuple[int, int]:
        start = index * self.chunk_size
        return start, min(start + self.chunk_size, self.file.size)

    async def _resume_point(self) -> UploadSession:
        stored = await self._store.find(self.file_id, self.upload_url)
        done: frozenset[int] = frozenset()
        created_at = time.time()
        if stored is not None:
            created_at = stored.created_at
            # chunk indices only mean the same byte ranges at the same chunk size
            if stored.chunk_size == self.chunk_size:
                done = frozenset(i for i in stored.uploaded_chunks if 0 <= i < self.total_chunks)
        return UploadSession(
            file_id=self.file_id,
            upload_url=self.upload_url,
            access_key=self.access_key,
            created_at=created_at,
            strategy=self.strategy,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
            uploaded_chunks=done,
        )

    async def start(self) -> None:
        self._check_aborted()
        session = await self._resume_point()
        resumed = sum(
            end - start for start, end in map(self.chunk_range, session.uploaded_chunks)
        )
        self._tracker.reset(resumed)
        if session.uploaded_chunks:
            logger.info(
                "resuming chunked upload  file_id=%s done=%d/%d",
                self.file_id,
                len(session.uploaded_chunks),
                self.total_chunks,
            )

        try:
            async with self._http() as client:
                for index in range(self.total_chunks):
                    await self._wait_if_paused()
                    if index in session.uploaded_chunks:
                        continue
                    await self._upload_chunk(client, index)
                    # a chunk that finished after abort() does not count
                    self._check_aborted()
                    session = session.with_chunk(index)
                    await self._store.put(session)
                    start, end = self.chunk_range(index)
                    self._tracker.advance(end - start)
        except UploadAbortedError:
            raise
        except Exception as exc:
            if self._aborted:
                raise UploadAbortedError() from exc
            await self._store.put(session)
            raise

        await self._store.delete(self.file_id)
        logger.info(
            "chunked upload complete  file_id=%s chunks=%d bytes=%d",
            self.file_id,
            self.total_chunks,
            self.file.size,
        )

    async def _upload_chunk(self, client: httpx.AsyncClient, index: int) -> None:
        retries = 0
        while True:
            self._check_aborted()
            try:
                await self._send_chunk(client, index)
                return
            except httpx.HTTPError as exc:
                if self._aborted:
                    raise UploadAbortedError() from exc
                retries += 1
                if retries >= self.max_retries:
                    raise UploadError(
                        f"Failed to upload chunk {index} after {self.max_retries} retries: {exc}"
                    ) from exc
                delay = 2**retries
                logger.warning(
                    "chunk upload failed, retrying  file_id=%s chunk=%d attempt=%d delay=%ds error=%s",
                    self.file_id,
                    index,
                    retries,
                    delay,
                    exc,
                )
                await self._sleep(delay)
                await self._wait_if_paused()

    async def _send_chunk(self, client: httpx.AsyncClient, index: int) -> None:
        start, end = self.chunk_range(index)
        response = await client.patch(
            self.upload_url,
            content=self._chunk_body(index, start, end),
            headers={
                "AccessKey": self.access_key,
                "Content-Type": CHUNK_CONTENT_TYPE,
                "Upload-Offset": str(start),
                "Content-Length": str(end - start),
            },
            timeout=CHUNK_TIMEOUT_SECONDS,
        )
        response.raise_for_status()

    async def _chunk_body(self, index: int, start: int, end: int) -> AsyncIterator[bytes]:
        sent = 0
        length = end - start
        async for block in self.file.iter_blocks(start, end, STREAM_BLOCK_SIZE):
            sent += len(block)
            if self._on_chunk_progress is not None:
                self._on_chunk_progress(index, round(sent / length * 100) if length else 100)
            yield block

