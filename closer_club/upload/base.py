"""Shared uploader machinery: errors, pause signalling and the common surface."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import ClassVar, Protocol

import httpx

from closer_club.upload.files import LocalFile
from closer_club.upload.progress import TransferProgress
from closer_club.upload.session_store import SessionStore

logger = logging.getLogger(__name__)

ABORTED_MESSAGE = "Upload was aborted"


class UploadError(Exception):
    """An upload could not be completed; the message says why."""


class UploadAbortedError(UploadError):
    def __init__(self, message: str = ABORTED_MESSAGE) -> None:
        super().__init__(message)


class PauseGate:
    """Open while running, closed while paused.

    ``close_for_good`` opens the gate permanently so nothing waits on an
    upload that has been aborted; callers check their abort flag after
    ``wait`` returns.
    """

    def __init__(self) -> None:
        self._open = asyncio.Event()
        self._open.set()
        self._released = False

    @property
    def paused(self) -> bool:
        return not self._open.is_set()

    def pause(self) -> None:
        if not self._released:
            self._open.clear()

    def resume(self) -> None:
        self._open.set()

    def close_for_good(self) -> None:
        self._released = True
        self._open.set()

    async def wait(self) -> None:
        await self._open.wait()


class Uploader(Protocol):
    async def start(self) -> None: ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    async def abort(self) -> None: ...

    @property
    def progress(self) -> int: ...

    @property
    def is_paused(self) -> bool: ...

    @property
    def is_aborted(self) -> bool: ...

    @property
    def uploaded_bytes(self) -> int: ...

    @property
    def total_bytes(self) -> int: ...


class BaseUploader:
    strategy: ClassVar[str]

    def __init__(
        self,
        file: LocalFile,
        *,
        upload_url: str,
        access_key: str,
        store: SessionStore,
        on_progress: Callable[[int], None] | None = None,
        on_speed: Callable[[float], None] | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.file = file
        self.upload_url = upload_url
        self.access_key = access_key
        self._store = store
        self._client = client
        self._sleep = sleep
        self._gate = PauseGate()
        self._aborted = False
        self._tracker = TransferProgress(
            file.size, on_progress=on_progress, on_speed=on_speed, clock=clock
        )

    @property
    def file_id(self) -> str:
        return self.file.file_id

    @property
    def progress(self) -> int:
        return self._tracker.percent

    @property
    def speed(self) -> float:
        return self._tracker.speed

    @property
    def uploaded_bytes(self) -> int:
        return self._tracker.uploaded_bytes

    @property
    def total_bytes(self) -> int:
        return self.file.size

    @property
    def is_paused(self) -> bool:
        return self._gate.paused

    @property
    def is_aborted(self) -> bool:
        return self._aborted

    def pause(self) -> None:
        if self._aborted:
            return
        self._gate.pause()
        logger.info("upload paused  file_id=%s strategy=%s", self.file_id, self.strategy)

    def resume(self) -> None:
        if self._aborted or not self._gate.paused:
            return
        self._gate.resume()
        logger.info("upload resumed  file_id=%s strategy=%s", self.file_id, self.strategy)

    async def abort(self) -> None:
        self._aborted = True
        self._gate.close_for_good()
        await self._store.delete(self.file_id)
        logger.info("upload aborted  file_id=%s strategy=%s", self.file_id, self.strategy)

    def _check_aborted(self) -> None:
        if self._aborted:
            raise UploadAbortedError()

    async def _wait_if_paused(self) -> None:
        await self._gate.wait()
        self._check_aborted()

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient() as client:
            yield client
