"""tus resumable uploads, delegated to ``tusclient``.

``tusclient`` does the protocol work: creating the upload with a POST,
asking for the server offset with a HEAD and continuing with PATCH.  It is
a blocking client, so every call runs in a worker thread.  This class adds
the progressive retry schedule, pause at chunk boundaries and a persisted
tus URL so a later run picks up from the offset the server holds.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from tusclient.client import TusClient
from tusclient.exceptions import TusCommunicationError

from closer_club.upload.base import BaseUploader, UploadAbortedError, UploadError
from closer_club.upload.files import LocalFile
from closer_club.upload.session_store import STRATEGY_TUS, UploadSession

logger = logging.getLogger(__name__)

DEFAULT_TUS_CHUNK_SIZE = 50 * 1024 * 1024
DEFAULT_RETRY_DELAYS: tuple[float, ...] = (0, 3, 5, 10, 20)  # seconds


class TusUploader(BaseUploader):
    strategy = STRATEGY_TUS

    def __init__(
        self,
        file: LocalFile,
        *,
        chunk_size: int = DEFAULT_TUS_CHUNK_SIZE,
        retry_delays: tuple[float, ...] = DEFAULT_RETRY_DELAYS,
        metadata: dict[str, str] | None = None,
        on_bytes: Callable[[int, int], None] | None = None,
        on_chunk_complete: Callable[[int, int, int], None] | None = None,
        on_success: Callable[[], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        tus_client: Any | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(file, **kwargs)
        self.chunk_size = chunk_size
        self.retry_delays = tuple(retry_delays)
        self.metadata = {
            "filename": file.name,
            "filetype": file.content_type,
            **(metadata or {}),
        }
        self._on_bytes = on_bytes
        self._on_chunk_complete = on_chunk_complete
        self._on_success = on_success
        self._on_error = on_error
        self._tus_client = tus_client or TusClient(
            self.upload_url, headers={"AccessKey": self.access_key}
        )
        self._uploader: Any | None = None
        self._started = False

    @property
    def upload_url_for_resume(self) -> str | None:
        """The tus URL of the upload once the server has created it."""
        if self._uploader is None:
            return None
        return self._uploader.url

    def _make_uploader(self, resume_url: str | None) -> Any:
        return self._tus_client.uploader(
            file_path=str(self.file.path),
            chunk_size=self.chunk_size,
            metadata=self.metadata,
            url=resume_url,
        )

    async def _open(self, stored: UploadSession | None) -> Any:
        resume_url = stored.resume_url if stored is not None else None
        if resume_url:
            try:
                uploader = await asyncio.to_thread(self._make_uploader, resume_url)
            except TusCommunicationError as exc:
                logger.warning(
                    "tus resume url rejected, starting a new upload  file_id=%s url=%s error=%s",
                    self.file_id,
                    resume_url,
                    exc,
                )
            else:
                logger.info(
                    "resuming tus upload  file_id=%s offset=%d", self.file_id, uploader.offset
                )
                return uploader
        return await asyncio.to_thread(self._make_uploader, None)

    async def start(self) -> None:
        if self._started:
            raise UploadError("Upload already in progress")
        self._check_aborted()
        self._started = True

        stored = await self._store.find(self.file_id, self.upload_url)
        session = UploadSession(
            file_id=self.file_id,
            upload_url=self.upload_url,
            access_key=self.access_key,
            created_at=stored.created_at if stored is not None else time.time(),
            strategy=self.strategy,
            chunk_size=self.chunk_size,
            resume_url=stored.resume_url if stored is not None else None,
        )

        try:
            self._uploader = await self._open(stored)
            self._tracker.reset(self._uploader.offset)
            await self._run(session)
        except UploadAbortedError:
            raise
        except Exception as exc:
            logger.warning("tus upload failed  file_id=%s error=%s", self.file_id, exc)
            if self._on_error is not None:
                self._on_error(exc)
            if isinstance(exc, TusCommunicationError):
                raise UploadError(f"tus upload failed: {exc}") from exc
            raise

        await self._store.delete(self.file_id)
        logger.info("tus upload complete  file_id=%s url=%s", self.file_id, self.upload_url_for_resume)
        if self._on_success is not None:
            self._on_success()

    async def _run(self, session: UploadSession) -> None:
        uploader = self._uploader
        total = self.file.size
        attempt = 0
        resync = False
        while uploader.offset < total:
            await self._wait_if_paused()
            try:
                if resync:
                    # the failed PATCH may have landed partially
                    uploader.offset = await asyncio.to_thread(uploader.get_offset)
                    resync = False
                before = uploader.offset
                await asyncio.to_thread(uploader.upload_chunk)
            except TusCommunicationError as exc:
                if attempt >= len(self.retry_delays):
                    raise
                delay = self.retry_delays[attempt]
                attempt += 1
                logger.warning(
                    "tus chunk failed, retrying  file_id=%s attempt=%d delay=%ss error=%s",
                    self.file_id,
                    attempt,
                    delay,
                    exc,
                )
                await self._sleep(delay)
                self._check_aborted()
                resync = uploader.url is not None
                continue
            self._check_aborted()
            attempt = 0

            if uploader.url and uploader.url != session.resume_url:
                session = replace(session, resume_url=uploader.url)
                await self._store.put(session)

            self._tracker.update(uploader.offset)
            if self._on_bytes is not None:
                self._on_bytes(uploader.offset, total)
            if self._on_chunk_complete is not None:
                self._on_chunk_complete(uploader.offset - before, uploader.offset, total)

