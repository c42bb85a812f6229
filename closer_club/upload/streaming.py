"""Single-request uploads.

The whole file goes up in one PUT.  The endpoint cannot continue a partial
body, so pausing cancels the request in flight and resuming sends the file
again from byte 0.  The session only remembers whether the PUT finished.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from dataclasses import replace
from typing import Any

import httpx

from closer_club.upload.base import BaseUploader, UploadAbortedError, UploadError
from closer_club.upload.files import LocalFile
from closer_club.upload.session_store import STRATEGY_STREAMING, UploadSession

logger = logging.getLogger(__name__)


class StreamingUploader(BaseUploader):
    strategy = STRATEGY_STREAMING

    def __init__(
        self,
        file: LocalFile,
        *,
        on_success: Callable[[], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(file, **kwargs)
        self._on_success = on_success
        self._on_error = on_error
        self._request: asyncio.Task[None] | None = None
        self._restart_requested = False

    def pause(self) -> None:
        super().pause()
        if self._aborted:
            return
        if self._request is not None and not self._request.done():
            # start() restarts on this flag even if resume() runs first
            self._restart_requested = True
            self._request.cancel()

    async def abort(self) -> None:
        await super().abort()
        if self._request is not None and not self._request.done():
            self._request.cancel()

    async def start(self) -> None:
        self._check_aborted()
        stored = await self._store.find(self.file_id, self.upload_url)
        if stored is not None and stored.completed:
            logger.info("upload already completed  file_id=%s", self.file_id)
            self._tracker.reset(self.file.size)
            if self._on_success is not None:
                self._on_success()
            return

        session = UploadSession(
            file_id=self.file_id,
            upload_url=self.upload_url,
            access_key=self.access_key,
            created_at=stored.created_at if stored is not None else time.time(),
            strategy=self.strategy,
        )
        await self._store.put(session)

        async with self._http() as client:
            while True:
                await self._wait_if_paused()
                self._tracker.reset(0)
                self._request = asyncio.create_task(self._put(client))
                try:
                    await self._request
                    break
                except asyncio.CancelledError:
                    current = asyncio.current_task()
                    if current is not None and current.cancelling():
                        raise
                    if self._aborted:
                        raise UploadAbortedError() from None
                    if self._restart_requested:
                        self._restart_requested = False
                        logger.info(
                            "upload interrupted by pause, will restart from byte 0  file_id=%s",
                            self.file_id,
                        )
                        continue
                    raise
                except httpx.HTTPStatusError as exc:
                    self._fail(UploadError(f"Upload failed: HTTP {exc.response.status_code}"), exc)
                except httpx.TimeoutException as exc:
                    self._fail(UploadError("Upload timeout"), exc)
                except httpx.HTTPError as exc:
                    self._fail(UploadError("Network error during upload"), exc)
                except OSError as exc:
                    self._fail(UploadError("Upload failed: could not read file"), exc)
                finally:
                    self._request = None

        self._check_aborted()
        await self._store.put(replace(session, completed=True))
        await self._store.delete(self.file_id)
        logger.info("streaming upload complete  file_id=%s bytes=%d", self.file_id, self.file.size)
        if self._on_success is not None:
            self._on_success()

    def _fail(self, error: UploadError, cause: Exception) -> None:
        logger.warning("streaming upload failed  file_id=%s error=%s", self.file_id, cause)
        if self._on_error is not None:
            self._on_error(error)
        raise error from cause

    async def _put(self, client: httpx.AsyncClient) -> None:
        response = await client.put(
            self.upload_url,
            content=self._body(),
            headers={
                "AccessKey": self.access_key,
                "Content-Type": self.file.content_type,
                "Content-Length": str(self.file.size),
            },
            timeout=None,
        )
        response.raise_for_status()

    async def _body(self) -> AsyncIterator[bytes]:
        async for block in self.file.iter_blocks():
            yield block
            self._tracker.advance(len(block))
