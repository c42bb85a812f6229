from __future__ import annotations

import time
from pathlib import Path

import pytest
from tusclient.exceptions import TusCommunicationError

from closer_club.upload.base import UploadError
from closer_club.upload.files import LocalFile
from closer_club.upload.session_store import InMemorySessionStore, UploadSession
from closer_club.upload.tus import TusUploader

ENDPOINT = "https://video.example/tusupload"
TUS_URL = "https://video.example/tusupload/files/42"
PAYLOAD = b"x" * 25


class _FakeTusUpload:
    """Stand-in for ``tusclient.uploader.Uploader`` driven by a script of failures."""

    def __init__(self, total: int, chunk_size: int, *, url: str | None, offset: int = 0) -> None:
        self.total = total
        self.chunk_size = chunk_size
        self.url = url
        self.offset = offset
        self.server_offset = offset
        self.failures: list[Exception] = []
        self.chunk_calls = 0
        self.offset_checks = 0

    def upload_chunk(self) -> None:
        self.chunk_calls += 1
        if self.url is None:
            self.url = TUS_URL
        if self.failures:
            raise self.failures.pop(0)
        self.server_offset = min(self.offset + self.chunk_size, self.total)
        self.offset = self.server_offset

    def get_offset(self) -> int:
        self.offset_checks += 1
        return self.server_offset


class _FakeTusClient:
    def __init__(self, *, server_offsets: dict[str, int] | None = None) -> None:
        self.server_offsets = server_offsets or {}
        self.calls: list[dict] = []
        self.last: _FakeTusUpload | None = None
        self.failures: list[Exception] = []

    def uploader(self, *, file_path: str, chunk_size: int, metadata: dict, url: str | None):
        self.calls.append({"file_path": file_path, "chunk_size": chunk_size, "metadata": metadata, "url": url})
        if url is not None and url not in self.server_offsets:
            raise TusCommunicationError("upload not found", status_code=404)
        total = Path(file_path).stat().st_size
        self.last = _FakeTusUpload(
            total, chunk_size, url=url, offset=self.server_offsets.get(url, 0) if url else 0
        )
        self.last.failures = list(self.failures)
        return self.last


@pytest.fixture
def video(tmp_path: Path) -> LocalFile:
    path = tmp_path / "pitch.mov"
    path.write_bytes(PAYLOAD)
    return LocalFile.open(path)


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


def _uploader(video: LocalFile, store, client: _FakeTusClient, sleeps: list[float] | None = None, **kwargs):
    recorded = sleeps if sleeps is not None else []

    async def _sleep(delay: float) -> None:
        recorded.append(delay)

    return TusUploader(
        video,
        upload_url=ENDPOINT,
        access_key="secret",
        store=store,
        chunk_size=10,
        tus_client=client,
        sleep=_sleep,
        **kwargs,
    )


async def test_fresh_upload_reports_bytes_and_chunks(video: LocalFile, store) -> None:
    client = _FakeTusClient()
    byte_events: list[tuple[int, int]] = []
    chunk_events: list[tuple[int, int, int]] = []
    done: list[bool] = []
    uploader = _uploader(
        video,
        store,
        client,
        on_bytes=lambda sent, total: byte_events.append((sent, total)),
        on_chunk_complete=lambda chunk, sent, total: chunk_events.append((chunk, sent, total)),
        on_success=lambda: done.append(True),
    )

    await uploader.start()

    assert client.calls[0]["url"] is None
    assert client.calls[0]["metadata"] == {"filename": "pitch.mov", "filetype": "video/quicktime"}
    assert byte_events == [(10, 25), (20, 25), (25, 25)]
    assert chunk_events == [(10, 10, 25), (10, 20, 25), (5, 25, 25)]
    assert uploader.progress == 100
    assert uploader.upload_url_for_resume == TUS_URL
    assert done == [True]
    assert await store.get(video.file_id) is None


async def test_failures_follow_retry_schedule(video: LocalFile, store) -> None:
    client = _FakeTusClient()
    client.failures = [TusCommunicationError("reset"), TusCommunicationError("reset")]
    sleeps: list[float] = []
    uploader = _uploader(video, store, client, sleeps)

    await uploader.start()

    assert sleeps == [0, 3]
    # the offset is re-read from the server before each retry
    assert client.last.offset_checks == 2
    assert client.last.chunk_calls == 5


async def test_exhausted_retries_keep_resume_url(video: LocalFile, store) -> None:
    client = _FakeTusClient()
    errors: list[Exception] = []
    sleeps: list[float] = []
    uploader = _uploader(video, store, client, sleeps, retry_delays=(0, 1), on_error=errors.append)

    # let the first chunk through, then fail every attempt
    original = client.uploader

    def uploader_with_late_failures(**kwargs):
        upload = original(**kwargs)
        real_chunk = upload.upload_chunk

        def upload_chunk() -> None:
            if upload.offset >= 10:
                upload.chunk_calls += 1
                raise TusCommunicationError("server gone", status_code=502)
            real_chunk()

        upload.upload_chunk = upload_chunk
        return upload

    client.uploader = uploader_with_late_failures

    with pytest.raises(UploadError, match="tus upload failed"):
        await uploader.start()

    assert sleeps == [0, 1]
    assert len(errors) == 1 and isinstance(errors[0], TusCommunicationError)
    session = await store.get(video.file_id)
    assert session is not None
    assert session.strategy == "tus"
    assert session.resume_url == TUS_URL
    assert uploader.uploaded_bytes == 10


async def test_resumes_from_server_offset(video: LocalFile, store) -> None:
    await store.put(
        UploadSession(
            file_id=video.file_id,
            upload_url=ENDPOINT,
            access_key="secret",
            created_at=time.time(),
            strategy="tus",
            chunk_size=10,
            resume_url=TUS_URL,
        )
    )
    client = _FakeTusClient(server_offsets={TUS_URL: 20})
    byte_events: list[tuple[int, int]] = []
    uploader = _uploader(video, store, client, on_bytes=lambda s, t: byte_events.append((s, t)))

    await uploader.start()

    assert [c["url"] for c in client.calls] == [TUS_URL]
    assert client.last.chunk_calls == 1
    assert byte_events == [(25, 25)]


async def test_stale_resume_url_starts_new_upload(video: LocalFile, store) -> None:
    await store.put(
        UploadSession(
            file_id=video.file_id,
            upload_url=ENDPOINT,
            access_key="secret",
            created_at=time.time(),
            strategy="tus",
            resume_url="https://video.example/tusupload/files/expired",
        )
    )
    client = _FakeTusClient()
    uploader = _uploader(video, store, client)

    await uploader.start()

    assert [c["url"] for c in client.calls] == ["https://video.example/tusupload/files/expired", None]
    assert client.last.chunk_calls == 3


async def test_second_start_is_rejected(video: LocalFile, store) -> None:
    uploader = _uploader(video, store, _FakeTusClient())
    await uploader.start()
    with pytest.raises(UploadError, match="Upload already in progress"):
        await uploader.start()
