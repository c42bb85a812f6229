"""Local video files as the uploaders see them."""

from __future__ import annotations

import asyncio
import mimetypes
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path

DEFAULT_CONTENT_TYPE = "application/octet-stream"
STREAM_BLOCK_SIZE = 256 * 1024


def file_identifier(name: str, size: int, last_modified: int) -> str:
    """Stable id for resume lookups: same name, size and mtime give the same id."""
    return f"{name}-{size}-{last_modified}"


@dataclass(frozen=True, slots=True)
class LocalFile:
    path: Path
    name: str
    size: int
    last_modified: int  # epoch milliseconds
    content_type: str

    @staticmethod
    def open(path: str | Path, *, content_type: str | None = None) -> LocalFile:
        p = Path(path)
        stat = p.stat()
        if content_type is None:
            guessed, _ = mimetypes.guess_type(p.name)
            content_type = guessed or DEFAULT_CONTENT_TYPE
        return LocalFile(
            path=p,
            name=p.name,
            size=stat.st_size,
            last_modified=stat.st_mtime_ns // 1_000_000,
            content_type=content_type,
        )

    @property
    def file_id(self) -> str:
        return file_identifier(self.name, self.size, self.last_modified)

    def read_range(self, start: int, end: int) -> bytes:
        if start < 0 or end < start:
            raise ValueError(f"invalid byte range {start}-{end}")
        with self.path.open("rb") as fh:
            fh.seek(start)
            return fh.read(end - start)

    async def aread_range(self, start: int, end: int) -> bytes:
        return await asyncio.to_thread(self.read_range, start, end)

    async def iter_blocks(
        self, start: int = 0, end: int | None = None, block_size: int = STREAM_BLOCK_SIZE
    ) -> AsyncIterator[bytes]:
        stop = self.size if end is None else end
        pos = start
        while pos < stop:
            nxt = min(pos + block_size, stop)
            yield await self.aread_range(pos, nxt)
            pos = nxt
