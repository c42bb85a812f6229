from __future__ import annotations

import os
from pathlib import Path

import pytest

from closer_club.upload.files import LocalFile, file_identifier


@pytest.fixture
def video(tmp_path: Path) -> Path:
    path = tmp_path / "lesson-1.mp4"
    path.write_bytes(bytes(range(256)) * 4)
    os.utime(path, ns=(1_700_000_000_123_000_000, 1_700_000_000_123_000_000))
    return path


def test_open_reads_name_size_mtime_and_type(video: Path) -> None:
    file = LocalFile.open(video)
    assert file.name == "lesson-1.mp4"
    assert file.size == 1024
    assert file.last_modified == 1_700_000_000_123
    assert file.content_type == "video/mp4"


def test_unknown_extension_is_octet_stream(tmp_path: Path) -> None:
    path = tmp_path / "raw.zzz-unknown"
    path.write_bytes(b"x")
    assert LocalFile.open(path).content_type == "application/octet-stream"


def test_file_id_is_derived_from_name_size_and_mtime(video: Path) -> None:
    file = LocalFile.open(video)
    assert file.file_id == "lesson-1.mp4-1024-1700000000123"
    assert LocalFile.open(video).file_id == file.file_id


def test_file_id_changes_when_content_changes(video: Path) -> None:
    before = LocalFile.open(video).file_id
    video.write_bytes(b"re-encoded")
    assert LocalFile.open(video).file_id != before


def test_identifier_helper() -> None:
    assert file_identifier("a.mov", 10, 5) == "a.mov-10-5"


def test_read_range(video: Path) -> None:
    file = LocalFile.open(video)
    assert file.read_range(0, 4) == bytes([0, 1, 2, 3])
    assert file.read_range(1020, 1024) == bytes([252, 253, 254, 255])
    with pytest.raises(ValueError):
        file.read_range(10, 5)


async def test_iter_blocks_covers_range(video: Path) -> None:
    file = LocalFile.open(video)
    blocks = [b async for b in file.iter_blocks(100, 400, block_size=128)]
    assert [len(b) for b in blocks] == [128, 128, 44]
    assert b"".join(blocks) == file.read_range(100, 400)
