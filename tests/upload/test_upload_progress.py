from __future__ import annotations

import pytest

from closer_club.upload.progress import (
    TransferProgress,
    format_bytes,
    format_time_remaining,
    format_transfer_progress,
    format_upload_speed,
)


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_percent_and_callback() -> None:
    seen: list[int] = []
    progress = TransferProgress(200, on_progress=seen.append)
    progress.advance(50)
    progress.advance(75)
    assert seen == [25, 63]
    assert progress.uploaded_bytes == 125


def test_speed_is_sampled_at_most_once_per_second() -> None:
    clock = _Clock()
    speeds: list[float] = []
    progress = TransferProgress(10_000, on_speed=speeds.append, clock=clock)
    progress.reset(0)

    clock.now = 0.5
    progress.advance(1000)
    assert speeds == []

    clock.now = 2.0
    progress.advance(1000)
    assert speeds == [1000.0]  # 2000 bytes over 2 seconds

    clock.now = 2.5
    progress.advance(5000)
    assert speeds == [1000.0]
    assert progress.seconds_remaining() == pytest.approx(3.0)


@pytest.mark.parametrize(
    "bps,expected",
    [
        (0, "0.0 B/s"),
        (512, "512.0 B/s"),
        (1536, "1.5 KB/s"),
        (5 * 1024 * 1024, "5.0 MB/s"),
        (3 * 1024**3, "3.0 GB/s"),
    ],
)
def test_format_upload_speed(bps: float, expected: str) -> None:
    assert format_upload_speed(bps) == expected


@pytest.mark.parametrize(
    "remaining,bps,expected",
    [
        (100, 0, "Calculating..."),
        (30, 1, "30s remaining"),
        (90, 1, "2m remaining"),
        (3599, 1, "60m remaining"),
        (3600 + 30 * 60, 1, "1h 30m remaining"),
    ],
)
def test_format_time_remaining(remaining: int, bps: float, expected: str) -> None:
    assert format_time_remaining(remaining, bps) == expected


@pytest.mark.parametrize(
    "nbytes,expected",
    [
        (0, "0 B"),
        (500, "500 B"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (50 * 1024 * 1024, "50 MB"),
        (int(2.4 * 1024**3), "2.4 GB"),
    ],
)
def test_format_bytes(nbytes: int, expected: str) -> None:
    assert format_bytes(nbytes) == expected


def test_format_transfer_progress() -> None:
    assert format_transfer_progress(512 * 1024, 1024 * 1024) == "50% (512 KB / 1 MB)"
