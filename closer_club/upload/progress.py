from __future__ import annotations

import math
import time
from collections.abc import Callable

SPEED_SAMPLE_INTERVAL = 1.0  # seconds

_SPEED_UNITS = ("B/s", "KB/s", "MB/s", "GB/s")
_SIZE_UNITS = ("B", "KB", "MB", "GB")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class TransferProgress:
    """Confirmed-bytes counter with a sampled transfer speed.

    ``on_progress`` receives the integer percent after every update;
    ``on_speed`` receives bytes/sec at most once per sample interval,
    computed over the bytes confirmed since the previous sample.
    """

    def __init__(
        self,
        total_bytes: int,
        *,
        on_progress: Callable[[int], None] | None = None,
        on_speed: Callable[[float], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.total_bytes = total_bytes
        self.uploaded_bytes = 0
        self.speed = 0.0
        self._on_progress = on_progress
        self._on_speed = on_speed
        self._clock = clock
        self._sample_time: float | None = None
        self._sample_bytes = 0

    @property
    def percent(self) -> int:
        if self.total_bytes <= 0:
            return 100 if self.uploaded_bytes else 0
        return _round_half_up(self.uploaded_bytes / self.total_bytes * 100)

    def reset(self, uploaded_bytes: int = 0) -> None:
        self.uploaded_bytes = uploaded_bytes
        self._sample_time = self._clock()
        self._sample_bytes = uploaded_bytes

    def advance(self, nbytes: int) -> None:
        self.update(self.uploaded_bytes + nbytes)

    def update(self, uploaded_bytes: int) -> None:
        self.uploaded_bytes = uploaded_bytes
        if self._on_progress is not None:
            self._on_progress(self.percent)
        self._sample_speed()

    def _sample_speed(self) -> None:
        now = self._clock()
        if self._sample_time is None:
            self._sample_time = now
            self._sample_bytes = self.uploaded_bytes
            return
        elapsed = now - self._sample_time
        if elapsed < SPEED_SAMPLE_INTERVAL:
            return
        self.speed = (self.uploaded_bytes - self._sample_bytes) / elapsed
        self._sample_time = now
        self._sample_bytes = self.uploaded_bytes
        if self._on_speed is not None:
            self._on_speed(self.speed)

    def seconds_remaining(self) -> float:
        if self.speed <= 0:
            return 0.0
        return max(self.total_bytes - self.uploaded_bytes, 0) / self.speed


def format_upload_speed(bytes_per_second: float) -> str:
    unit = 0
    speed = bytes_per_second
    while speed >= 1024 and unit < len(_SPEED_UNITS) - 1:
        speed /= 1024
        unit += 1
    return f"{speed:.1f} {_SPEED_UNITS[unit]}"


def format_time_remaining(bytes_remaining: int, bytes_per_second: float) -> str:
    if bytes_per_second <= 0:
        return "Calculating..."
    seconds = bytes_remaining / bytes_per_second
    if seconds < 60:
        return f"{_round_half_up(seconds)}s remaining"
    if seconds < 3600:
        return f"{_round_half_up(seconds / 60)}m remaining"
    hours = int(seconds // 3600)
    minutes = _round_half_up((seconds % 3600) / 60)
    return f"{hours}h {minutes}m remaining"


def format_bytes(nbytes: int) -> str:
    """Human size with one decimal and no trailing ``.0``: ``1.5 MB``, ``2 GB``."""
    if nbytes <= 0:
        return "0 B"
    unit = 0
    size = float(nbytes)
    while size >= 1024 and unit < len(_SIZE_UNITS) - 1:
        size /= 1024
        unit += 1
    value = f"{size:.1f}".rstrip("0").rstrip(".")
    return f"{value} {_SIZE_UNITS[unit]}"


def format_transfer_progress(uploaded_bytes: int, total_bytes: int) -> str:
    pct = _round_half_up(uploaded_bytes / total_bytes * 100) if total_bytes > 0 else 0
    return f"{pct}% ({format_bytes(uploaded_bytes)} / {format_bytes(total_bytes)})"
