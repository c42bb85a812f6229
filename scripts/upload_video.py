"""Upload a lesson video with one of the resumable strategies.

Run with:
    python scripts/upload_video.py VIDEO --url URL --access-key KEY
        [--strategy chunked|streaming|tus] [--chunk-mb 50]

Sessions are kept in UPLOAD_SESSION_PATH.  Interrupting with Ctrl-C keeps
the session, so running the same command again resumes where it stopped.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from closer_club.core.config import SETTINGS
from closer_club.core.logging import setup_logging
from closer_club.upload.base import BaseUploader, UploadError
from closer_club.upload.chunked import ChunkedUploader
from closer_club.upload.files import LocalFile
from closer_club.upload.progress import format_time_remaining, format_upload_speed
from closer_club.upload.session_store import JsonFileSessionStore, cleanup_old_sessions
from closer_club.upload.streaming import StreamingUploader
from closer_club.upload.tus import TusUploader

logger = logging.getLogger("upload_video")

STRATEGIES = ("chunked", "streaming", "tus")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("video", help="path to the video file")
    parser.add_argument("--url", required=True, help="upload endpoint")
    parser.add_argument("--access-key", required=True)
    parser.add_argument("--strategy", choices=STRATEGIES, default="chunked")
    parser.add_argument("--chunk-mb", type=int, default=50, help="chunk size in MiB")
    parser.add_argument("--max-retries", type=int, default=3, help="chunked strategy only")
    return parser.parse_args(argv)


def build_uploader(args: argparse.Namespace, store: JsonFileSessionStore) -> BaseUploader:
    file = LocalFile.open(args.video)
    state: dict[str, BaseUploader] = {}

    def on_progress(percent: int) -> None:
        uploader = state["uploader"]
        remaining = uploader.total_bytes - uploader.uploaded_bytes
        print(
            f"\r{percent:3d}%  {format_upload_speed(uploader.speed):>10}  "
            f"{format_time_remaining(remaining, uploader.speed)}      ",
            end="",
            flush=True,
        )

    common = dict(
        upload_url=args.url,
        access_key=args.access_key,
        store=store,
        on_progress=on_progress,
    )
    chunk_size = args.chunk_mb * 1024 * 1024
    uploader: BaseUploader
    if args.strategy == "chunked":
        uploader = ChunkedUploader(
            file, chunk_size=chunk_size, max_retries=args.max_retries, **common
        )
    elif args.strategy == "streaming":
        uploader = StreamingUploader(file, **common)
    else:
        uploader = TusUploader(file, chunk_size=chunk_size, **common)
    state["uploader"] = uploader
    return uploader


async def run(args: argparse.Namespace) -> int:
    store = JsonFileSessionStore(SETTINGS.upload_session_path)
    await cleanup_old_sessions(store, SETTINGS.upload_session_max_age_hours)
    uploader = build_uploader(args, store)
    logger.info(
        "uploading  file=%s size=%d strategy=%s", args.video, uploader.total_bytes, args.strategy
    )
    try:
        await uploader.start()
    except UploadError as exc:
        print()
        logger.error("upload failed: %s", exc)
        return 1
    print()
    logger.info("upload finished  file_id=%s", uploader.file_id)
    return 0


def main(argv: list[str] | None = None) -> int:
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    args = parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print()
        logger.info("interrupted, session kept in %s; rerun to resume", SETTINGS.upload_session_path)
        return 130


if __name__ == "__main__":
    sys.exit(main())
