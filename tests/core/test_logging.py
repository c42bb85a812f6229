from __future__ import annotations

import logging

from closer_club.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging
from closer_club.middleware.request_context import _RequestContextFilter


def _record(level: int = logging.INFO, msg: str = "hello", lineno: int = 1) -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="svc.py",
        lineno=lineno,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("nonexistent")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_quiets_http_client_loggers_at_debug() -> None:
    setup_logging("debug")
    for name in ("uvicorn", "httpx", "httpcore", "tusclient"):
        assert logging.getLogger(name).level == logging.WARNING


def test_setup_logging_allows_uvicorn_at_error() -> None:
    setup_logging("error")
    assert logging.getLogger("uvicorn").level == logging.ERROR


def test_setup_logging_picks_json_formatter() -> None:
    setup_logging("info", json_format=True)
    (handler,) = logging.getLogger().handlers
    assert isinstance(handler.formatter, _JsonFormatter)

    setup_logging("info")
    (handler,) = logging.getLogger().handlers
    assert isinstance(handler.formatter, _ContainerFormatter)


def test_request_context_filter_reaches_the_handler() -> None:
    # child-logger records skip root logger filters, so the handler needs it
    setup_logging("info")
    (handler,) = logging.getLogger().handlers
    assert any(isinstance(f, _RequestContextFilter) for f in handler.filters)


def test_formatter_excludes_location_for_info() -> None:
    output = _ContainerFormatter().format(_record())
    assert "hello" in output
    assert "[svc.py:" not in output


def test_formatter_includes_location_for_warning() -> None:
    output = _ContainerFormatter().format(_record(logging.WARNING, "bad thing", 42))
    assert "bad thing" in output
    assert "[svc.py:42]" in output


def test_formatter_timestamp_has_milliseconds() -> None:
    output = _ContainerFormatter().format(_record())
    timestamp = output.split(" ", 1)[0]
    # 2026-10-18T12:00:00.123+0000
    assert timestamp[19] == "."
    assert timestamp[20:23].isdigit()
