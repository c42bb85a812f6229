from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUE_WORDS = ("1", "true", "yes", "on")
_FALSE_WORDS = ("0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getbool(name: str, default: str) -> bool:
    raw = _getenv(name, default).lower()
    if raw in _TRUE_WORDS:
        return True
    if raw in _FALSE_WORDS:
        return False
    raise ValueError(f"{name} must be a boolean word like true|false (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    jwt_public_key_path: str | None = None
    upload_session_path: str = ".closer-club/upload-sessions.json"
    upload_session_max_age_hours: int = 24

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")
    max_age_raw = _getenv("UPLOAD_SESSION_MAX_AGE_HOURS", "24")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        max_age_hours = int(max_age_raw)
    except ValueError:
        raise ValueError(
            f"UPLOAD_SESSION_MAX_AGE_HOURS must be an integer (got {max_age_raw!r})"
        ) from None
    if max_age_hours <= 0:
        raise ValueError(
            f"UPLOAD_SESSION_MAX_AGE_HOURS must be positive (got {max_age_hours})"
        )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getbool("LOG_JSON", "false"),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        jwt_public_key_path=_getenv("JWT_PUBLIC_KEY_PATH", "") or None,
        upload_session_path=_getenv(
            "UPLOAD_SESSION_PATH", ".closer-club/upload-sessions.json"
        ),
        upload_session_max_age_hours=max_age_hours,
    )


SETTINGS = load_settings()
