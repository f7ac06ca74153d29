# src/taskclock/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (remote sync is optional).
- Invalid values fall back to defaults instead of failing startup.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

ENV_PREFIX = "TASKCLOCK"

DEFAULT_FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"

logger = logging.getLogger(__name__)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_opt(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths ----
    data_dir: Path
    timer_db_path: Path
    tasks_path: Path

    # ---- Calendar / timer ----
    timezone_name: str | None
    tick_interval_seconds: float

    # ---- Remote store (Firestore REST) ----
    firestore_project_id: str | None
    firestore_base_url: str
    firestore_id_token: str | None
    remote_timeout_seconds: float

    # ---- Current user (remote document matching) ----
    user_uid: str | None
    user_email: str | None

    @property
    def remote_enabled(self) -> bool:
        return bool(self.firestore_project_id)

    def reference_tz(self) -> tzinfo | None:
        """
        Time zone used to truncate instants to calendar days.

        None means "the process-local zone".
        """
        if not self.timezone_name:
            return None
        try:
            return ZoneInfo(self.timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown time zone %r; using the local zone.", self.timezone_name)
            return None

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskclock").strip() or "taskclock"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskclock"))
        timer_db_path = _env_path(_k("TIMER_DB_PATH"), data_dir / "timers.sqlite3")
        tasks_path = _env_path(_k("TASKS_PATH"), data_dir / "tasks.json")

        tick_interval_seconds = _env_float(_k("TICK_INTERVAL_SECONDS"), 1.0)
        if tick_interval_seconds <= 0:
            tick_interval_seconds = 1.0

        remote_timeout_seconds = _env_float(_k("REMOTE_TIMEOUT_SECONDS"), 15.0)
        if remote_timeout_seconds <= 0:
            remote_timeout_seconds = 15.0

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            timer_db_path=timer_db_path,
            tasks_path=tasks_path,
            timezone_name=_env_opt(_k("TIMEZONE")),
            tick_interval_seconds=tick_interval_seconds,
            firestore_project_id=_env_opt(_k("FIRESTORE_PROJECT_ID")),
            firestore_base_url=_env(_k("FIRESTORE_BASE_URL"), DEFAULT_FIRESTORE_BASE_URL).rstrip("/"),
            firestore_id_token=_env_opt(_k("FIRESTORE_ID_TOKEN")),
            remote_timeout_seconds=remote_timeout_seconds,
            user_uid=_env_opt(_k("USER_UID")),
            user_email=_env_opt(_k("USER_EMAIL")),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings; .env is loaded once, on first access."""
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS
