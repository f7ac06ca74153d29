# src/taskclock/timer/timer_store.py

from __future__ import annotations

import contextlib
import logging
import math
import sqlite3
import time
from datetime import UTC, datetime
from pathlib import Path

from .timer_models import TimerState

logger = logging.getLogger(__name__)


class TimerStateStore:
    """
    SQLite key-value store for per-task timer state.

    One row per timer key. save() is a single UPSERT, so the four fields of a
    record are always replaced together and a concurrent load() never sees a
    half-written record.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "timers.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("TimerStateStore ready db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS timer_state (
                    key TEXT PRIMARY KEY,
                    is_running INTEGER NOT NULL DEFAULT 0,
                    session_start REAL,
                    accumulated_seconds REAL NOT NULL DEFAULT 0,
                    last_session_seconds REAL NOT NULL DEFAULT 0,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_state(row: sqlite3.Row) -> TimerState | None:
        """Validate a row; None means "treat as no prior state"."""
        try:
            running = bool(row["is_running"])
            start_raw = row["session_start"]
            accumulated = float(row["accumulated_seconds"])
            last_session = float(row["last_session_seconds"])
            start = datetime.fromtimestamp(float(start_raw), UTC) if start_raw is not None else None
        except (TypeError, ValueError, OverflowError, OSError):
            return None

        if not (math.isfinite(accumulated) and math.isfinite(last_session)):
            return None
        if accumulated < 0 or last_session < 0:
            return None
        if running and start is None:
            return None

        return TimerState(
            is_running=running,
            session_start=start if running else None,
            accumulated_seconds=accumulated,
            last_session_seconds=last_session,
        )

    # ---- public API ----

    def save(self, key: str, state: TimerState) -> None:
        start_ts = state.session_start.timestamp() if state.session_start is not None else None
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO timer_state(
                    key, is_running, session_start,
                    accumulated_seconds, last_session_seconds, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    is_running = excluded.is_running,
                    session_start = excluded.session_start,
                    accumulated_seconds = excluded.accumulated_seconds,
                    last_session_seconds = excluded.last_session_seconds,
                    updated_at = excluded.updated_at
                """,
                (
                    key,
                    1 if state.is_running else 0,
                    start_ts,
                    float(state.accumulated_seconds),
                    float(state.last_session_seconds),
                    time.time(),
                ),
            )
            conn.commit()
            logger.debug(
                "Timer state saved key=%s running=%s accumulated=%.3f",
                key,
                state.is_running,
                state.accumulated_seconds,
            )
        finally:
            conn.close()

    def load(self, key: str) -> TimerState | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM timer_state WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()

        if row is None:
            return None
        state = self._row_to_state(row)
        if state is None:
            logger.warning("Timer state for key=%s is unreadable; ignoring it.", key)
        return state
