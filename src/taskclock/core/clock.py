# src/taskclock/core/clock.py

from __future__ import annotations

from datetime import UTC, datetime


class SystemClock:
    """Wall-clock time source (UTC, timezone-aware)."""

    def now(self) -> datetime:
        return datetime.now(UTC)
