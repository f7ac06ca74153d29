# src/taskclock/timer/timer_models.py

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from ..tasks.task_models import Task

SELF_TASK_SENTINEL = "self_task"


@dataclass(slots=True, frozen=True)
class TimerState:
    """Persisted timer record for one task (all four fields are written together)."""

    is_running: bool
    session_start: datetime | None
    accumulated_seconds: float
    last_session_seconds: float


@dataclass(slots=True)
class TimerSession:
    """
    In-memory timer for the task whose detail view is open.

    session_start is set iff is_running.
    """

    key: str
    is_running: bool = False
    session_start: datetime | None = None
    accumulated_seconds: float = 0.0
    last_session_seconds: float = 0.0

    def to_state(self) -> TimerState:
        return TimerState(
            is_running=self.is_running,
            session_start=self.session_start,
            accumulated_seconds=self.accumulated_seconds,
            last_session_seconds=self.last_session_seconds,
        )

    @classmethod
    def from_state(cls, key: str, state: TimerState) -> TimerSession:
        running = state.is_running and state.session_start is not None
        return cls(
            key=key,
            is_running=running,
            session_start=state.session_start if running else None,
            accumulated_seconds=state.accumulated_seconds,
            last_session_seconds=state.last_session_seconds,
        )


@dataclass(slots=True, frozen=True)
class TimerSnapshot:
    """What a view renders: totals in seconds plus preformatted strings."""

    is_running: bool
    total_seconds: float
    session_seconds: float
    last_session_seconds: float

    @property
    def total_display(self) -> str:
        return format_duration(self.total_seconds)

    @property
    def session_display(self) -> str:
        return format_duration(self.session_seconds)

    @property
    def last_session_display(self) -> str:
        return format_duration(self.last_session_seconds)


def format_duration(seconds: float) -> str:
    """
    HH:MM:SS with minutes/seconds always zero-padded.

    Below one hour the hours field is "00"; above it is padded to at least two
    digits (100+ hours simply grow the field). Fractions are truncated; negative
    and non-finite values render as zero.
    """
    if not math.isfinite(seconds):
        return "00:00:00"
    total = max(0, int(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"00:{minutes:02d}:{secs:02d}"


def _percent_encode_alnum(text: str) -> str:
    out: list[str] = []
    for ch in text:
        if ch.isascii() and ch.isalnum():
            out.append(ch)
        else:
            out.extend(f"%{b:02X}" for b in ch.encode("utf-8"))
    return "".join(out) or "task"


def timer_key(task: Task) -> str:
    """
    Stable local persistence key: project id (or a self-task sentinel) + encoded title.

    Only ASCII letters and digits are kept verbatim so the key is safe in any
    key-value backend.
    """
    project = task.project_id or SELF_TASK_SENTINEL
    return f"timer_{project}_{_percent_encode_alnum(task.title)}"
