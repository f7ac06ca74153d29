# src/taskclock/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The occurrence calculator and the timer engine depend on Protocols instead of
concrete implementations, so the remote store, local persistence and the
clock can be swapped (and faked in tests).
"""

from datetime import datetime
from typing import TYPE_CHECKING, Awaitable, Protocol

if TYPE_CHECKING:
    from ..tasks.task_models import TaskIdentity
    from ..timer.timer_models import TimerState


class Clock(Protocol):
    """Supplies the current instant (timezone-aware)."""

    def now(self) -> datetime: ...


class TimerStateRepo(Protocol):
    """
    Durable per-task key-value storage of timer state.

    save() must replace all fields of a record at once; load() returns None for
    "no prior state" (absent or unreadable).
    """

    def save(self, key: str, state: TimerState) -> None: ...
    def load(self, key: str) -> TimerState | None: ...


class RemoteTimeSync(Protocol):
    """
    Remote authoritative total of logged time per task.

    fetch resolves to None when the task has no remote record (or no value).
    update resolves to the number of remote records written.
    """

    def fetch_task_total_time(self, identity: TaskIdentity) -> Awaitable[float | None]: ...

    def update_task_total_time(self, identity: TaskIdentity, seconds: float) -> Awaitable[int]: ...
