# src/taskclock/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Any

from ..tasks.task_models import Task
from ..timer.timer_engine import TimerEngine
from .ports import Clock, RemoteTimeSync, TimerStateRepo


@dataclass
class AppState:
    # Store Settings on the state for easy access in command handlers.
    settings: Any

    tasks: list[Task]
    timer_store: TimerStateRepo
    remote: RemoteTimeSync
    clock: Clock

    # Reference zone for calendar-day truncation (None = local zone).
    tz: tzinfo | None = None
    tick_interval_seconds: float = 1.0

    # At most one open task-detail timer in the console host.
    active_timer: TimerEngine | None = None
    # Closed timers whose remote writes may still be in flight.
    closed_timers: list[TimerEngine] = field(default_factory=list)
