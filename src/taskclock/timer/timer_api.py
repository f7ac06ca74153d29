# src/taskclock/timer/timer_api.py

from __future__ import annotations

import asyncio
import logging

from ..core.state import AppState
from ..tasks.task_models import Task
from .timer_engine import DisplayCallback, TimerEngine

logger = logging.getLogger(__name__)


def open_timer(state: AppState, task: Task, *, on_display: DisplayCallback | None = None) -> TimerEngine:
    """
    Open the task-detail timer for `task`.

    The previously open timer (if any) is closed first, which commits its
    running session.
    """
    close_timer(state)

    engine = TimerEngine(
        task,
        store=state.timer_store,
        remote=state.remote,
        clock=state.clock,
        tick_interval_seconds=state.tick_interval_seconds,
        on_display=on_display,
    )
    engine.load()
    state.active_timer = engine
    return engine


def close_timer(state: AppState) -> TimerEngine | None:
    """
    Close the open timer (implicit stop).

    Closed engines are kept only while their remote writes are in flight, so
    shutdown can still flush them.
    """
    engine = state.active_timer
    if engine is None:
        return None
    engine.close()
    state.active_timer = None
    state.closed_timers = [e for e in state.closed_timers if e.has_pending_io]
    if engine.has_pending_io:
        state.closed_timers.append(engine)
    return engine


async def shutdown_timers(state: AppState, *, timeout_seconds: float = 10.0) -> None:
    """Close the open timer and wait (bounded) for pending remote writes."""
    close_timer(state)
    engines, state.closed_timers = state.closed_timers, []
    if not engines:
        return
    try:
        await asyncio.wait_for(
            asyncio.gather(*(e.flush() for e in engines)),
            timeout=timeout_seconds,
        )
    except TimeoutError:
        logger.warning("Pending remote writes did not finish within %.0fs.", timeout_seconds)
