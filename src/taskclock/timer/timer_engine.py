# src/taskclock/timer/timer_engine.py

"""
Per-task work timer.

One TimerEngine is owned by one task-detail view. It runs on the host's asyncio
event loop (single-threaded):
- the one-second tick is an asyncio task that only re-renders the display,
- remote fetch/update run as separate background tasks and never block ticks,
- local persistence happens synchronously on every state change, so a process
  death loses nothing: a timer that was running keeps counting wall-clock time
  and resumes on the next load().

Baseline policy (remote-wins):
- load() seeds from local state, else the task's last known remote total,
- when the remote fetch resolves, its value replaces the baseline (never summed).
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable, Coroutine
from typing import Any

from ..core.ports import Clock, RemoteTimeSync, TimerStateRepo
from ..tasks.task_models import Task
from .timer_models import TimerSession, TimerSnapshot, TimerState, format_duration, timer_key

logger = logging.getLogger(__name__)

DisplayCallback = Callable[[TimerSnapshot], None]


def _usable_total(raw: object) -> float | None:
    """Logged-time totals must be finite and non-negative; None otherwise."""
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


class TimerEngine:
    def __init__(
        self,
        task: Task,
        *,
        store: TimerStateRepo,
        remote: RemoteTimeSync,
        clock: Clock,
        tick_interval_seconds: float = 1.0,
        on_display: DisplayCallback | None = None,
    ) -> None:
        self.task = task
        self.key = timer_key(task)
        self.session = TimerSession(key=self.key)

        self._store = store
        self._remote = remote
        self._clock = clock
        self._tick_interval = max(0.01, float(tick_interval_seconds))
        self._on_display = on_display

        self._ticker: asyncio.Task[None] | None = None
        self._pending: set[asyncio.Task[Any]] = set()
        self._closed = False

    # ----- Read-only views -----

    @property
    def is_running(self) -> bool:
        return self.session.is_running

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def has_pending_io(self) -> bool:
        return any(not t.done() for t in self._pending)

    def session_seconds(self) -> float:
        s = self.session
        if not s.is_running or s.session_start is None:
            return 0.0
        return max(0.0, (self._clock.now() - s.session_start).total_seconds())

    def total_seconds(self) -> float:
        return self.session.accumulated_seconds + self.session_seconds()

    def snapshot(self) -> TimerSnapshot:
        session_secs = self.session_seconds()
        return TimerSnapshot(
            is_running=self.session.is_running,
            total_seconds=self.session.accumulated_seconds + session_secs,
            session_seconds=session_secs,
            last_session_seconds=self.session.last_session_seconds,
        )

    @property
    def display(self) -> str:
        return format_duration(self.total_seconds())

    # ----- Lifecycle -----

    def load(self) -> TimerSession:
        """
        Seed the session and kick off remote reconciliation.

        A session persisted as running resumes immediately; the time since its
        persisted start counts, however long the app was closed.
        """
        self._cancel_ticker()

        persisted = self._read_local()
        if persisted is not None:
            self.session = TimerSession.from_state(self.key, persisted)
            logger.info(
                "Timer %s loaded from local state (running=%s, accumulated=%.1fs)",
                self.key,
                self.session.is_running,
                self.session.accumulated_seconds,
            )
        else:
            raw_total = self.task.total_time_logged
            baseline = 0.0 if raw_total is None else _usable_total(raw_total)
            if baseline is None:
                logger.warning("Timer %s: unusable task total %r; starting from zero.", self.key, raw_total)
                baseline = 0.0
            self.session = TimerSession(key=self.key, accumulated_seconds=baseline)
            logger.info("Timer %s seeded from task total (%.1fs)", self.key, baseline)

        if self.session.is_running:
            self._start_ticker()

        self._spawn(self._reconcile_remote(), "remote fetch")
        self._emit()
        return self.session

    def start(self) -> bool:
        """Start a session. Returns False if one is already running (no-op)."""
        if self._closed:
            logger.warning("Timer %s is closed; start ignored.", self.key)
            return False
        if self.session.is_running:
            return False

        self.session.session_start = self._clock.now()
        self.session.is_running = True
        self._write_local()
        self._start_ticker()
        logger.info("Timer %s started at %s", self.key, self.session.session_start.isoformat())
        self._emit()
        return True

    def stop(self) -> float | None:
        """
        Commit the running session into the baseline.

        Returns the session length in seconds, or None if nothing was running.
        The new total is pushed to the remote store in the background.
        """
        s = self.session
        if not s.is_running or s.session_start is None:
            return None

        session_secs = max(0.0, (self._clock.now() - s.session_start).total_seconds())
        s.accumulated_seconds += session_secs
        s.last_session_seconds = session_secs
        s.session_start = None
        s.is_running = False

        self._cancel_ticker()
        self._write_local()
        logger.info(
            "Timer %s stopped: session=%.1fs total=%.1fs",
            self.key,
            session_secs,
            s.accumulated_seconds,
        )
        self._emit()
        self._spawn(self._push_remote(s.accumulated_seconds), "remote update")
        return session_secs

    def tick(self) -> TimerSnapshot:
        """Recompute the live display. Never touches the baseline."""
        snap = self.snapshot()
        self._emit(snap)
        return snap

    def close(self) -> None:
        """
        The owning view is going away: commit a running session, stop ticking.

        Pending remote I/O keeps running; await flush() to wait for it.
        """
        if self._closed:
            return
        if self.session.is_running:
            self.stop()
        self._cancel_ticker()
        self._closed = True
        logger.debug("Timer %s closed", self.key)

    async def flush(self) -> None:
        """Wait for outstanding remote fetch/update tasks."""
        while True:
            pending = [t for t in self._pending if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        self.close()
        await self.flush()

    # ----- Remote sync -----

    async def _reconcile_remote(self) -> None:
        try:
            fetched = await self._remote.fetch_task_total_time(self.task.identity)
        except Exception:
            logger.exception("Remote fetch failed for %s; keeping local baseline.", self.key)
            return

        if fetched is None:
            logger.debug("No remote total for %s", self.key)
            return

        value = _usable_total(fetched)
        if value is None:
            logger.warning("Ignoring invalid remote total %r for %s", fetched, self.key)
            return

        if self._closed:
            logger.debug("Timer %s closed before remote total arrived; ignoring it.", self.key)
            return

        if value != self.session.accumulated_seconds:
            logger.info(
                "Timer %s baseline replaced by remote total: %.1fs -> %.1fs",
                self.key,
                self.session.accumulated_seconds,
                value,
            )
        self.session.accumulated_seconds = value
        self._write_local()
        self._emit()

    async def _push_remote(self, total_seconds: float) -> None:
        try:
            updated = await self._remote.update_task_total_time(self.task.identity, total_seconds)
        except Exception:
            logger.exception("Remote update failed for %s; local total %.1fs kept.", self.key, total_seconds)
            return
        logger.info("Remote total for %s saved (%.1fs, %s record(s))", self.key, total_seconds, updated)

    # ----- Internals -----

    def _read_local(self) -> TimerState | None:
        try:
            return self._store.load(self.key)
        except Exception:
            logger.exception("Local timer state unreadable for %s; treating as empty.", self.key)
            return None

    def _write_local(self) -> None:
        try:
            self._store.save(self.key, self.session.to_state())
        except Exception:
            logger.exception("Failed to persist timer state for %s", self.key)

    def _emit(self, snap: TimerSnapshot | None = None) -> None:
        if self._on_display is None:
            return
        try:
            self._on_display(snap or self.snapshot())
        except Exception:
            logger.exception("Display callback failed for %s", self.key)

    def _spawn(self, coro: Coroutine[Any, Any, None], what: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; %s skipped for %s", what, self.key)
            coro.close()
            return
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _start_ticker(self) -> None:
        if self._ticker is not None and not self._ticker.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; ticker not started for %s", self.key)
            return
        self._ticker = loop.create_task(self._run_ticker())

    def _cancel_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    async def _run_ticker(self) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            self.tick()
