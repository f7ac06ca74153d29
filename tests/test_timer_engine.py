# tests/test_timer_engine.py

from __future__ import annotations

import asyncio
import math
from datetime import datetime
from pathlib import Path

import pytest

from taskclock.tasks.task_models import Task
from taskclock.timer.timer_engine import TimerEngine
from taskclock.timer.timer_models import TimerSnapshot, TimerState
from taskclock.timer.timer_store import TimerStateStore

from .fakes import FakeClock, FakeRemoteTimeSync


def _engine(task, store, remote, clock, **kwargs) -> TimerEngine:
    return TimerEngine(task, store=store, remote=remote, clock=clock, **kwargs)


# ----- synchronous behavior (no event loop: remote I/O is skipped) -----


def test_load_seeds_from_task_total(one_off_task: Task, memory_store, remote, clock) -> None:
    engine = _engine(one_off_task, memory_store, remote, clock)
    session = engine.load()

    assert not session.is_running
    assert session.accumulated_seconds == 90.0
    assert engine.display == "00:01:30"


@pytest.mark.parametrize("bad", [math.nan, math.inf, -30.0])
def test_load_treats_unusable_task_total_as_zero(memory_store, remote, clock, bad: float) -> None:
    task = Task.one_off("t-bad", "Imported with junk", due_date=datetime(2024, 1, 8), total_time_logged=bad)
    engine = _engine(task, memory_store, remote, clock)

    assert engine.load().accumulated_seconds == 0.0
    assert engine.display == "00:00:00"
    assert engine.tick().total_display == "00:00:00"


def test_load_prefers_local_state(one_off_task: Task, memory_store, remote, clock) -> None:
    engine = _engine(one_off_task, memory_store, remote, clock)
    memory_store.save(engine.key, TimerState(False, None, 500.0, 20.0))

    session = engine.load()
    assert session.accumulated_seconds == 500.0
    assert session.last_session_seconds == 20.0


def test_unreadable_local_state_falls_back(one_off_task: Task, memory_store, remote, clock) -> None:
    memory_store.fail_load = True
    engine = _engine(one_off_task, memory_store, remote, clock)

    assert engine.load().accumulated_seconds == 90.0


def test_start_is_idempotent(one_off_task: Task, memory_store, remote, clock: FakeClock) -> None:
    engine = _engine(one_off_task, memory_store, remote, clock)
    engine.load()

    assert engine.start() is True
    started_at = engine.session.session_start
    clock.advance(10)

    assert engine.start() is False
    assert engine.session.session_start == started_at
    assert engine.session.accumulated_seconds == 90.0
    assert memory_store.records[engine.key].is_running


def test_stop_conserves_elapsed_time(one_off_task: Task, memory_store, remote, clock: FakeClock) -> None:
    engine = _engine(one_off_task, memory_store, remote, clock)
    engine.load()
    engine.start()
    clock.advance(42.5)

    assert engine.stop() == pytest.approx(42.5)
    assert engine.session.accumulated_seconds == pytest.approx(132.5)
    assert engine.session.last_session_seconds == pytest.approx(42.5)
    assert not engine.is_running

    persisted = memory_store.records[engine.key]
    assert persisted == TimerState(False, None, engine.session.accumulated_seconds, engine.session.last_session_seconds)


def test_stop_when_idle_is_noop(one_off_task: Task, memory_store, remote, clock) -> None:
    engine = _engine(one_off_task, memory_store, remote, clock)
    engine.load()
    saves = memory_store.saves

    assert engine.stop() is None
    assert memory_store.saves == saves
    assert engine.session.accumulated_seconds == 90.0


def test_tick_never_changes_baseline(one_off_task: Task, memory_store, remote, clock: FakeClock) -> None:
    engine = _engine(one_off_task, memory_store, remote, clock)
    engine.load()
    engine.start()

    for _ in range(5):
        clock.advance(1)
        snap = engine.tick()

    assert snap.is_running
    assert snap.session_seconds == pytest.approx(5.0)
    assert snap.total_seconds == pytest.approx(95.0)
    assert snap.session_display == "00:00:05"
    assert engine.session.accumulated_seconds == 90.0


def test_clock_skew_never_goes_negative(one_off_task: Task, memory_store, remote, clock: FakeClock) -> None:
    engine = _engine(one_off_task, memory_store, remote, clock)
    engine.load()
    engine.start()
    clock.advance(-30)

    assert engine.session_seconds() == 0.0
    assert engine.stop() == 0.0
    assert engine.session.accumulated_seconds == 90.0


def test_running_timer_survives_restart(one_off_task: Task, tmp_path: Path, remote, clock: FakeClock) -> None:
    db = tmp_path / "timers.sqlite3"

    first = _engine(one_off_task, TimerStateStore(db), remote, clock)
    first.load()
    first.start()
    # Process dies here: no stop(), no close().

    clock.advance(300)
    second = _engine(one_off_task, TimerStateStore(db), remote, clock)
    session = second.load()

    assert session.is_running
    assert second.session_seconds() == pytest.approx(300.0)
    assert second.total_seconds() == pytest.approx(390.0)

    clock.advance(5)
    assert second.stop() == pytest.approx(305.0)
    assert second.session.accumulated_seconds == pytest.approx(395.0)


def test_close_commits_running_session(one_off_task: Task, memory_store, remote, clock: FakeClock) -> None:
    engine = _engine(one_off_task, memory_store, remote, clock)
    engine.load()
    engine.start()
    clock.advance(60)

    engine.close()

    assert engine.closed
    assert not engine.is_running
    assert memory_store.records[engine.key] == TimerState(False, None, 150.0, 60.0)
    assert engine.start() is False


def test_display_callback_errors_are_contained(one_off_task: Task, memory_store, remote, clock) -> None:
    def boom(_snap: TimerSnapshot) -> None:
        raise RuntimeError("render failed")

    engine = _engine(one_off_task, memory_store, remote, clock, on_display=boom)
    engine.load()
    assert engine.start() is True


# ----- remote reconciliation -----


@pytest.mark.asyncio
async def test_remote_total_replaces_local_baseline(one_off_task: Task, memory_store, clock) -> None:
    remote = FakeRemoteTimeSync(total=120.0)
    engine = _engine(one_off_task, memory_store, remote, clock)
    memory_store.save(engine.key, TimerState(False, None, 90.0, 0.0))

    engine.load()
    assert engine.total_seconds() == 90.0

    await engine.flush()
    assert remote.fetch_calls == [one_off_task.identity]
    assert engine.session.accumulated_seconds == 120.0
    assert memory_store.records[engine.key].accumulated_seconds == 120.0


@pytest.mark.asyncio
async def test_late_remote_total_keeps_running_session(one_off_task: Task, memory_store, clock: FakeClock) -> None:
    remote = FakeRemoteTimeSync(total=120.0)
    remote.fetch_gate = asyncio.Event()
    seen: list[TimerSnapshot] = []
    engine = _engine(one_off_task, memory_store, remote, clock, on_display=seen.append)

    engine.load()
    engine.start()
    clock.advance(10)
    assert engine.total_seconds() == pytest.approx(100.0)

    remote.fetch_gate.set()
    await engine.flush()

    assert engine.is_running
    assert engine.session.accumulated_seconds == 120.0
    assert engine.total_seconds() == pytest.approx(130.0)
    assert seen[-1].total_seconds == pytest.approx(130.0)

    await engine.aclose()


@pytest.mark.asyncio
async def test_missing_remote_total_keeps_baseline(one_off_task: Task, memory_store, remote, clock) -> None:
    engine = _engine(one_off_task, memory_store, remote, clock)
    engine.load()
    await engine.flush()

    assert engine.session.accumulated_seconds == 90.0


@pytest.mark.asyncio
@pytest.mark.parametrize("bad", [-5.0, math.nan, math.inf])
async def test_invalid_remote_total_is_ignored(one_off_task: Task, memory_store, clock, bad: float) -> None:
    engine = _engine(one_off_task, memory_store, FakeRemoteTimeSync(total=bad), clock)
    engine.load()
    await engine.flush()

    assert engine.session.accumulated_seconds == 90.0


@pytest.mark.asyncio
async def test_remote_fetch_failure_keeps_local(one_off_task: Task, memory_store, clock) -> None:
    remote = FakeRemoteTimeSync(fetch_error=ConnectionError("offline"))
    engine = _engine(one_off_task, memory_store, remote, clock)
    memory_store.save(engine.key, TimerState(False, None, 90.0, 0.0))

    engine.load()
    await engine.flush()

    assert engine.session.accumulated_seconds == 90.0
    assert engine.start() is True
    await engine.aclose()


@pytest.mark.asyncio
async def test_remote_total_after_close_is_ignored(one_off_task: Task, memory_store, clock) -> None:
    remote = FakeRemoteTimeSync(total=999.0)
    remote.fetch_gate = asyncio.Event()
    engine = _engine(one_off_task, memory_store, remote, clock)

    engine.load()
    engine.close()
    remote.fetch_gate.set()
    await engine.flush()

    assert engine.session.accumulated_seconds == 90.0


@pytest.mark.asyncio
async def test_stop_pushes_new_total(one_off_task: Task, memory_store, remote, clock: FakeClock) -> None:
    engine = _engine(one_off_task, memory_store, remote, clock)
    engine.load()
    engine.start()
    clock.advance(10)
    engine.stop()

    await engine.flush()
    assert remote.updates == [(one_off_task.identity, pytest.approx(100.0))]


@pytest.mark.asyncio
async def test_remote_write_failure_keeps_local(one_off_task: Task, memory_store, clock: FakeClock) -> None:
    remote = FakeRemoteTimeSync(update_error=ConnectionError("offline"))
    engine = _engine(one_off_task, memory_store, remote, clock)
    engine.load()
    engine.start()
    clock.advance(10)
    engine.stop()

    await engine.flush()
    assert remote.updates == []
    assert memory_store.records[engine.key].accumulated_seconds == pytest.approx(100.0)


# ----- ticker -----


@pytest.mark.asyncio
async def test_ticker_refreshes_display_while_running(one_off_task: Task, memory_store, remote, clock) -> None:
    seen: list[TimerSnapshot] = []
    engine = _engine(one_off_task, memory_store, remote, clock, tick_interval_seconds=0.01, on_display=seen.append)
    engine.load()
    engine.start()

    await asyncio.sleep(0.1)
    running = [s for s in seen if s.is_running]
    assert len(running) >= 2
    assert engine.session.accumulated_seconds == 90.0

    engine.stop()
    await engine.flush()
    count = len(seen)
    await asyncio.sleep(0.05)
    assert len(seen) == count

    await engine.aclose()
