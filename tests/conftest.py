# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskclock.core.state import AppState
from taskclock.tasks.task_models import Priority, Task, TaskType
from taskclock.timer.timer_store import TimerStateStore

from .fakes import FakeClock, FakeRemoteTimeSync, InMemoryTimerStateRepo


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and command handlers.

    We intentionally use a SimpleNamespace rather than reading the environment,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskclock-test",
        data_dir=tmp_path,
        timer_db_path=tmp_path / "timers.sqlite3",
        tasks_path=tmp_path / "tasks.json",
        timezone_name=None,
        tick_interval_seconds=1.0,
        remote_enabled=False,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def remote() -> FakeRemoteTimeSync:
    return FakeRemoteTimeSync()


@pytest.fixture()
def memory_store() -> InMemoryTimerStateRepo:
    return InMemoryTimerStateRepo()


@pytest.fixture()
def weekly_task() -> Task:
    return Task.weekly(
        "t-weekly",
        "Weekly report",
        start_date=datetime(2024, 1, 1, 10, 0),
        project_id="proj-1",
        priority=Priority.P1,
    )


@pytest.fixture()
def one_off_task() -> Task:
    return Task.one_off(
        "t-once",
        "Fix login bug",
        start_date=datetime(2024, 1, 2, 9, 0),
        due_date=datetime(2024, 1, 8, 17, 0),
        total_time_logged=90.0,
        task_type=TaskType.SELF,
    )


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    clock: FakeClock,
    remote: FakeRemoteTimeSync,
    weekly_task: Task,
    one_off_task: Task,
) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: We keep the real SQLite TimerStateStore here because its
    correctness is part of what we want to test.
    """
    return AppState(
        settings=settings,
        tasks=[weekly_task, one_off_task],
        timer_store=TimerStateStore(settings.timer_db_path),
        remote=remote,
        clock=clock,
        tz=None,
        tick_interval_seconds=1.0,
    )
