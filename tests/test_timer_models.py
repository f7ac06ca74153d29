# tests/test_timer_models.py

from __future__ import annotations

import math
from datetime import UTC, datetime

from taskclock.tasks.task_models import Task
from taskclock.timer.timer_models import TimerSession, TimerState, format_duration, timer_key


def test_format_duration() -> None:
    assert format_duration(0) == "00:00:00"
    assert format_duration(59.9) == "00:00:59"
    assert format_duration(90) == "00:01:30"
    assert format_duration(3600) == "01:00:00"
    assert format_duration(3725) == "01:02:05"
    assert format_duration(100 * 3600) == "100:00:00"
    assert format_duration(-5) == "00:00:00"
    assert format_duration(math.nan) == "00:00:00"
    assert format_duration(math.inf) == "00:00:00"


def test_timer_key_encodes_title(weekly_task: Task) -> None:
    assert timer_key(weekly_task) == "timer_proj-1_Weekly%20report"

    own = Task.one_off("s", "Café", due_date=datetime(2024, 1, 1))
    assert timer_key(own) == "timer_self_task_Caf%C3%A9"


def test_timer_key_is_stable_and_distinct() -> None:
    due = datetime(2024, 1, 1)
    a = Task.one_off("1", "Report", due_date=due, project_id="p1")
    b = Task.one_off("2", "Report", due_date=due, project_id="p2")
    c = Task.one_off("3", "Report", due_date=due, project_id="p1")

    assert timer_key(a) != timer_key(b)
    assert timer_key(a) == timer_key(c)


def test_session_from_state_requires_start_to_run() -> None:
    start = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)

    running = TimerSession.from_state("k", TimerState(True, start, 10.0, 5.0))
    assert running.is_running
    assert running.session_start == start
    assert running.to_state() == TimerState(True, start, 10.0, 5.0)

    broken = TimerSession.from_state("k", TimerState(True, None, 10.0, 5.0))
    assert not broken.is_running
    assert broken.session_start is None
