# src/taskclock/tasks/occurrence.py

"""
Recurring-task occurrence calculator.

Decides, for a calendar date, which tasks are active that day. Everything here
is pure: no state, no I/O, safe to call on every render.

Key invariants:
- comparisons are made on calendar days in one reference time zone, never on
  sub-day time,
- non-recurring tasks occur exactly once, on their due date (not their start date),
- recurring tasks occur every `interval` days starting at the start day, up to
  and including the end day (if any),
- bad input (non-positive interval, end before start) degrades to a safe answer
  instead of raising.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta, tzinfo

from .task_models import Priority, RecurringPattern, Task


def day_of(instant: datetime | date, tz: tzinfo | None = None) -> date:
    """
    Truncate an instant to its calendar day in the reference zone.

    - aware datetimes are converted to `tz` (local zone when tz is None),
    - naive datetimes are taken as already being in the reference zone,
    - plain dates pass through.
    """
    if not isinstance(instant, datetime):
        return instant
    if instant.tzinfo is None:
        return instant.date()
    return instant.astimezone(tz).date()


def whole_days_between(start_day: date, end_day: date) -> int:
    return (end_day - start_day).days


def occurs_on(task: Task, query_date: datetime | date, tz: tzinfo | None = None) -> bool:
    query_day = day_of(query_date, tz)

    if not task.is_recurring:
        return query_day == day_of(task.due_date, tz)

    start_day = day_of(task.start_date, tz)
    if query_day < start_day:
        return False

    if task.recurring_end_date is not None:
        end_day = day_of(task.recurring_end_date, tz)
        if end_day < start_day or query_day > end_day:
            return False

    diff = whole_days_between(start_day, query_day)
    return diff % task.recurring_interval_days == 0


def tasks_on(tasks: Iterable[Task], query_date: datetime | date, tz: tzinfo | None = None) -> list[Task]:
    """Tasks occurring on the given day, in input order."""
    query_day = day_of(query_date, tz)
    return [t for t in tasks if occurs_on(t, query_day, tz)]


def occurrences_between(
    task: Task,
    first: datetime | date,
    last: datetime | date,
    tz: tzinfo | None = None,
) -> list[date]:
    """Occurrence days of `task` within [first, last] (inclusive)."""
    first_day = day_of(first, tz)
    last_day = day_of(last, tz)
    if last_day < first_day:
        return []

    if not task.is_recurring:
        due_day = day_of(task.due_date, tz)
        return [due_day] if first_day <= due_day <= last_day else []

    start_day = day_of(task.start_date, tz)
    stop_day = last_day
    if task.recurring_end_date is not None:
        end_day = day_of(task.recurring_end_date, tz)
        if end_day < start_day:
            return []
        stop_day = min(stop_day, end_day)

    interval = task.recurring_interval_days
    if first_day <= start_day:
        day = start_day
    else:
        # Jump to the first aligned day on or after `first_day`.
        offset = whole_days_between(start_day, first_day)
        day = start_day + timedelta(days=-(-offset // interval) * interval)

    out: list[date] = []
    step = timedelta(days=interval)
    while day <= stop_day:
        out.append(day)
        day += step
    return out


def calendar_days(
    tasks: Iterable[Task],
    first: datetime | date,
    last: datetime | date,
    tz: tzinfo | None = None,
) -> dict[date, list[Task]]:
    """
    Days within [first, last] that have at least one task, with the tasks of
    each day in input order. Used for calendar badges.
    """
    out: dict[date, list[Task]] = {}
    for task in tasks:
        for day in occurrences_between(task, first, last, tz):
            out.setdefault(day, []).append(task)
    return dict(sorted(out.items()))


def top_priority_on(
    tasks: Iterable[Task],
    query_date: datetime | date,
    tz: tzinfo | None = None,
) -> Priority | None:
    """Most urgent priority among the day's tasks (P1 > P2 > P3), None for an empty day."""
    day_tasks = tasks_on(tasks, query_date, tz)
    if not day_tasks:
        return None
    return min((t.priority for t in day_tasks), key=lambda p: p.rank)


def has_recurring_on(tasks: Iterable[Task], query_date: datetime | date, tz: tzinfo | None = None) -> bool:
    return any(t.is_recurring for t in tasks_on(tasks, query_date, tz))


def recurrence_label(task: Task) -> str | None:
    """
    Badge text for a recurring task: "<N>d" for an explicit day count,
    otherwise the pattern name. None for one-off tasks.
    """
    if not task.is_recurring:
        return None
    if task.recurring_days is not None:
        return f"{task.recurring_days}d"
    if task.recurring_pattern is not None:
        return task.recurring_pattern.value
    return RecurringPattern.DAILY.value
