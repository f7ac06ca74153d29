# src/taskclock/tasks/task_models.py

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from enum import StrEnum
from typing import Any


class RecurringPattern(StrEnum):
    """
    Named repeat cadences as stored in the document store.

    Every pattern collapses to a day interval; "Custom" carries its own day
    count on the task (recurring_days) and means daily without one.
    """

    DAILY = "Daily"
    WEEKLY = "Weekly"
    BIWEEKLY = "Bi-weekly"
    MONTHLY = "Monthly"
    CUSTOM = "Custom"

    @property
    def interval_days(self) -> int:
        return _PATTERN_DAYS[self]

    @classmethod
    def from_raw(cls, raw: Any) -> RecurringPattern | None:
        if raw is None:
            return None
        s = str(raw).strip()
        if not s:
            return None
        for p in cls:
            if p.value.lower() == s.lower() or p.name.lower() == s.lower():
                return p
        return None


_PATTERN_DAYS: dict[RecurringPattern, int] = {
    RecurringPattern.DAILY: 1,
    RecurringPattern.WEEKLY: 7,
    RecurringPattern.BIWEEKLY: 14,
    RecurringPattern.MONTHLY: 30,
    RecurringPattern.CUSTOM: 1,
}


class TaskType(StrEnum):
    SELF = "Self"
    ADMIN = "Admin"
    CLIENT_ASSIGNED = "Client Assigned"

    @classmethod
    def from_raw(cls, raw: Any) -> TaskType:
        if not raw:
            return cls.ADMIN
        try:
            return cls(str(raw))
        except ValueError:
            return cls.ADMIN


class Priority(StrEnum):
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"

    @property
    def rank(self) -> int:
        # Lower rank = more urgent.
        return int(self.value[1:])

    @classmethod
    def from_raw(cls, raw: Any) -> Priority:
        try:
            return cls(str(raw).strip().upper())
        except ValueError:
            return cls.P2


@dataclass(slots=True, frozen=True)
class TaskIdentity:
    """How the remote store addresses a task (collection + title + project)."""

    task_type: TaskType
    title: str
    project_id: str | None

    @property
    def collection(self) -> str:
        return "selfTasks" if self.task_type == TaskType.SELF else "tasks"


def parse_instant(raw: Any) -> datetime | None:
    """
    Parse a document-store date value.

    Accepts datetime/date objects, ISO-8601 strings ("Z" suffix allowed) and
    epoch seconds. Returns None for empty or unparseable values.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime.combine(raw, time(0, 0))
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return datetime.fromtimestamp(float(raw), UTC)
    try:
        return datetime.fromisoformat(str(raw).strip())
    except ValueError:
        return None


@dataclass(slots=True, frozen=True)
class Task:
    id: str
    title: str
    start_date: datetime
    due_date: datetime

    is_recurring: bool = False
    recurring_days: int | None = None
    recurring_pattern: RecurringPattern | None = None
    recurring_end_date: datetime | None = None

    total_time_logged: float | None = None
    project_id: str | None = None
    task_type: TaskType = TaskType.ADMIN
    priority: Priority = Priority.P2

    @property
    def recurring_interval_days(self) -> int:
        """
        Day spacing between occurrences.

        Explicit positive day count first, then the pattern's day count, else 1.
        """
        if self.recurring_days is not None and self.recurring_days > 0:
            return self.recurring_days
        if self.recurring_pattern is not None:
            return self.recurring_pattern.interval_days
        return 1

    @property
    def identity(self) -> TaskIdentity:
        return TaskIdentity(task_type=self.task_type, title=self.title, project_id=self.project_id)

    # ---- named constructors ----

    @classmethod
    def one_off(
        cls,
        id: str,
        title: str,
        *,
        due_date: datetime,
        start_date: datetime | None = None,
        **kwargs: Any,
    ) -> Task:
        return cls(
            id=id,
            title=title,
            start_date=start_date or due_date,
            due_date=due_date,
            is_recurring=False,
            **kwargs,
        )

    @classmethod
    def recurring(
        cls,
        id: str,
        title: str,
        *,
        start_date: datetime,
        every_days: int | None = None,
        pattern: RecurringPattern | None = None,
        end_date: datetime | None = None,
        due_date: datetime | None = None,
        **kwargs: Any,
    ) -> Task:
        if every_days is None and pattern is None:
            raise ValueError("recurring task needs every_days or pattern")
        if pattern is None:
            pattern = RecurringPattern.CUSTOM
        return cls(
            id=id,
            title=title,
            start_date=start_date,
            due_date=due_date or start_date,
            is_recurring=True,
            recurring_days=every_days,
            recurring_pattern=pattern,
            recurring_end_date=end_date,
            **kwargs,
        )

    @classmethod
    def daily(cls, id: str, title: str, *, start_date: datetime, **kwargs: Any) -> Task:
        return cls.recurring(id, title, start_date=start_date, pattern=RecurringPattern.DAILY, **kwargs)

    @classmethod
    def weekly(cls, id: str, title: str, *, start_date: datetime, **kwargs: Any) -> Task:
        return cls.recurring(id, title, start_date=start_date, pattern=RecurringPattern.WEEKLY, **kwargs)

    @classmethod
    def biweekly(cls, id: str, title: str, *, start_date: datetime, **kwargs: Any) -> Task:
        return cls.recurring(id, title, start_date=start_date, pattern=RecurringPattern.BIWEEKLY, **kwargs)

    @classmethod
    def monthly(cls, id: str, title: str, *, start_date: datetime, **kwargs: Any) -> Task:
        return cls.recurring(id, title, start_date=start_date, pattern=RecurringPattern.MONTHLY, **kwargs)

    @classmethod
    def from_dict(cls, doc: dict[str, Any]) -> Task:
        """
        Build a Task from a document-store record (camelCase keys).

        Raises ValueError when the record has no title or no usable dates.
        """
        title = str(doc.get("title") or "").strip()
        if not title:
            raise ValueError("task record has no title")

        start = parse_instant(doc.get("startDate"))
        due = parse_instant(doc.get("dueDate"))
        if start is None and due is None:
            raise ValueError(f"task {title!r} has neither startDate nor dueDate")

        raw_days = doc.get("recurringDays")
        try:
            recurring_days = int(raw_days) if raw_days is not None else None
        except (TypeError, ValueError):
            recurring_days = None

        raw_total = doc.get("totalTimeLogged")
        try:
            total = float(raw_total) if raw_total is not None else None
        except (TypeError, ValueError):
            total = None
        if total is not None and not math.isfinite(total):
            total = None

        project_id = doc.get("projectId")
        return cls(
            id=str(doc.get("id") or doc.get("documentId") or title),
            title=title,
            start_date=start or due,  # type: ignore[arg-type]
            due_date=due or start,  # type: ignore[arg-type]
            is_recurring=bool(doc.get("isRecurring", False)),
            recurring_days=recurring_days,
            recurring_pattern=RecurringPattern.from_raw(doc.get("recurringPattern")),
            recurring_end_date=parse_instant(doc.get("recurringEndDate")),
            total_time_logged=total,
            project_id=str(project_id) if project_id else None,
            task_type=TaskType.from_raw(doc.get("taskType")),
            priority=Priority.from_raw(doc.get("priority")),
        )
