# src/taskclock/cli/commands.py

from __future__ import annotations

import calendar
import inspect
import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import cast

from ..core.state import AppState
from ..tasks.occurrence import calendar_days, has_recurring_on, recurrence_label, tasks_on, top_priority_on
from ..tasks.task_catalog import find_task
from ..tasks.task_models import Task
from ..timer.timer_api import close_timer, open_timer
from ..timer.timer_models import format_duration

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console host (/help, /agenda, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _today(state: AppState) -> date:
    return state.clock.now().astimezone(state.tz).date()


def _task_line(task: Task) -> str:
    label = recurrence_label(task)
    repeat = f" (repeats: {label})" if label else ""
    return f"[{task.priority.value}] {task.title} <{task.id}>{repeat}"


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    remote = "Firestore" if getattr(settings, "remote_enabled", False) else "offline"
    tz_name = getattr(settings, "timezone_name", None) or "local"
    timer = state.active_timer
    if timer is None:
        timer_line = "none"
    else:
        run = "running" if timer.is_running else "idle"
        timer_line = f"{timer.task.title} ({run}, total {timer.display})"
    return (
        "Status:\n"
        f"  Tasks loaded: {len(state.tasks)}\n"
        f"  Remote store: {remote}\n"
        f"  Calendar time zone: {tz_name}\n"
        f"  Open timer: {timer_line}"
    )


def cmd_agenda(state: AppState, args: list[str]) -> str:
    """
    /agenda             -> tasks occurring today
    /agenda 2024-01-08  -> tasks occurring on that day
    """
    if args:
        try:
            day = date.fromisoformat(args[0])
        except ValueError:
            return "Usage: /agenda [YYYY-MM-DD]"
    else:
        day = _today(state)

    day_tasks = tasks_on(state.tasks, day, state.tz)
    if not day_tasks:
        return f"No tasks on {day.isoformat()}."

    lines = [f"Tasks on {day.isoformat()}:"]
    for i, t in enumerate(day_tasks, start=1):
        lines.append(f"{i}. {_task_line(t)}")
    return "\n".join(lines)


def cmd_calendar(state: AppState, args: list[str]) -> str:
    """
    /calendar          -> days of the current month that have tasks
    /calendar 2024-01  -> same for the given month
    """
    if args:
        try:
            first = datetime.strptime(args[0], "%Y-%m").date()
        except ValueError:
            return "Usage: /calendar [YYYY-MM]"
    else:
        first = _today(state).replace(day=1)

    last = first.replace(day=calendar.monthrange(first.year, first.month)[1])
    days = calendar_days(state.tasks, first, last, state.tz)
    if not days:
        return f"No tasks in {first:%Y-%m}."

    lines = [f"Days with tasks in {first:%Y-%m}:"]
    for day, day_tasks in days.items():
        top = top_priority_on(day_tasks, day, state.tz)
        marker = " *recurring*" if has_recurring_on(day_tasks, day, state.tz) else ""
        top_s = top.value if top is not None else "-"
        lines.append(f"  {day.isoformat()}: {len(day_tasks)} task(s), top {top_s}{marker}")
    return "\n".join(lines)


def cmd_open(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/open <task-id or title> -> open the task's timer (closes the previous one)."""
    if not args:
        return "Usage: /open <task-id or title>"

    ref = " ".join(args)
    task = find_task(state.tasks, ref)
    if task is None:
        return f"No task matches {ref!r}."
    logger.debug("Opening timer for task id=%s title=%r", task.id, task.title)

    if emit is not None and getattr(state.settings, "remote_enabled", False):
        emit("[SYNC] Fetching the latest logged time in the background...")

    engine = open_timer(state, task)
    run = " (resumed, running)" if engine.is_running else ""
    last = engine.session.last_session_seconds
    last_line = f"\n  Last session: {format_duration(last)}" if last > 0 else ""
    return f"Opened {task.title}{run}.\n  Total logged: {engine.display}{last_line}"


def cmd_start(state: AppState, args: list[str]) -> str:
    timer = state.active_timer
    if timer is None:
        return "No task is open. Use /open <task-id> first."
    if not timer.start():
        return f"Timer for {timer.task.title} is already running ({timer.display})."
    return f"Timer started for {timer.task.title}."


def cmd_stop(state: AppState, args: list[str]) -> str:
    timer = state.active_timer
    if timer is None:
        return "No task is open."
    session = timer.stop()
    if session is None:
        return f"Timer for {timer.task.title} is not running."
    return f"Stopped. Session: {format_duration(session)}, total logged: {timer.display}."


def cmd_time(state: AppState, args: list[str]) -> str:
    timer = state.active_timer
    if timer is None:
        return "No task is open."
    snap = timer.tick()
    lines = [f"{timer.task.title}: total {snap.total_display}"]
    if snap.is_running:
        lines.append(f"  Current session: {snap.session_display}")
    if snap.last_session_seconds > 0:
        lines.append(f"  Last session: {snap.last_session_display}")
    return "\n".join(lines)


def cmd_close(state: AppState, args: list[str]) -> str:
    engine = close_timer(state)
    if engine is None:
        return "No task is open."
    return f"Closed {engine.task.title}. Total logged: {engine.display}."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show tasks/remote/time zone/open timer.")
registry.register("agenda", cmd_agenda, help_text="Tasks on a day: /agenda [YYYY-MM-DD].")
registry.register("calendar", cmd_calendar, help_text="Days with tasks in a month: /calendar [YYYY-MM].")
registry.register("open", cmd_open, help_text="Open a task's timer: /open <task-id or title>.")
registry.register("start", cmd_start, help_text="Start the open task's timer.")
registry.register("stop", cmd_stop, help_text="Stop the open task's timer and save the session.")
registry.register("time", cmd_time, help_text="Show logged time for the open task.")
registry.register("close", cmd_close, help_text="Close the open task (stops a running timer).")
