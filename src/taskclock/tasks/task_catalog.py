# src/taskclock/tasks/task_catalog.py

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .task_models import Task

logger = logging.getLogger(__name__)


def load_tasks_json(path: str | Path) -> list[Task]:
    """
    Load tasks exported from the document store (best-effort).

    Accepts either a JSON list of task records or {"tasks": [...]}. Records
    that cannot be parsed are skipped with a warning; a missing or unreadable
    file yields an empty list.
    """
    path = Path(path)
    if not path.exists():
        logger.info("Task catalog %s does not exist; starting with no tasks.", path)
        return []

    try:
        data: Any = json.loads(path.read_text("utf-8"))
    except (OSError, ValueError):
        logger.exception("Failed to read task catalog from %s", path)
        return []

    if isinstance(data, dict):
        data = data.get("tasks", [])
    if not isinstance(data, list):
        logger.warning("Task catalog %s is not a list of tasks; ignoring it.", path)
        return []

    out: list[Task] = []
    for i, raw in enumerate(data):
        if not isinstance(raw, dict):
            logger.warning("Task catalog entry #%d is not an object; skipped.", i)
            continue
        try:
            out.append(Task.from_dict(raw))
        except ValueError as e:
            logger.warning("Task catalog entry #%d skipped: %s", i, e)

    logger.info("Loaded %d tasks from %s", len(out), path)
    return out


def find_task(tasks: list[Task], task_ref: str) -> Task | None:
    """Find a task by id, falling back to a case-insensitive title match."""
    for t in tasks:
        if t.id == task_ref:
            return t
    ref = task_ref.strip().lower()
    for t in tasks:
        if t.title.lower() == ref:
            return t
    return None
