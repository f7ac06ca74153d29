# src/taskclock/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (timer store, remote sync, clock),
- loads the task catalog exported from the document store.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.clock import SystemClock
from ..core.ports import RemoteTimeSync
from ..core.state import AppState
from ..sync.firestore_sync import FirestoreTimeSync
from ..sync.offline import OfflineTimeSync
from ..tasks.task_catalog import load_tasks_json
from ..timer.timer_store import TimerStateStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.timer_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_remote(settings) -> RemoteTimeSync:
    if not settings.remote_enabled:
        logger.info("No remote store configured; logged time stays local.")
        return OfflineTimeSync()

    return FirestoreTimeSync(
        project_id=settings.firestore_project_id,
        base_url=settings.firestore_base_url,
        id_token=settings.firestore_id_token,
        user_uid=settings.user_uid,
        user_email=settings.user_email,
        timeout_seconds=settings.remote_timeout_seconds,
    )


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    return AppState(
        settings=settings,
        tasks=load_tasks_json(settings.tasks_path),
        timer_store=TimerStateStore(settings.timer_db_path),
        remote=build_remote(settings),
        clock=SystemClock(),
        tz=settings.reference_tz(),
        tick_interval_seconds=settings.tick_interval_seconds,
    )
