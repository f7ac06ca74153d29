# src/taskclock/sync/offline.py

from __future__ import annotations

import logging

from ..tasks.task_models import TaskIdentity

logger = logging.getLogger(__name__)


class OfflineTimeSync:
    """
    RemoteTimeSync used when no remote store is configured.

    Behavior:
    - fetch -> None (no remote record, the local baseline stays)
    - update -> nothing written, 0 records
    """

    async def fetch_task_total_time(self, identity: TaskIdentity) -> float | None:
        return None

    async def update_task_total_time(self, identity: TaskIdentity, seconds: float) -> int:
        logger.debug("Offline mode: not saving %.1fs for %r", seconds, identity.title)
        return 0
