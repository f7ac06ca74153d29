# src/taskclock/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console host on an asyncio
event loop (timer ticks and remote sync share that loop). On exit the open
timer is closed, which commits a running session, and pending remote writes
get a bounded grace period.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..timer.timer_api import shutdown_timers

logger = logging.getLogger(__name__)


async def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        await shutdown_timers(state)
    except Exception:
        logger.exception("Failed to flush timers.")

    try:
        aclose = getattr(state.remote, "aclose", None)
        if aclose is not None:
            await aclose()
    except Exception:
        logger.debug("Remote client close failed.", exc_info=True)


async def _run(state: AppState) -> None:
    try:
        await run_console_loop(state)
    finally:
        await _shutdown(state)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
