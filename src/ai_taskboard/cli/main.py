# src/ai_taskboard/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console board in the
main thread. All state is persisted on every mutation, so shutdown has
nothing to flush.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..logging_setup import level_from_name, setup_logging
from .bootstrap import create_initial_state
from .console import run_console_loop

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    console_level = level_from_name(getattr(settings, "log_level", "INFO"))
    setup_logging(log_dir=getattr(settings, "data_dir", ".local/taskboard"), console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "ai-taskboard"))

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    try:
        run_console_loop(state)
    finally:
        if not getattr(state.repository, "last_persist_ok", True):
            logger.warning("Last board write failed; recent changes may not survive a restart.")
        logger.info("Bye.")


if __name__ == "__main__":
    main()
