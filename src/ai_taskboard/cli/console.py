# src/ai_taskboard/cli/console.py

from __future__ import annotations

import logging
import sys
from datetime import datetime

from ..core.state import AppState
from .commands import format_board
from .commands import registry as command_registry

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    try:
        if sys.stdout.isatty():
            sys.stdout.write("\033[1A\033[2K\r")
            sys.stdout.write(line + "\n")
            sys.stdout.flush()
        else:
            print(line)
    except Exception:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def run_console_loop(state: AppState) -> None:
    logger.info("Console board started (tasks=%d).", len(state.repository.list()))
    app_name = str(getattr(getattr(state, "settings", None), "app_name", "ai-taskboard"))

    _print_ts(f"[{app_name}] Use /help for commands. Use /exit to quit.\n")
    print(format_board(state.controller.columns()))
    if not state.controller.state.ai_available:
        _print_ts(f"[AI] {state.controller.state.ai_unavailable_reason}")

    def emit(text: str) -> None:
        # Immediate user-visible feedback for long operations (AI breakdown)
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = input(">>> ").strip()
            _rewrite_prev_line(f"[{_ts_local()}] >>> {user_input}")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            # plain text is a shortcut for /add
            user_input = f"/add {user_input}"

        try:
            cmd_response = command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is not None:
            print(f"[{_ts_local()}] {cmd_response}\n")

    logger.info("Console board finished.")
