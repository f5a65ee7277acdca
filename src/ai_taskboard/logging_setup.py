# src/ai_taskboard/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

NOISY_LOGGERS = ("httpx", "httpcore", "openai", "uvicorn.access")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Make the interactive board usable:
    - allow ai_taskboard logs
    - suppress Python warnings (captured as 'py.warnings') unless ERROR+
    - suppress third-party noise unless ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name == "ai_taskboard" or name.startswith("ai_taskboard."):
            return True

        if name == "py.warnings":
            return record.levelno >= logging.ERROR

        # uvicorn's own startup lines are useful when running the proxy.
        if name == "uvicorn" or name == "uvicorn.error":
            return record.levelno >= logging.INFO

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskboard",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    log_file_name: str = "taskboard.log",
) -> Path:
    """
    Configure logging with:
    - Console handler: readable + filtered for interactive use
    - File handler: full logs for debugging

    Call this ONCE, very early (before first logger.info).
    Returns the path of the log file.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / log_file_name

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_file


def level_from_name(level_name: str | None, default: int = logging.INFO) -> int:
    value = getattr(logging, str(level_name or "").upper(), None)
    return value if isinstance(value, int) else default
