# src/ai_taskboard/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (console board and proxy server).
- No secrets required at import time.
- The LLM credential only matters in direct mode.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

ENV_PREFIX = "TASKBOARD"

SUGGESTION_MODES = ("direct", "proxy")

DEFAULT_LLM_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_LLM_MODEL = "gemini-2.5-flash"
DEFAULT_PROXY_URL = "http://127.0.0.1:8000/api/breakdown-task"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local persistence ----
    data_dir: Path
    storage_path: Path
    storage_key: str
    storage_max_value_bytes: int

    # ---- AI breakdown ----
    suggestion_mode: str
    llm_api_key: Optional[str]
    llm_base_url: str
    llm_model: str
    proxy_url: str
    request_timeout_seconds: float
    connect_timeout_seconds: float

    # ---- Proxy server ----
    proxy_host: str
    proxy_port: int
    allowed_origins: List[str]

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "AI-Powered Task Manager")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskboard"))
        storage_path = _env_path(_k("STORAGE_PATH"), data_dir / "board.sqlite3")
        storage_key = _env(_k("STORAGE_KEY"), "tasks").strip() or "tasks"
        storage_max_value_bytes = max(0, _env_int(_k("STORAGE_MAX_VALUE_BYTES"), 0))

        suggestion_mode = _env(_k("SUGGESTION_MODE"), "direct").strip().lower() or "direct"

        # Accept the names the browser build used as fallbacks.
        llm_api_key = _first_env(_k("LLM_API_KEY"), "GEMINI_API_KEY", "API_KEY", default=None)
        llm_base_url = _env(_k("LLM_BASE_URL"), DEFAULT_LLM_BASE_URL)
        llm_model = _env(_k("LLM_MODEL"), DEFAULT_LLM_MODEL).strip() or DEFAULT_LLM_MODEL
        proxy_url = _env(_k("PROXY_URL"), DEFAULT_PROXY_URL).strip() or DEFAULT_PROXY_URL

        request_timeout_seconds = _env_float(_k("REQUEST_TIMEOUT_SECONDS"), 30.0)
        connect_timeout_seconds = _env_float(_k("CONNECT_TIMEOUT_SECONDS"), 5.0)
        # keep read >= connect as a sane baseline
        request_timeout_seconds = max(request_timeout_seconds, connect_timeout_seconds)

        proxy_host = _env(_k("PROXY_HOST"), "127.0.0.1")
        proxy_port = _env_int(_k("PROXY_PORT"), 8000)
        allowed_origins = _env_list(
            _k("ALLOWED_ORIGINS"),
            ["http://localhost:5173", "http://127.0.0.1:5173"],
        )

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            storage_path=storage_path,
            storage_key=storage_key,
            storage_max_value_bytes=storage_max_value_bytes,
            suggestion_mode=suggestion_mode,
            llm_api_key=llm_api_key,
            llm_base_url=llm_base_url,
            llm_model=llm_model,
            proxy_url=proxy_url,
            request_timeout_seconds=request_timeout_seconds,
            connect_timeout_seconds=connect_timeout_seconds,
            proxy_host=proxy_host,
            proxy_port=proxy_port,
            allowed_origins=allowed_origins,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS


def ai_available(settings) -> bool:
    """
    Whether AI breakdown can be attempted with these settings.

    Proxy mode always can (the proxy holds the credential); direct mode needs a key.
    """
    mode = str(getattr(settings, "suggestion_mode", "direct") or "direct")
    if mode == "proxy":
        return bool(str(getattr(settings, "proxy_url", "") or "").strip())
    key = getattr(settings, "llm_api_key", None)
    return bool(key and str(key).strip())
