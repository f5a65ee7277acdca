# src/ai_taskboard/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the storage backend, repository, suggestion client and controller
  into AppState.
"""

from __future__ import annotations

import logging

from ..board.controller import BoardController
from ..config import get_settings
from ..core.ports import SuggestionClient
from ..core.state import AppState
from ..errors import ConfigurationError
from ..llm.factory import build_suggestion_client
from ..storage.kv_store import PersistentStore, SqliteKeyValueBackend
from ..tasks.task_repository import TaskRepository

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.storage_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, suggestion_client: SuggestionClient | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = PersistentStore(
        SqliteKeyValueBackend(
            settings.storage_path,
            max_value_bytes=getattr(settings, "storage_max_value_bytes", 0),
        )
    )
    repository = TaskRepository(store, storage_key=getattr(settings, "storage_key", "tasks"))

    reason: str | None = None
    if suggestion_client is None:
        try:
            suggestion_client = build_suggestion_client(settings)
        except ConfigurationError as e:
            logger.warning("Suggestion client not available: %s", e)
            reason = str(e)

    controller = BoardController(repository, suggestion_client, ai_unavailable_reason=reason)

    return AppState(
        settings=settings,
        store=store,
        repository=repository,
        controller=controller,
        suggestion_client=suggestion_client,
    )
