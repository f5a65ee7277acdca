# src/ai_taskboard/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..board.controller import BoardController
from ..storage.kv_store import PersistentStore
from .ports import SuggestionClient, TaskRepo


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    store: PersistentStore
    repository: TaskRepo
    controller: BoardController
    suggestion_client: SuggestionClient | None = None
