# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from ai_taskboard.board.controller import BoardController
from ai_taskboard.core.state import AppState
from ai_taskboard.storage.kv_store import InMemoryKeyValueBackend, PersistentStore
from ai_taskboard.tasks.task_models import SubTaskSuggestion
from ai_taskboard.tasks.task_repository import TaskRepository

from .fakes import FakeSuggestionClient, StepClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="test-board",
        log_level="DEBUG",
        data_dir=tmp_path,
        storage_path=tmp_path / "board.sqlite3",
        storage_key="tasks",
        storage_max_value_bytes=0,
        suggestion_mode="proxy",
        llm_api_key=None,
        llm_base_url="https://llm.invalid/v1",
        llm_model="test-model",
        proxy_url="http://proxy.invalid/api/breakdown-task",
        request_timeout_seconds=30.0,
        connect_timeout_seconds=5.0,
        proxy_host="127.0.0.1",
        proxy_port=8000,
        allowed_origins=["http://localhost:5173"],
    )


@pytest.fixture()
def backend() -> InMemoryKeyValueBackend:
    return InMemoryKeyValueBackend()


@pytest.fixture()
def store(backend: InMemoryKeyValueBackend) -> PersistentStore:
    return PersistentStore(backend)


@pytest.fixture()
def repository(store: PersistentStore) -> TaskRepository:
    return TaskRepository(store, clock=StepClock())


@pytest.fixture()
def suggestion_client() -> FakeSuggestionClient:
    return FakeSuggestionClient(
        [
            SubTaskSuggestion("Book a venue"),
            SubTaskSuggestion("Plan the agenda", "Sessions and breaks for three days."),
            SubTaskSuggestion("Arrange travel"),
        ]
    )


@pytest.fixture()
def controller(repository: TaskRepository, suggestion_client: FakeSuggestionClient) -> BoardController:
    return BoardController(repository, suggestion_client)


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    store: PersistentStore,
    repository: TaskRepository,
    controller: BoardController,
    suggestion_client: FakeSuggestionClient,
) -> AppState:
    """AppState wired with deterministic fakes and an in-memory store."""
    return AppState(
        settings=settings,
        store=store,
        repository=repository,
        controller=controller,
        suggestion_client=suggestion_client,
    )
