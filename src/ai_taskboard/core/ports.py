# src/ai_taskboard/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the board controller and the repository.

The core depends on Protocols instead of concrete implementations.
This keeps storage backends and suggestion transports swappable and makes
testing easier.
"""

from collections.abc import Iterable
from datetime import date
from typing import Any, Protocol

from ..tasks.task_models import SubTaskSuggestion, Task, TaskFields, TaskStatus


class KeyValueBackend(Protocol):
    """Text key-value storage (SQLite file, in-memory dict, ...)."""

    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...
    def remove_item(self, key: str) -> None: ...


class JsonStore(Protocol):
    def load(self, key: str, default: Any) -> Any: ...
    def save(self, key: str, value: Any) -> bool: ...


class SuggestionClient(Protocol):
    """
    Turns a task title/description into sub-task suggestions.

    Implementations: direct provider call, or POST through the proxy.
    One attempt per call; failures raise SuggestionError subclasses.
    """

    mode: str

    def suggest_subtasks(self, title: str, description: str | None = None) -> list[SubTaskSuggestion]: ...


class TaskRepo(Protocol):
    def list(self) -> tuple[Task, ...]: ...
    def get(self, task_id: str) -> Task | None: ...
    def columns(self) -> dict[TaskStatus, list[Task]]: ...
    def create(self, fields: TaskFields, status: TaskStatus | str | None = None) -> Task: ...
    def update(self, task_id: str, fields: TaskFields, status: TaskStatus | str | None = None) -> Task: ...
    def remove(self, task_id: str) -> bool: ...
    def set_status(self, task_id: str, status: TaskStatus | str) -> Task | None: ...
    def bulk_create(
            self,
            suggestions: Iterable[SubTaskSuggestion],
            inherited_due_date: date | str | None = None,
    ) -> list[Task]: ...
