# src/ai_taskboard/board/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum

from ..tasks.task_models import SubTaskSuggestion


class SuggestionPhase(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class BreakdownTarget:
    """The task being decomposed (may not be saved yet)."""

    title: str
    description: str | None = None
    due_date: date | None = None


@dataclass(frozen=True, slots=True)
class SuggestionFlow:
    phase: SuggestionPhase = SuggestionPhase.IDLE
    parent: BreakdownTarget | None = None
    suggestions: tuple[SubTaskSuggestion, ...] = ()
    error: str | None = None
    # bumped on every trigger/dismiss; late results with an old id are dropped
    request_id: int = 0

    @property
    def loading(self) -> bool:
        return self.phase is SuggestionPhase.LOADING

    @property
    def is_open(self) -> bool:
        return self.phase is not SuggestionPhase.IDLE


@dataclass(frozen=True, slots=True)
class TaskForm:
    editing_task_id: str | None = None
    error: str | None = None

    @property
    def is_editing(self) -> bool:
        return self.editing_task_id is not None


@dataclass(slots=True)
class BoardState:
    """Transient UI state owned by the controller. Tasks themselves live in the repository."""

    flow: SuggestionFlow = field(default_factory=SuggestionFlow)
    form: TaskForm | None = None
    ai_available: bool = True
    ai_unavailable_reason: str | None = None
