# src/ai_taskboard/board/controller.py

"""
Board controller: the only place user actions turn into state changes.

Commands:
- task form: open_task_form / close_task_form / save_task
- task edits: delete_task / move_task
- AI breakdown: request_breakdown / accept_suggestions / dismiss_suggestions

AI flow state machine:
  IDLE -> LOADING -> READY | FAILED
  READY -> (accept) -> IDLE
  READY | FAILED | LOADING -> (dismiss) -> IDLE
  READY | FAILED -> (trigger) -> LOADING
Triggers while LOADING are ignored. Empty titles are rejected before any
transition. Suggestion failures never escape request_breakdown.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable, Iterable
from datetime import date

from ..core.ports import SuggestionClient, TaskRepo
from ..errors import (
    GENERIC_AI_ERROR,
    InvalidTransitionError,
    SuggestionError,
    ValidationError,
    friendly_error_message,
)
from ..llm.suggestions import validate_title
from ..tasks.task_models import Task, TaskFields, TaskStatus, parse_due_date
from .state import BoardState, BreakdownTarget, SuggestionFlow, SuggestionPhase, TaskForm

logger = logging.getLogger(__name__)

StateListener = Callable[[BoardState], None]

AI_NOT_CONFIGURED = (
    "AI features are unavailable: no LLM credential is configured. "
    "Set TASKBOARD_LLM_API_KEY (or GEMINI_API_KEY), or switch TASKBOARD_SUGGESTION_MODE to proxy."
)


class BoardController:
    def __init__(
        self,
        repository: TaskRepo,
        suggestion_client: SuggestionClient | None = None,
        *,
        ai_unavailable_reason: str | None = None,
    ) -> None:
        self._repo = repository
        self._client = suggestion_client

        reason = ai_unavailable_reason
        if reason is None:
            if suggestion_client is None:
                reason = AI_NOT_CONFIGURED
            elif getattr(suggestion_client, "is_configured", True) is False:
                reason = AI_NOT_CONFIGURED

        self._state = BoardState(ai_available=reason is None, ai_unavailable_reason=reason)
        self._listeners: list[StateListener] = []

        if reason:
            logger.warning("AI breakdown disabled: %s", reason)

    # ---- observation ----

    @property
    def state(self) -> BoardState:
        return self._state

    @property
    def flow(self) -> SuggestionFlow:
        return self._state.flow

    @property
    def repository(self) -> TaskRepo:
        return self._repo

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("Board state listener failed.")

    def _set_flow(self, flow: SuggestionFlow) -> None:
        self._state.flow = flow
        self._notify()

    def _set_form(self, form: TaskForm | None) -> None:
        self._state.form = form
        self._notify()

    def columns(self) -> dict[TaskStatus, list[Task]]:
        return self._repo.columns()

    # ---- task form ----

    def open_task_form(self, task_id: str | None = None) -> TaskForm:
        if task_id is not None and self._repo.get(task_id) is None:
            raise ValidationError(f"Task not found: {task_id}")
        form = TaskForm(editing_task_id=task_id)
        self._set_form(form)
        return form

    def close_task_form(self) -> None:
        self._set_form(None)

    def save_task(self, fields: TaskFields, status: TaskStatus | str | None = None) -> Task:
        """Create a task, or update the one open in the form. Closes the form on success."""
        form = self._state.form
        try:
            if form is not None and form.editing_task_id is not None:
                task = self._repo.update(form.editing_task_id, fields, status)
            else:
                task = self._repo.create(fields, status)
        except ValidationError as e:
            self._set_form(dataclasses.replace(form or TaskForm(), error=str(e)))
            raise
        self._set_form(None)
        return task

    # ---- task edits ----

    def delete_task(self, task_id: str) -> bool:
        removed = self._repo.remove(task_id)
        form = self._state.form
        if removed and form is not None and form.editing_task_id == task_id:
            self._set_form(None)
        return removed

    def move_task(self, task_id: str, status: TaskStatus | str) -> Task | None:
        return self._repo.set_status(task_id, status)

    # ---- AI breakdown ----

    async def request_breakdown(
        self,
        title: str,
        description: str | None = None,
        due_date: date | str | None = None,
    ) -> SuggestionFlow:
        clean_title = validate_title(title)
        due = parse_due_date(due_date)

        current = self._state.flow
        if current.loading:
            logger.info("Breakdown already in flight (request_id=%s); trigger ignored.", current.request_id)
            return current

        parent = BreakdownTarget(
            title=clean_title,
            description=(description or "").strip() or None,
            due_date=due,
        )
        request_id = current.request_id + 1

        if self._client is None or not self._state.ai_available:
            failed = SuggestionFlow(
                phase=SuggestionPhase.FAILED,
                parent=parent,
                error=self._state.ai_unavailable_reason or AI_NOT_CONFIGURED,
                request_id=request_id,
            )
            self._set_flow(failed)
            return failed

        self._set_flow(SuggestionFlow(phase=SuggestionPhase.LOADING, parent=parent, request_id=request_id))

        try:
            suggestions = await asyncio.to_thread(
                self._client.suggest_subtasks, parent.title, parent.description
            )
        except SuggestionError as e:
            logger.info("Breakdown failed (%s): %s", e.__class__.__name__, e)
            outcome = SuggestionFlow(
                phase=SuggestionPhase.FAILED,
                parent=parent,
                error=friendly_error_message(e),
                request_id=request_id,
            )
        except Exception:
            logger.exception("Suggestion client crashed.")
            outcome = SuggestionFlow(
                phase=SuggestionPhase.FAILED,
                parent=parent,
                error=GENERIC_AI_ERROR,
                request_id=request_id,
            )
        else:
            outcome = SuggestionFlow(
                phase=SuggestionPhase.READY,
                parent=parent,
                suggestions=tuple(suggestions),
                request_id=request_id,
            )

        if self._state.flow.request_id != request_id:
            logger.info("Dropping stale breakdown result (request_id=%s).", request_id)
            return self._state.flow

        self._set_flow(outcome)
        return outcome

    def accept_suggestions(self, selected: Iterable[int] | None = None) -> list[Task]:
        """
        Add suggestions as tasks inheriting the parent's due date.

        `selected` holds 0-based indexes into the current suggestions; None means all.
        """
        flow = self._state.flow
        if flow.phase is not SuggestionPhase.READY:
            raise InvalidTransitionError(f"No suggestions to accept (phase={flow.phase.value}).")

        if selected is None:
            chosen = list(flow.suggestions)
        else:
            chosen = []
            for i in selected:
                if not 0 <= i < len(flow.suggestions):
                    raise ValidationError(f"No suggestion #{i + 1}.")
                chosen.append(flow.suggestions[i])

        due = flow.parent.due_date if flow.parent is not None else None
        created = self._repo.bulk_create(chosen, due)
        self._set_flow(SuggestionFlow(request_id=flow.request_id + 1))
        return created

    def dismiss_suggestions(self) -> None:
        flow = self._state.flow
        if flow.phase is SuggestionPhase.IDLE:
            return
        self._set_flow(SuggestionFlow(request_id=flow.request_id + 1))
