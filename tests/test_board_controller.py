# tests/test_board_controller.py

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from ai_taskboard.board.controller import BoardController
from ai_taskboard.board.state import SuggestionPhase
from ai_taskboard.errors import (
    ConfigurationError,
    InvalidTransitionError,
    ResponseFormatError,
    TransportError,
    UpstreamError,
    ValidationError,
)
from ai_taskboard.llm.client import DirectSuggestionClient
from ai_taskboard.tasks.task_models import SubTaskSuggestion, TaskFields, TaskPriority, TaskStatus
from ai_taskboard.tasks.task_repository import TaskRepository

from .fakes import BlockingSuggestionClient, FakeSuggestionClient


@pytest.mark.asyncio
async def test_breakdown_goes_loading_then_ready(controller: BoardController, suggestion_client) -> None:
    seen: list[SuggestionPhase] = []
    controller.subscribe(lambda s: seen.append(s.flow.phase))

    flow = await controller.request_breakdown(
        "Plan a company offsite event",
        "Organize a three-day offsite for 50 employees...",
        "2025-09-01",
    )

    assert seen == [SuggestionPhase.LOADING, SuggestionPhase.READY]
    assert flow.phase is SuggestionPhase.READY
    assert flow.loading is False
    assert len(flow.suggestions) == 3
    assert flow.parent is not None and flow.parent.due_date == date(2025, 9, 1)
    assert suggestion_client.calls == [
        ("Plan a company offsite event", "Organize a three-day offsite for 50 employees...")
    ]


@pytest.mark.asyncio
async def test_loading_state_clears_previous_results(repository: TaskRepository) -> None:
    client = FakeSuggestionClient(error=TransportError("down"))
    controller = BoardController(repository, client)
    await controller.request_breakdown("First")
    assert controller.flow.phase is SuggestionPhase.FAILED

    snapshots = []
    controller.subscribe(lambda s: snapshots.append(s.flow))
    client.error = None
    client.suggestions = [SubTaskSuggestion("x")]
    await controller.request_breakdown("Again")

    loading = snapshots[0]
    assert loading.phase is SuggestionPhase.LOADING
    assert loading.loading is True
    assert loading.error is None
    assert loading.suggestions == ()
    assert controller.flow.phase is SuggestionPhase.READY


@pytest.mark.asyncio
async def test_empty_title_never_leaves_idle_or_calls_client(controller: BoardController, suggestion_client) -> None:
    with pytest.raises(ValidationError):
        await controller.request_breakdown("   ")

    assert controller.flow.phase is SuggestionPhase.IDLE
    assert suggestion_client.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, expected",
    [
        (UpstreamError("model unavailable", status_code=500), "model unavailable"),
        (TransportError("connection refused"), "Network error"),
        (ResponseFormatError("bad json"), "could not be read"),
        (ConfigurationError("LLM API key is not configured."), "not configured"),
    ],
)
async def test_client_failures_become_failed_state(repository: TaskRepository, error, expected) -> None:
    controller = BoardController(repository, FakeSuggestionClient(error=error))

    flow = await controller.request_breakdown("Task")

    assert flow.phase is SuggestionPhase.FAILED
    assert flow.loading is False
    assert flow.suggestions == ()
    assert expected in (flow.error or "")


@pytest.mark.asyncio
async def test_unexpected_client_crash_is_contained(repository: TaskRepository) -> None:
    controller = BoardController(repository, FakeSuggestionClient(error=KeyError("boom")))
    flow = await controller.request_breakdown("Task")
    assert flow.phase is SuggestionPhase.FAILED
    assert flow.error


@pytest.mark.asyncio
async def test_unconfigured_direct_client_fails_without_call(repository: TaskRepository) -> None:
    client = DirectSuggestionClient(api_key=None, base_url="https://llm.invalid/v1", model="m")
    controller = BoardController(repository, client)

    assert controller.state.ai_available is False
    flow = await controller.request_breakdown("Task")

    assert flow.phase is SuggestionPhase.FAILED
    assert "TASKBOARD_LLM_API_KEY" in (flow.error or "")


@pytest.mark.asyncio
async def test_trigger_while_loading_is_ignored(repository: TaskRepository) -> None:
    client = BlockingSuggestionClient([SubTaskSuggestion("only")])
    controller = BoardController(repository, client)

    first = asyncio.create_task(controller.request_breakdown("First"))
    await asyncio.sleep(0)
    assert controller.flow.phase is SuggestionPhase.LOADING

    ignored = await controller.request_breakdown("Second")
    assert ignored.parent is not None and ignored.parent.title == "First"

    client.release()
    await first
    assert controller.flow.phase is SuggestionPhase.READY
    assert client.calls == [("First", None)]


@pytest.mark.asyncio
async def test_dismiss_while_loading_drops_late_result(repository: TaskRepository) -> None:
    client = BlockingSuggestionClient([SubTaskSuggestion("late")])
    controller = BoardController(repository, client)

    pending = asyncio.create_task(controller.request_breakdown("Slow"))
    await asyncio.sleep(0)
    controller.dismiss_suggestions()
    assert controller.flow.phase is SuggestionPhase.IDLE

    client.release()
    await pending

    assert controller.flow.phase is SuggestionPhase.IDLE
    assert controller.flow.suggestions == ()


@pytest.mark.asyncio
async def test_accept_adds_tasks_and_returns_to_idle(repository: TaskRepository) -> None:
    client = FakeSuggestionClient([SubTaskSuggestion("A"), SubTaskSuggestion("B", "d")])
    controller = BoardController(repository, client)
    await controller.request_breakdown("Parent", due_date="2025-09-01")

    created = controller.accept_suggestions()

    assert len(created) == 2
    assert len(repository.list()) == 2
    for task in created:
        assert task.status is TaskStatus.TO_DO
        assert task.priority is TaskPriority.MEDIUM
        assert task.due_date == date(2025, 9, 1)
    assert controller.flow.phase is SuggestionPhase.IDLE


@pytest.mark.asyncio
async def test_accept_selected_subset(controller: BoardController, repository: TaskRepository) -> None:
    await controller.request_breakdown("Offsite")
    created = controller.accept_suggestions([0, 2])
    assert [t.title for t in created] == ["Book a venue", "Arrange travel"]

    with pytest.raises(InvalidTransitionError):
        controller.accept_suggestions()


@pytest.mark.asyncio
async def test_accept_rejects_out_of_range_index(controller: BoardController) -> None:
    await controller.request_breakdown("Offsite")
    with pytest.raises(ValidationError):
        controller.accept_suggestions([7])
    assert controller.flow.phase is SuggestionPhase.READY


@pytest.mark.asyncio
async def test_dismiss_discards_suggestions(controller: BoardController, repository: TaskRepository) -> None:
    await controller.request_breakdown("Offsite")
    controller.dismiss_suggestions()

    assert controller.flow.phase is SuggestionPhase.IDLE
    assert controller.flow.suggestions == ()
    assert repository.list() == ()


def test_save_task_creates_then_updates_via_form(controller: BoardController) -> None:
    controller.open_task_form()
    task = controller.save_task(TaskFields(title="Draft"))
    assert controller.state.form is None

    controller.open_task_form(task.id)
    updated = controller.save_task(TaskFields(title="Final"), TaskStatus.IN_PROGRESS)

    assert updated.id == task.id
    assert updated.title == "Final"
    assert updated.status is TaskStatus.IN_PROGRESS
    assert len(controller.repository.list()) == 1


def test_save_task_validation_keeps_form_open(controller: BoardController) -> None:
    controller.open_task_form()
    with pytest.raises(ValidationError):
        controller.save_task(TaskFields(title=""))

    assert controller.state.form is not None
    assert controller.state.form.error == "Title is required."
    assert controller.repository.list() == ()


def test_move_and_delete(controller: BoardController) -> None:
    task = controller.save_task(TaskFields(title="Drag me"))
    moved = controller.move_task(task.id, "Done")
    assert moved is not None and moved.status is TaskStatus.DONE
    assert controller.columns()[TaskStatus.DONE][0].id == task.id

    assert controller.delete_task(task.id) is True
    assert controller.delete_task(task.id) is False
