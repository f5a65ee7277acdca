# tests/test_commands.py

from __future__ import annotations

from datetime import date
from types import SimpleNamespace

import pytest

from ai_taskboard.board.controller import BoardController
from ai_taskboard.board.state import SuggestionPhase
from ai_taskboard.cli.commands import PERSIST_WARNING, CommandRegistry, registry, resolve_task
from ai_taskboard.core.state import AppState
from ai_taskboard.errors import TaskBoardError, UpstreamError
from ai_taskboard.storage.kv_store import PersistentStore
from ai_taskboard.tasks.task_models import TaskFields, TaskPriority, TaskStatus
from ai_taskboard.tasks.task_repository import TaskRepository

from .fakes import FailingBackend


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2"

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b")

    assert reg.handle(state, "/a x") == "h2"
    assert reg.handle(state, "/b y", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_add_and_list(state) -> None:
    reply = registry.handle(state, "/add Write report | Q3 numbers | 2025-09-01 | High")
    assert reply is not None and reply.startswith("Added")

    task = state.repository.list()[0]
    assert task.title == "Write report"
    assert task.description == "Q3 numbers"
    assert task.due_date == date(2025, 9, 1)
    assert task.priority is TaskPriority.HIGH

    board = registry.handle(state, "/list") or ""
    assert "== TO DO (1) ==" in board
    assert "Write report" in board
    assert "== DONE (0) ==" in board


def test_add_rejects_empty_title(state) -> None:
    reply = registry.handle(state, "/add  | only a description")
    assert reply == "Error: Title is required."
    assert state.repository.list() == ()


def test_move_and_rm_by_id_prefix(state) -> None:
    registry.handle(state, "/add Paint the fence")
    task = state.repository.list()[0]
    prefix = task.id[:6]

    assert "In Progress" in (registry.handle(state, f"/move {prefix} in progress") or "")
    assert state.repository.get(task.id).status is TaskStatus.IN_PROGRESS

    assert "Removed" in (registry.handle(state, f"/rm {prefix}") or "")
    assert state.repository.list() == ()
    assert "Error" in (registry.handle(state, f"/rm {prefix}") or "")


def test_move_rejects_unknown_status(state) -> None:
    registry.handle(state, "/add Paint the fence")
    task = state.repository.list()[0]
    reply = registry.handle(state, f"/move {task.id} Someday") or ""
    assert reply.startswith("Error:")
    assert state.repository.get(task.id).status is TaskStatus.TO_DO


def test_edit_replaces_fields(state) -> None:
    registry.handle(state, "/add Old title | old desc")
    task = state.repository.list()[0]

    registry.handle(state, f"/edit {task.id} New title | | 2025-10-01")

    updated = state.repository.get(task.id)
    assert updated.title == "New title"
    assert updated.description is None
    assert updated.due_date == date(2025, 10, 1)


def test_resolve_task_prefix_rules(store) -> None:
    ids = iter(["abc-1", "abc-2"])
    repo = TaskRepository(store, id_factory=lambda: next(ids))
    repo.create(TaskFields(title="One"))
    repo.create(TaskFields(title="Two"))
    state = SimpleNamespace(repository=repo)

    assert resolve_task(state, "abc-2").title == "Two"
    with pytest.raises(TaskBoardError, match="ambiguous"):
        resolve_task(state, "abc")
    with pytest.raises(TaskBoardError, match="required"):
        resolve_task(state, " ")
    with pytest.raises(TaskBoardError, match="No task"):
        resolve_task(state, "zzz")


def test_breakdown_then_accept_all(state, suggestion_client) -> None:
    notes: list[str] = []
    reply = registry.handle(state, "/breakdown Plan offsite | 50 people | 2025-09-01", emit=notes.append) or ""

    assert notes and "Plan offsite" in notes[0]
    assert "1. Book a venue" in reply
    assert "3. Arrange travel" in reply
    assert suggestion_client.calls == [("Plan offsite", "50 people")]

    added = registry.handle(state, "/accept") or ""
    assert added.startswith("Added:")
    tasks = state.repository.list()
    assert len(tasks) == 3
    assert all(t.due_date == date(2025, 9, 1) for t in tasks)
    assert all(t.priority is TaskPriority.MEDIUM for t in tasks)
    assert state.controller.flow.phase is SuggestionPhase.IDLE


def test_breakdown_existing_task_and_accept_subset(state, suggestion_client) -> None:
    registry.handle(state, "/add Plan offsite | three days | 2025-09-01")
    parent = state.repository.list()[0]

    registry.handle(state, f"/breakdown {parent.id[:8]}")
    assert suggestion_client.calls == [("Plan offsite", "three days")]

    registry.handle(state, "/accept 2")
    titles = [t.title for t in state.repository.list()]
    assert "Plan the agenda" in titles
    assert "Book a venue" not in titles


def test_breakdown_failure_is_reported_inline(state, suggestion_client) -> None:
    suggestion_client.error = UpstreamError("model unavailable", status_code=500)

    reply = registry.handle(state, "/breakdown Plan offsite") or ""

    assert "failed" in reply
    assert "model unavailable" in reply
    assert state.controller.flow.phase is SuggestionPhase.FAILED


def test_accept_and_dismiss_without_suggestions(state) -> None:
    assert registry.handle(state, "/accept") == "No suggestions to accept."
    assert registry.handle(state, "/dismiss") == "Suggestions dismissed."


def test_breakdown_empty_title_is_validation_error(state, suggestion_client) -> None:
    reply = registry.handle(state, "/breakdown  | description only") or ""
    assert reply.startswith("Error:")
    assert suggestion_client.calls == []


def test_status_reports_mode(state) -> None:
    reply = registry.handle(state, "/status") or ""
    assert "mode=proxy" in reply
    assert "Tasks: 0" in reply


def test_failed_save_is_reported_per_command(settings, suggestion_client) -> None:
    backend = FailingBackend()
    store = PersistentStore(backend)
    repo = TaskRepository(store)
    state = AppState(
        settings=settings,
        store=store,
        repository=repo,
        controller=BoardController(repo, suggestion_client),
    )

    reply = registry.handle(state, "/add Survives this session") or ""
    assert reply.startswith("Added")
    assert PERSIST_WARNING in reply
    assert len(repo.list()) == 1

    assert PERSIST_WARNING not in (registry.handle(state, "/list") or "")
    assert "last save FAILED" in (registry.handle(state, "/status") or "")


def test_successful_save_has_no_warning(state) -> None:
    assert PERSIST_WARNING not in (registry.handle(state, "/add Fine") or "")
    assert "Storage: OK" in (registry.handle(state, "/status") or "")
