# src/ai_taskboard/cli/commands.py

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import cast

from ..board.state import SuggestionFlow, SuggestionPhase
from ..config import ai_available
from ..core.state import AppState
from ..errors import InvalidTransitionError, TaskBoardError
from ..tasks.task_models import TASK_STATUSES, Task, TaskFields, TaskStatus

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

FIELD_SEP = "|"
SHORT_ID_LEN = 8
PERSIST_WARNING = "Warning: changes were not saved to local storage; they will be lost on exit."

logger = logging.getLogger(__name__)


def _persist_failures(state: AppState) -> int:
    return int(getattr(state.repository, "persist_failures", 0))


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        failures_before = _persist_failures(state)
        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                reply = h3(state, args, emit)
            else:
                h2 = cast(CommandHandler2, handler)
                reply = h2(state, args)
        except TaskBoardError as e:
            # validation / not found / bad transition: inline feedback, no crash
            reply = f"Error: {e}"

        if _persist_failures(state) > failures_before:
            reply = f"{reply}\n{PERSIST_WARNING}" if reply else PERSIST_WARNING
        return reply

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _split_fields(args: list[str]) -> list[str]:
    return [p.strip() for p in " ".join(args).split(FIELD_SEP)]


def _fields_from_parts(parts: list[str]) -> TaskFields:
    def at(i: int) -> str | None:
        return parts[i] if len(parts) > i and parts[i] else None

    return TaskFields(title=parts[0] if parts else "", description=at(1), due_date=at(2), priority=at(3))


def resolve_task(state: AppState, ref: str) -> Task:
    """Find a task by full id or unique id prefix."""
    ref = (ref or "").strip()
    if not ref:
        raise TaskBoardError("Task id is required.")
    exact = state.repository.get(ref)
    if exact is not None:
        return exact
    matches = [t for t in state.repository.list() if t.id.startswith(ref)]
    if not matches:
        raise TaskBoardError(f"No task with id {ref!r}.")
    if len(matches) > 1:
        raise TaskBoardError(f"Id prefix {ref!r} is ambiguous ({len(matches)} tasks).")
    return matches[0]


def format_task(task: Task) -> str:
    line = f"[{task.id[:SHORT_ID_LEN]}] {task.title}"
    extras: list[str] = []
    if task.priority is not None:
        extras.append(task.priority.value)
    if task.due_date is not None:
        extras.append(f"due {task.due_date.isoformat()}")
    if extras:
        line += f" ({', '.join(extras)})"
    if task.description:
        line += f"\n      {task.description}"
    return line


def format_board(columns: dict[TaskStatus, list[Task]]) -> str:
    lines: list[str] = []
    for status in TASK_STATUSES:
        tasks = columns.get(status, [])
        lines.append(f"== {status.value.upper()} ({len(tasks)}) ==")
        if not tasks:
            lines.append("  (empty)")
        for t in tasks:
            lines.append(f"  {format_task(t)}")
    return "\n".join(lines)


def format_flow(flow: SuggestionFlow) -> str:
    parent = flow.parent.title if flow.parent is not None else "?"
    if flow.phase is SuggestionPhase.LOADING:
        return f"AI is breaking down \"{parent}\"..."
    if flow.phase is SuggestionPhase.FAILED:
        return f"AI breakdown of \"{parent}\" failed: {flow.error}"
    if flow.phase is SuggestionPhase.READY:
        if not flow.suggestions:
            return f"AI returned no sub-tasks for \"{parent}\". Use /dismiss."
        lines = [f"AI suggestions for \"{parent}\":"]
        for i, s in enumerate(flow.suggestions, start=1):
            lines.append(f"  {i}. {s.title}")
            if s.description:
                lines.append(f"     {s.description}")
        lines.append("Use /accept to add all, /accept 1 3 to pick, or /dismiss.")
        return "\n".join(lines)
    return "No AI suggestions pending."


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_list(state: AppState, args: list[str]) -> str:
    return format_board(state.controller.columns())


def cmd_add(state: AppState, args: list[str]) -> str:
    parts = _split_fields(args)
    status = parts[4] if len(parts) > 4 and parts[4] else None
    state.controller.open_task_form()
    task = state.controller.save_task(_fields_from_parts(parts), status)
    return f"Added {format_task(task)}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /edit <id> <title> [| description [| due YYYY-MM-DD [| priority [| status]]]]"
    task = resolve_task(state, args[0])
    parts = _split_fields(args[1:])
    status = parts[4] if len(parts) > 4 and parts[4] else None
    state.controller.open_task_form(task.id)
    updated = state.controller.save_task(_fields_from_parts(parts), status)
    return f"Updated {format_task(updated)}"


def cmd_move(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /move <id> <To Do|In Progress|Done>"
    task = resolve_task(state, args[0])
    status = TaskStatus.parse(" ".join(args[1:]))
    state.controller.move_task(task.id, status)
    return f"Moved [{task.id[:SHORT_ID_LEN]}] to {status.value}."


def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <id>"
    task = resolve_task(state, args[0])
    state.controller.delete_task(task.id)
    return f"Removed [{task.id[:SHORT_ID_LEN]}] {task.title}."


def cmd_breakdown(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /breakdown <id> | /breakdown <title> [| description [| due YYYY-MM-DD]]"

    task: Task | None = None
    if len(args) == 1 and FIELD_SEP not in args[0]:
        try:
            task = resolve_task(state, args[0])
        except TaskBoardError:
            task = None

    if task is not None:
        title, description, due = task.title, task.description, task.due_date
    else:
        parts = _split_fields(args)
        title = parts[0]
        description = parts[1] if len(parts) > 1 and parts[1] else None
        due = parts[2] if len(parts) > 2 and parts[2] else None

    if emit is not None:
        emit(f"Asking AI to break down \"{title}\"...")

    flow = asyncio.run(state.controller.request_breakdown(title, description, due))
    return format_flow(flow)


def cmd_accept(state: AppState, args: list[str]) -> str:
    selected: list[int] | None = None
    if args:
        try:
            selected = [int(a) - 1 for a in args]
        except ValueError:
            return "Usage: /accept [n ...] (numbers from the suggestion list)"
    try:
        created = state.controller.accept_suggestions(selected)
    except InvalidTransitionError:
        return "No suggestions to accept."
    if not created:
        return "Nothing added."
    return "Added:\n" + "\n".join(f"  {format_task(t)}" for t in created)


def cmd_dismiss(state: AppState, args: list[str]) -> str:
    state.controller.dismiss_suggestions()
    return "Suggestions dismissed."


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    mode = str(getattr(settings, "suggestion_mode", "direct"))
    board_state = state.controller.state
    ai = "ON" if board_state.ai_available and ai_available(settings) else "OFF"
    storage = "OK" if getattr(state.repository, "last_persist_ok", True) else "last save FAILED"
    lines = [
        "Status:",
        f"  Tasks: {len(state.repository.list())}",
        f"  Storage: {storage}",
        f"  AI breakdown: {ai} (mode={mode})",
    ]
    if board_state.ai_unavailable_reason:
        lines.append(f"  Reason: {board_state.ai_unavailable_reason}")
    if mode == "direct":
        lines.append(f"  Model: {getattr(settings, 'llm_model', '')}")
    else:
        lines.append(f"  Proxy: {getattr(settings, 'proxy_url', '')}")
    lines.append(f"  Suggestions: {board_state.flow.phase.value}")
    return "\n".join(lines)


registry.register("help", cmd_help, "Show this help.", aliases=["h", "?"])
registry.register("list", cmd_list, "Show the board.", aliases=["ls", "board"])
registry.register(
    "add",
    cmd_add,
    "Add a task: /add <title> [| description [| due YYYY-MM-DD [| Low|Medium|High [| status]]]]",
    aliases=["new"],
)
registry.register("edit", cmd_edit, "Edit a task: /edit <id> <title> [| description [| due [| priority]]]")
registry.register("move", cmd_move, "Change status: /move <id> <To Do|In Progress|Done>", aliases=["mv"])
registry.register("rm", cmd_rm, "Delete a task: /rm <id>", aliases=["del", "delete"])
registry.register(
    "breakdown",
    cmd_breakdown,
    "Ask AI for sub-tasks: /breakdown <id> or /breakdown <title> [| description [| due]]",
    aliases=["ai"],
)
registry.register("accept", cmd_accept, "Add AI suggestions: /accept [n ...]")
registry.register("dismiss", cmd_dismiss, "Discard AI suggestions or error.")
registry.register("status", cmd_status, "Show storage/AI status.")
