# src/ai_taskboard/tasks/task_repository.py

from __future__ import annotations

import dataclasses
import logging
import threading
import uuid
from collections.abc import Callable, Iterable
from datetime import UTC, date, datetime
from typing import Any

from ..errors import TaskNotFoundError
from .task_models import (
    TASK_STATUSES,
    SubTaskSuggestion,
    Task,
    TaskFields,
    TaskPriority,
    TaskStatus,
    parse_due_date,
)

logger = logging.getLogger(__name__)

PersistErrorCallback = Callable[[Exception], None]


def _utc_now() -> datetime:
    # stored timestamps keep milliseconds only
    now = datetime.now(tz=UTC)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _new_id() -> str:
    return str(uuid.uuid4())


class TaskRepository:
    """
    Authoritative in-memory task collection backed by a PersistentStore.

    Every mutation updates memory and then writes the whole collection once,
    under a single lock, so no partially applied change is ever persisted.
    A failed write does not roll back memory: the live session stays correct,
    durability is best-effort.
    """

    def __init__(
        self,
        store: Any,
        *,
        storage_key: str = "tasks",
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
        on_persist_error: PersistErrorCallback | None = None,
    ) -> None:
        self._store = store
        self._key = storage_key
        self._clock = clock or _utc_now
        self._id_factory = id_factory or _new_id
        self._on_persist_error = on_persist_error
        self._lock = threading.RLock()
        self._tasks: list[Task] = self._load()
        self.last_persist_ok = True
        self.persist_failures = 0
        logger.info("TaskRepository ready key=%s total=%d", self._key, len(self._tasks))

    # ---- loading / persistence ----

    def _load(self) -> list[Task]:
        raw = self._store.load(self._key, [])
        if not isinstance(raw, list):
            logger.warning("Stored %s is not a list (%s); starting empty.", self._key, type(raw).__name__)
            return []

        tasks: list[Task] = []
        seen: set[str] = set()
        for item in raw:
            try:
                task = Task.from_dict(item)
            except ValueError as e:
                logger.warning("Skipping malformed task record: %s", e)
                continue
            if task.id in seen:
                logger.warning("Skipping duplicate task id=%s", task.id)
                continue
            seen.add(task.id)
            tasks.append(task)
        return tasks

    def _persist(self) -> bool:
        ok = self._store.save(self._key, [t.to_dict() for t in self._tasks])
        self.last_persist_ok = bool(ok)
        if not ok:
            self.persist_failures += 1
            logger.warning("Board not persisted; keeping in-memory state (total=%d).", len(self._tasks))
            if self._on_persist_error is not None:
                try:
                    self._on_persist_error(RuntimeError(f"Failed to persist {self._key!r}"))
                except Exception:
                    logger.exception("on_persist_error callback failed")
        return self.last_persist_ok

    def _index_of(self, task_id: str) -> int:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return -1

    def _new_task(
        self,
        *,
        title: str,
        description: str | None,
        due_date: date | None,
        priority: TaskPriority | None,
        status: TaskStatus,
    ) -> Task:
        task_id = self._id_factory()
        # ids must stay unique even with an injected factory
        while self._index_of(task_id) != -1:
            task_id = _new_id()
        return Task(
            id=task_id,
            title=title,
            status=status,
            created_at=self._clock(),
            description=description,
            due_date=due_date,
            priority=priority,
        )

    # ---- queries ----

    def list(self) -> tuple[Task, ...]:
        with self._lock:
            return tuple(self._tasks)

    def get(self, task_id: str) -> Task | None:
        with self._lock:
            i = self._index_of(task_id)
            return self._tasks[i] if i != -1 else None

    def count(self) -> int:
        with self._lock:
            return len(self._tasks)

    def columns(self) -> dict[TaskStatus, list[Task]]:
        """Tasks grouped by status, newest first within each column."""
        with self._lock:
            out: dict[TaskStatus, list[Task]] = {s: [] for s in TASK_STATUSES}
            for t in self._tasks:
                out[t.status].append(t)
        for tasks in out.values():
            tasks.sort(key=lambda t: t.created_at, reverse=True)
        return out

    # ---- mutations ----

    def create(self, fields: TaskFields, status: TaskStatus | str | None = None) -> Task:
        clean = fields.clean()
        new_status = TaskStatus.parse(status) if status else TaskStatus.TO_DO
        with self._lock:
            task = self._new_task(
                title=clean.title,
                description=clean.description,
                due_date=clean.due_date,  # type: ignore[arg-type]
                priority=clean.priority,  # type: ignore[arg-type]
                status=new_status,
            )
            self._tasks.insert(0, task)
            self._persist()
        logger.debug("Task created id=%s status=%s", task.id, task.status.value)
        return task

    def update(self, task_id: str, fields: TaskFields, status: TaskStatus | str | None = None) -> Task:
        clean = fields.clean()
        new_status = TaskStatus.parse(status) if status else None
        with self._lock:
            i = self._index_of(task_id)
            if i == -1:
                raise TaskNotFoundError(task_id)
            current = self._tasks[i]
            updated = dataclasses.replace(
                current,
                title=clean.title,
                description=clean.description,
                due_date=clean.due_date,
                priority=clean.priority,
                status=new_status or current.status,
            )
            self._tasks[i] = updated
            self._persist()
        logger.debug("Task updated id=%s", task_id)
        return updated

    def remove(self, task_id: str) -> bool:
        with self._lock:
            i = self._index_of(task_id)
            if i == -1:
                return False
            del self._tasks[i]
            self._persist()
        logger.debug("Task removed id=%s", task_id)
        return True

    def set_status(self, task_id: str, status: TaskStatus | str) -> Task | None:
        new_status = TaskStatus.parse(status)
        with self._lock:
            i = self._index_of(task_id)
            if i == -1:
                return None
            current = self._tasks[i]
            if current.status == new_status:
                return current
            updated = dataclasses.replace(current, status=new_status)
            self._tasks[i] = updated
            self._persist()
        logger.debug("Task status id=%s %s -> %s", task_id, current.status.value, new_status.value)
        return updated

    def bulk_create(
        self,
        suggestions: Iterable[SubTaskSuggestion],
        inherited_due_date: date | str | None = None,
    ) -> list[Task]:
        """Turn accepted suggestions into To Do tasks (priority Medium) with one write."""
        due = parse_due_date(inherited_due_date)
        items = [s for s in suggestions if s.title and s.title.strip()]
        if not items:
            return []

        created: list[Task] = []
        with self._lock:
            for s in items:
                task = self._new_task(
                    title=s.title.strip(),
                    description=(s.description or "").strip() or None,
                    due_date=due,
                    priority=TaskPriority.MEDIUM,
                    status=TaskStatus.TO_DO,
                )
                # keep suggestion order at the front of the board
                self._tasks.insert(len(created), task)
                created.append(task)
            self._persist()
        logger.info("Added %d suggested sub-task(s).", len(created))
        return created
