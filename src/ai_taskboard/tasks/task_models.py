# src/ai_taskboard/tasks/task_models.py

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any

from ..errors import ValidationError


def _norm_enum_key(raw: str) -> str:
    # "In Progress", "in_progress", "InProgress", "in-progress" -> "inprogress"
    return re.sub(r"[\s_\-]+", "", raw).lower()


class TaskStatus(StrEnum):
    """
    Board column a task lives in.

    Values are the persisted/display strings, so stored boards stay readable.
    """

    TO_DO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

    @classmethod
    def parse(cls, raw: Any) -> TaskStatus:
        if isinstance(raw, cls):
            return raw
        key = _norm_enum_key(str(raw or ""))
        for member in cls:
            if key in (_norm_enum_key(member.value), _norm_enum_key(member.name)):
                return member
        raise ValidationError(
            f"Unknown status: {raw!r}. Use one of: {', '.join(s.value for s in cls)}."
        )

    @classmethod
    def from_storage(cls, raw: Any) -> TaskStatus:
        if not raw:
            return cls.TO_DO
        try:
            return cls.parse(raw)
        except ValidationError:
            return cls.TO_DO


class TaskPriority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def parse(cls, raw: Any) -> TaskPriority:
        if isinstance(raw, cls):
            return raw
        key = _norm_enum_key(str(raw or ""))
        for member in cls:
            if key in (_norm_enum_key(member.value), _norm_enum_key(member.name)):
                return member
        raise ValidationError(
            f"Unknown priority: {raw!r}. Use one of: {', '.join(p.value for p in cls)}."
        )


TASK_STATUSES: tuple[TaskStatus, ...] = (TaskStatus.TO_DO, TaskStatus.IN_PROGRESS, TaskStatus.DONE)
TASK_PRIORITIES: tuple[TaskPriority, ...] = (TaskPriority.LOW, TaskPriority.MEDIUM, TaskPriority.HIGH)


def format_timestamp(dt: datetime) -> str:
    """ISO datetime in UTC with millisecond precision and a 'Z' suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(raw: Any) -> datetime | None:
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=UTC)
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        dt = datetime.fromisoformat(raw.strip())
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=UTC)


def parse_due_date(raw: Any) -> date | None:
    """Parse a calendar date; raises ValidationError for a non-empty unparseable value."""
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    s = str(raw).strip()
    if not s:
        return None
    try:
        # tolerate a full timestamp, keep the calendar day only
        return date.fromisoformat(s[:10])
    except ValueError:
        raise ValidationError(f"Invalid due date: {s!r}. Use YYYY-MM-DD.") from None


def _clean_optional_text(raw: Any) -> str | None:
    if raw is None:
        return None
    s = str(raw).strip()
    return s or None


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    status: TaskStatus
    created_at: datetime

    description: str | None = None
    due_date: date | None = None
    priority: TaskPriority | None = None

    def to_dict(self) -> dict[str, Any]:
        """Persisted layout (camelCase keys, empty optionals omitted)."""
        out: dict[str, Any] = {"id": self.id, "title": self.title}
        if self.description is not None:
            out["description"] = self.description
        if self.due_date is not None:
            out["dueDate"] = self.due_date.isoformat()
        if self.priority is not None:
            out["priority"] = self.priority.value
        out["status"] = self.status.value
        out["createdAt"] = format_timestamp(self.created_at)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """
        Parse one persisted record.

        Lenient about optional fields (unknown priority / bad date are dropped,
        unknown status falls back to To Do); strict about identity: a record
        without id or title raises ValueError.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Task record must be an object, got {type(data).__name__}")

        task_id = str(data.get("id") or "").strip()
        if not task_id:
            raise ValueError("Task record has no id")

        title = str(data.get("title") or "").strip()
        if not title:
            raise ValueError(f"Task record {task_id} has an empty title")

        try:
            due_date = parse_due_date(data.get("dueDate"))
        except ValidationError:
            due_date = None

        priority: TaskPriority | None = None
        if data.get("priority"):
            try:
                priority = TaskPriority.parse(data["priority"])
            except ValidationError:
                priority = None

        created_at = parse_timestamp(data.get("createdAt")) or datetime.fromtimestamp(0, tz=UTC)

        return cls(
            id=task_id,
            title=title,
            status=TaskStatus.from_storage(data.get("status")),
            created_at=created_at,
            description=_clean_optional_text(data.get("description")),
            due_date=due_date,
            priority=priority,
        )


@dataclass(frozen=True, slots=True)
class SubTaskSuggestion:
    """Model-generated candidate task; ephemeral, never persisted on its own."""

    title: str
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "description": self.description}


@dataclass(slots=True)
class TaskFields:
    """Editable field set of a task (everything except id, status and created_at)."""

    title: str
    description: str | None = None
    due_date: date | str | None = None
    priority: TaskPriority | str | None = None

    def clean(self) -> TaskFields:
        title = str(self.title or "").strip()
        if not title:
            raise ValidationError("Title is required.")

        priority: TaskPriority | None = None
        if self.priority is not None and str(self.priority).strip():
            priority = TaskPriority.parse(self.priority)

        return TaskFields(
            title=title,
            description=_clean_optional_text(self.description),
            due_date=parse_due_date(self.due_date),
            priority=priority,
        )
