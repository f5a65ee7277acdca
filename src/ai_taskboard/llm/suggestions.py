# src/ai_taskboard/llm/suggestions.py

"""
Sub-task breakdown contract shared by both transports.

- prompt construction (2..5 actionable sub-tasks, never the parent task itself),
- JSON schema for schema-constrained generation,
- strict validation of whatever comes back.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from ..errors import ResponseFormatError, ValidationError
from ..tasks.task_models import SubTaskSuggestion

logger = logging.getLogger(__name__)

MIN_SUGGESTIONS = 2
MAX_SUGGESTIONS = 5

SUBTASK_ITEM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {
            "type": "string",
            "description": "The concise title of the sub-task.",
        },
        "description": {
            "type": "string",
            "description": "An optional, brief description of the sub-task.",
        },
    },
    "required": ["title"],
}

SUBTASK_ARRAY_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": SUBTASK_ITEM_SCHEMA,
    "minItems": MIN_SUGGESTIONS,
    "maxItems": MAX_SUGGESTIONS,
}

# Schema-constrained modes want an object at the root, so the array is wrapped.
SUBTASK_RESPONSE_FORMAT: dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "name": "subtask_suggestions",
        "schema": {
            "type": "object",
            "properties": {"subtasks": SUBTASK_ARRAY_SCHEMA},
            "required": ["subtasks"],
        },
    },
}

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


def validate_title(title: str | None) -> str:
    t = str(title or "").strip()
    if not t:
        raise ValidationError("Enter a task title first.")
    return t


def build_breakdown_prompt(title: str, description: str | None = None) -> str:
    """Instruction prompt for decomposing one task into sub-tasks."""
    t = validate_title(title)
    lines = [
        "You are an expert project manager. Break down the following task into "
        f"{MIN_SUGGESTIONS} to {MAX_SUGGESTIONS} smaller, actionable sub-tasks.",
        f'Main Task Title: "{t}"',
    ]
    desc = (description or "").strip()
    if desc:
        lines.append(f'Main Task Description: "{desc}"')
    lines += [
        "",
        "For each sub-task, provide a concise title and an optional short description (1-2 sentences).",
        "Focus on creating actionable and distinct sub-tasks.",
        "Do not include the original task itself in the sub-tasks.",
        'Respond with JSON only: {"subtasks": [{"title": "...", "description": "..."}]}',
    ]
    return "\n".join(lines)


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = _FENCE_OPEN.sub("", text)
        text = _FENCE_CLOSE.sub("", text)
    return text.strip()


def _decode(payload: Any) -> Any:
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")
    if not isinstance(payload, str):
        return payload
    text = _strip_code_fences(payload)
    if not text:
        raise ResponseFormatError("AI response was empty.")
    try:
        return json.loads(text)
    except ValueError as e:
        raise ResponseFormatError(f"AI response is not valid JSON: {e}") from e


def _parse_item(index: int, item: Any) -> SubTaskSuggestion:
    if not isinstance(item, dict):
        raise ResponseFormatError(f"Sub-task #{index + 1} is not an object.")

    title = item.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ResponseFormatError(f"Sub-task #{index + 1} has no 'title' string.")

    description = item.get("description")
    if description is not None and not isinstance(description, str):
        raise ResponseFormatError(f"Sub-task #{index + 1} has a non-string 'description'.")

    return SubTaskSuggestion(
        title=title.strip(),
        description=(description or "").strip() or None,
    )


def parse_suggestions(payload: Any) -> list[SubTaskSuggestion]:
    """
    Validate a model/proxy payload into SubTaskSuggestion objects.

    Accepts raw text (optionally wrapped in Markdown fences) or decoded JSON,
    either a bare array or {"subtasks": [...]}. Raises ResponseFormatError on
    anything that does not match the shape.
    """
    data = _decode(payload)

    if isinstance(data, dict) and "subtasks" in data:
        data = data["subtasks"]

    if not isinstance(data, list):
        raise ResponseFormatError(
            "AI response format error: expected an array of objects with a 'title' string "
            "and optional 'description' string."
        )

    out = [_parse_item(i, item) for i, item in enumerate(data)]

    if len(out) > MAX_SUGGESTIONS:
        logger.info("Got %d sub-tasks, keeping the first %d.", len(out), MAX_SUGGESTIONS)
        out = out[:MAX_SUGGESTIONS]
    return out
