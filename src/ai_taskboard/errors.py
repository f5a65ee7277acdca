# src/ai_taskboard/errors.py

"""
Error taxonomy.

- Board-level errors (validation, missing task, bad flow transition) are raised
  to the caller and shown inline.
- SuggestionError and its subclasses describe a failed AI breakdown. The board
  controller converts them into the FAILED suggestion state; they never reach
  the view layer.
- Storage corruption is not an exception: PersistentStore heals it on load.
"""

from __future__ import annotations


class TaskBoardError(Exception):
    """Base class for all ai_taskboard errors."""


class ValidationError(TaskBoardError):
    """User input rejected before any state change (e.g. empty title)."""


class TaskNotFoundError(TaskBoardError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class InvalidTransitionError(TaskBoardError):
    """A board command was issued in a suggestion phase that does not allow it."""


class StorageError(TaskBoardError):
    """Key-value backend failed to read or write."""


class StorageQuotaExceededError(StorageError):
    def __init__(self, key: str, size: int, limit: int) -> None:
        super().__init__(f"Storage quota exceeded for key={key!r}: {size} bytes > {limit} bytes")
        self.key = key
        self.size = size
        self.limit = limit


class SuggestionError(TaskBoardError):
    """Base class for Suggestion Client failures."""


class ConfigurationError(SuggestionError):
    """No credential / endpoint configured for the selected mode."""


class TransportError(SuggestionError):
    """Network failure or timeout while talking to the provider or proxy."""


class ResponseFormatError(SuggestionError):
    """Payload was not JSON or did not match the sub-task suggestion shape."""


class UpstreamError(SuggestionError):
    """Remote service answered with a non-success status."""

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


GENERIC_AI_ERROR = "Failed to get sub-task suggestions from AI."


def friendly_error_message(err: Exception) -> str:
    """Map an exception to the message shown in the suggestions view."""
    if isinstance(err, ConfigurationError):
        msg = str(err).strip()
        return msg or "AI features are not configured."
    if isinstance(err, TransportError):
        msg = str(err).strip()
        return f"{GENERIC_AI_ERROR} Network error: {msg}" if msg else f"{GENERIC_AI_ERROR} Network error."
    if isinstance(err, ResponseFormatError):
        return (
            f"{GENERIC_AI_ERROR} The AI response could not be read as a list of sub-tasks."
        )
    if isinstance(err, UpstreamError):
        detail = (err.detail or "").strip()
        return f"{GENERIC_AI_ERROR} Details: {detail}" if detail else GENERIC_AI_ERROR
    if isinstance(err, TaskBoardError):
        return str(err).strip() or GENERIC_AI_ERROR
    return "An unknown AI error occurred."
