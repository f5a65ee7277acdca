# src/ai_taskboard/llm/client.py

"""
Direct mode: this process holds the credential and calls the provider itself.

Talks to any OpenAI-compatible chat completions endpoint (Gemini's
OpenAI-compatible API by default) and asks for schema-constrained JSON.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..errors import ConfigurationError, ResponseFormatError, TransportError, UpstreamError
from ..tasks.task_models import SubTaskSuggestion
from .suggestions import SUBTASK_RESPONSE_FORMAT, build_breakdown_prompt, parse_suggestions, validate_title

logger = logging.getLogger(__name__)


def _make_timeout_obj(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(
        connect=connect_s,
        read=read_s,
        write=10.0,
        pool=connect_s,
    )


def _status_detail(exc: openai.APIStatusError) -> str:
    """Best human-readable message from a provider error body."""
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and isinstance(err.get("message"), str):
            return err["message"]
        if isinstance(body.get("message"), str):
            return body["message"]
        if isinstance(body.get("detail"), str):
            return body["detail"]
    return str(getattr(exc, "message", "") or exc).strip()


class DirectSuggestionClient:
    """
    Suggestion client that calls the LLM provider directly.

    IMPORTANT:
    - No secrets required at construction time: a missing key surfaces as
      ConfigurationError on the first call, with no network traffic.
    - Automatic retries are disabled (one attempt per invocation).
    """

    mode = "direct"

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str,
        model: str,
        timeout_seconds: float = 30.0,
        connect_timeout_seconds: float = 5.0,
        client: Any | None = None,
    ) -> None:
        self._api_key = (api_key or "").strip() or None
        self._base_url = (base_url or "").strip()
        self._model = (model or "").strip()
        self._timeout = _make_timeout_obj(connect_s=connect_timeout_seconds, read_s=timeout_seconds)
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> DirectSuggestionClient:
        return cls(
            api_key=getattr(settings, "llm_api_key", None),
            base_url=getattr(settings, "llm_base_url", "") or "",
            model=getattr(settings, "llm_model", "") or "",
            timeout_seconds=float(getattr(settings, "request_timeout_seconds", 30.0)),
            connect_timeout_seconds=float(getattr(settings, "connect_timeout_seconds", 5.0)),
        )

    @property
    def model(self) -> str:
        return self._model

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key and self._base_url and self._model)

    def _get_client(self) -> Any:
        """Lazily create and cache the OpenAI-compatible client."""
        if self._client is not None:
            return self._client

        if not self._api_key:
            raise ConfigurationError(
                "LLM API key is not configured. AI features are unavailable. "
                "Set TASKBOARD_LLM_API_KEY (or GEMINI_API_KEY) in your .env."
            )
        if not self._base_url:
            raise ConfigurationError("LLM base URL is not set. Set TASKBOARD_LLM_BASE_URL in your .env.")
        if not self._model:
            raise ConfigurationError("LLM model is not set. Set TASKBOARD_LLM_MODEL in your .env.")

        self._client = OpenAI(
            base_url=self._base_url,
            api_key=self._api_key,
            timeout=self._timeout,
            max_retries=0,
        )
        return self._client

    def suggest_subtasks(self, title: str, description: str | None = None) -> list[SubTaskSuggestion]:
        title = validate_title(title)
        client = self._get_client()
        prompt = build_breakdown_prompt(title, description)

        logger.info("LLM: breakdown request model=%s", self._model)
        t0 = time.monotonic()
        try:
            response = client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                response_format=SUBTASK_RESPONSE_FORMAT,
                timeout=self._timeout,
            )
        except (openai.APITimeoutError, openai.APIConnectionError) as e:
            logger.info("LLM: network/timeout error model=%s (%s)", self._model, e.__class__.__name__)
            raise TransportError(str(e) or "Request to the AI provider failed.") from e
        except openai.APIResponseValidationError as e:
            logger.info("LLM: unreadable provider response model=%s", self._model)
            raise ResponseFormatError("AI response did not match the expected format.") from e
        except openai.APIStatusError as e:
            status = getattr(e, "status_code", None)
            logger.info("LLM: provider error model=%s status=%s", self._model, status)
            raise UpstreamError(_status_detail(e), status_code=status) from e
        except openai.APIError as e:
            logger.info("LLM: provider error model=%s (%s)", self._model, e.__class__.__name__)
            raise UpstreamError(str(e).strip() or "AI provider request failed.") from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise ResponseFormatError("AI response had no message content.") from e

        if not content or not str(content).strip():
            raise ResponseFormatError("AI response was empty.")

        suggestions = parse_suggestions(str(content))
        logger.info(
            "LLM: %d suggestion(s) from model=%s (%.2fs)",
            len(suggestions),
            self._model,
            time.monotonic() - t0,
        )
        return suggestions
