# src/ai_taskboard/llm/proxy.py

"""
Proxied mode: POST {title, description} to a trusted intermediary that holds
the credential, and read back either the suggestion array or {"detail": ...}.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import httpx

from ..errors import ResponseFormatError, TransportError, UpstreamError
from ..tasks.task_models import SubTaskSuggestion
from .suggestions import parse_suggestions, validate_title

logger = logging.getLogger(__name__)


def _root_url(endpoint: str) -> str:
    parts = urlsplit(endpoint)
    return urlunsplit((parts.scheme, parts.netloc, "/", "", ""))


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = body.get("detail")
        if isinstance(detail, str) and detail.strip():
            return detail.strip()
    return f"HTTP error! Status: {response.status_code}"


class ProxiedSuggestionClient:
    mode = "proxy"

    def __init__(
        self,
        endpoint: str,
        *,
        timeout_seconds: float = 30.0,
        connect_timeout_seconds: float = 5.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._timeout = httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds)
        self._http = http_client

    @classmethod
    def from_settings(cls, settings) -> ProxiedSuggestionClient:
        return cls(
            str(getattr(settings, "proxy_url", "") or ""),
            timeout_seconds=float(getattr(settings, "request_timeout_seconds", 30.0)),
            connect_timeout_seconds=float(getattr(settings, "connect_timeout_seconds", 5.0)),
        )

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            if self._http is not None:
                return self._http.request(method, url, timeout=self._timeout, **kwargs)
            with httpx.Client(timeout=self._timeout) as http:
                return http.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.info("Proxy: timeout url=%s", url)
            raise TransportError(f"Request to {url} timed out.") from e
        except httpx.HTTPError as e:
            logger.info("Proxy: transport error url=%s (%s)", url, e.__class__.__name__)
            raise TransportError(str(e) or f"Request to {url} failed.") from e

    def suggest_subtasks(self, title: str, description: str | None = None) -> list[SubTaskSuggestion]:
        title = validate_title(title)
        body = {"title": title, "description": (description or "").strip() or None}

        response = self._request("POST", self._endpoint, json=body)

        if not response.is_success:
            detail = _error_detail(response)
            logger.info("Proxy: error status=%s detail=%s", response.status_code, detail)
            raise UpstreamError(detail, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise ResponseFormatError("Proxy response is not valid JSON.") from e

        suggestions = parse_suggestions(payload)
        logger.info("Proxy: %d suggestion(s)", len(suggestions))
        return suggestions

    def check_health(self) -> Any:
        """GET / on the proxy; returns its status payload."""
        url = _root_url(self._endpoint)
        response = self._request("GET", url)
        if not response.is_success:
            raise UpstreamError(_error_detail(response), status_code=response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise ResponseFormatError("Proxy health response is not valid JSON.") from e
