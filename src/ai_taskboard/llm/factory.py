# src/ai_taskboard/llm/factory.py

from __future__ import annotations

import logging

from ..config import SUGGESTION_MODES
from ..core.ports import SuggestionClient
from ..errors import ConfigurationError
from .client import DirectSuggestionClient
from .proxy import ProxiedSuggestionClient

logger = logging.getLogger(__name__)


def build_suggestion_client(settings) -> SuggestionClient:
    """Pick exactly one transport from settings.suggestion_mode."""
    mode = str(getattr(settings, "suggestion_mode", "direct") or "direct").strip().lower()
    if mode == "direct":
        client: SuggestionClient = DirectSuggestionClient.from_settings(settings)
    elif mode == "proxy":
        client = ProxiedSuggestionClient.from_settings(settings)
    else:
        raise ConfigurationError(
            f"Unknown suggestion mode: {mode!r}. Use one of: {', '.join(SUGGESTION_MODES)}."
        )
    logger.info("Suggestion client mode=%s", mode)
    return client
