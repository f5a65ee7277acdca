# src/ai_taskboard/server/app.py

"""
Breakdown proxy: holds the LLM credential on behalf of browser/console clients.

API:
    GET  /                     -> {"status": "ok", "service": ..., "model": ...}
    POST /api/breakdown-task   -> body {"title": str, "description": str | null}
                                  200: [{"title": str, "description": str | null}, ...]
                                  422/500: {"detail": str}
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from ..config import get_settings
from ..core.ports import SuggestionClient
from ..errors import GENERIC_AI_ERROR, SuggestionError, friendly_error_message
from ..llm.client import DirectSuggestionClient

logger = logging.getLogger(__name__)


class BreakdownRequest(BaseModel):
    title: str
    description: str | None = None


class SubTaskOut(BaseModel):
    title: str
    description: str | None = None


def create_app(settings=None, client: SuggestionClient | None = None) -> FastAPI:
    """Build the proxy app. The proxy always calls the provider directly."""
    if settings is None:
        settings = get_settings()
    if client is None:
        client = DirectSuggestionClient.from_settings(settings)

    app = FastAPI(title=f"{settings.app_name} proxy")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(getattr(settings, "allowed_origins", []) or []),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    if getattr(client, "is_configured", True) is False:
        logger.warning("Proxy started without an LLM credential; breakdown requests will fail.")

    @app.get("/")
    def root() -> dict[str, Any]:
        """Health check."""
        return {
            "status": "ok",
            "service": settings.app_name,
            "model": getattr(client, "model", None),
        }

    @app.post("/api/breakdown-task", response_model=list[SubTaskOut])
    async def breakdown_task(body: BreakdownRequest) -> list[SubTaskOut]:
        title = (body.title or "").strip()
        if not title:
            raise HTTPException(status_code=422, detail="Task title is required.")

        try:
            suggestions = await run_in_threadpool(client.suggest_subtasks, title, body.description)
        except SuggestionError as e:
            logger.info("Breakdown failed (%s): %s", e.__class__.__name__, e)
            detail = str(e).strip() or friendly_error_message(e)
            raise HTTPException(status_code=500, detail=detail) from e
        except Exception as e:
            logger.exception("Suggestion client crashed.")
            raise HTTPException(status_code=500, detail=GENERIC_AI_ERROR) from e

        return [SubTaskOut(title=s.title, description=s.description) for s in suggestions]

    return app


def main() -> None:
    import uvicorn

    from ..logging_setup import level_from_name, setup_logging

    settings = get_settings()
    setup_logging(
        log_dir=settings.data_dir,
        console_level=level_from_name(settings.log_level),
        log_file_name="proxy.log",
    )
    logger.info("Starting breakdown proxy on %s:%s", settings.proxy_host, settings.proxy_port)
    uvicorn.run(create_app(settings), host=settings.proxy_host, port=settings.proxy_port, log_config=None)


if __name__ == "__main__":
    main()
