"""
Lectern — Application Entry Point

FastAPI application for the Lectern teaching assistant: document
ingestion, reference-context selection and answer generation.

Start locally:
    uvicorn lectern.main:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from lectern import __version__
from lectern.api.v1.chat import router as chat_router
from lectern.api.v1.documents import router as documents_router
from lectern.core.config import Settings, get_settings, validate_settings
from lectern.core.database import Database
from lectern.core.logging import setup_logging
from lectern.services.chat import ChatService
from lectern.services.documents import DocumentService
from lectern.services.llm import LLMService
from lectern.services.oracle import OpenAISelectionOracle
from lectern.services.selection import RelevanceSelector

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        1. Refuse to start if a required secret is missing.
        2. Connect to the database (retried).
        3. Build the services and keep them on ``app.state``.

    Shutdown:
        1. Dispose database engine.
    """
    settings: Settings = app.state.settings
    logger.info("Starting %s...", settings.PROJECT_NAME)

    check = validate_settings(settings)
    if not check.ok:
        logger.critical("Missing required configuration: %s", ", ".join(check.missing))
        raise RuntimeError(f"Missing required configuration: {', '.join(check.missing)}")

    database = Database.from_settings(settings)
    await database.connect()

    oracle = OpenAISelectionOracle(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        timeout=settings.ORACLE_TIMEOUT,
    )
    llm = LLMService(
        base_url=settings.OLLAMA_BASE_URL,
        model=settings.OLLAMA_MODEL,
        timeout=settings.OLLAMA_TIMEOUT,
        max_tokens=settings.MAX_TOKENS,
        temperature=settings.TEMPERATURE,
    )

    app.state.database = database
    app.state.llm = llm
    app.state.document_service = DocumentService(settings)
    app.state.chat_service = ChatService(RelevanceSelector(oracle), llm)
    logger.info("%s ready", settings.PROJECT_NAME)

    yield

    await database.dispose()
    logger.info("%s shutdown complete", settings.PROJECT_NAME)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; settings default to the environment."""
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Document ingestion, reference selection and answer generation.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.include_router(documents_router, prefix="/api/v1/documents", tags=["Documents"])
    app.include_router(chat_router, prefix="/api/v1", tags=["Chat"])

    @app.get("/health")
    async def health_check(request: Request) -> dict[str, str]:
        """
        Health check for load balancers and orchestrators.

        An unreachable answer model does not fail the check: chat still
        replies with placeholders, so it is reported as ``degraded``.
        """
        llm_ok = await request.app.state.llm.health_check()
        return {
            "status": "ok",
            "service": "lectern",
            "environment": os.getenv("ENVIRONMENT", "local"),
            "answer_model": "ok" if llm_ok else "degraded",
        }

    return app


app = create_app()
