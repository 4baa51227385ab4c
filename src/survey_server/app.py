"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that loads the survey library and builds the service once
  - CORS middleware
  - Global exception handlers (SDK ValueError → 404/409/400)
  - All API routes mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness probes

External judgment / generation services are injected through
``create_app(judge=..., generator=...)``; without them the server runs
with the should-ask veto, semantic validation and generation disabled.

The ``cli()`` function is the ``survey-server`` console-script entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from survey_db.engine import dispose_engine, get_engine
from survey_flow.exceptions import StructuralError
from survey_flow.interfaces import JudgmentService, QuestionGenerator
from survey_flow.library import SurveyLibrary
from survey_flow.prompt import PromptManager
from survey_flow.service import SurveyService

from survey_server.config import ServerSettings, load_settings
from survey_server.errors import (
    generic_error_handler,
    key_error_handler,
    structural_error_handler,
    value_error_handler,
)
from survey_server.routes import register_routes

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Lifespan — runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialise shared resources at startup, tear down on shutdown.

    Startup:
      1. Load YAML survey templates into a ``SurveyLibrary``
      2. Build ``SurveyService`` around the injected external services
      3. Stash them on ``app.state`` for dependency injection

    Shutdown:
      1. Dispose the database engine's connection pool
    """
    settings: ServerSettings = app.state.settings

    # --- Load library ---
    library = SurveyLibrary(survey_dir=settings.survey_dir)
    library.load()

    # --- Build service ---
    app.state.library = library
    app.state.service = SurveyService(
        judge=app.state.judge, generator=app.state.generator,
    )
    app.state.prompts = PromptManager(language=settings.language)
    if app.state.judge is None:
        logger.info("No judgment service configured; veto and semantic checks disabled")

    yield

    # --- Shutdown ---
    await dispose_engine()
    logger.info("Database engine disposed")


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(
    settings: ServerSettings | None = None,
    judge: JudgmentService | None = None,
    generator: QuestionGenerator | None = None,
) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    # --- Configure logging ---
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Survey Flow API Server",
        description="REST API for survey building, flow resolution and submissions",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Read by the lifespan handler
    app.state.settings = settings
    app.state.judge = judge
    app.state.generator = generator

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    app.add_exception_handler(StructuralError, structural_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(KeyError, key_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # --- Health check (outside /api/v1 prefix) ---
    @app.get("/health")
    async def health() -> dict:
        """Readiness probe: database reachable and survey library loaded."""
        library = getattr(app.state, "library", None)
        surveys = len(library.names()) if library is not None else 0
        try:
            async with get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return {"status": "error", "database": str(exc), "library_surveys": surveys}
        return {"status": "ok", "database": "ok", "library_surveys": surveys}

    # --- Mount all API routes ---
    register_routes(app)

    return app


# ------------------------------------------------------------------
# Module-level ASGI export (for uvicorn survey_server.app:app)
# ------------------------------------------------------------------
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``survey-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "survey_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
