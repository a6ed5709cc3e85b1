"""
Main application entry point for the RIT adaptive assessment service.

This module builds the FastAPI application around the assessment
orchestrator, wiring it to the SQL-backed item bank and assessment store.

Usage:
    - Direct: python -m rit_backend.main
    - ASGI server: uvicorn rit_backend.main:app
"""

import os
import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from rit_backend import __version__
from rit_backend.api.router import (
    assessment_error_handler,
    router as assessment_router,
    validation_exception_handler,
)
from rit_backend.assessments.rit.service import AssessmentOrchestrator
from rit_backend.assessments.rit.sql_store import SqlAssessmentStore, SqlConfigurationProvider
from rit_backend.common.config import AppConfig, get_config
from rit_backend.common.db.session import create_engine_from_settings, init_models, session_factory
from rit_backend.common.exceptions import BaseError
from rit_backend.common.logger import APP_LOGGER_NAME, app_logger, configure_logger
from rit_backend.domain.items.repository import CachedItemBank
from rit_backend.domain.items.sql_repository import SqlItemBank

logger = app_logger.getChild("main")

# Seconds between sweeps for idle sessions
PURGE_INTERVAL_SECONDS = 60


async def _purge_idle_sessions_periodically(orchestrator: AssessmentOrchestrator, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await orchestrator.purge_idle_sessions()
        except Exception as e:
            logger.error(f"Idle session sweep failed: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI application lifespan context manager.

    Builds the SQL-backed orchestrator unless one was supplied to
    ``create_app``, and starts the idle session sweep when a timeout is set.
    """
    config: AppConfig = app.state.config
    engine = None

    logger.info("Application startup sequence initiated.")
    if getattr(app.state, "orchestrator", None) is None:
        engine = create_engine_from_settings(config.database)
        await init_models(engine)
        factory = session_factory(engine)
        app.state.orchestrator = AssessmentOrchestrator(
            item_bank=CachedItemBank(SqlItemBank(factory)),
            assessment_store=SqlAssessmentStore(factory),
            config_provider=SqlConfigurationProvider(factory),
            settings=config.assessment,
        )

    purge_task: Optional[asyncio.Task] = None
    if config.assessment.session_idle_timeout_minutes:
        purge_task = asyncio.create_task(
            _purge_idle_sessions_periodically(app.state.orchestrator, PURGE_INTERVAL_SECONDS)
        )
    logger.info("Application startup sequence complete.")

    yield

    logger.info("Application shutdown sequence initiated.")
    if purge_task is not None:
        purge_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await purge_task
    if engine is not None:
        await engine.dispose()
    logger.info("Application shutdown sequence complete.")


def create_app(
    orchestrator: Optional[AssessmentOrchestrator] = None,
    config: Optional[AppConfig] = None
) -> FastAPI:
    """
    Create and configure a FastAPI application instance.

    Args:
        orchestrator: Pre-built orchestrator; when omitted the lifespan builds
            one on the configured database
        config: Application configuration, defaults to the loaded config

    Returns:
        Configured FastAPI application
    """
    config = config or get_config()
    configure_logger(
        name=APP_LOGGER_NAME,
        level=config.logging.level,
        format_string=config.logging.format,
        use_json=config.logging.json_output,
        log_file=config.logging.file_path,
    )

    app = FastAPI(
        title="RIT Adaptive Assessments API",
        description="Adaptive multiple-choice assessments scored on the RIT scale",
        version=__version__,
        lifespan=lifespan
    )
    app.state.config = config
    app.state.orchestrator = orchestrator

    app.include_router(assessment_router, prefix="/api/student")
    app.add_exception_handler(BaseError, assessment_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": "Welcome to the RIT Adaptive Assessments API"}

    logger.info(f"Application created with {len(app.routes)} routes")
    return app


app = create_app()


# Entry point for running the application directly
if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 8000))
    reload_enabled = os.environ.get("RELOAD", "false").lower() == "true"

    logger.info(f"Starting server on {host}:{port} (reload: {reload_enabled})")
    uvicorn.run(
        "rit_backend.main:app",
        host=host,
        port=port,
        reload=reload_enabled,
        log_level="info"
    )
