"""taskpulse - task analytics service."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from taskpulse.core.config import DEFAULT_SECRET_KEY, settings
from taskpulse.core.db_client import close_connection, init_db
from taskpulse.core.logging import configure_logfire, instrument_fastapi
from taskpulse.interface.analytics_router import router as analytics_router
from taskpulse.interface.tasks_router import router as tasks_router


logger = logging.getLogger(__name__)


def validate_startup_configuration() -> None:
    """Fail fast when the token signing key is missing, or left at its default in production.

    Raises:
        ValueError: If the signing key is not usable
    """
    settings.require_credential("secret_key", "Token signing key")
    if settings.is_production and settings.secret_key == DEFAULT_SECRET_KEY:
        msg = "Token signing key is the development default. Set SECRET_KEY before running in production."
        raise ValueError(msg)
    logger.info("startup_validation", extra={"stage": "credentials", "status": "ok"})


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so startup logs are captured
    configure_logfire()

    try:
        validate_startup_configuration()
    except ValueError as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\nStartup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    await init_db()
    logger.info("Database initialized")

    yield

    await close_connection()


app = FastAPI(
    title="taskpulse",
    description="Task tracking analytics and listing API",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(analytics_router)
app.include_router(tasks_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)
