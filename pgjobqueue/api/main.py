"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from pgjobqueue import __version__
from pgjobqueue.api.routes import health_router, jobs_router, stats_router
from pgjobqueue.config import get_settings
from pgjobqueue.db import close_db, get_engine, init_db
from pgjobqueue.db.queue import JobQueue
from pgjobqueue.errors import InvalidArgumentError, JobStateConflictError
from pgjobqueue.observability.logging import setup_logging
from pgjobqueue.observability.metrics import setup_metrics
from pgjobqueue.observability.tracing import (
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_tracing,
)
from pgjobqueue.types.api import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Initializes the configured queue's schema on startup unless the app
    was created around an existing queue.
    """
    settings = get_settings()
    setup_logging()
    setup_metrics()

    owns_queue = app.state.job_queue is None
    if owns_queue:
        if settings.otel_enabled:
            setup_tracing()
            instrument_sqlalchemy(get_engine())
        app.state.job_queue = await init_db()

    logger.info("Application started")

    yield

    if owns_queue:
        await close_db()
        app.state.job_queue = None
    logger.info("Application shutdown")


async def invalid_argument_handler(request: Request, exc: InvalidArgumentError) -> JSONResponse:
    """Map rejected arguments to 400."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error="invalid_argument", detail=str(exc)).model_dump(),
    )


async def state_conflict_handler(request: Request, exc: JobStateConflictError) -> JSONResponse:
    """Map rejected status transitions to 409."""
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=ErrorResponse(error="state_conflict", detail=str(exc)).model_dump(),
    )


def create_app(job_queue: JobQueue | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        job_queue: Queue to serve. When omitted, the queue configured by
            the settings is created and initialized at startup.

    Returns:
        FastAPI: The configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Job Queue API",
        description="PostgreSQL job queue with skip-locked acquisition",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.job_queue = job_queue

    app.add_exception_handler(InvalidArgumentError, invalid_argument_handler)
    app.add_exception_handler(JobStateConflictError, state_conflict_handler)

    app.include_router(health_router)
    app.include_router(jobs_router)
    app.include_router(stats_router)

    if settings.otel_enabled:
        instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
    settings = get_settings()
    uvicorn.run(
        "pgjobqueue.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    run()
