"""
Health, readiness, liveness and metrics endpoints.

Reading the applied schema version doubles as the database probe: it needs
a working connection and tells whether ``initialize()`` has run.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError

from pgjobqueue import __version__
from pgjobqueue.api.dependencies import QueueDep
from pgjobqueue.db.queue import JobQueue
from pgjobqueue.observability.metrics import get_metrics
from pgjobqueue.types.api import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


async def _probe(job_queue: JobQueue) -> tuple[bool, str | None]:
    """Get whether the database answered, and the schema version it reported."""
    try:
        return True, await job_queue.schema_version()
    except (SQLAlchemyError, OSError):
        logger.warning("Database probe failed", exc_info=True)
        return False, None


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Report database reachability and the applied schema version.",
)
async def health_check(job_queue: QueueDep) -> HealthResponse:
    """
    Report service health.

    The service is ``healthy`` when the database answers and the jobs table
    has been initialized, ``degraded`` otherwise.
    """
    reachable, schema_version = await _probe(job_queue)
    return HealthResponse(
        status="healthy" if reachable and schema_version is not None else "degraded",
        version=__version__,
        database="healthy" if reachable else "unhealthy",
        schema_version=schema_version,
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/ready", summary="Readiness probe")
async def readiness_check(job_queue: QueueDep) -> JSONResponse:
    """Return 200 once the schema is initialized, 503 before that."""
    _, schema_version = await _probe(job_queue)
    ready = schema_version is not None
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"ready": ready},
    )


@router.get("/live", summary="Liveness probe")
async def liveness_check() -> dict:
    """Return 200 while the process is serving requests."""
    return {"alive": True}


@router.get("/metrics", summary="Prometheus metrics")
async def metrics() -> Response:
    """Expose Prometheus metrics in text format."""
    collector = get_metrics()
    return Response(content=collector.get_metrics(), media_type=collector.get_content_type())
