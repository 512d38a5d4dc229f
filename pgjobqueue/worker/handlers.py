"""
Job handler registry and built-in handlers.

A job's handler is chosen by the ``job_type`` key of its payload. Handlers
receive the acquired job and return a ``JobResult``; the worker stores the
result document on the job when completing or failing it.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from pgjobqueue.types.job import Job, JobResult

logger = logging.getLogger(__name__)

JobHandler = Callable[[Job], Awaitable[JobResult]]

_handlers: dict[str, JobHandler] = {}


def register_handler(job_type: str) -> Callable[[JobHandler], JobHandler]:
    """
    Decorator to register a job handler.

    Args:
        job_type: The ``job_type`` payload value this handler processes.

    Returns:
        Decorator function.

    Example:
        @register_handler("send_email")
        async def handle_send_email(job: Job) -> JobResult:
            ...
    """
    def decorator(handler: JobHandler) -> JobHandler:
        _handlers[job_type] = handler
        logger.debug("Registered job handler", extra={"job_type": job_type})
        return handler
    return decorator


def get_handler(job_type: str) -> JobHandler | None:
    """Get the handler for a job type, or None if none is registered."""
    return _handlers.get(job_type)


def list_handlers() -> list[str]:
    """List all registered job types."""
    return sorted(_handlers)


async def execute_job(job: Job) -> JobResult:
    """
    Run the handler registered for a job.

    Handler exceptions and missing handlers are reported as failed results
    rather than raised, so the worker can always record an outcome.

    Args:
        job: The acquired job.

    Returns:
        The handler's result, with ``duration_ms`` filled in.
    """
    job_type = job.job_type
    handler = get_handler(job_type) if job_type is not None else None
    if handler is None:
        return JobResult(
            success=False,
            error=f"No handler registered for job type: {job_type}",
        )

    start = time.perf_counter()
    try:
        result = await handler(job)
    except Exception as e:
        logger.exception("Job handler raised", extra={"job_id": job.id, "job_type": job_type})
        result = JobResult(success=False, error=f"{type(e).__name__}: {e}")

    result.duration_ms = (time.perf_counter() - start) * 1000
    return result


@register_handler("echo")
async def handle_echo(job: Job) -> JobResult:
    """Return the payload's ``data`` unchanged."""
    return JobResult(success=True, output={"echo": job.payload.get("data")})


@register_handler("sleep")
async def handle_sleep(job: Job) -> JobResult:
    """
    Sleep for ``data.duration_seconds`` (default 1).
    """
    duration = float(job.payload.get("data", {}).get("duration_seconds", 1))
    await asyncio.sleep(duration)
    return JobResult(success=True, output={"slept_for": duration})


@register_handler("failing_job")
async def handle_failing_job(job: Job) -> JobResult:
    """Always fail; used to exercise the failure path."""
    return JobResult(
        success=False,
        error=job.payload.get("data", {}).get("error", "Intentional failure"),
    )
