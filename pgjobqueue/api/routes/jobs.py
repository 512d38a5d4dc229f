"""
Job management routes.

Producers schedule jobs here; remote workers can acquire, complete and
fail them with the same semantics as the in-process ``JobQueue``.
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, HTTPException, Response, status

from pgjobqueue.api.dependencies import QueueDep
from pgjobqueue.constants import API_V1_PREFIX, JobStatus
from pgjobqueue.types.api import (
    AcquireJobRequest,
    CleanupRequest,
    CleanupResponse,
    FinishJobRequest,
    FinishJobResponse,
    JobResponse,
    ScheduleJobRequest,
    ScheduleJobResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_V1_PREFIX, tags=["Jobs"])


@router.post(
    "/jobs",
    response_model=ScheduleJobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule a job",
)
async def schedule_job(request: ScheduleJobRequest, job_queue: QueueDep) -> ScheduleJobResponse:
    """
    Schedule a new job.

    Args:
        request: Payload, queue and priority of the job.
        job_queue: The job queue.

    Returns:
        ScheduleJobResponse with the new job's ID.
    """
    queue = request.queue if request.queue is not None else job_queue.default_queue
    job_id = await job_queue.schedule(
        request.payload,
        queue=queue,
        priority=request.priority,
    )
    return ScheduleJobResponse(id=job_id, queue=queue)


@router.post(
    "/jobs/cleanup",
    response_model=CleanupResponse,
    summary="Delete old terminal jobs",
    description="Delete up to `limit` completed (and optionally failed) jobs older than the TTL.",
)
async def cleanup_jobs(request: CleanupRequest, job_queue: QueueDep) -> CleanupResponse:
    """Delete one batch of expired terminal jobs."""
    deleted = await job_queue.delete_completed(
        timedelta(seconds=request.ttl_seconds),
        include_failed=request.include_failed,
        limit=request.limit,
    )
    return CleanupResponse(deleted=deleted)


@router.get(
    "/jobs/{job_id}",
    response_model=JobResponse,
    summary="Get job details",
)
async def get_job(job_id: str, job_queue: QueueDep) -> JobResponse:
    """
    Get a job by ID.

    Raises:
        HTTPException: 404 if the job does not exist.
    """
    job = await job_queue.fetch(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job {job_id} not found",
        )
    return JobResponse.from_job(job)


@router.post(
    "/queues/{queue}/acquire",
    response_model=JobResponse,
    summary="Acquire the next job of a queue",
    responses={status.HTTP_204_NO_CONTENT: {"description": "No scheduled job"}},
)
async def acquire_job(
    queue: str,
    job_queue: QueueDep,
    request: AcquireJobRequest | None = None,
) -> JobResponse | Response:
    """
    Claim the next scheduled job of ``queue``.

    Returns:
        The acquired job, or an empty 204 response when nothing is scheduled.
    """
    worker = request.worker if request is not None else None
    job = await job_queue.acquire(queue=queue, worker=worker)
    if job is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return JobResponse.from_job(job)


@router.post(
    "/jobs/{job_id}/complete",
    response_model=FinishJobResponse,
    summary="Complete an acquired job",
)
async def complete_job(
    job_id: str,
    job_queue: QueueDep,
    request: FinishJobRequest | None = None,
) -> FinishJobResponse:
    """Mark an acquired job as completed. Conflicts map to 409."""
    await job_queue.complete(job_id, request.result if request is not None else None)
    return FinishJobResponse(id=job_id, status=JobStatus.COMPLETED)


@router.post(
    "/jobs/{job_id}/fail",
    response_model=FinishJobResponse,
    summary="Fail an acquired job",
)
async def fail_job(
    job_id: str,
    job_queue: QueueDep,
    request: FinishJobRequest | None = None,
) -> FinishJobResponse:
    """Mark an acquired job as failed. Conflicts map to 409."""
    await job_queue.fail(job_id, request.result if request is not None else None)
    return FinishJobResponse(id=job_id, status=JobStatus.FAILED)
