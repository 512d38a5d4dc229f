"""
API request and response type definitions.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from pgjobqueue.constants import (
    DEFAULT_DELETE_LIMIT,
    DEFAULT_PRIORITY,
    MAX_PRIORITY,
    MIN_PRIORITY,
    JobStatus,
)
from pgjobqueue.types.job import Job


class ScheduleJobRequest(BaseModel):
    """Request body for scheduling a new job."""

    payload: dict[str, Any] = Field(..., description="Job payload data")
    queue: str | None = Field(
        default=None, min_length=1, description="Queue name; the default queue if omitted"
    )
    priority: int = Field(
        default=DEFAULT_PRIORITY,
        ge=MIN_PRIORITY,
        le=MAX_PRIORITY,
        description="Higher priority jobs are acquired first",
    )


class ScheduleJobResponse(BaseModel):
    """Response body after scheduling a job."""

    id: str
    queue: str
    status: JobStatus = JobStatus.SCHEDULED
    message: str = "Job scheduled successfully"


class AcquireJobRequest(BaseModel):
    """Request body for acquiring a job."""

    worker: str | None = Field(default=None, description="Name of the claiming worker")


class FinishJobRequest(BaseModel):
    """Request body for completing or failing a job."""

    result: dict[str, Any] = Field(default_factory=dict, description="Job result data")


class FinishJobResponse(BaseModel):
    """Response body after completing or failing a job."""

    id: str
    status: JobStatus


class JobResponse(BaseModel):
    """Full job details response."""

    id: str
    queue: str
    payload: dict[str, Any]
    status: JobStatus
    priority: int
    worker: str | None
    result: dict[str, Any] | None
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_job(cls, job: Job) -> "JobResponse":
        """Convert a job to a response."""
        return cls(
            id=job.id,
            queue=job.queue,
            payload=job.payload,
            status=job.status,
            priority=job.priority,
            worker=job.worker,
            result=job.result,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )


class StatsResponse(BaseModel):
    """Job counts per queue and status."""

    queues: dict[str, dict[str, int]]


class CleanupRequest(BaseModel):
    """Request body for deleting old terminal jobs."""

    ttl_seconds: float = Field(..., ge=0, description="Minimum age since last update")
    include_failed: bool = Field(default=False, description="Also delete failed jobs")
    limit: int = Field(default=DEFAULT_DELETE_LIMIT, ge=1, description="Maximum jobs deleted")


class CleanupResponse(BaseModel):
    """Response body after deleting old terminal jobs."""

    deleted: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    schema_version: str | None = None
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    detail: str | None = None
