"""
Type definitions for the job queue.
Contains the job projection, handler results and API payloads.
"""

from pgjobqueue.types.api import (
    AcquireJobRequest,
    CleanupRequest,
    CleanupResponse,
    ErrorResponse,
    FinishJobRequest,
    FinishJobResponse,
    HealthResponse,
    JobResponse,
    ScheduleJobRequest,
    ScheduleJobResponse,
    StatsResponse,
)
from pgjobqueue.types.job import Job, JobResult

__all__ = [
    # Job types
    "Job",
    "JobResult",
    # API types
    "ScheduleJobRequest",
    "ScheduleJobResponse",
    "AcquireJobRequest",
    "FinishJobRequest",
    "FinishJobResponse",
    "JobResponse",
    "StatsResponse",
    "CleanupRequest",
    "CleanupResponse",
    "HealthResponse",
    "ErrorResponse",
]
