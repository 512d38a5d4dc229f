"""
PostgreSQL job queue

A persistent multi-producer/multi-consumer job queue. Workers claim jobs
with FOR UPDATE SKIP LOCKED, so no job is handed to two workers.
"""

__version__ = "1.0.0"

from pgjobqueue.constants import MAX_PRIORITY, MIN_PRIORITY, JobStatus  # noqa: E402
from pgjobqueue.db.migrations import Migration, SchemaManager  # noqa: E402
from pgjobqueue.db.queue import JobQueue  # noqa: E402
from pgjobqueue.errors import (  # noqa: E402
    InvalidArgumentError,
    JobQueueError,
    JobStateConflictError,
)
from pgjobqueue.types.job import Job  # noqa: E402

__all__ = [
    "__version__",
    "JobQueue",
    "Job",
    "JobStatus",
    "MIN_PRIORITY",
    "MAX_PRIORITY",
    "Migration",
    "SchemaManager",
    "JobQueueError",
    "InvalidArgumentError",
    "JobStateConflictError",
]
