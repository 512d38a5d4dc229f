"""
Exceptions raised by the job queue.

Store-level errors (connectivity, constraint violations) are not wrapped;
they propagate from SQLAlchemy unchanged.
"""

from pgjobqueue.constants import JobStatus


class JobQueueError(Exception):
    """Base class for job queue errors."""


class InvalidArgumentError(JobQueueError, ValueError):
    """
    Raised when an argument is rejected before anything is written.

    Covers malformed schema/table identifiers, out-of-range priorities,
    non-mapping payloads and bad retention parameters.
    """

    def __init__(self, name: str, value: object, message: str):
        self.name = name
        self.value = value
        super().__init__(f"Invalid value for {name!r} ({value!r}): {message}")


class JobStateConflictError(JobQueueError):
    """
    Raised when a job cannot make the requested status transition.

    The job either does not exist or is not currently in a status that
    may move to ``target``.
    """

    def __init__(self, job_id: str, target: JobStatus):
        self.job_id = job_id
        self.target = target
        super().__init__(
            f"Job not found or not in {JobStatus.ACQUIRED.value} state: {job_id} "
            f"(requested {target.value})"
        )
