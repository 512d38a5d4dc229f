"""
Job-related type definitions.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from pgjobqueue.constants import JobStatus


@dataclass(frozen=True)
class Job:
    """
    In-memory projection of a row in the jobs table.

    ``worker`` is set once the job is acquired and ``result`` once it is
    completed or failed; neither is cleared afterwards.
    """

    id: str
    queue: str
    payload: dict[str, Any]
    status: JobStatus
    priority: int = 0
    worker: str | None = None
    result: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Job":
        """
        Build a job from a result row of the jobs table.

        Args:
            row: A SQLAlchemy ``Row`` or any mapping keyed by column name.

        Returns:
            The job.
        """
        data: Mapping[str, Any] = row if isinstance(row, Mapping) else row._mapping
        return cls(
            id=data["id"],
            queue=data["queue"],
            payload=data["payload"],
            status=JobStatus(data["status"]),
            priority=data["priority"],
            worker=data["worker"],
            result=data["result"],
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )

    @property
    def is_terminal(self) -> bool:
        """Check if the job has completed or failed."""
        return self.status.is_terminal

    @property
    def job_type(self) -> str | None:
        """Get the handler key carried in the payload, if any."""
        value = self.payload.get("job_type")
        return value if isinstance(value, str) else None


class JobResult(BaseModel):
    """
    Result of job execution.
    Returned by job handlers after processing.
    """

    success: bool
    output: dict[str, Any] | None = None
    error: str | None = None
    duration_ms: float | None = None

    def to_result_document(self) -> dict[str, Any]:
        """Get the JSON document stored in the job's ``result`` column."""
        if self.success:
            return dict(self.output or {})
        document: dict[str, Any] = {"error": self.error or "Unknown error"}
        if self.output:
            document["output"] = self.output
        return document
