"""
Application constants.
Centralized location for all constant values used across the application.
"""

import re
from enum import StrEnum


class JobStatus(StrEnum):
    """
    Job lifecycle states.

    State transitions:
    - SCHEDULED -> ACQUIRED (claimed by a worker)
    - ACQUIRED -> COMPLETED (success)
    - ACQUIRED -> FAILED (failure)

    COMPLETED and FAILED are terminal.
    """

    SCHEDULED = "scheduled"
    ACQUIRED = "acquired"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Check if no transition leaves this status."""
        return not JOB_STATUS_TRANSITIONS[self]

    def can_transition_to(self, target: "JobStatus") -> bool:
        """Check if moving from this status to ``target`` is allowed."""
        return target in JOB_STATUS_TRANSITIONS[self]

    @classmethod
    def sources_of(cls, target: "JobStatus") -> list["JobStatus"]:
        """Get every status that may move to ``target``."""
        return [status for status in cls if status.can_transition_to(target)]


JOB_STATUS_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.SCHEDULED: frozenset({JobStatus.ACQUIRED}),
    JobStatus.ACQUIRED: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}

# Priority bounds (smallint column, higher = processed first)
MIN_PRIORITY = -32768
MAX_PRIORITY = 32767

# Default values
DEFAULT_QUEUE = "default"
DEFAULT_SCHEMA = "public"
DEFAULT_TABLE = "jobs"
DEFAULT_PRIORITY = 0
DEFAULT_DELETE_LIMIT = 1000

# Schema and table names are interpolated into DDL; the whole name must match this grammar
IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
MAX_IDENTIFIER_LENGTH = 63

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_QUEUE_DEPTH = "job_queue_depth"
METRIC_JOBS_SCHEDULED = "jobs_scheduled_total"
METRIC_JOBS_ACQUIRED = "jobs_acquired_total"
METRIC_JOBS_FINISHED = "jobs_finished_total"
METRIC_JOBS_DELETED = "jobs_deleted_total"
METRIC_STATE_CONFLICTS = "job_state_conflicts_total"
METRIC_JOB_DURATION = "job_duration_seconds"

# Trace span names
SPAN_SCHEDULE_JOB = "schedule_job"
SPAN_FETCH_JOB = "fetch_job"
SPAN_ACQUIRE_JOB = "acquire_job"
SPAN_FINISH_JOB = "finish_job"
SPAN_COUNT_JOBS = "count_jobs"
SPAN_DELETE_COMPLETED = "delete_completed_jobs"
SPAN_EXECUTE_JOB = "execute_job"
SPAN_UPGRADE_SCHEMA = "upgrade_schema"
