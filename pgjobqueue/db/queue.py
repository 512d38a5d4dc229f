"""
PostgreSQL-backed job queue.

Every public operation runs as a single short transaction. Claiming a job
relies on ``FOR UPDATE SKIP LOCKED`` so concurrent workers land on distinct
rows without blocking each other; finishing a job is a conditional update
keyed on the current status.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import timedelta
from typing import Any
from uuid import uuid4

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from pgjobqueue.constants import (
    DEFAULT_DELETE_LIMIT,
    DEFAULT_PRIORITY,
    DEFAULT_QUEUE,
    DEFAULT_SCHEMA,
    DEFAULT_TABLE,
    MAX_PRIORITY,
    MIN_PRIORITY,
    SPAN_ACQUIRE_JOB,
    SPAN_FETCH_JOB,
    SPAN_FINISH_JOB,
    SPAN_SCHEDULE_JOB,
    JobStatus,
)
from pgjobqueue.db.migrations import SchemaManager
from pgjobqueue.db.retention import RetentionCleaner
from pgjobqueue.db.schema import build_jobs_table
from pgjobqueue.db.stats import StatsAggregator
from pgjobqueue.errors import InvalidArgumentError, JobStateConflictError
from pgjobqueue.observability.metrics import get_metrics
from pgjobqueue.observability.tracing import get_tracer
from pgjobqueue.types.job import Job

logger = logging.getLogger(__name__)


def _new_job_id() -> str:
    return str(uuid4())


class JobQueue:
    """
    Job queue backed by a PostgreSQL table.

    Implements:
    - Idempotent schema initialization
    - Job scheduling with priorities
    - Job acquisition with FOR UPDATE SKIP LOCKED
    - Completion and failure as compare-and-swap on status
    - Per-queue statistics and bounded retention
    """

    max_priority = MAX_PRIORITY
    min_priority = MIN_PRIORITY

    def __init__(
        self,
        engine: AsyncEngine,
        schema: str = DEFAULT_SCHEMA,
        table: str = DEFAULT_TABLE,
        default_queue: str = DEFAULT_QUEUE,
        unique_id: Callable[[], str] | None = None,
    ):
        """
        Create a job queue.

        Args:
            engine: The async database engine.
            schema: Schema holding the jobs table.
            table: Name of the jobs table.
            default_queue: Queue used when a call does not name one.
            unique_id: Job ID generator. Defaults to random UUID4 strings.

        Raises:
            InvalidArgumentError: If ``schema`` or ``table`` is not a valid
                identifier.
        """
        self._schema_manager = SchemaManager(engine, schema=schema, table=table)
        self._engine = engine
        self._default_queue = default_queue
        self._unique_id = unique_id or _new_job_id
        self._jobs = build_jobs_table(schema, table)
        self._sessions = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._stats = StatsAggregator(self._sessions, self._jobs)
        self._retention = RetentionCleaner(self._sessions, self._jobs)

    @property
    def engine(self) -> AsyncEngine:
        """Get the engine this queue runs on."""
        return self._engine

    @property
    def default_queue(self) -> str:
        """Get the queue used when a call does not name one."""
        return self._default_queue

    @property
    def schema_manager(self) -> SchemaManager:
        """Get the schema manager for this queue's table."""
        return self._schema_manager

    async def initialize(self) -> None:
        """
        Bring the jobs table to the latest schema version.

        Safe to call on every process start, repeatedly or concurrently.
        """
        await self._schema_manager.upgrade()

    async def schema_version(self) -> str | None:
        """Get the applied schema version, or None before initialization."""
        return await self._schema_manager.current_version()

    async def schedule(
        self,
        payload: Mapping[str, Any],
        queue: str | None = None,
        priority: int = DEFAULT_PRIORITY,
    ) -> str:
        """
        Schedule a job to be executed.

        Args:
            payload: The job payload, a JSON-serializable mapping.
            queue: The queue name. Defaults to the queue's default.
            priority: Between ``min_priority`` and ``max_priority``. Jobs
                with higher priority are acquired first.

        Returns:
            The job ID.

        Raises:
            InvalidArgumentError: If the priority is out of range or the
                payload is not a mapping. Nothing is written.
        """
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise InvalidArgumentError("priority", priority, "must be an integer")
        if priority < MIN_PRIORITY or priority > MAX_PRIORITY:
            raise InvalidArgumentError(
                "priority",
                priority,
                f"must be between {MIN_PRIORITY} and {MAX_PRIORITY}",
            )
        if not isinstance(payload, Mapping):
            raise InvalidArgumentError("payload", payload, "must be a mapping")

        queue = queue if queue is not None else self._default_queue
        jobs = self._jobs
        stmt = (
            insert(jobs)
            .values(
                id=self._unique_id(),
                queue=queue,
                payload=dict(payload),
                priority=priority,
                status=JobStatus.SCHEDULED.value,
            )
            .returning(jobs.c.id)
        )

        with get_tracer().start_as_current_span(SPAN_SCHEDULE_JOB) as span:
            span.set_attribute("queue", queue)
            span.set_attribute("priority", priority)

            async with self._sessions.begin() as session:
                job_id = (await session.execute(stmt)).scalar_one()

            span.set_attribute("job_id", job_id)

        get_metrics().record_job_scheduled(queue)
        logger.info(
            "Scheduled job",
            extra={"job_id": job_id, "queue": queue, "priority": priority},
        )
        return job_id

    async def fetch(self, job_id: str) -> Job | None:
        """
        Get a job by ID.

        Args:
            job_id: The job ID.

        Returns:
            The job, or None if no such job exists.
        """
        stmt = select(self._jobs).where(self._jobs.c.id == job_id)

        with get_tracer().start_as_current_span(SPAN_FETCH_JOB) as span:
            span.set_attribute("job_id", job_id)

            async with self._sessions() as session:
                row = (await session.execute(stmt)).first()

        return None if row is None else Job.from_row(row)

    async def acquire(
        self,
        queue: str | None = None,
        worker: str | None = None,
    ) -> Job | None:
        """
        Claim the next scheduled job of a queue.

        Picks the highest priority job, oldest first among equal priorities.
        Rows locked by concurrent acquisitions are skipped rather than
        waited on, so each caller gets a distinct job.

        Args:
            queue: The queue name. Defaults to the queue's default.
            worker: Name of the claiming worker, stored on the job.

        Returns:
            The acquired job, or None if the queue has no scheduled job.
        """
        queue = queue if queue is not None else self._default_queue
        jobs = self._jobs
        [source] = JobStatus.sources_of(JobStatus.ACQUIRED)

        candidate = (
            select(jobs.c.id)
            .where(jobs.c.queue == queue, jobs.c.status == source.value)
            .order_by(jobs.c.priority.desc(), jobs.c.created_at.asc())
            .limit(1)
            .with_for_update(skip_locked=True)
            .scalar_subquery()
        )
        stmt = (
            update(jobs)
            .where(jobs.c.id == candidate, jobs.c.status == source.value)
            .values(
                status=JobStatus.ACQUIRED.value,
                worker=worker,
                updated_at=func.now(),
            )
            .returning(*jobs.c)
        )

        with get_tracer().start_as_current_span(SPAN_ACQUIRE_JOB) as span:
            span.set_attribute("queue", queue)
            if worker is not None:
                span.set_attribute("worker", worker)

            async with self._sessions.begin() as session:
                row = (await session.execute(stmt)).first()

            if row is None:
                return None
            job = Job.from_row(row)
            span.set_attribute("job_id", job.id)

        get_metrics().record_job_acquired(queue)
        logger.info(
            "Acquired job",
            extra={"job_id": job.id, "queue": queue, "worker": worker},
        )
        return job

    async def complete(self, job_id: str, result: Mapping[str, Any] | None = None) -> None:
        """
        Mark an acquired job as completed.

        Args:
            job_id: The job ID.
            result: The job result. Defaults to an empty document.

        Raises:
            JobStateConflictError: If the job does not exist or is not
                currently acquired.
        """
        await self._finish(job_id, JobStatus.COMPLETED, result)

    async def fail(self, job_id: str, result: Mapping[str, Any] | None = None) -> None:
        """
        Mark an acquired job as failed.

        Args:
            job_id: The job ID.
            result: The job result. Defaults to an empty document.

        Raises:
            JobStateConflictError: If the job does not exist or is not
                currently acquired.
        """
        await self._finish(job_id, JobStatus.FAILED, result)

    async def count_by_queue_by_status(self) -> dict[str, dict[str, int]]:
        """Get job counts as a mapping of queue -> status -> count."""
        return await self._stats.count_by_queue_by_status()

    async def delete_completed(
        self,
        ttl: timedelta,
        include_failed: bool = False,
        limit: int = DEFAULT_DELETE_LIMIT,
    ) -> int:
        """
        Delete completed jobs whose last update is older than ``ttl``.

        Args:
            ttl: Minimum age since the job's last update.
            include_failed: Also delete failed jobs.
            limit: Maximum number of jobs deleted in this transaction.

        Returns:
            Number of jobs deleted.
        """
        return await self._retention.delete_completed(
            ttl, include_failed=include_failed, limit=limit
        )

    async def _finish(
        self,
        job_id: str,
        target: JobStatus,
        result: Mapping[str, Any] | None,
    ) -> None:
        jobs = self._jobs
        sources = [status.value for status in JobStatus.sources_of(target)]
        stmt = (
            update(jobs)
            .where(jobs.c.id == job_id, jobs.c.status.in_(sources))
            .values(
                status=target.value,
                result=dict(result or {}),
                updated_at=func.now(),
            )
            .returning(jobs.c.queue)
        )

        with get_tracer().start_as_current_span(SPAN_FINISH_JOB) as span:
            span.set_attribute("job_id", job_id)
            span.set_attribute("status", target.value)

            async with self._sessions.begin() as session:
                # One returned row means exactly one row was updated
                queue = (await session.execute(stmt)).scalar_one_or_none()

        if queue is None:
            get_metrics().record_state_conflict(target.value)
            logger.warning(
                "Rejected job status transition",
                extra={"job_id": job_id, "status": target.value},
            )
            raise JobStateConflictError(job_id, target)

        get_metrics().record_job_finished(queue, target.value)
        logger.info(
            "Finished job",
            extra={"job_id": job_id, "queue": queue, "status": target.value},
        )
