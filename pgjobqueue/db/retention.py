"""
Retention for terminal jobs.
"""

import logging
from datetime import timedelta

from sqlalchemy import Table, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pgjobqueue.constants import DEFAULT_DELETE_LIMIT, SPAN_DELETE_COMPLETED, JobStatus
from pgjobqueue.errors import InvalidArgumentError
from pgjobqueue.observability.metrics import get_metrics
from pgjobqueue.observability.tracing import get_tracer

logger = logging.getLogger(__name__)


class RetentionCleaner:
    """
    Deletes completed (and optionally failed) jobs past a time-to-live.

    Each call removes at most ``limit`` rows in one transaction; callers
    with a large backlog invoke it repeatedly.
    """

    def __init__(self, sessions: async_sessionmaker[AsyncSession], jobs: Table):
        """
        Initialize the cleaner.

        Args:
            sessions: Session factory bound to the queue's engine.
            jobs: The jobs table.
        """
        self._sessions = sessions
        self._jobs = jobs

    async def delete_completed(
        self,
        ttl: timedelta,
        include_failed: bool = False,
        limit: int = DEFAULT_DELETE_LIMIT,
    ) -> int:
        """
        Delete terminal jobs not updated within ``ttl``.

        Args:
            ttl: Minimum age since the job's last update.
            include_failed: Also delete failed jobs.
            limit: Maximum number of jobs deleted by this call.

        Returns:
            Number of jobs deleted.

        Raises:
            InvalidArgumentError: If ``ttl`` is negative or ``limit`` is not
                a positive integer.
        """
        if not isinstance(ttl, timedelta) or ttl < timedelta(0):
            raise InvalidArgumentError("ttl", ttl, "must be a non-negative timedelta")
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidArgumentError("limit", limit, "must be a positive integer")

        statuses = [JobStatus.COMPLETED.value]
        if include_failed:
            statuses.append(JobStatus.FAILED.value)

        jobs = self._jobs
        expired = (
            select(jobs.c.id)
            .where(
                jobs.c.status.in_(statuses),
                jobs.c.updated_at < func.now() - ttl,
            )
            .limit(limit)
        )
        stmt = delete(jobs).where(jobs.c.id.in_(expired))

        with get_tracer().start_as_current_span(SPAN_DELETE_COMPLETED) as span:
            span.set_attribute("include_failed", include_failed)
            span.set_attribute("limit", limit)

            async with self._sessions.begin() as session:
                result = await session.execute(stmt)
                deleted = result.rowcount

            span.set_attribute("deleted", deleted)

        get_metrics().record_jobs_deleted(deleted)
        if deleted > 0:
            logger.info(
                f"Deleted {deleted} terminal jobs",
                extra={"statuses": statuses, "ttl_seconds": ttl.total_seconds()},
            )
        return deleted
