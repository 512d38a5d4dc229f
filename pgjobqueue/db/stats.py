"""
Aggregate job counts for monitoring.
"""

from collections.abc import Iterable

from sqlalchemy import Table, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pgjobqueue.constants import SPAN_COUNT_JOBS
from pgjobqueue.observability.tracing import get_tracer


def group_counts(rows: Iterable[tuple[str, str, int]]) -> dict[str, dict[str, int]]:
    """
    Reshape ``(queue, status, count)`` rows into a nested mapping.

    Args:
        rows: Grouped count rows.

    Returns:
        Mapping of queue -> status -> count.
    """
    counts: dict[str, dict[str, int]] = {}
    for queue, status, count in rows:
        counts.setdefault(queue, {})[status] = count
    return counts


class StatsAggregator:
    """Read-only aggregation over the jobs table."""

    def __init__(self, sessions: async_sessionmaker[AsyncSession], jobs: Table):
        """
        Initialize the aggregator.

        Args:
            sessions: Session factory bound to the queue's engine.
            jobs: The jobs table.
        """
        self._sessions = sessions
        self._jobs = jobs

    async def count_by_queue_by_status(self) -> dict[str, dict[str, int]]:
        """
        Count jobs grouped by queue and status.

        Returns:
            Mapping of queue -> status -> job count. Queues and statuses
            without jobs are absent.
        """
        jobs = self._jobs
        stmt = (
            select(jobs.c.queue, jobs.c.status, func.count().label("job_count"))
            .group_by(jobs.c.queue, jobs.c.status)
            .order_by(jobs.c.queue, jobs.c.status)
        )

        with get_tracer().start_as_current_span(SPAN_COUNT_JOBS):
            async with self._sessions() as session:
                result = await session.execute(stmt)
                return group_counts(
                    (row.queue, row.status, row.job_count) for row in result
                )
