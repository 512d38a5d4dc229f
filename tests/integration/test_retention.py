"""
Integration tests for deleting old terminal jobs.
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncEngine

from pgjobqueue.constants import JobStatus
from pgjobqueue.db.queue import JobQueue
from pgjobqueue.db.schema import build_jobs_table


async def age_jobs(engine: AsyncEngine, schema: str, age: timedelta) -> None:
    """Move every job's last update ``age`` into the past."""
    jobs = build_jobs_table(schema, "jobs")
    async with engine.begin() as conn:
        await conn.execute(update(jobs).values(updated_at=func.now() - age))


async def finish_jobs(queue: JobQueue, completed: int, failed: int) -> None:
    for n in range(completed + failed):
        await queue.schedule({"n": n})
        job = await queue.acquire()
        if n < completed:
            await queue.complete(job.id)
        else:
            await queue.fail(job.id)


class TestDeleteCompleted:
    """Tests for JobQueue.delete_completed."""

    @pytest.mark.asyncio
    async def test_deletes_only_expired_completed_jobs(
        self, job_queue: JobQueue, async_engine: AsyncEngine, schema: str
    ):
        await finish_jobs(job_queue, completed=3, failed=2)
        await age_jobs(async_engine, schema, timedelta(hours=2))

        assert await job_queue.delete_completed(timedelta(hours=3)) == 0
        assert await job_queue.delete_completed(timedelta(hours=1)) == 3

        assert await job_queue.count_by_queue_by_status() == {"default": {"failed": 2}}

    @pytest.mark.asyncio
    async def test_include_failed(
        self, job_queue: JobQueue, async_engine: AsyncEngine, schema: str
    ):
        await finish_jobs(job_queue, completed=3, failed=2)
        await age_jobs(async_engine, schema, timedelta(hours=2))

        deleted = await job_queue.delete_completed(timedelta(hours=1), include_failed=True)

        assert deleted == 5
        assert await job_queue.count_by_queue_by_status() == {}

    @pytest.mark.asyncio
    async def test_never_deletes_active_jobs(
        self, job_queue: JobQueue, async_engine: AsyncEngine, schema: str
    ):
        """Test that scheduled and acquired jobs survive any ttl."""
        await job_queue.schedule({"n": 1})
        await job_queue.schedule({"n": 2})
        acquired = await job_queue.acquire()
        await age_jobs(async_engine, schema, timedelta(days=30))

        assert await job_queue.delete_completed(timedelta(0), include_failed=True) == 0

        job = await job_queue.fetch(acquired.id)
        assert job.status == JobStatus.ACQUIRED

    @pytest.mark.asyncio
    async def test_limit_bounds_each_call(
        self, job_queue: JobQueue, async_engine: AsyncEngine, schema: str
    ):
        await finish_jobs(job_queue, completed=5, failed=0)
        await age_jobs(async_engine, schema, timedelta(hours=2))

        batches = [
            await job_queue.delete_completed(timedelta(hours=1), limit=2) for _ in range(4)
        ]

        assert batches == [2, 2, 1, 0]

    @pytest.mark.asyncio
    async def test_zero_ttl_deletes_recent_jobs(self, job_queue: JobQueue):
        await finish_jobs(job_queue, completed=1, failed=0)

        assert await job_queue.delete_completed(timedelta(0)) == 1
