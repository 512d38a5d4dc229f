"""
Retention cleaner for terminal jobs.

The cleaner runs periodically to delete completed (and optionally failed)
jobs past their time-to-live, in bounded batches, and refreshes the queue
depth gauge from the per-queue counts.
"""

import asyncio
import logging
import signal
from datetime import timedelta

from pgjobqueue.config import get_settings
from pgjobqueue.db import close_db, get_engine, init_db
from pgjobqueue.db.queue import JobQueue
from pgjobqueue.observability.logging import setup_logging
from pgjobqueue.observability.metrics import get_metrics
from pgjobqueue.observability.tracing import instrument_sqlalchemy, setup_tracing

logger = logging.getLogger(__name__)


class Cleaner:
    """
    Periodic housekeeping for a job queue.

    Each sweep:
    1. Deletes expired terminal jobs, ``batch_limit`` rows per transaction,
       until a batch comes back short
    2. Publishes job counts per queue and status as metrics
    """

    def __init__(
        self,
        job_queue: JobQueue,
        interval_seconds: int | None = None,
        ttl: timedelta | None = None,
        include_failed: bool | None = None,
        batch_limit: int | None = None,
    ):
        """
        Initialize the cleaner.

        Args:
            job_queue: The job queue to clean.
            interval_seconds: Seconds between sweeps.
            ttl: Minimum age of a terminal job before it is deleted.
            include_failed: Also delete failed jobs.
            batch_limit: Maximum jobs deleted per transaction.
        """
        settings = get_settings()
        self.job_queue = job_queue
        self.interval = interval_seconds or settings.cleaner_interval_seconds
        self.ttl = ttl if ttl is not None else timedelta(seconds=settings.cleaner_ttl_seconds)
        self.include_failed = (
            include_failed if include_failed is not None else settings.cleaner_include_failed
        )
        self.batch_limit = batch_limit or settings.cleaner_batch_limit
        self._running = False
        self._metrics = get_metrics()

    async def start(self) -> None:
        """Start the cleaner loop."""
        logger.info(f"Cleaner starting with interval {self.interval}s")
        self._running = True

        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.exception(f"Error in cleaner loop: {e}")

            await asyncio.sleep(self.interval)

        logger.info("Cleaner stopped")

    async def stop(self) -> None:
        """Stop the cleaner."""
        logger.info("Cleaner stopping")
        self._running = False

    async def run_once(self) -> int:
        """
        Run a single sweep.

        Returns:
            Number of jobs deleted.
        """
        total = 0
        while True:
            deleted = await self.job_queue.delete_completed(
                self.ttl,
                include_failed=self.include_failed,
                limit=self.batch_limit,
            )
            total += deleted
            if deleted < self.batch_limit:
                break

        counts = await self.job_queue.count_by_queue_by_status()
        self._metrics.update_queue_depth(counts)

        if total > 0:
            logger.info(f"Cleaner removed {total} expired jobs")
        return total


async def run_async() -> None:
    """Run the cleaner asynchronously."""
    settings = get_settings()
    setup_logging()
    if settings.otel_enabled:
        setup_tracing()
        instrument_sqlalchemy(get_engine())

    job_queue = await init_db()

    cleaner = Cleaner(job_queue)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(cleaner.stop()))

    try:
        await cleaner.start()
    finally:
        await close_db()


def run() -> None:
    """Run the cleaner."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
