"""
Worker process for executing jobs.

The worker acquires one job at a time from its queue, runs the matching
handler and records the outcome with ``complete`` or ``fail``. No
transaction is held while the handler runs.
"""

import asyncio
import logging
import os
import signal

from pgjobqueue.config import get_settings
from pgjobqueue.constants import SPAN_EXECUTE_JOB, JobStatus
from pgjobqueue.db import close_db, get_engine, init_db
from pgjobqueue.db.queue import JobQueue
from pgjobqueue.errors import JobStateConflictError
from pgjobqueue.observability.logging import bind_job_context, clear_job_context, setup_logging
from pgjobqueue.observability.metrics import get_metrics
from pgjobqueue.observability.tracing import get_tracer, instrument_sqlalchemy, setup_tracing
from pgjobqueue.types.job import Job
from pgjobqueue.worker.handlers import execute_job

logger = logging.getLogger(__name__)


class Worker:
    """
    Job worker that polls one queue and executes its jobs.

    Features:
    - Exclusive acquisition through the queue's skip-locked claim
    - Handler dispatch on ``payload["job_type"]``
    - Graceful shutdown on SIGTERM/SIGINT
    """

    def __init__(
        self,
        job_queue: JobQueue,
        worker_id: str | None = None,
        queue_name: str | None = None,
        poll_interval: float | None = None,
    ):
        """
        Initialize the worker.

        Args:
            job_queue: The job queue to consume.
            worker_id: Worker name stored on acquired jobs. Defaults to
                hostname + PID.
            queue_name: Queue to consume. Defaults to the job queue's
                default queue.
            poll_interval: Seconds between polls when the queue is empty.
        """
        settings = get_settings()

        self.job_queue = job_queue
        self.worker_id = worker_id or settings.worker_id or f"{os.uname().nodename}-{os.getpid()}"
        self.queue_name = queue_name or settings.worker_queue or job_queue.default_queue
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.worker_poll_interval_seconds
        )

        self._running = False
        self._metrics = get_metrics()

    async def start(self) -> None:
        """Run the polling loop until ``stop`` is called."""
        logger.info(
            "Worker starting",
            extra={"worker_id": self.worker_id, "queue": self.queue_name},
        )
        self._running = True

        while self._running:
            try:
                processed = await self.run_once()
                if not processed:
                    await asyncio.sleep(self.poll_interval)
            except Exception as e:
                logger.exception(
                    f"Error in worker loop: {e}",
                    extra={"worker_id": self.worker_id},
                )
                await asyncio.sleep(self.poll_interval)

        logger.info("Worker stopped", extra={"worker_id": self.worker_id})

    async def stop(self) -> None:
        """Stop the worker after the current job."""
        logger.info("Worker stopping", extra={"worker_id": self.worker_id})
        self._running = False

    async def run_once(self) -> bool:
        """
        Acquire and process at most one job.

        Returns:
            True if a job was processed, False if the queue was empty.
        """
        job = await self.job_queue.acquire(queue=self.queue_name, worker=self.worker_id)
        if job is None:
            return False

        bind_job_context(job.id, job.queue, self.worker_id)
        try:
            await self._execute_job(job)
        finally:
            clear_job_context()
        return True

    async def _execute_job(self, job: Job) -> None:
        with get_tracer().start_as_current_span(SPAN_EXECUTE_JOB) as span:
            span.set_attribute("job_id", job.id)
            span.set_attribute("queue", job.queue)
            span.set_attribute("worker", self.worker_id)

            result = await execute_job(job)

        status = JobStatus.COMPLETED if result.success else JobStatus.FAILED
        try:
            if result.success:
                await self.job_queue.complete(job.id, result.to_result_document())
            else:
                await self.job_queue.fail(job.id, result.to_result_document())
        except JobStateConflictError:
            # Someone else finished the job while the handler ran
            logger.warning(
                "Job was finished by another caller",
                extra={"job_id": job.id, "status": status.value},
            )
            return

        self._metrics.record_job_duration(
            job.queue, status.value, (result.duration_ms or 0.0) / 1000
        )
        if result.success:
            logger.info(
                "Job completed successfully",
                extra={"job_id": job.id, "duration_ms": result.duration_ms},
            )
        else:
            logger.warning(
                "Job failed",
                extra={"job_id": job.id, "error": result.error},
            )


async def run_async() -> None:
    """Run the worker asynchronously."""
    settings = get_settings()
    setup_logging()
    if settings.otel_enabled:
        setup_tracing()
        instrument_sqlalchemy(get_engine())

    job_queue = await init_db()
    worker = Worker(job_queue)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(worker.stop()))

    try:
        await worker.start()
    finally:
        await close_db()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
