"""
Prometheus metrics collection.
"""

from collections.abc import Mapping

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from pgjobqueue.constants import (
    METRIC_JOB_DURATION,
    METRIC_JOBS_ACQUIRED,
    METRIC_JOBS_DELETED,
    METRIC_JOBS_FINISHED,
    METRIC_JOBS_SCHEDULED,
    METRIC_QUEUE_DEPTH,
    METRIC_STATE_CONFLICTS,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the job queue.

    Collects metrics for:
    - Jobs scheduled, acquired and finished per queue
    - Rejected status transitions
    - Retention deletions
    - Job counts per queue and status (refreshed from the stats query)
    - Worker-side job execution duration
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.jobs_scheduled = Counter(
            METRIC_JOBS_SCHEDULED,
            "Total number of jobs scheduled",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_acquired = Counter(
            METRIC_JOBS_ACQUIRED,
            "Total number of jobs acquired by workers",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_finished = Counter(
            METRIC_JOBS_FINISHED,
            "Total number of jobs completed or failed",
            ["queue", "status"],
            registry=self._registry,
        )

        self.state_conflicts = Counter(
            METRIC_STATE_CONFLICTS,
            "Total number of rejected status transitions",
            ["status"],
            registry=self._registry,
        )

        self.jobs_deleted = Counter(
            METRIC_JOBS_DELETED,
            "Total number of terminal jobs removed by retention",
            registry=self._registry,
        )

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of jobs per queue and status",
            ["queue", "status"],
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Job execution duration in seconds",
            ["queue", "status"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )

    def record_job_scheduled(self, queue: str) -> None:
        """Record a job being scheduled."""
        self.jobs_scheduled.labels(queue=queue).inc()

    def record_job_acquired(self, queue: str) -> None:
        """Record a job being acquired."""
        self.jobs_acquired.labels(queue=queue).inc()

    def record_job_finished(self, queue: str, status: str) -> None:
        """Record a job reaching a terminal status."""
        self.jobs_finished.labels(queue=queue, status=status).inc()

    def record_state_conflict(self, status: str) -> None:
        """Record a rejected transition towards ``status``."""
        self.state_conflicts.labels(status=status).inc()

    def record_jobs_deleted(self, count: int) -> None:
        """Record jobs removed by retention."""
        if count > 0:
            self.jobs_deleted.inc(count)

    def record_job_duration(self, queue: str, status: str, duration_seconds: float) -> None:
        """Record how long a worker spent on a job."""
        self.job_duration.labels(queue=queue, status=status).observe(duration_seconds)

    def update_queue_depth(self, counts: Mapping[str, Mapping[str, int]]) -> None:
        """
        Replace the queue depth gauge with fresh counts.

        Args:
            counts: Mapping of queue -> status -> job count.
        """
        self.queue_depth.clear()
        for queue, by_status in counts.items():
            for status, count in by_status.items():
                self.queue_depth.labels(queue=queue, status=status).set(count)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """Get the metrics collector instance, creating it on first use."""
    if _metrics is None:
        return setup_metrics()
    return _metrics
