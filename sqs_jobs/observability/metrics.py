"""
Prometheus metrics collection.
"""

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from sqs_jobs.constants import (
    METRIC_BATCHES_ABORTED,
    METRIC_JOB_DURATION,
    METRIC_JOBS_DELETED,
    METRIC_JOBS_ENQUEUED,
    METRIC_JOBS_FAILED,
    METRIC_JOBS_RECEIVED,
    METRIC_JOBS_RELEASED,
    METRIC_QUEUE_DEPTH,
    METRIC_STALE_RECEIPTS,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the queue layer.

    Collects metrics for:
    - Job enqueue, receipt, deletion, release and failure
    - Stale receipt handles tolerated after lease expiry
    - Aborted delivery batches
    - Handler duration
    - Approximate queue depth
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.jobs_enqueued = Counter(
            METRIC_JOBS_ENQUEUED,
            "Total number of jobs enqueued",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_received = Counter(
            METRIC_JOBS_RECEIVED,
            "Total number of job deliveries handed to handlers",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_deleted = Counter(
            METRIC_JOBS_DELETED,
            "Total number of jobs deleted from the queue",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_released = Counter(
            METRIC_JOBS_RELEASED,
            "Total number of jobs released back to the queue",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_failed = Counter(
            METRIC_JOBS_FAILED,
            "Total number of jobs whose handler raised",
            ["queue"],
            registry=self._registry,
        )

        self.stale_receipts = Counter(
            METRIC_STALE_RECEIPTS,
            "Total number of delete/visibility calls rejected for a stale receipt handle",
            ["queue", "operation"],
            registry=self._registry,
        )

        self.batches_aborted = Counter(
            METRIC_BATCHES_ABORTED,
            "Total number of delivery batches aborted by a handler error",
            ["queue"],
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Handler execution duration in seconds",
            ["queue", "status"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Approximate number of visible messages in the queue",
            ["queue"],
            registry=self._registry,
        )

    def record_job_enqueued(self, queue: str) -> None:
        """Record a job enqueue."""
        self.jobs_enqueued.labels(queue=queue).inc()

    def record_job_received(self, queue: str) -> None:
        """Record a job delivery."""
        self.jobs_received.labels(queue=queue).inc()

    def record_job_deleted(self, queue: str) -> None:
        self.jobs_deleted.labels(queue=queue).inc()

    def record_job_released(self, queue: str) -> None:
        self.jobs_released.labels(queue=queue).inc()

    def record_job_failed(self, queue: str) -> None:
        self.jobs_failed.labels(queue=queue).inc()

    def record_stale_receipt(self, queue: str, operation: str) -> None:
        """Record a receipt handle rejected by the broker."""
        self.stale_receipts.labels(queue=queue, operation=operation).inc()

    def record_batch_aborted(self, queue: str) -> None:
        self.batches_aborted.labels(queue=queue).inc()

    def record_job_duration(self, queue: str, status: str, duration_seconds: float) -> None:
        """Record how long a handler ran."""
        self.job_duration.labels(queue=queue, status=status).observe(duration_seconds)

    def set_queue_depth(self, queue: str, depth: int) -> None:
        """Set the queue depth gauge."""
        self.queue_depth.labels(queue=queue).set(depth)

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)


def setup_metrics(registry: CollectorRegistry | None = None) -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Args:
        registry: Optional custom registry for the first setup.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector(registry)
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
