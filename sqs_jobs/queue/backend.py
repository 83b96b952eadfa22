"""
SQS queue backend: push, delay, pop, size and clear by queue name.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqs_jobs.config import QueueConfig
from sqs_jobs.constants import SPAN_ENQUEUE_JOB
from sqs_jobs.observability.metrics import get_metrics
from sqs_jobs.observability.tracing import create_span
from sqs_jobs.queue.addressing import QueueAddressResolver
from sqs_jobs.queue.client import QueueClient
from sqs_jobs.queue.contracts import JobRunner
from sqs_jobs.queue.job import SqsJob
from sqs_jobs.types.job import JobPayload, JobRecord, queue_name_from_source

logger = logging.getLogger(__name__)


def seconds_until(delay: int | timedelta | datetime) -> int:
    """
    Convert a delay into whole seconds from now, never negative.

    Naive datetimes are taken as UTC.
    """
    if isinstance(delay, datetime):
        target = delay if delay.tzinfo else delay.replace(tzinfo=timezone.utc)
        delay = target - datetime.now(timezone.utc)
    if isinstance(delay, timedelta):
        return max(0, int(delay.total_seconds()))
    return max(0, int(delay))


class SqsQueue:
    """
    Queue backend for Amazon SQS.

    Queue names are resolved through the injected resolver, so a configured
    prefix avoids broker lookups entirely.
    """

    def __init__(
        self,
        client: QueueClient,
        config: QueueConfig,
        resolver: QueueAddressResolver | None = None,
        container: JobRunner | None = None,
    ):
        """
        Initialize the backend.

        Args:
            client: The queue client.
            config: The immutable queue configuration.
            resolver: Address resolver. Defaults to one that caches broker lookups.
            container: Runs jobs popped from the queue.
        """
        self._client = client
        self._config = config
        self._resolver = resolver or QueueAddressResolver(config, client, cache_lookups=True)
        self._container = container
        self._metrics = get_metrics()

    @property
    def resolver(self) -> QueueAddressResolver:
        return self._resolver

    @property
    def connection_name(self) -> str:
        return self._config.connection_name

    def resolve_address(self, queue: str | None = None) -> str:
        """Get the full queue URL for a queue name (or the default queue)."""
        return self._resolver.resolve(queue)

    def create_payload(
        self,
        job: str,
        data: dict[str, Any] | None = None,
        max_tries: int | None = None,
        timeout: int | None = None,
    ) -> str:
        """Build the JSON message body for a named job."""
        return JobPayload(
            display_name=job,
            job=job,
            max_tries=max_tries,
            timeout=timeout,
            data=data or {},
        ).to_body()

    def push(self, job: str, data: dict[str, Any] | None = None, queue: str | None = None) -> str:
        """
        Push a new job onto the queue.

        Args:
            job: Name of the registered job handler.
            data: Handler arguments.
            queue: Target queue. Defaults to the configured queue.

        Returns:
            The message id.
        """
        return self.push_raw(self.create_payload(job, data), queue)

    def push_raw(self, payload: str, queue: str | None = None, **options: Any) -> str:
        """
        Push a raw payload onto the queue.

        Args:
            payload: The message body.
            queue: Target queue. Defaults to the configured queue.
            **options: Extra send options (delay_seconds, MessageAttributes, ...).

        Returns:
            The message id.
        """
        address = self.resolve_address(queue)
        name = queue_name_from_source(address)

        with create_span(SPAN_ENQUEUE_JOB, queue=name):
            message_id = self._client.enqueue(address, payload, **options)

        self._metrics.record_job_enqueued(name)
        logger.info(
            "Job enqueued",
            extra={
                "message_id": message_id,
                "queue": name,
                "delay": options.get("delay_seconds", 0),
            },
        )
        return message_id

    def later(
        self,
        delay: int | timedelta | datetime,
        job: str,
        data: dict[str, Any] | None = None,
        queue: str | None = None,
    ) -> str:
        """
        Push a new job onto the queue after a delay.

        Args:
            delay: Seconds, a timedelta, or the datetime the job becomes visible.
            job: Name of the registered job handler.
            data: Handler arguments.
            queue: Target queue.

        Returns:
            The message id.
        """
        return self.push_raw(
            self.create_payload(job, data),
            queue,
            delay_seconds=seconds_until(delay),
        )

    def pop(self, queue: str | None = None) -> SqsJob | None:
        """
        Pop the next job off of the queue.

        Returns:
            The job, or None when nothing is visible.
        """
        address = self.resolve_address(queue)
        message = next(self._client.receive(address, max_messages=1), None)
        if message is None:
            return None

        return SqsJob(
            JobRecord.from_message(message, address),
            self._client,
            self._resolver,
            container=self._container,
            connection_name=self.connection_name,
        )

    def size(self, queue: str | None = None) -> int:
        """Get the approximate size of the queue."""
        address = self.resolve_address(queue)
        depth = self._client.read_approximate_count(address)
        self._metrics.set_queue_depth(queue_name_from_source(address), depth)
        return depth

    def clear(self, queue: str) -> int:
        """
        Delete all of the jobs from the queue.

        Returns:
            The approximate size read just before the purge.
        """
        size = self.size(queue)
        self._client.purge(self.resolve_address(queue))
        logger.info("Queue cleared", extra={"queue": queue, "approximate_size": size})
        return size
