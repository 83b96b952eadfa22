"""
Lifecycle controller for one delivered SQS job.

Handlers settle a job by calling ``delete()`` or ``release()`` before they
return; the dispatcher never acknowledges on their behalf.
"""

import json
import logging
from typing import Any

from sqs_jobs.constants import (
    ATTR_RECEIVE_COUNT,
    DEFAULT_CONNECTION_NAME,
    SPAN_DELETE_JOB,
    SPAN_RELEASE_JOB,
    JobState,
)
from sqs_jobs.exceptions import (
    ConfigurationError,
    InvalidReceiptHandle,
    MalformedAttributeError,
    MalformedMessageError,
)
from sqs_jobs.observability.metrics import get_metrics
from sqs_jobs.observability.tracing import create_span
from sqs_jobs.queue.addressing import QueueAddressResolver
from sqs_jobs.queue.client import QueueClient
from sqs_jobs.queue.contracts import JobRunner
from sqs_jobs.types.job import JobRecord

logger = logging.getLogger(__name__)


class SqsJob:
    """
    A delivered job plus the operations that decide its fate.

    Lifecycle:
    - pending until the handler calls delete() or release()
    - delete() removes the message from the queue
    - release(delay) makes it visible again after ``delay`` seconds
    - fail() only records the failure; the message stays leased and the
      broker redelivers it once the visibility timeout runs out
    """

    def __init__(
        self,
        record: JobRecord,
        client: QueueClient,
        resolver: QueueAddressResolver,
        container: JobRunner | None = None,
        connection_name: str = DEFAULT_CONNECTION_NAME,
    ):
        """
        Initialize the job.

        Args:
            record: The delivered job record.
            client: Client used for delete and visibility calls.
            resolver: Resolves the queue address used for deletes.
            container: Runs the job when ``fire()`` is called.
            connection_name: Name of the queue connection the job came from.
        """
        self._record = record
        self._client = client
        self._resolver = resolver
        self._container = container
        self.connection_name = connection_name

        self._state = JobState.PENDING
        self._failed = False
        self._payload: dict[str, Any] | None = None
        self._metrics = get_metrics()

    @property
    def record(self) -> JobRecord:
        return self._record

    @property
    def queue(self) -> str:
        """The logical queue name the job was delivered from."""
        return self._record.queue_name

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def is_deleted(self) -> bool:
        return self._state == JobState.DELETED

    @property
    def is_released(self) -> bool:
        return self._state == JobState.RELEASED

    @property
    def is_deleted_or_released(self) -> bool:
        return self._state != JobState.PENDING

    @property
    def has_failed(self) -> bool:
        return self._failed

    def identity(self) -> str:
        """Get the job identifier (the broker message id)."""
        return self._record.message_id

    def raw_body(self) -> str:
        """Get the raw body string for the job, undecoded."""
        return self._record.body

    def attempts(self) -> int:
        """
        Get the number of times the job has been delivered.

        Raises:
            MalformedAttributeError: If the receive count is missing or not numeric.
        """
        value = self._record.attributes.get(ATTR_RECEIVE_COUNT)
        if value is None:
            raise MalformedAttributeError(
                f"Message {self.identity()} has no {ATTR_RECEIVE_COUNT} attribute"
            )
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise MalformedAttributeError(
                f"Message {self.identity()} has a non-numeric {ATTR_RECEIVE_COUNT}: {value!r}"
            ) from e

    def payload(self) -> dict[str, Any]:
        """
        Decode the body as a JSON job payload.

        Raises:
            MalformedMessageError: If the body is not a JSON object.
        """
        if self._payload is None:
            try:
                decoded = json.loads(self._record.body)
            except json.JSONDecodeError as e:
                raise MalformedMessageError(
                    f"Message {self.identity()} body is not valid JSON: {e}"
                ) from e
            if not isinstance(decoded, dict):
                raise MalformedMessageError(f"Message {self.identity()} body is not a JSON object")
            self._payload = decoded
        return self._payload

    @property
    def name(self) -> str:
        """Display name of the job taken from its payload."""
        payload = self.payload()
        return payload.get("displayName") or payload.get("job") or ""

    def fire(self) -> Any:
        """
        Run the job through its container.

        Raises:
            ConfigurationError: If the job was built without a container.
        """
        if self._container is None:
            raise ConfigurationError(f"Job {self.identity()} has no container to run it")
        return self._container(self)

    def delete(self) -> None:
        """
        Delete the job from the queue.

        The address is re-resolved from the logical queue name through the
        configured prefix; the delivery's source address is never reused.
        A stale receipt handle is logged and tolerated.
        """
        self._warn_if_settled("delete")
        self._state = JobState.DELETED

        with create_span(SPAN_DELETE_JOB, message_id=self.identity(), queue=self.queue):
            address = self._resolver.resolve(self.queue)
            try:
                self._client.delete_message(address, self._record.receipt_handle)
            except InvalidReceiptHandle as e:
                self._tolerate_stale_receipt("delete", e)
                return

        self._metrics.record_job_deleted(self.queue)
        logger.info(
            "Job deleted",
            extra={"message_id": self.identity(), "queue": self.queue},
        )

    def release(self, delay: int = 0) -> None:
        """
        Release the job back into the queue.

        Args:
            delay: Seconds before the message becomes visible again (0 = now).
        """
        self._warn_if_settled("release")
        self._state = JobState.RELEASED

        with create_span(SPAN_RELEASE_JOB, message_id=self.identity(), delay=delay):
            address = self._resolver.visibility_address(self._record.source_address)
            try:
                self._client.change_visibility(address, self._record.receipt_handle, delay)
            except InvalidReceiptHandle as e:
                self._tolerate_stale_receipt("release", e)
                return

        self._metrics.record_job_released(self.queue)
        logger.info(
            "Job released",
            extra={"message_id": self.identity(), "queue": self.queue, "delay": delay},
        )

    def fail(self, error: BaseException) -> None:
        """
        Mark the job as failed.

        The message is left alone so the broker redelivers it after the lease
        expires.
        """
        self._failed = True
        self._metrics.record_job_failed(self.queue)
        logger.warning(
            "Job failed",
            extra={
                "message_id": self.identity(),
                "queue": self.queue,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )

    def _warn_if_settled(self, operation: str) -> None:
        if self.is_deleted_or_released:
            logger.error(
                f"Job already settled, {operation} reuses a consumed receipt handle",
                extra={
                    "message_id": self.identity(),
                    "queue": self.queue,
                    "state": str(self._state),
                },
            )

    def _tolerate_stale_receipt(self, operation: str, error: InvalidReceiptHandle) -> None:
        self._metrics.record_stale_receipt(self.queue, operation)
        logger.warning(
            "Receipt handle no longer valid, treating job as settled",
            extra={
                "message_id": self.identity(),
                "queue": self.queue,
                "operation": operation,
                "code": error.code,
            },
        )

    def __repr__(self) -> str:
        return f"SqsJob(message_id={self.identity()!r}, queue={self.queue!r}, state={self._state!s})"
