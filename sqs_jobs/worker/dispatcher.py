"""
Delivery dispatcher.

Processes one delivery event (a batch of raw SQS messages) strictly in
order. The first handler error aborts the rest of the batch and is raised to
the caller: messages left undeleted keep their lease and the broker
redelivers them, which is the retry mechanism.
"""

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from sqs_jobs.constants import (
    DEFAULT_CONNECTION_NAME,
    SPAN_DISPATCH_BATCH,
    SPAN_PROCESS_JOB,
    UNKNOWN_QUEUE_LABEL,
    DispatcherState,
)
from sqs_jobs.exceptions import HandlerError, MalformedMessageError
from sqs_jobs.observability.logging import bind_context, unbind_context
from sqs_jobs.observability.metrics import get_metrics
from sqs_jobs.observability.tracing import create_span
from sqs_jobs.queue.addressing import QueueAddressResolver
from sqs_jobs.queue.client import QueueClient
from sqs_jobs.queue.contracts import JobRunner
from sqs_jobs.queue.job import SqsJob
from sqs_jobs.types.job import BatchReport, JobRecord, StepResult

logger = logging.getLogger(__name__)


def event_records(event: Mapping[str, Any] | Iterable[Mapping[str, Any]]) -> Iterable[Mapping[str, Any]]:
    """Get the records of a Lambda-style event, or the event itself if it is already a list."""
    if isinstance(event, Mapping):
        return event.get("Records") or []
    return event


class DeliveryDispatcher:
    """
    Runs a handler over every message of a delivery batch.

    The dispatcher never acknowledges anything itself: a successful handler
    is expected to have called ``delete()`` or ``release()`` already.

    States: idle -> processing(i) -> idle (next record) | aborted

    ``state`` and ``position`` describe the batch in progress or the last
    one run. A dispatcher runs one batch at a time; give concurrent
    consumers their own instance.
    """

    def __init__(
        self,
        client: QueueClient,
        resolver: QueueAddressResolver,
        handler: JobRunner,
        connection_name: str = DEFAULT_CONNECTION_NAME,
    ):
        """
        Initialize the dispatcher.

        Args:
            client: Client the jobs use to settle themselves.
            resolver: Address resolver the jobs use for deletes.
            handler: Called with each SqsJob; a JobContainer works here.
            connection_name: Connection name stamped on every job.
        """
        self._client = client
        self._resolver = resolver
        self._handler = handler
        self._connection_name = connection_name
        self._metrics = get_metrics()

        self.state = DispatcherState.IDLE
        self.position: int | None = None

    @property
    def resolver(self) -> QueueAddressResolver:
        return self._resolver

    def dispatch(self, event: Mapping[str, Any] | Iterable[Mapping[str, Any]]) -> BatchReport:
        """
        Process a Lambda-style delivery event.

        Args:
            event: ``{"Records": [...]}`` or a plain list of event records.

        Returns:
            BatchReport for a batch that completed.

        Raises:
            HandlerError: On the first handler failure; later records are skipped.
            MalformedMessageError: If a record lacks a required field.
        """
        return self._run(event_records(event), JobRecord.from_event_record)

    def dispatch_messages(
        self,
        messages: Iterable[Mapping[str, Any]],
        source_address: str,
    ) -> BatchReport:
        """
        Process ReceiveMessage results polled from ``source_address``.

        Same abort semantics as dispatch().
        """
        return self._run(messages, lambda raw: JobRecord.from_message(raw, source_address))

    def _run(
        self,
        raw_records: Iterable[Mapping[str, Any]],
        build: Callable[[Mapping[str, Any]], JobRecord],
    ) -> BatchReport:
        report = BatchReport()
        self.state = DispatcherState.IDLE
        self.position = None

        with create_span(SPAN_DISPATCH_BATCH):
            for index, raw in enumerate(raw_records):
                self.state = DispatcherState.PROCESSING
                self.position = index

                try:
                    record = build(raw)
                except MalformedMessageError as e:
                    self._abort(UNKNOWN_QUEUE_LABEL)
                    logger.error(
                        f"Aborting delivery batch on malformed record: {e}",
                        extra={"index": index, "processed": report.processed},
                    )
                    raise

                result = self.process_record(record, index)

                if not result.ok:
                    self._abort(record.queue_name)
                    error = HandlerError(result.message_id, result.index, result.error)
                    logger.error(
                        "Aborting delivery batch after handler error",
                        extra={**error.to_dict(), "processed": report.processed},
                    )
                    raise error from result.error

                report.processed += 1
                report.message_ids.append(result.message_id)
                self.state = DispatcherState.IDLE

        self.position = None
        logger.debug("Delivery batch complete", extra={"processed": report.processed})
        return report

    def _abort(self, queue: str) -> None:
        self.state = DispatcherState.ABORTED
        self._metrics.record_batch_aborted(queue)

    def process_record(self, record: JobRecord, index: int = 0) -> StepResult:
        """
        Run the handler for one record.

        Returns:
            StepResult carrying the handler's exception, if any.
        """
        job = SqsJob(
            record,
            self._client,
            self._resolver,
            container=self._handler,
            connection_name=self._connection_name,
        )
        self._metrics.record_job_received(record.queue_name)
        bind_context(message_id=record.message_id, queue=record.queue_name)
        start_time = time.monotonic()

        try:
            with create_span(SPAN_PROCESS_JOB, message_id=record.message_id, queue=record.queue_name):
                self._handler(job)
        except Exception as e:
            job.fail(e)
            self._metrics.record_job_duration(record.queue_name, "failed", time.monotonic() - start_time)
            return StepResult(record.message_id, index, e)
        finally:
            unbind_context("message_id", "queue")

        self._metrics.record_job_duration(record.queue_name, "succeeded", time.monotonic() - start_time)
        if not job.is_deleted_or_released:
            logger.debug(
                "Handler returned without settling the job; it stays leased",
                extra={"message_id": record.message_id},
            )
        return StepResult(record.message_id, index)
