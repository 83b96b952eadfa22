"""
Worker process and Lambda entrypoint.

The worker long-polls a queue and hands each received batch to the
delivery dispatcher. The Lambda entrypoint dispatches the event it is given.
Either way, a handler error leaves the failed message leased so SQS
redelivers it.
"""

import logging
import signal
import time
from typing import Any

from prometheus_client import start_http_server

from sqs_jobs.config import QueueConfig, Settings, get_settings
from sqs_jobs.constants import DEFAULT_POLL_INTERVAL_SECONDS, MAX_LONG_POLL_SECONDS, MAX_RECEIVE_BATCH
from sqs_jobs.exceptions import BrokerError, HandlerError
from sqs_jobs.observability.logging import setup_logging
from sqs_jobs.observability.metrics import get_metrics
from sqs_jobs.observability.tracing import setup_tracing
from sqs_jobs.queue.addressing import QueueAddressResolver
from sqs_jobs.queue.client import QueueClient
from sqs_jobs.queue.contracts import JobRunner
from sqs_jobs.types.job import BatchReport
from sqs_jobs.worker.dispatcher import DeliveryDispatcher
from sqs_jobs.worker.handlers import JobContainer

logger = logging.getLogger(__name__)


def build_dispatcher(
    config: QueueConfig,
    handler: JobRunner,
    client: QueueClient | None = None,
) -> DeliveryDispatcher:
    """
    Wire a dispatcher from configuration.

    Args:
        config: The immutable queue configuration.
        handler: Runs each job, usually a JobContainer.
        client: Existing client; one is created from ``config`` if omitted.
    """
    client = client or QueueClient.from_config(config)
    resolver = QueueAddressResolver(config, client, cache_lookups=True)
    return DeliveryDispatcher(client, resolver, handler, connection_name=config.connection_name)


class Worker:
    """
    Synchronous polling worker.

    Features:
    - Long polling with a configurable batch size
    - Fail-fast batches: a handler error stops the batch, the loop goes on
    - Graceful shutdown on SIGTERM/SIGINT after the current batch
    """

    def __init__(
        self,
        dispatcher: DeliveryDispatcher,
        client: QueueClient,
        queue_url: str,
        batch_size: int = MAX_RECEIVE_BATCH,
        wait_seconds: int = MAX_LONG_POLL_SECONDS,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ):
        """
        Initialize the worker.

        Args:
            dispatcher: Processes each received batch.
            client: Client used to receive messages.
            queue_url: Resolved URL of the queue to poll.
            batch_size: Messages requested per receive call.
            wait_seconds: Long-poll wait per receive call.
            poll_interval: Seconds to back off after a broker error.
        """
        self.queue_url = queue_url
        self.batch_size = batch_size
        self.wait_seconds = wait_seconds
        self.poll_interval = poll_interval

        self._dispatcher = dispatcher
        self._client = client
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def run_once(self) -> BatchReport:
        """
        Receive one batch and dispatch it.

        Raises:
            HandlerError: If a handler failed; the batch was aborted.
            BrokerError: If the receive call failed.
        """
        messages = self._client.receive(
            self.queue_url,
            max_messages=self.batch_size,
            wait_seconds=self.wait_seconds,
        )
        return self._dispatcher.dispatch_messages(messages, self.queue_url)

    def start(self) -> None:
        """Run the polling loop until stop() is called."""
        logger.info(
            "Worker starting",
            extra={"queue_url": self.queue_url, "batch_size": self.batch_size},
        )
        self._running = True

        while self._running:
            try:
                self.run_once()
            except HandlerError as e:
                # Failed message stays leased; SQS redelivers it after the visibility timeout
                logger.warning("Batch aborted", extra=e.to_dict())
            except BrokerError as e:
                logger.error(
                    f"Error polling queue: {e}",
                    extra={"queue_url": self.queue_url, "code": e.code},
                )
                time.sleep(self.poll_interval)

        logger.info("Worker stopped", extra={"queue_url": self.queue_url})

    def stop(self, *_: Any) -> None:
        """Stop the worker after the current batch."""
        logger.info("Worker stopping", extra={"queue_url": self.queue_url})
        self._running = False


# Default container for the entrypoints; applications register their handlers on it.
container = JobContainer()

# Built on the first invocation and reused while the Lambda stays warm
_lambda_dispatcher: DeliveryDispatcher | None = None


def get_lambda_dispatcher() -> DeliveryDispatcher:
    """Get the entrypoint's dispatcher, wiring it from settings on first use."""
    global _lambda_dispatcher
    if _lambda_dispatcher is None:
        _lambda_dispatcher = build_dispatcher(get_settings().queue_config(), container)
    return _lambda_dispatcher


def lambda_handler(
    event: dict[str, Any],
    context: Any = None,
    dispatcher: DeliveryDispatcher | None = None,
) -> dict[str, Any]:
    """
    Entry point for an SQS-triggered Lambda.

    A HandlerError propagates so the runtime reports the invocation as
    failed and SQS keeps the unsettled messages.
    """
    report = (dispatcher or get_lambda_dispatcher()).dispatch(event)
    return {"processed": report.processed, "messageIds": report.message_ids}


def run(settings: Settings | None = None) -> None:
    """Run the worker."""
    settings = settings or get_settings()
    setup_logging(settings)
    if settings.tracing_enabled:
        setup_tracing(settings)
    if settings.metrics_port:
        start_http_server(settings.metrics_port, registry=get_metrics().registry)
        logger.info("Metrics server started", extra={"port": settings.metrics_port})

    config = settings.queue_config()
    client = QueueClient.from_config(config, wait_seconds=settings.sqs_wait_time_seconds)
    dispatcher = build_dispatcher(config, container, client=client)
    worker = Worker(
        dispatcher,
        client,
        dispatcher.resolver.resolve(),
        batch_size=settings.sqs_max_messages,
        wait_seconds=settings.sqs_wait_time_seconds,
        poll_interval=settings.worker_poll_interval_seconds,
    )

    for sig in (signal.SIGTERM, signal.SIGINT):
        signal.signal(sig, worker.stop)

    worker.start()


if __name__ == "__main__":
    run()
