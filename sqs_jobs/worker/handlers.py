"""
Job container: a registry of named job handlers.

Job handlers must be idempotent - SQS delivers at least once, so a handler
may run several times for the same message.
"""

import logging
from typing import Any, Callable

from sqs_jobs.exceptions import HandlerNotFoundError
from sqs_jobs.queue.contracts import JobHandle

logger = logging.getLogger(__name__)

# Type alias for job handler functions: (job, data) -> anything
JobHandler = Callable[[JobHandle, dict[str, Any]], Any]


class JobContainer:
    """
    Resolves a job's handler from its payload and invokes it.

    Instances are callable, so a container can be passed anywhere a plain
    ``job -> result`` function is expected.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, JobHandler] = {}

    def register(self, job_name: str) -> Callable[[JobHandler], JobHandler]:
        """
        Decorator to register a job handler.

        Args:
            job_name: The job name this handler processes.

        Returns:
            Decorator function.

        Example:
            @container.register("send_email")
            def handle_send_email(job, data):
                ...
                job.delete()
        """
        def decorator(handler: JobHandler) -> JobHandler:
            self._handlers[job_name] = handler
            logger.info(f"Registered handler for job: {job_name}")
            return handler
        return decorator

    def get(self, job_name: str) -> JobHandler | None:
        """Get the handler for a job name, or None if not registered."""
        return self._handlers.get(job_name)

    def names(self) -> list[str]:
        """List all registered job names."""
        return list(self._handlers.keys())

    def __call__(self, job: Any) -> Any:
        """
        Run a job using the handler named in its payload.

        Raises:
            HandlerNotFoundError: If the payload names an unknown job.
        """
        payload = job.payload()
        job_name = payload.get("job", "")

        handler = self.get(job_name)
        if handler is None:
            logger.error(
                f"No handler for job: {job_name}",
                extra={"message_id": job.identity()},
            )
            raise HandlerNotFoundError(job_name)

        return handler(job, payload.get("data") or {})
