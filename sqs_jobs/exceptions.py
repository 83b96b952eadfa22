"""
Error taxonomy for the queue layer.

Nothing here is retried internally; retries happen through the broker's
redelivery of messages that were never deleted.
"""

from typing import Any


class QueueError(Exception):
    """Base class for all queue layer errors."""


class ConfigurationError(QueueError):
    """Missing default queue, partial credentials or similar setup problems."""


class HandlerNotFoundError(ConfigurationError):
    """No handler is registered for the job name found in a payload."""

    def __init__(self, job_name: str):
        self.job_name = job_name
        super().__init__(f"No handler registered for job: {job_name}")


class BrokerError(QueueError):
    """
    A broker call failed (network, auth, throttling, ...).

    Attributes:
        operation: The broker operation that failed, e.g. ``DeleteMessage``.
        code: The broker error code when one was returned.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        code: str | None = None,
    ):
        self.operation = operation
        self.code = code
        super().__init__(message)


class InvalidReceiptHandle(BrokerError):
    """The lease behind a receipt handle expired or was already consumed."""


class MalformedAttributeError(QueueError):
    """A required message attribute is missing or not numeric."""


class MalformedMessageError(MalformedAttributeError):
    """A raw message or its body does not have the expected shape."""


class HandlerError(QueueError):
    """
    Application handler failure that aborted a delivery batch.

    Always raised chained to the original exception.
    """

    def __init__(self, message_id: str, index: int, error: BaseException):
        self.message_id = message_id
        self.index = index
        self.error = error
        super().__init__(
            f"Handler failed for message {message_id} at batch index {index}: {error}"
        )

    def to_dict(self) -> dict[str, Any]:
        """Structured form used in log records."""
        return {
            "message_id": self.message_id,
            "index": self.index,
            "error_type": type(self.error).__name__,
            "error": str(self.error),
        }
