"""
Thin wrapper around the boto3 SQS client.

One method per broker primitive, each taking an already resolved queue URL.
Nothing is retried here: retrying a delete or visibility change blindly
risks acting on an expired lease.
"""

import logging
from collections.abc import Iterator
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from sqs_jobs.config import QueueConfig
from sqs_jobs.constants import (
    ATTR_QUEUE_SIZE,
    ATTR_RECEIVE_COUNT,
    MAX_LONG_POLL_SECONDS,
    MAX_RECEIVE_BATCH,
    RECEIPT_HANDLE_ERROR_CODES,
)
from sqs_jobs.exceptions import BrokerError, ConfigurationError, InvalidReceiptHandle

logger = logging.getLogger(__name__)


def create_sqs_client(config: QueueConfig) -> Any:
    """
    Create a boto3 SQS client from the queue configuration.

    Args:
        config: The immutable queue configuration.

    Returns:
        A boto3 SQS client with internal retries disabled.

    Raises:
        ConfigurationError: If only one half of the credentials is set.
    """
    if bool(config.key) != bool(config.secret):
        raise ConfigurationError(
            "Both an access key id and a secret access key are required"
        )

    if not config.key:
        logger.info(
            "No explicit credentials configured, using the default AWS credential chain",
            extra={"region": config.region},
        )

    client = boto3.client(
        "sqs",
        region_name=config.region,
        endpoint_url=config.endpoint,
        aws_access_key_id=config.key,
        aws_secret_access_key=config.secret,
        config=Config(retries={"max_attempts": 0}),
    )
    logger.info(
        "SQS client initialized",
        extra={"region": config.region, "endpoint": config.endpoint},
    )
    return client


def _error_code(error: ClientError) -> str:
    return (error.response or {}).get("Error", {}).get("Code", "")


def _is_receipt_error(error: ClientError) -> bool:
    code = _error_code(error)
    if code in RECEIPT_HANDLE_ERROR_CODES:
        return True
    message = (error.response or {}).get("Error", {}).get("Message", "")
    return code == "InvalidParameterValue" and "receipt handle" in message.lower()


class QueueClient:
    """
    Uniform interface over the SQS operations used by the job layer.

    Owns no state beyond the underlying boto3 client, which is shared
    read-only across invocations.
    """

    def __init__(self, sqs: Any, wait_seconds: int = 0):
        """
        Initialize the client.

        Args:
            sqs: A boto3 SQS client (or anything with the same methods).
            wait_seconds: Default long-poll wait for receive calls.
        """
        self._sqs = sqs
        self._wait_seconds = wait_seconds

    @classmethod
    def from_config(cls, config: QueueConfig, wait_seconds: int = 0) -> "QueueClient":
        """Build a client and its boto3 connection from configuration."""
        return cls(create_sqs_client(config), wait_seconds=wait_seconds)

    def _call(self, operation: str, method: Any, **params: Any) -> dict[str, Any]:
        try:
            return method(**params)
        except ClientError as e:
            code = _error_code(e)
            if _is_receipt_error(e):
                raise InvalidReceiptHandle(
                    f"{operation} rejected receipt handle: {e}",
                    operation=operation,
                    code=code,
                ) from e
            logger.error(
                "SQS call failed",
                extra={"operation": operation, "code": code, "error": str(e)},
            )
            raise BrokerError(f"{operation} failed: {e}", operation=operation, code=code) from e
        except BotoCoreError as e:
            logger.error(
                "SQS transport failure",
                extra={"operation": operation, "error": str(e)},
            )
            raise BrokerError(f"{operation} failed: {e}", operation=operation) from e

    def enqueue(
        self,
        address: str,
        body: str,
        delay_seconds: int = 0,
        **options: Any,
    ) -> str:
        """
        Send one message.

        Args:
            address: The queue URL.
            body: The message body.
            delay_seconds: Seconds before the message becomes visible.
            **options: Extra SendMessage parameters, e.g. MessageAttributes.

        Returns:
            The broker-assigned message id.
        """
        params: dict[str, Any] = {"QueueUrl": address, "MessageBody": body, **options}
        if delay_seconds:
            params["DelaySeconds"] = int(delay_seconds)

        response = self._call("SendMessage", self._sqs.send_message, **params)
        message_id = response.get("MessageId", "")
        logger.debug(
            "Message sent",
            extra={"queue_url": address, "message_id": message_id, "delay": delay_seconds},
        )
        return message_id

    def receive(
        self,
        address: str,
        max_messages: int = 1,
        wait_seconds: int | None = None,
    ) -> Iterator[dict[str, Any]]:
        """
        Receive up to ``max_messages`` messages.

        The broker call happens eagerly; the returned iterator walks the
        batch once and cannot be restarted. An empty batch is not an error.
        """
        wait = self._wait_seconds if wait_seconds is None else wait_seconds
        response = self._call(
            "ReceiveMessage",
            self._sqs.receive_message,
            QueueUrl=address,
            MaxNumberOfMessages=max(1, min(int(max_messages), MAX_RECEIVE_BATCH)),
            WaitTimeSeconds=max(0, min(int(wait), MAX_LONG_POLL_SECONDS)),
            AttributeNames=[ATTR_RECEIVE_COUNT],
        )
        messages = response.get("Messages") or []
        if messages:
            logger.debug(
                f"Received {len(messages)} message(s)",
                extra={"queue_url": address},
            )
        return iter(messages)

    def delete_message(self, address: str, receipt_handle: str) -> None:
        """
        Delete a message by receipt handle.

        Raises:
            InvalidReceiptHandle: If the lease already expired or was consumed.
        """
        self._call(
            "DeleteMessage",
            self._sqs.delete_message,
            QueueUrl=address,
            ReceiptHandle=receipt_handle,
        )

    def change_visibility(self, address: str, receipt_handle: str, timeout_seconds: int) -> None:
        """
        Change the visibility timeout of an in-flight message.

        A timeout of 0 makes the message immediately deliverable again.

        Raises:
            InvalidReceiptHandle: If the lease already expired or was consumed.
        """
        self._call(
            "ChangeMessageVisibility",
            self._sqs.change_message_visibility,
            QueueUrl=address,
            ReceiptHandle=receipt_handle,
            VisibilityTimeout=int(timeout_seconds),
        )

    def purge(self, address: str) -> None:
        """Delete every message in the queue. The broker applies this asynchronously."""
        self._call("PurgeQueue", self._sqs.purge_queue, QueueUrl=address)
        logger.info("Queue purge requested", extra={"queue_url": address})

    def read_approximate_count(self, address: str) -> int:
        """Get the broker's approximate number of visible messages."""
        response = self._call(
            "GetQueueAttributes",
            self._sqs.get_queue_attributes,
            QueueUrl=address,
            AttributeNames=[ATTR_QUEUE_SIZE],
        )
        return int(response.get("Attributes", {}).get(ATTR_QUEUE_SIZE, 0))

    def lookup_address(self, queue_name: str) -> str:
        """Ask the broker for the URL of a queue by name."""
        response = self._call("GetQueueUrl", self._sqs.get_queue_url, QueueName=queue_name)
        return response["QueueUrl"]
