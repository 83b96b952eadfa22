"""
Pytest configuration and shared fixtures.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

import pytest
from botocore.exceptions import ClientError

from sqs_jobs.config import QueueConfig, Settings
from sqs_jobs.queue.addressing import QueueAddressResolver
from sqs_jobs.queue.backend import SqsQueue
from sqs_jobs.queue.client import QueueClient
from sqs_jobs.worker.dispatcher import DeliveryDispatcher
from sqs_jobs.worker.handlers import JobContainer

REGION = "sa-east-1"
ACCOUNT = "000000000000"
PREFIX = f"https://sqs.{REGION}.amazonaws.com/{ACCOUNT}"
QUEUE = "jobs"


def _client_error(code: str, message: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


@dataclass
class FakeMessage:
    message_id: str
    body: str
    visible_at: float
    receive_count: int = 0
    receipt_handle: str | None = None


class FakeSqs:
    """
    In-memory stand-in for a boto3 SQS client.

    Honours delays, visibility timeouts, receive counts and receipt handles
    that go stale once a message is received again or deleted. Time only
    moves through advance().
    """

    def __init__(self, default_visibility: int = 30):
        self.now = 0.0
        self.default_visibility = default_visibility
        self.queues: dict[str, list[FakeMessage]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.fail_next: dict[str, ClientError] = {}

    def create_queue(self, name: str) -> str:
        url = f"{PREFIX}/{name}"
        self.queues.setdefault(url, [])
        return url

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def count(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    def visibility_remaining(self, url: str, message_id: str) -> float:
        message = next(m for m in self.queues[url] if m.message_id == message_id)
        return max(0.0, message.visible_at - self.now)

    def _record(self, operation: str, params: dict[str, Any]) -> None:
        self.calls.append((operation, params))
        if operation in self.fail_next:
            raise self.fail_next.pop(operation)

    def _queue(self, url: str, operation: str) -> list[FakeMessage]:
        if url not in self.queues:
            raise _client_error(
                "AWS.SimpleQueueService.NonExistentQueue",
                "The specified queue does not exist.",
                operation,
            )
        return self.queues[url]

    def _in_flight(self, url: str, receipt_handle: str, operation: str) -> FakeMessage:
        for message in self._queue(url, operation):
            if message.receipt_handle == receipt_handle:
                if message.visible_at <= self.now:
                    raise _client_error(
                        "AWS.SimpleQueueService.MessageNotInflight",
                        "Message is not in flight.",
                        operation,
                    )
                return message
        raise _client_error(
            "ReceiptHandleIsInvalid",
            f"The receipt handle {receipt_handle} is not valid.",
            operation,
        )

    def send_message(self, QueueUrl: str, MessageBody: str, DelaySeconds: int = 0, **kwargs: Any) -> dict[str, Any]:
        self._record("SendMessage", {"QueueUrl": QueueUrl, "MessageBody": MessageBody, "DelaySeconds": DelaySeconds, **kwargs})
        message = FakeMessage(
            message_id=str(uuid4()),
            body=MessageBody,
            visible_at=self.now + DelaySeconds,
        )
        self._queue(QueueUrl, "SendMessage").append(message)
        return {"MessageId": message.message_id}

    def receive_message(
        self,
        QueueUrl: str,
        MaxNumberOfMessages: int = 1,
        WaitTimeSeconds: int = 0,
        AttributeNames: list[str] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        self._record(
            "ReceiveMessage",
            {"QueueUrl": QueueUrl, "MaxNumberOfMessages": MaxNumberOfMessages, "AttributeNames": AttributeNames},
        )
        visible = [m for m in self._queue(QueueUrl, "ReceiveMessage") if m.visible_at <= self.now]
        delivered = []
        for message in visible[:MaxNumberOfMessages]:
            message.receive_count += 1
            message.receipt_handle = f"rh-{uuid4().hex}"
            message.visible_at = self.now + self.default_visibility
            attributes = {}
            if AttributeNames and "ApproximateReceiveCount" in AttributeNames:
                attributes["ApproximateReceiveCount"] = str(message.receive_count)
            delivered.append(
                {
                    "MessageId": message.message_id,
                    "ReceiptHandle": message.receipt_handle,
                    "Body": message.body,
                    "Attributes": attributes,
                }
            )
        return {"Messages": delivered} if delivered else {}

    def delete_message(self, QueueUrl: str, ReceiptHandle: str) -> dict[str, Any]:
        self._record("DeleteMessage", {"QueueUrl": QueueUrl, "ReceiptHandle": ReceiptHandle})
        message = self._in_flight(QueueUrl, ReceiptHandle, "DeleteMessage")
        self.queues[QueueUrl].remove(message)
        return {}

    def change_message_visibility(self, QueueUrl: str, ReceiptHandle: str, VisibilityTimeout: int) -> dict[str, Any]:
        self._record(
            "ChangeMessageVisibility",
            {"QueueUrl": QueueUrl, "ReceiptHandle": ReceiptHandle, "VisibilityTimeout": VisibilityTimeout},
        )
        message = self._in_flight(QueueUrl, ReceiptHandle, "ChangeMessageVisibility")
        message.visible_at = self.now + VisibilityTimeout
        return {}

    def purge_queue(self, QueueUrl: str) -> dict[str, Any]:
        self._record("PurgeQueue", {"QueueUrl": QueueUrl})
        self._queue(QueueUrl, "PurgeQueue").clear()
        return {}

    def get_queue_attributes(self, QueueUrl: str, AttributeNames: list[str]) -> dict[str, Any]:
        self._record("GetQueueAttributes", {"QueueUrl": QueueUrl, "AttributeNames": AttributeNames})
        visible = [m for m in self._queue(QueueUrl, "GetQueueAttributes") if m.visible_at <= self.now]
        return {"Attributes": {"ApproximateNumberOfMessages": str(len(visible))}}

    def get_queue_url(self, QueueName: str) -> dict[str, Any]:
        self._record("GetQueueUrl", {"QueueName": QueueName})
        url = f"{PREFIX}/{QueueName}"
        self._queue(url, "GetQueueUrl")
        return {"QueueUrl": url}


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.05) -> bool:
    """Poll ``predicate`` until it holds or ``timeout`` seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def fake_sqs() -> FakeSqs:
    """Create an in-memory SQS double."""
    return FakeSqs()


@pytest.fixture
def queue_url(fake_sqs: FakeSqs) -> str:
    """Create the default test queue."""
    return fake_sqs.create_queue(QUEUE)


@pytest.fixture
def queue_config() -> QueueConfig:
    """Queue configuration with a URL prefix."""
    return QueueConfig(queue=QUEUE, prefix=PREFIX, region=REGION)


@pytest.fixture
def lookup_config() -> QueueConfig:
    """Queue configuration without prefix, resolved through the broker."""
    return QueueConfig(queue=QUEUE, region=REGION)


@pytest.fixture
def client(fake_sqs: FakeSqs, queue_url: str) -> QueueClient:
    """Create a queue client over the fake broker."""
    return QueueClient(fake_sqs)


@pytest.fixture
def resolver(queue_config: QueueConfig, client: QueueClient) -> QueueAddressResolver:
    """Create a prefix-based address resolver."""
    return QueueAddressResolver(queue_config, client)


@pytest.fixture
def container() -> JobContainer:
    """Create an empty job container."""
    return JobContainer()


@pytest.fixture
def backend(client: QueueClient, queue_config: QueueConfig, container: JobContainer) -> SqsQueue:
    """Create a queue backend over the fake broker."""
    return SqsQueue(client, queue_config, container=container)


@pytest.fixture
def make_dispatcher(client: QueueClient, resolver: QueueAddressResolver) -> Callable[..., DeliveryDispatcher]:
    """Factory for dispatchers bound to the fake broker."""
    def factory(handler: Callable[[Any], Any]) -> DeliveryDispatcher:
        return DeliveryDispatcher(client, resolver, handler)
    return factory


@pytest.fixture
def delivery_event(fake_sqs: FakeSqs, queue_url: str) -> Callable[[int], dict[str, Any]]:
    """
    Factory for Lambda-style delivery events.

    Sends ``count`` messages, receives them, and wraps them as event records.
    """
    def factory(count: int) -> dict[str, Any]:
        for i in range(count):
            fake_sqs.send_message(QueueUrl=queue_url, MessageBody=f'{{"job": "echo", "data": {{"n": {i}}}}}')
        received = fake_sqs.receive_message(
            QueueUrl=queue_url,
            MaxNumberOfMessages=count,
            AttributeNames=["ApproximateReceiveCount"],
        )["Messages"]
        return {
            "Records": [
                {
                    "messageId": m["MessageId"],
                    "receiptHandle": m["ReceiptHandle"],
                    "body": m["Body"],
                    "attributes": m["Attributes"],
                    "messageAttributes": {},
                    "eventSource": "aws:sqs",
                    "eventSourceARN": f"arn:aws:sqs:{REGION}:{ACCOUNT}:{QUEUE}",
                    "awsRegion": REGION,
                }
                for m in received
            ]
        }
    return factory


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        sqs_queue=QUEUE,
        sqs_prefix=PREFIX,
        aws_region=REGION,
        aws_access_key_id="test-key",
        aws_secret_access_key="test-secret",
        log_level="DEBUG",
        log_format="console",
        sqs_wait_time_seconds=0,
        worker_poll_interval_seconds=0.01,
    )
