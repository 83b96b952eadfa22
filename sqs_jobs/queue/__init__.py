"""
Queue layer: address resolution, the SQS client wrapper, job lifecycle and
the queue backend.
"""

from sqs_jobs.queue.addressing import QueueAddressResolver, queue_url_from_arn
from sqs_jobs.queue.backend import SqsQueue, seconds_until
from sqs_jobs.queue.client import QueueClient, create_sqs_client
from sqs_jobs.queue.contracts import JobHandle, QueueBackend
from sqs_jobs.queue.job import SqsJob

__all__ = [
    "QueueAddressResolver",
    "QueueClient",
    "SqsJob",
    "SqsQueue",
    "JobHandle",
    "QueueBackend",
    "create_sqs_client",
    "queue_url_from_arn",
    "seconds_until",
]
