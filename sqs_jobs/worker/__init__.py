"""
Worker module.
Delivery dispatching, the job container and the polling/Lambda entrypoints.
"""

from sqs_jobs.worker.dispatcher import DeliveryDispatcher
from sqs_jobs.worker.handlers import JobContainer

__all__ = ["DeliveryDispatcher", "JobContainer"]
