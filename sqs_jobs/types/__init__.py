"""
Type definitions for the queue layer.
"""

from sqs_jobs.types.job import (
    BatchReport,
    JobPayload,
    JobRecord,
    StepResult,
    queue_name_from_source,
)

__all__ = [
    "JobRecord",
    "JobPayload",
    "StepResult",
    "BatchReport",
    "queue_name_from_source",
]
