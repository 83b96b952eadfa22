"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class JobState(StrEnum):
    """
    Local completion state of a delivered job.

    Bookkeeping only; the broker remains the source of truth.

    State transitions:
    - PENDING -> DELETED (acknowledged, message removed)
    - PENDING -> RELEASED (visibility changed, message redelivered later)
    """

    PENDING = "pending"
    DELETED = "deleted"
    RELEASED = "released"


class DispatcherState(StrEnum):
    """Delivery dispatcher states over a single delivery event."""

    IDLE = "idle"
    PROCESSING = "processing"
    ABORTED = "aborted"


# Default values
DEFAULT_REGION = "sa-east-1"
DEFAULT_CONNECTION_NAME = "sqs"
DEFAULT_VISIBILITY_TIMEOUT_SECONDS = 30
MAX_RECEIVE_BATCH = 10
MAX_LONG_POLL_SECONDS = 20
DEFAULT_POLL_INTERVAL_SECONDS = 1.0

# Metric label for records whose queue could not be read
UNKNOWN_QUEUE_LABEL = "unknown"

# Broker attribute names
ATTR_RECEIVE_COUNT = "ApproximateReceiveCount"
ATTR_QUEUE_SIZE = "ApproximateNumberOfMessages"

# Broker error codes that mean the lease behind a receipt handle is gone
RECEIPT_HANDLE_ERROR_CODES = frozenset(
    {
        "ReceiptHandleIsInvalid",
        "InvalidReceiptHandle",
        "MessageNotInflight",
        "AWS.SimpleQueueService.MessageNotInflight",
    }
)

# Address schemes treated as already resolved queue URLs
ADDRESS_SCHEMES = ("http://", "https://")
ARN_PREFIX = "arn:"

# Metrics names
METRIC_JOBS_ENQUEUED = "sqs_jobs_enqueued_total"
METRIC_JOBS_RECEIVED = "sqs_jobs_received_total"
METRIC_JOBS_DELETED = "sqs_jobs_deleted_total"
METRIC_JOBS_RELEASED = "sqs_jobs_released_total"
METRIC_JOBS_FAILED = "sqs_jobs_failed_total"
METRIC_STALE_RECEIPTS = "sqs_stale_receipt_handles_total"
METRIC_BATCHES_ABORTED = "sqs_batches_aborted_total"
METRIC_JOB_DURATION = "sqs_job_duration_seconds"
METRIC_QUEUE_DEPTH = "sqs_queue_depth"

# Trace span names
SPAN_DISPATCH_BATCH = "dispatch_batch"
SPAN_PROCESS_JOB = "process_job"
SPAN_DELETE_JOB = "delete_job"
SPAN_RELEASE_JOB = "release_job"
SPAN_ENQUEUE_JOB = "enqueue_job"
