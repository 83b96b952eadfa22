"""
Job-related type definitions for internal use.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from sqs_jobs.exceptions import MalformedMessageError


def queue_name_from_source(source_address: str) -> str:
    """
    Derive the logical queue name from an origin address.

    ARNs are split on ``:`` and URLs on ``/``; the final segment wins.
    """
    separator = ":" if source_address.startswith("arn:") else "/"
    return source_address.rstrip(separator).split(separator)[-1]


def _require(raw: Mapping[str, Any], key: str) -> Any:
    try:
        return raw[key]
    except KeyError as e:
        raise MalformedMessageError(f"Message is missing required field: {key}") from e


@dataclass(frozen=True)
class JobRecord:
    """
    One delivered unit of work, built fresh for every delivery.

    A redelivered message produces a new record with a new receipt handle
    and a higher receive count.
    """

    message_id: str
    receipt_handle: str
    attributes: dict[str, str]
    source_address: str
    queue_name: str
    body: str

    @classmethod
    def from_event_record(cls, record: Mapping[str, Any]) -> "JobRecord":
        """Build a record from one entry of a Lambda-style delivery event."""
        source = _require(record, "eventSourceARN")
        return cls(
            message_id=_require(record, "messageId"),
            receipt_handle=_require(record, "receiptHandle"),
            attributes=dict(record.get("attributes") or {}),
            source_address=source,
            queue_name=queue_name_from_source(source),
            body=_require(record, "body"),
        )

    @classmethod
    def from_message(cls, message: Mapping[str, Any], source_address: str) -> "JobRecord":
        """Build a record from a ReceiveMessage result polled from ``source_address``."""
        return cls(
            message_id=_require(message, "MessageId"),
            receipt_handle=_require(message, "ReceiptHandle"),
            attributes=dict(message.get("Attributes") or {}),
            source_address=source_address,
            queue_name=queue_name_from_source(source_address),
            body=_require(message, "Body"),
        )


class JobPayload(BaseModel):
    """
    Job payload structure.
    Serialized as the message body when a job is pushed by name.
    """

    model_config = ConfigDict(populate_by_name=True)

    uuid: str = Field(default_factory=lambda: str(uuid4()))
    display_name: str = Field(alias="displayName")
    job: str
    max_tries: int | None = Field(default=None, alias="maxTries")
    timeout: int | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    def to_body(self) -> str:
        """Render the payload as the JSON message body."""
        return self.model_dump_json(by_alias=True)


@dataclass
class StepResult:
    """
    Outcome of processing one record of a batch.

    ``error`` is None on success.
    """

    message_id: str
    index: int
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchReport:
    """Summary of a delivery batch that completed without handler errors."""

    processed: int = 0
    message_ids: list[str] = field(default_factory=list)
