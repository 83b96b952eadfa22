"""
Unit tests for the job container.
"""

import json

import pytest

from sqs_jobs.exceptions import HandlerNotFoundError
from sqs_jobs.queue.addressing import QueueAddressResolver
from sqs_jobs.queue.client import QueueClient
from sqs_jobs.queue.job import SqsJob
from sqs_jobs.types.job import JobRecord
from sqs_jobs.worker.handlers import JobContainer


class TestJobContainer:
    """Tests for handler registration and invocation."""

    @pytest.fixture
    def make_job(self, client: QueueClient, resolver: QueueAddressResolver, container: JobContainer):
        """Build a job around a JSON payload."""
        def factory(payload: dict) -> SqsJob:
            record = JobRecord(
                message_id="m-1",
                receipt_handle="rh-1",
                attributes={"ApproximateReceiveCount": "1"},
                source_address="arn:aws:sqs:sa-east-1:000000000000:jobs",
                queue_name="jobs",
                body=json.dumps(payload),
            )
            return SqsJob(record, client, resolver, container=container)
        return factory

    def test_list_handlers(self, container: JobContainer):
        """Test listing registered handlers."""
        @container.register("echo")
        def handle_echo(job, data):
            return data

        @container.register("sleep")
        def handle_sleep(job, data):
            return None

        assert container.names() == ["echo", "sleep"]

    def test_get_handler_exists(self, container: JobContainer):
        """Test getting an existing handler."""
        @container.register("echo")
        def handle_echo(job, data):
            return data

        assert container.get("echo") is handle_echo

    def test_get_handler_not_exists(self, container: JobContainer):
        """Test getting a non-existent handler."""
        assert container.get("nonexistent") is None

    def test_fire_runs_named_handler(self, container: JobContainer, make_job):
        """Test fire() passes the job and its data to the named handler."""
        calls = []

        @container.register("send_email")
        def handle_send_email(job, data):
            calls.append((job.identity(), data))
            return "sent"

        job = make_job({"job": "send_email", "data": {"to": "ops@example.com"}})

        assert job.fire() == "sent"
        assert calls == [("m-1", {"to": "ops@example.com"})]

    def test_missing_data_defaults_to_empty(self, container: JobContainer, make_job):
        """Test payloads without data pass an empty dict."""
        @container.register("echo")
        def handle_echo(job, data):
            return data

        assert make_job({"job": "echo"}).fire() == {}

    def test_unknown_job(self, make_job):
        """Test an unregistered job name raises HandlerNotFoundError."""
        with pytest.raises(HandlerNotFoundError) as exc_info:
            make_job({"job": "nonexistent_handler"}).fire()

        assert exc_info.value.job_name == "nonexistent_handler"
