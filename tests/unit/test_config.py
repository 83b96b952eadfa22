"""
Unit tests for configuration.
"""

import pytest
from pydantic import ValidationError

from sqs_jobs.config import QueueConfig, Settings


class TestSettings:
    """Tests for Settings and QueueConfig."""

    def test_queue_config_from_settings(self, test_settings: Settings):
        """Test settings map onto the immutable queue configuration."""
        config = test_settings.queue_config()

        assert config.queue == "jobs"
        assert config.prefix == "https://sqs.sa-east-1.amazonaws.com/000000000000"
        assert config.region == "sa-east-1"
        assert config.key == "test-key"
        assert config.secret == "test-secret"
        assert config.connection_name == "sqs"

    def test_empty_strings_become_none(self):
        """Test blank environment values are treated as unset."""
        config = Settings(sqs_prefix="", sqs_url="", aws_endpoint_url="").queue_config()

        assert config.prefix is None
        assert config.url is None
        assert config.endpoint is None

    def test_environment_variables(self, monkeypatch: pytest.MonkeyPatch):
        """Test settings are read from the environment."""
        monkeypatch.setenv("SQS_QUEUE", "emails")
        monkeypatch.setenv("SQS_PREFIX", "http://localhost:4566/000000000000")
        monkeypatch.setenv("AWS_REGION", "us-east-2")

        config = Settings().queue_config()

        assert config.queue == "emails"
        assert config.prefix == "http://localhost:4566/000000000000"
        assert config.region == "us-east-2"

    def test_queue_config_is_frozen(self):
        """Test the queue configuration cannot be mutated."""
        config = QueueConfig(queue="jobs")

        with pytest.raises(ValidationError):
            config.queue = "other"
