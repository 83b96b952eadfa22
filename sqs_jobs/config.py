"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

from sqs_jobs.constants import DEFAULT_CONNECTION_NAME, DEFAULT_POLL_INTERVAL_SECONDS, DEFAULT_REGION


class QueueConfig(BaseModel):
    """
    Immutable queue connection configuration.

    Injected into the address resolver, the client factory and the queue
    backend at construction time.
    """

    model_config = ConfigDict(frozen=True)

    queue: str | None = None
    prefix: str | None = None
    url: str | None = None
    region: str = DEFAULT_REGION
    endpoint: str | None = None
    key: str | None = None
    secret: str | None = None
    connection_name: str = DEFAULT_CONNECTION_NAME


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Queue
    sqs_queue: str | None = "default"
    sqs_prefix: str | None = None
    sqs_url: str | None = None
    queue_connection: str = DEFAULT_CONNECTION_NAME

    # AWS
    aws_region: str = DEFAULT_REGION
    aws_endpoint_url: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None

    # Worker Configuration
    sqs_wait_time_seconds: int = 20
    sqs_max_messages: int = 10
    worker_poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS

    # Observability
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "sqs-jobs"
    tracing_enabled: bool = False
    metrics_port: int | None = None  # serve /metrics from the worker when set
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    def queue_config(self) -> QueueConfig:
        """Build the immutable queue configuration from these settings."""
        return QueueConfig(
            queue=self.sqs_queue or None,
            prefix=self.sqs_prefix or None,
            url=self.sqs_url or None,
            region=self.aws_region,
            endpoint=self.aws_endpoint_url or None,
            key=self.aws_access_key_id or None,
            secret=self.aws_secret_access_key or None,
            connection_name=self.queue_connection,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
