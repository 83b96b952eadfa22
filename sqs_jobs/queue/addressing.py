"""
Queue address resolution.

Turns logical queue names into queue URLs, either by joining them onto a
configured prefix or by asking the broker.
"""

import logging
from typing import Protocol

from sqs_jobs.config import QueueConfig
from sqs_jobs.constants import ADDRESS_SCHEMES, ARN_PREFIX
from sqs_jobs.exceptions import ConfigurationError
from sqs_jobs.types.job import queue_name_from_source

logger = logging.getLogger(__name__)


class AddressLookup(Protocol):
    """Anything able to ask the broker for a queue URL by name."""

    def lookup_address(self, queue_name: str) -> str: ...


def is_absolute_address(queue: str) -> bool:
    """Check if a queue reference is already a full URL."""
    return queue.lower().startswith(ADDRESS_SCHEMES)


def join_prefix(prefix: str, queue_name: str) -> str:
    """Join a queue name onto a URL prefix with exactly one slash."""
    return prefix.rstrip("/") + "/" + queue_name


def queue_url_from_arn(arn: str) -> str:
    """
    Convert an SQS queue ARN into its queue URL.

    ``arn:aws:sqs:<region>:<account>:<name>`` becomes
    ``https://sqs.<region>.amazonaws.com/<account>/<name>``.
    """
    parts = arn.split(":")
    if len(parts) != 6 or not arn.startswith(ARN_PREFIX) or parts[2] != "sqs":
        raise ConfigurationError(f"Not an SQS queue ARN: {arn}")
    _, partition, _, region, account, name = parts
    domain = "amazonaws.com.cn" if partition == "aws-cn" else "amazonaws.com"
    return f"https://sqs.{region}.{domain}/{account}/{name}"


class QueueAddressResolver:
    """
    Resolves queue names to queue URLs.

    Resolution order:
    - absolute URLs are returned unchanged
    - a configured prefix is joined with the queue name (no broker call)
    - without a prefix, the configured explicit URL answers for the default queue
    - otherwise the broker is asked, once per call unless caching is on
    """

    def __init__(
        self,
        config: QueueConfig,
        lookup: AddressLookup | None = None,
        cache_lookups: bool = False,
    ):
        """
        Initialize the resolver.

        Args:
            config: The immutable queue configuration.
            lookup: Broker lookup used when no prefix is configured.
            cache_lookups: Memoise broker lookups per queue name.
        """
        self._config = config
        self._lookup = lookup
        self._cache: dict[str, str] | None = {} if cache_lookups else None

    @property
    def default_queue(self) -> str | None:
        return self._config.queue

    @property
    def has_prefix(self) -> bool:
        return bool(self._config.prefix)

    def queue_name(self, queue: str | None = None) -> str:
        """
        Get the queue name or return the default.

        Raises:
            ConfigurationError: If no name is given and no default exists.
        """
        name = queue or self._config.queue
        if not name:
            raise ConfigurationError("No queue name given and no default queue configured")
        return name

    def resolve(self, queue: str | None = None) -> str:
        """
        Resolve a queue name to its full address.

        Args:
            queue: Logical queue name or full URL. Defaults to the configured queue.

        Returns:
            The queue URL.

        Raises:
            ConfigurationError: If no queue can be determined.
            BrokerError: If the broker lookup fails.
        """
        if not queue and self._config.url and not self._config.prefix:
            return self._config.url

        name = self.queue_name(queue)

        if is_absolute_address(name):
            return name

        if self._config.prefix:
            return join_prefix(self._config.prefix, name)

        if self._config.url and name == self._config.queue:
            return self._config.url

        if self._cache is not None and name in self._cache:
            return self._cache[name]

        if self._lookup is None:
            raise ConfigurationError(
                f"Cannot resolve queue {name}: no prefix configured and no broker lookup available"
            )

        address = self._lookup.lookup_address(name)
        logger.debug(
            "Resolved queue address via broker",
            extra={"queue": name, "queue_url": address},
        )

        if self._cache is not None:
            self._cache[name] = address
        return address

    def visibility_address(self, source_address: str) -> str:
        """Address usable for visibility changes of a message from ``source_address``."""
        if is_absolute_address(source_address):
            return source_address
        if source_address.startswith(ARN_PREFIX):
            return queue_url_from_arn(source_address)
        return self.resolve(queue_name_from_source(source_address))


__all__ = [
    "AddressLookup",
    "QueueAddressResolver",
    "is_absolute_address",
    "join_prefix",
    "queue_name_from_source",
    "queue_url_from_arn",
]
