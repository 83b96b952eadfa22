"""
Capability interfaces for jobs and queue backends.

Other brokers provide their own implementations of these protocols; there is
no shared base class state.
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class JobHandle(Protocol):
    """What a handler may do with a delivered job."""

    def identity(self) -> str: ...

    def attempts(self) -> int: ...

    def raw_body(self) -> str: ...

    def delete(self) -> None: ...

    def release(self, delay: int = 0) -> None: ...


@runtime_checkable
class QueueBackend(Protocol):
    """Queue-level operations an application uses to produce and inspect work."""

    def push(self, job: str, data: dict[str, Any] | None = None, queue: str | None = None) -> str: ...

    def push_raw(self, payload: str, queue: str | None = None, **options: Any) -> str: ...

    def later(
        self,
        delay: int | timedelta | datetime,
        job: str,
        data: dict[str, Any] | None = None,
        queue: str | None = None,
    ) -> str: ...

    def pop(self, queue: str | None = None) -> JobHandle | None: ...

    def size(self, queue: str | None = None) -> int: ...

    def clear(self, queue: str) -> int: ...

    def resolve_address(self, queue: str | None = None) -> str: ...


# Anything able to run a job: a JobContainer or a plain function
JobRunner = Callable[[Any], Any]
