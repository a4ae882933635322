"""
ScanGate Concurrency Limiter

A bounded-parallelism gate in front of a worker pool. At most ``capacity``
tasks execute at once, queued tasks are admitted in submission order, and a
task's exception is delivered through its own future.

The ShutdownToken is the cooperative cancellation flag: signal handlers only
set it, and the limiter checks it when a queued task is admitted.
"""

from __future__ import annotations

import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

T = TypeVar("T")


def default_concurrency() -> int:
    return os.cpu_count() or 1


class ShutdownToken:
    """Set once to request a graceful stop; never cleared."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def request(self, reason: str = "shutdown requested") -> None:
        if not self._event.is_set():
            self.reason = reason
        self._event.set()

    @property
    def requested(self) -> bool:
        return self._event.is_set()


class TaskSkipped(Exception):
    """Result of a task that was queued but never admitted because of shutdown."""


class ConcurrencyLimiter:
    """
    Admits at most ``capacity`` concurrent tasks.

    Usage::

        with ConcurrencyLimiter(4) as limiter:
            futures = [limiter.run(scan, path) for path in paths]
    """

    def __init__(self, capacity: int, shutdown: Optional[ShutdownToken] = None) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self.shutdown = shutdown
        self._executor = ThreadPoolExecutor(
            max_workers=capacity, thread_name_prefix="scangate-scan"
        )
        self._lock = threading.Lock()
        self._active = 0
        self._peak = 0

    @property
    def active(self) -> int:
        with self._lock:
            return self._active

    @property
    def peak(self) -> int:
        """Highest number of simultaneously running tasks seen so far."""
        with self._lock:
            return self._peak

    def run(self, task: Callable[..., T], *args: Any, **kwargs: Any) -> "Future[T]":
        """Queue ``task`` and return a future for its result."""
        return self._executor.submit(self._admit, task, args, kwargs)

    def _admit(self, task: Callable[..., T], args: tuple, kwargs: dict) -> T:
        if self.shutdown is not None and self.shutdown.requested:
            raise TaskSkipped(self.shutdown.reason)
        with self._lock:
            self._active += 1
            self._peak = max(self._peak, self._active)
        try:
            return task(*args, **kwargs)
        finally:
            with self._lock:
                self._active -= 1

    def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "ConcurrencyLimiter":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close(wait=True)
