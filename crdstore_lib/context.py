"""Cancellation and deadline signal threaded through remote calls.

A `Context` is passed as the first argument to every store operation and
from there into every control plane request. It can be cancelled from any
thread and may carry a deadline; remote calls refuse to start once the
context is done and abort their wait when it becomes done mid-flight.

    ctx = Context.with_timeout(5)
    storage.put(ctx, '/foo', 'bar')
"""
from __future__ import annotations
import threading
import time
from typing import Optional

from crdstore_lib.errors import CancelledError, DeadlineExceededError


class Context:
    def __init__(self, deadline: Optional[float] = None) -> None:
        # deadline is a time.monotonic() timestamp
        self.deadline = deadline
        self._event = threading.Event()
        self._reason: Optional[str] = None

    @classmethod
    def background(cls) -> "Context":
        return cls()

    @classmethod
    def with_timeout(cls, seconds: Optional[float]) -> "Context":
        if seconds is None:
            return cls()
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self, reason: Optional[str] = None) -> None:
        if self._event.is_set():
            return
        self._reason = reason or "context cancelled"
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    @property
    def done(self) -> bool:
        return self.cancelled or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds left until the deadline, or None when unbounded."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def raise_if_done(self, operation: str = "") -> None:
        prefix = f"{operation}: " if operation else ""
        if self._event.is_set():
            raise CancelledError(f"{prefix}{self._reason}")
        if self.expired:
            raise DeadlineExceededError(f"{prefix}context deadline exceeded")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the context is done or `timeout` elapses.

        Returns True when the context is done.
        """
        remaining = self.remaining()
        if remaining is not None:
            timeout = remaining if timeout is None else min(timeout, remaining)
        self._event.wait(timeout)
        return self.done

    def sleep(self, seconds: float, operation: str = "") -> None:
        """Sleep for `seconds`, raising early if the context becomes done."""
        if seconds > 0:
            self.wait(seconds)
        self.raise_if_done(operation)


def ensure_context(ctx: Optional[Context]) -> Context:
    return ctx if ctx is not None else Context.background()
