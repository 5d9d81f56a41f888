"""Bounded exponential backoff built on tenacity.

Retries are attempt-bounded: by default an operation is tried at most 7
times and there is no overall time limit. The wait between attempts grows
exponentially, plus a random delay of up to `jitter` seconds, and is
interruptible through the caller's `Context`.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar
import logging

from tenacity import (
    Retrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
    wait_random,
)

from crdstore_lib.context import Context, ensure_context
from crdstore_lib.errors import CancelledError, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_TRIES = 7


@dataclass(frozen=True)
class BackoffPolicy:
    max_tries: int = DEFAULT_MAX_TRIES
    initial_interval: float = 0.5
    multiplier: float = 1.5
    max_interval: float = 60.0
    # Upper bound of the random delay added to every wait
    jitter: float = 0.5
    # None disables the elapsed-time cap
    max_elapsed_time: Optional[float] = None

    def __post_init__(self) -> None:
        if self.max_tries < 1:
            raise ValueError("max_tries must be at least 1")

    def stop(self):
        stop = stop_after_attempt(self.max_tries)
        if self.max_elapsed_time is not None:
            stop = stop | stop_after_delay(self.max_elapsed_time)
        return stop

    def wait(self):
        return wait_exponential(
            multiplier=self.initial_interval,
            exp_base=self.multiplier,
            max=self.max_interval,
        ) + wait_random(0, self.jitter)


def _log_retry(operation: str) -> Callable[[RetryCallState], None]:
    def before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        wait = state.next_action.sleep if state.next_action else 0
        logger.warning(
            "%s failed (attempt %d), retrying in %.2fs: %s",
            operation, state.attempt_number, wait, exc,
        )
    return before_sleep


def retry(
    operation: Callable[[], T],
    policy: Optional[BackoffPolicy] = None,
    ctx: Optional[Context] = None,
    retry_on: Tuple[Type[BaseException], ...] = (StorageError,),
    name: str = "operation",
) -> T:
    """Invoke `operation` until it succeeds or the policy gives up.

    Only exceptions matching `retry_on` are retried; `CancelledError` never
    is. When attempts are exhausted the last exception is re-raised as is.
    """
    policy = policy or BackoffPolicy()
    ctx = ensure_context(ctx)

    def should_retry(exc: BaseException) -> bool:
        return isinstance(exc, retry_on) and not isinstance(exc, CancelledError)

    def attempt() -> T:
        ctx.raise_if_done(name)
        return operation()

    retrying = Retrying(
        stop=policy.stop(),
        wait=policy.wait(),
        retry=retry_if_exception(should_retry),
        sleep=lambda seconds: ctx.sleep(seconds, name),
        before_sleep=_log_retry(name),
        reraise=True,
    )
    return retrying(attempt)
