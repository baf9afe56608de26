"""
Retry policies for the Retry transport.

A policy is a pure decision object: it holds no attempt counter of its own.
The Retry transport passes the start time, the attempt index and the outcome
of the last attempt, and the policy answers whether to try again and how long
to wait first.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from layover.core.context import Context
from layover.core.retry.classify import is_retriable_error
from layover.core.types import Response

# 429 Too Many Requests, 502 Bad Gateway, 503 Service Unavailable,
# 504 Gateway Timeout and the non-standard 529 Site Overloaded.
RETRIABLE_STATUS_CODES = frozenset({429, 502, 503, 504, 529})

# Clock the Retry transport read the start time from; set for the duration of a send.
retry_clock: ContextVar[Callable[[], float]] = ContextVar("retry_clock", default=time.monotonic)


@runtime_checkable
class RetryPolicy(Protocol):
    """Determines when Retry should retry a request and how long to wait."""

    def should_retry(
        self,
        context: Context,
        start: float,
        attempt: int,
        error: BaseException | None,
        response: Response | None,
    ) -> bool: ...

    def backoff(self, start: float, attempt: int) -> float: ...


@dataclass
class ExponentialBackoff:
    """
    Exponential backoff without jitter.

    Waits ``exponent_base ** attempt`` seconds before retry ``attempt``
    (0-indexed). Only responses with a retriable status code are retried;
    a bare transport error is never retried by this policy since the
    request may not be idempotent.

    Examples:
        >>> policy = ExponentialBackoff(max_attempts=5, max_elapsed=60.0, exponent_base=1.5)
        >>> policy.backoff(0.0, 2)
        2.25
    """

    # Maximum number of retries (total sends = max_attempts + 1)
    max_attempts: int = 3

    # Stop retrying once this many seconds have passed since the first send
    max_elapsed: float = 10.0

    exponent_base: float = 2.0

    # Monotonic clock the start time was taken from; None follows the Retry transport's clock
    clock: Callable[[], float] | None = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        """Validate configuration."""
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        if self.max_elapsed < 0:
            raise ValueError("max_elapsed must be >= 0")
        if self.exponent_base <= 0:
            raise ValueError("exponent_base must be > 0")

    def should_retry(
        self,
        context: Context,
        start: float,
        attempt: int,
        error: BaseException | None,
        response: Response | None,
    ) -> bool:
        if (
            attempt >= self.max_attempts
            or (self.clock or retry_clock.get())() - start > self.max_elapsed
            or context.done
            or not is_retriable_error(error)
            or response is None
        ):
            return False
        return response.status in RETRIABLE_STATUS_CODES

    def backoff(self, start: float, attempt: int) -> float:
        return float(self.exponent_base**attempt)


@dataclass
class StatusCodePolicy:
    """
    Retry additional status codes on top of another policy.

    Responses whose status is in ``codes`` are retried as long as the inner
    policy's attempt limit allows it; every other decision, and the backoff,
    is delegated to ``policy``.

    Examples:
        >>> policy = StatusCodePolicy(codes={402})
    """

    codes: Iterable[int] = ()
    policy: RetryPolicy = field(default_factory=lambda: DEFAULT_RETRY_POLICY)

    def __post_init__(self):
        self.codes = frozenset(self.codes)

    def should_retry(
        self,
        context: Context,
        start: float,
        attempt: int,
        error: BaseException | None,
        response: Response | None,
    ) -> bool:
        if response is not None and response.status in self.codes and not context.done:
            max_attempts = getattr(self.policy, "max_attempts", None)
            if max_attempts is None or attempt < max_attempts:
                return True
        return self.policy.should_retry(context, start, attempt, error, response)

    def backoff(self, start: float, attempt: int) -> float:
        return self.policy.backoff(start, attempt)


# 2**0 + 2**1 + 2**2 == 7 seconds of sleeping, within the 10 second ceiling.
DEFAULT_RETRY_POLICY = ExponentialBackoff(max_attempts=3, max_elapsed=10.0, exponent_base=2.0)

NO_RETRY_POLICY = ExponentialBackoff(max_attempts=0)
