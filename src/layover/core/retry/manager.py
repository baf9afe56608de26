"""
Retry transport: re-sends a request while its retry policy allows it.

Attempts are strictly sequential. Before each new attempt the previous
response body is drained and closed so its connection can be reused, and the
request body is re-created from the request's ``get_body`` factory.
"""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import cast

from layover.core.retry.policy import DEFAULT_RETRY_POLICY, RetryPolicy, retry_clock
from layover.core.types import Request, Response, Transport, ensure_replayable
from layover.exceptions import RequestCancelledError
from layover.utils.logging import get_logger

logger = get_logger("layover.retry")

_DELAY_SECONDS = re.compile(r"\d+")


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """
    Parse a Retry-After header into a delay in seconds.

    Accepts a non-negative integer count of seconds or an HTTP-date.
    Returns None when the value is missing, unparseable or not in the future.
    """
    if not value:
        return None
    value = value.strip()
    if _DELAY_SECONDS.fullmatch(value):
        seconds = int(value)
        return float(seconds) if seconds > 0 else None
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    delay = (when - (now or datetime.now(UTC))).total_seconds()
    return delay if delay > 0 else None


class Retry:
    """
    Retries a request on HTTP 429 and transient 5xx responses.

    All stop/continue decisions are delegated to the policy. When a response
    carries a positive ``Retry-After`` header it overrides the policy backoff.

    Examples:
        >>> transport = Retry(AiohttpTransport(), policy=ExponentialBackoff(max_attempts=5))
        >>> response = await transport.send(Request("GET", "https://example.com"))

        >>> # Disable sleeping in unit tests
        >>> async def no_sleep(delay): pass
        >>> transport = Retry(stub, sleep=no_sleep)
    """

    def __init__(
        self,
        transport: Transport,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] | None = None,
    ):
        """
        Initialize Retry.

        Args:
            transport: Transport that performs each attempt
            policy: Retry policy (defaults to DEFAULT_RETRY_POLICY)
            sleep: Wait provider used between attempts
            clock: Monotonic clock for the start time and the policy's elapsed-time check
                (defaults to the policy's own clock, then time.monotonic)
        """
        self.transport = transport
        self.policy = policy
        self._sleep = sleep
        self._clock = clock

    async def _attempt(self, request: Request) -> tuple[Response | None, Exception | None]:
        try:
            return await self.transport.send(request), None
        except Exception as e:
            return None, e

    async def send(self, request: Request) -> Response:
        policy = self.policy or DEFAULT_RETRY_POLICY
        clock = self._clock or getattr(policy, "clock", None) or time.monotonic
        token = retry_clock.set(clock)
        try:
            return await self._send(request, policy, clock())
        finally:
            retry_clock.reset(token)

    async def _send(self, request: Request, policy: RetryPolicy, start: float) -> Response:
        request = await ensure_replayable(request)
        ctx = request.context

        response, error = await self._attempt(request)
        attempt = 0
        while policy.should_retry(ctx, start, attempt, error, response):
            if request.body is not None:
                try:
                    request = request.clone(body=request.fresh_body())
                except Exception:
                    if response is not None:
                        await response.close()
                    raise

            delay = parse_retry_after(response.headers.get("Retry-After")) if response is not None else None
            if delay is None:
                delay = policy.backoff(start, attempt)
            status = response.status if response is not None else type(error).__name__
            logger.debug(f"{request.method} {request.url} attempt {attempt + 1} got {status}, retrying in {delay:.2f}s")

            try:
                await ctx.sleep(delay, self._sleep)
            except RequestCancelledError:
                # Hand back the previous attempt untouched.
                logger.warning(f"{request.method} {request.url} retry abandoned: {ctx.error}")
                break

            if response is not None:
                try:
                    await response.drain()
                except Exception as e:
                    logger.debug(f"Failed to drain response before retrying {request.url}: {e}")

            attempt += 1
            response, error = await self._attempt(request)

        if response is None:
            raise cast(Exception, error)
        if attempt > 0:
            logger.info(f"{request.method} {request.url} got {response.status} after {attempt + 1} attempts")
        return response

    def unwrap(self) -> Transport:
        return self.transport
