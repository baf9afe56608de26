"""
Client-side request pacing.

Throttle spaces requests at least ``1 / qps`` seconds apart. It never lets
idle time accumulate into a burst allowance, so unlike a token bucket it is
not a rate limiter: it keeps a client strictly under a server's limit.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Awaitable, Callable

from layover.core.types import Request, Response, Transport
from layover.utils.logging import get_logger

logger = get_logger("layover.throttle")


class Throttle:
    """
    Smooths out requests to exactly ``qps`` per second or less.

    The slot of each request is reserved under a lock before sleeping, so
    concurrent callers queue one window apart instead of all waking up at the
    same time. The lock is never held while sleeping or sending.

    Examples:
        >>> # Shared instance: all requests through it are paced together
        >>> transport = Throttle(AiohttpTransport(), qps=5)

        >>> # qps <= 0 disables pacing
        >>> transport = Throttle(AiohttpTransport(), qps=0)
    """

    def __init__(
        self,
        transport: Transport,
        qps: float = 0.0,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize Throttle.

        Args:
            transport: Transport to pace
            qps: Maximum requests per second (0 or negative disables throttling)
            sleep: Wait provider used while pacing
            clock: Monotonic clock
        """
        self.transport = transport
        self.qps = qps
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()
        self._last_request: float | None = None

    def _reserve(self) -> float:
        """Reserve the next slot and return how long to wait for it."""
        window = 1.0 / self.qps
        with self._lock:
            now = self._clock()
            delay = 0.0
            if self._last_request is not None:
                elapsed = now - self._last_request
                if elapsed < window:
                    delay = window - elapsed
            self._last_request = now + delay
        return delay

    async def send(self, request: Request) -> Response:
        if self.qps <= 0:
            return await self.transport.send(request)
        delay = self._reserve()
        if delay > 0:
            logger.debug(f"Throttling {request.method} {request.url} for {delay:.3f}s")
            await request.context.sleep(delay, self._sleep)
        return await self.transport.send(request)

    def unwrap(self) -> Transport:
        return self.transport
