"""
Cancellation contexts for in-flight requests.

A Context is the cancellation token attached to every Request. Decorators that
suspend (Retry between attempts, Throttle while pacing) race their wait against
the context so callers can abort a request promptly.

Usage:
    ctx = Context().with_timeout(5.0)
    response = await client.get("https://example.com", context=ctx)

    # From another task
    ctx.cancel()
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import cast

from layover.exceptions import DeadlineExceededError, RequestCancelledError

Sleeper = Callable[[float], Awaitable[None]]


class Context:
    """
    Cancellation token with an optional parent.

    Cancelling a context cancels all of its children. The error delivered to
    waiters is available from ``error`` once ``done`` is True.

    Contexts are meant to be cancelled from the event loop thread that runs
    the request.
    """

    def __init__(self, parent: Context | None = None):
        self._event = asyncio.Event()
        self._error: RequestCancelledError | None = None
        self._children: list[Context] = []
        self._timer: asyncio.TimerHandle | None = None
        if parent is not None:
            if parent.done:
                self._set(parent.error)
            else:
                parent._children.append(self)

    @property
    def done(self) -> bool:
        """True once the context has been cancelled."""
        return self._error is not None

    @property
    def error(self) -> RequestCancelledError | None:
        """The cancellation error, or None while the context is live."""
        return self._error

    def cancel(self, error: RequestCancelledError | None = None) -> None:
        """Cancel this context and its children. Later calls are no-ops."""
        self._set(error or RequestCancelledError())

    def _set(self, error: RequestCancelledError | None) -> None:
        if self._error is not None or error is None:
            return
        self._error = error
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        children, self._children = self._children, []
        for child in children:
            child._set(error)

    async def wait(self) -> RequestCancelledError:
        """Wait until the context is cancelled and return its error."""
        await self._event.wait()
        return cast(RequestCancelledError, self._error)

    def with_cancel(self) -> Context:
        """Derive a child context that can be cancelled independently."""
        return Context(parent=self)

    def with_timeout(self, seconds: float) -> Context:
        """
        Derive a child context cancelled with DeadlineExceededError after ``seconds``.

        Must be called from a running event loop.
        """
        child = Context(parent=self)
        if seconds <= 0:
            child.cancel(DeadlineExceededError())
        elif not child.done:
            loop = asyncio.get_running_loop()
            child._timer = loop.call_later(seconds, child.cancel, DeadlineExceededError())
        return child

    async def sleep(self, delay: float, sleeper: Sleeper = asyncio.sleep) -> None:
        """
        Wait ``delay`` seconds with ``sleeper`` unless the context is cancelled first.

        Raises:
            RequestCancelledError: The context was cancelled before the wait completed
        """
        if self._error is not None:
            raise self._error
        sleeping = asyncio.ensure_future(sleeper(delay))
        cancelled = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({sleeping, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeping, cancelled):
                if not task.done():
                    task.cancel()
        if self._error is not None:
            raise self._error
        # Surface errors raised by the wait provider itself.
        sleeping.result()

    def __repr__(self) -> str:
        state = type(self._error).__name__ if self._error else "live"
        return f"Context({state})"
