"""
Testing utilities for code built on Layover transports.

Provides a scripted transport and deterministic wait providers so retry and
throttle behavior can be unit-tested without a server or real sleeping.

Usage:
    from layover import Retry, Request
    from layover.testing import RecordingSleep, StubTransport, make_response

    stub = StubTransport([make_response(503), make_response(200, b"ok")])
    sleep = RecordingSleep()
    response = await Retry(stub, sleep=sleep).send(Request("GET", "https://example.com"))
    assert sleep.delays == [1.0]
    assert stub.calls == 2
"""

import asyncio
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from layover.core.streams import BytesStream
from layover.core.types import Request, Response


def make_response(
    status: int = 200,
    body: bytes | str = b"",
    headers: Mapping[str, str] | None = None,
    request: Request | None = None,
) -> Response:
    """Build an in-memory response."""
    if isinstance(body, str):
        body = body.encode()
    return Response(status=status, headers=dict(headers or {}), body=BytesStream(body), request=request)


Outcome = Response | Exception | Callable[[Request], Response]


@dataclass
class SentRequest:
    """What a StubTransport received for one attempt."""

    request: Request
    body: bytes | None


class StubTransport:
    """
    Transport returning scripted outcomes in order.

    Each outcome is a Response (returned), an exception (raised) or a callable
    taking the request. The last outcome repeats once the script runs out.
    The request body of every attempt is read and kept in ``sent``.
    """

    def __init__(self, outcomes: Iterable[Outcome]):
        self.outcomes = list(outcomes)
        if not self.outcomes:
            raise ValueError("StubTransport needs at least one outcome")
        self.sent: list[SentRequest] = []
        # Responses handed out, in order
        self.responses: list[Response] = []

    @property
    def calls(self) -> int:
        return len(self.sent)

    @property
    def bodies(self) -> list[bytes | None]:
        return [s.body for s in self.sent]

    async def send(self, request: Request) -> Response:
        body = None
        if request.body is not None:
            body = await request.body.readall()
            await request.body.close()
        self.sent.append(SentRequest(request=request, body=body))

        index = min(len(self.sent), len(self.outcomes)) - 1
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, Response):
            # Hand out a fresh body so a repeated outcome can be read again.
            data = outcome.body.getvalue() if isinstance(outcome.body, BytesStream) else b""
            response = Response(
                status=outcome.status,
                headers=outcome.headers.copy(),
                body=BytesStream(data),
                reason=outcome.reason,
                request=request,
            )
        else:
            response = outcome(request)
        self.responses.append(response)
        return response


@dataclass
class RecordingSleep:
    """
    Wait provider that records requested delays instead of sleeping.

    With ``block=True`` it never returns, which lets tests cancel a
    request while it is waiting. ``started`` is set on the first call.
    """

    block: bool = False
    delays: list[float] = field(default_factory=list)
    started: asyncio.Event = field(default_factory=asyncio.Event)

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        self.started.set()
        if self.block:
            await asyncio.get_running_loop().create_future()
