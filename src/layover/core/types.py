"""
Core request, response and transport types.

Every transport, leaf or decorator, implements the same one-method contract::

    async def send(request: Request) -> Response

A decorator holds exactly one inner transport and exposes it through
``unwrap()`` so chains can be inspected.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from multidict import CIMultiDict
from yarl import URL

from layover.core.context import Context
from layover.core.streams import ByteStream, BytesStream, EmptyStream
from layover.exceptions import BodyReplayError

BodyFactory = Callable[[], ByteStream]

HeadersInput = Mapping[str, str] | Iterable[tuple[str, str]] | None


def _headers(value: HeadersInput) -> CIMultiDict[str]:
    if value is None:
        return CIMultiDict()
    return CIMultiDict(value)


@runtime_checkable
class Transport(Protocol):
    """Turns a request into a response, or raises."""

    async def send(self, request: Request) -> Response: ...


@runtime_checkable
class Unwrapper(Protocol):
    """Implemented by decorators wrapping exactly one transport."""

    def unwrap(self) -> Transport: ...


def unwrap_all(transport: Transport) -> Transport:
    """Follow ``unwrap()`` down to the innermost transport."""
    while isinstance(transport, Unwrapper):
        transport = transport.unwrap()
    return transport


@dataclass
class Request:
    """
    Outgoing HTTP request.

    ``body`` may be given as bytes or str for convenience; it is then wrapped
    in a BytesStream and ``get_body`` is synthesized so the request can be
    replayed. A ByteStream body without ``get_body`` can be sent only once
    unless ensure_replayable() buffers it first.

    Decorators treat requests as immutable and use clone() before mutating.
    """

    method: str
    url: URL
    headers: CIMultiDict[str] = field(default_factory=CIMultiDict)
    body: ByteStream | None = None
    get_body: BodyFactory | None = None
    context: Context = field(default_factory=Context)

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        if not isinstance(self.url, URL):
            self.url = URL(self.url)
        if not isinstance(self.headers, CIMultiDict):
            self.headers = _headers(self.headers)
        if isinstance(self.body, str):
            self.body = self.body.encode()
        if isinstance(self.body, bytes | bytearray | memoryview):
            data = bytes(self.body)
            self.body = BytesStream(data)
            if self.get_body is None:
                self.get_body = lambda: BytesStream(data)

    def clone(self, **changes: Any) -> Request:
        """Shallow copy with a private header multimap."""
        changes.setdefault("headers", CIMultiDict(self.headers))
        return dataclasses.replace(self, **changes)

    def fresh_body(self) -> ByteStream | None:
        """
        Produce a new body stream for another attempt.

        Raises:
            BodyReplayError: The body cannot be re-created
        """
        if self.body is None:
            return None
        if self.get_body is None:
            raise BodyReplayError(f"{self.method} {self.url}: request body cannot be replayed")
        try:
            return self.get_body()
        except Exception as e:
            raise BodyReplayError(f"{self.method} {self.url}: failed to replay request body: {e}") from e


async def ensure_replayable(request: Request) -> Request:
    """
    Return a request that can be sent more than once.

    A one-shot body is buffered into memory and a clone carrying a
    ``get_body`` factory is returned. Requests without a body, or that
    already have a factory, are returned unchanged.

    Raises:
        BodyReplayError: Buffering the body failed
    """
    if request.body is None or request.get_body is not None:
        return request
    try:
        data = await request.body.readall()
    except Exception as e:
        raise BodyReplayError(f"{request.method} {request.url}: failed to buffer request body: {e}") from e
    finally:
        await request.body.close()
    return request.clone(body=BytesStream(data), get_body=lambda: BytesStream(data))


@dataclass
class Response:
    """
    Incoming HTTP response.

    The body is consumed once by whoever ends up owning the response and must
    be closed, either with read(), drain() or close().
    """

    status: int
    headers: CIMultiDict[str] = field(default_factory=CIMultiDict)
    body: ByteStream = field(default_factory=EmptyStream)
    reason: str = ""
    request: Request | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.headers, CIMultiDict):
            self.headers = _headers(self.headers)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400

    async def read(self) -> bytes:
        """Read the whole body and close it."""
        try:
            return await self.body.readall()
        finally:
            await self.body.close()

    async def text(self, encoding: str = "utf-8") -> str:
        return (await self.read()).decode(encoding, errors="replace")

    async def drain(self) -> None:
        """Discard the rest of the body and close it so the connection can be reused."""
        try:
            while await self.body.read(64 * 1024):
                pass
        finally:
            await self.body.close()

    async def close(self) -> None:
        await self.body.close()

    def __repr__(self) -> str:
        return f"<Response [{self.status}]>"
