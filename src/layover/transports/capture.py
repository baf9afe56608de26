"""
Capture transport: records every request/response exchange into a queue.
"""

from __future__ import annotations

import asyncio
import dataclasses
from dataclasses import dataclass

from layover.core.streams import ByteStream, BytesStream
from layover.core.types import Request, Response, Transport, ensure_replayable


@dataclass
class Record:
    """
    A captured exchange.

    ``request.get_body`` is always set when the request had a body, so the
    consumer can read what was sent. ``response`` holds an in-memory copy of
    what the caller read from the body before closing it.
    """

    request: Request
    response: Response | None = None
    # Transport error, or the error raised while reading the response body
    error: Exception | None = None


class Capture:
    """
    Records each request into ``queue``.

    A failed exchange is recorded immediately. A successful one is recorded
    when the caller closes the response body.

    Examples:
        >>> records: asyncio.Queue[Record] = asyncio.Queue()
        >>> transport = Capture(AiohttpTransport(), records)
        >>> response = await transport.send(request)
        >>> await response.read()
        >>> record = records.get_nowait()
    """

    def __init__(self, transport: Transport, queue: asyncio.Queue[Record]):
        self.transport = transport
        self.queue = queue

    async def send(self, request: Request) -> Response:
        request = await ensure_replayable(request)
        try:
            response = await self.transport.send(request)
        except Exception as e:
            await self.queue.put(Record(request=request, error=e))
            raise
        captured = dataclasses.replace(response)
        response.body = CaptureStream(response.body, request, captured, self.queue)
        return response

    def unwrap(self) -> Transport:
        return self.transport


class CaptureStream(ByteStream):
    """Keeps a copy of what is read and publishes the Record on close."""

    def __init__(self, body: ByteStream, request: Request, response: Response, queue: asyncio.Queue[Record]):
        self._body = body
        self._request = request
        self._response = response
        self._queue = queue
        self._content = bytearray()
        self._error: Exception | None = None
        self._closed = False

    async def read(self, n: int = -1) -> bytes:
        try:
            chunk = await self._body.read(n)
        except Exception as e:
            if self._error is None:
                self._error = e
            raise
        self._content += chunk
        return chunk

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._body.close()
        finally:
            self._response.body = BytesStream(bytes(self._content))
            await self._queue.put(Record(request=self._request, response=self._response, error=self._error))
