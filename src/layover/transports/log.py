"""
Log transport: records each request and response through ``logging``.

Every record carries ``request_id`` and the elapsed ``duration`` as extra
fields, so StructuredFormatter can emit them as JSON keys.
"""

from __future__ import annotations

import logging
import time

from layover.core.streams import ByteStream
from layover.core.types import Request, Response, Transport
from layover.exceptions import MissingRequestIDError
from layover.transports.request_id import REQUEST_ID_HEADER
from layover.utils.logging import get_logger


class Log:
    """
    Logs each request and response.

    Records are logged at ``level`` unless the transport raises or the
    response body fails to read, in which case the final record is logged at
    ERROR. The last record is emitted when the caller closes the body.

    Requires RequestID earlier in the chain.

    Examples:
        >>> transport = RequestID(Log(AiohttpTransport(), level=logging.DEBUG))
    """

    def __init__(
        self,
        transport: Transport,
        logger: logging.Logger | None = None,
        level: int = logging.INFO,
        include_response_body: bool = False,
    ):
        self.transport = transport
        self.logger = logger or get_logger("layover.http")
        self.level = level
        self.include_response_body = include_response_body

    async def send(self, request: Request) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER)
        if not request_id:
            raise MissingRequestIDError()
        start = time.monotonic()

        def fields(**kwargs) -> dict:
            return {"request_id": request_id, "duration": time.monotonic() - start, **kwargs}

        self.logger.log(
            self.level,
            "http request",
            extra=fields(
                url=str(request.url),
                method=request.method,
                content_encoding=request.headers.get("Content-Encoding", ""),
            ),
        )
        try:
            response = await self.transport.send(request)
        except Exception as e:
            self.logger.error("http error", extra=fields(error=repr(e)))
            raise

        self.logger.log(
            self.level,
            "http response",
            extra=fields(
                status=response.status,
                content_encoding=response.headers.get("Content-Encoding", ""),
                content_length=response.headers.get("Content-Length", ""),
                content_type=response.headers.get("Content-Type", ""),
            ),
        )
        response.body = LoggingStream(response.body, self, fields)
        return response

    def unwrap(self) -> Transport:
        return self.transport


class LoggingStream(ByteStream):
    """Counts or keeps what the caller reads, and logs a summary on close."""

    def __init__(self, body: ByteStream, owner: Log, fields):
        self._body = body
        self._owner = owner
        self._fields = fields
        self._content = bytearray()
        self._size = 0
        self._error: Exception | None = None
        self._closed = False

    async def read(self, n: int = -1) -> bytes:
        try:
            chunk = await self._body.read(n)
        except Exception as e:
            if self._error is None:
                self._error = e
            raise
        if self._owner.include_response_body:
            self._content += chunk
        self._size += len(chunk)
        return chunk

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._body.close()
        except Exception as e:
            if self._error is None:
                self._error = e
            raise
        finally:
            level = logging.ERROR if self._error is not None else self._owner.level
            extra = {"size": self._size, "error": repr(self._error) if self._error else None}
            if self._owner.include_response_body:
                extra["body"] = self._content.decode("utf-8", errors="replace")
            self._owner.logger.log(level, "http body", extra=self._fields(**extra))
