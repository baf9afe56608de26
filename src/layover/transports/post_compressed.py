"""
PostCompressed transport: compresses request bodies.

Warning: most servers do not accept compressed request bodies. Only use it
with a server known to support the chosen encoding.
"""

from __future__ import annotations

from layover.codecs import CODECS, CompressStream
from layover.core.streams import ByteStream
from layover.core.types import Request, Response, Transport, ensure_replayable
from layover.exceptions import ConfigurationError


class PostCompressed:
    """
    Compresses the request body with ``encoding`` ("gzip", "br" or "zstd").

    Compression is streamed while the body is sent. The request's
    ``get_body`` factory is wrapped so a retried request is compressed again
    from a fresh copy. Requests without a body, or with a Content-Encoding
    already set, are passed through untouched.

    Args:
        transport: Transport to send the compressed request through
        encoding: Content coding to apply
        level: Compression level. gzip accepts 1-9 and br 0-11, both
            defaulting to 3; zstd accepts 1-22 and defaults to 1, the fastest.
    """

    def __init__(self, transport: Transport, encoding: str, level: int | None = None):
        if not encoding:
            raise ConfigurationError("PostCompressed requires an encoding")
        if encoding not in CODECS:
            raise ConfigurationError(f"invalid encoding value: {encoding!r}")
        self.transport = transport
        self.encoding = encoding
        self.level = level

    def _compress(self, body: ByteStream) -> ByteStream:
        return CompressStream(body, self.encoding, self.level)

    async def send(self, request: Request) -> Response:
        if request.body is None or "Content-Encoding" in request.headers:
            return await self.transport.send(request)

        request = await ensure_replayable(request)
        get_body = request.get_body
        request = request.clone(
            body=self._compress(request.body),
            get_body=lambda: self._compress(get_body()),
        )
        request.headers.popall("Content-Length", None)
        request.headers["Content-Encoding"] = self.encoding
        return await self.transport.send(request)

    def unwrap(self) -> Transport:
        return self.transport
