"""
AcceptCompressed transport: negotiates and decodes compressed responses.
"""

from __future__ import annotations

from layover.codecs import CODECS, DecompressStream
from layover.core.types import Request, Response, Transport
from layover.exceptions import ContentEncodingError

# Preference order advertised to servers.
ACCEPT_ENCODING = "zstd, br, gzip"


class AcceptCompressed:
    """
    Accepts zstd, br and gzip compressed responses and decodes them.

    The decoded response has Content-Encoding and Content-Length removed.
    Responses with an encoding other than those three (or identity) are
    closed and rejected with ContentEncodingError.
    """

    def __init__(self, transport: Transport):
        self.transport = transport

    async def send(self, request: Request) -> Response:
        request = request.clone()
        request.headers["Accept-Encoding"] = ACCEPT_ENCODING
        response = await self.transport.send(request)

        encoding = response.headers.get("Content-Encoding", "").strip().lower()
        if encoding in ("", "identity"):
            return response
        if encoding not in CODECS:
            await response.close()
            raise ContentEncodingError(f"unsupported Content-Encoding {encoding!r}", encoding=encoding)

        response.body = DecompressStream(response.body, encoding)
        response.headers.popall("Content-Encoding", None)
        response.headers.popall("Content-Length", None)
        return response

    def unwrap(self) -> Transport:
        return self.transport
