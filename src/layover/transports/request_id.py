"""
RequestID transport: stamps every request with a unique X-Request-ID.
"""

from __future__ import annotations

import base64
import secrets

from layover.core.types import Request, Response, Transport

REQUEST_ID_HEADER = "X-Request-ID"


def generate_request_id() -> str:
    """16 URL-safe characters from 12 random bytes."""
    return base64.urlsafe_b64encode(secrets.token_bytes(12)).decode("ascii").rstrip("=")


class RequestID:
    """
    Adds X-Request-ID to each request.

    It helps tracking requests simultaneously on the client and the server,
    and is required by the Log transport.
    """

    def __init__(self, transport: Transport):
        self.transport = transport

    async def send(self, request: Request) -> Response:
        request = request.clone()
        request.headers[REQUEST_ID_HEADER] = generate_request_id()
        return await self.transport.send(request)

    def unwrap(self) -> Transport:
        return self.transport
