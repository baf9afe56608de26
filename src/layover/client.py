"""
Thin client facade over a transport chain.

Client only builds Request objects and hands them to its transport; every
behavior (retries, pacing, logging, compression) comes from the decorators
the transport is made of.
"""

from __future__ import annotations

from typing import Any

from layover.core.context import Context
from layover.core.streams import ByteStream
from layover.core.types import HeadersInput, Request, Response, Transport, unwrap_all
from layover.transport import AiohttpTransport


class Client:
    """
    Issues requests through a transport chain.

    Example:
        ```python
        from layover import Client, Retry, RequestID, AcceptCompressed, Log, AiohttpTransport

        transport = Retry(RequestID(AcceptCompressed(Log(AiohttpTransport()))))

        async with Client(transport) as client:
            response = await client.get("https://api.example.com/users")
            data = await response.read()
        ```
    """

    def __init__(self, transport: Transport | None = None):
        self.transport = transport or AiohttpTransport()

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: HeadersInput = None,
        data: bytes | str | ByteStream | None = None,
        context: Context | None = None,
    ) -> Response:
        """
        Send one request.

        Args:
            method: HTTP method
            url: Absolute URL
            headers: Request headers
            data: Request body; bytes and str bodies can be replayed on retry
            context: Cancellation context (default: a fresh, never-cancelled one)

        Returns:
            The response; its body must be read or closed by the caller
        """
        request = Request(method, url, headers=headers, body=data, context=context or Context())
        return await self.transport.send(request)

    async def get(self, url: str, **kwargs: Any) -> Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, data: bytes | str | ByteStream | None = None, **kwargs: Any) -> Response:
        return await self.request("POST", url, data=data, **kwargs)

    async def put(self, url: str, data: bytes | str | ByteStream | None = None, **kwargs: Any) -> Response:
        return await self.request("PUT", url, data=data, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> Response:
        return await self.request("DELETE", url, **kwargs)

    async def close(self) -> None:
        """Close the leaf transport if it holds resources."""
        leaf = unwrap_all(self.transport)
        close = getattr(leaf, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        await self.close()
