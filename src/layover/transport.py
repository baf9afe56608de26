"""
Network transport backed by aiohttp.

AiohttpTransport is the leaf of a decorator chain: it performs the actual
connection and I/O. aiohttp's transparent decompression is turned off so that
AcceptCompressed decides which encodings are negotiated and decoded.
"""

from __future__ import annotations

import asyncio
import ssl
from typing import Any

import aiohttp
from yarl import URL

from layover.core.streams import ByteStream
from layover.core.types import Request, Response
from layover.exceptions import (
    CertificateError,
    InvalidHeaderError,
    TooManyRedirectsError,
    TransportError,
    UnsupportedSchemeError,
)
from layover.utils.logging import get_logger

logger = get_logger("layover.transport")

SUPPORTED_SCHEMES = frozenset({"http", "https"})


class AiohttpBody(ByteStream):
    """Response body read from an aiohttp response."""

    def __init__(self, response: aiohttp.ClientResponse):
        self._response = response

    async def read(self, n: int = -1) -> bytes:
        try:
            return await self._response.content.read(n)
        except aiohttp.ClientError as e:
            raise TransportError(f"error reading response body: {e}", url=str(self._response.url)) from e

    async def close(self) -> None:
        # A body read to EOF has already handed its connection back to the pool.
        self._response.close()


class AiohttpTransport:
    """
    Sends requests over an aiohttp ClientSession.

    The session is created lazily on first use unless one is supplied. A
    supplied session is not closed by close(); it should be created with
    ``auto_decompress=False`` when AcceptCompressed is used.

    Examples:
        >>> async with AiohttpTransport() as transport:
        ...     response = await transport.send(Request("GET", "https://example.com"))
        ...     body = await response.read()
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        max_redirects: int = 10,
        follow_redirects: bool = True,
        timeout: float | None = None,
        ssl_context: ssl.SSLContext | bool | None = None,
    ):
        """
        Initialize AiohttpTransport.

        Args:
            session: Existing session to use (default: create one)
            max_redirects: Redirects followed before TooManyRedirectsError (default: 10)
            follow_redirects: Whether to follow redirects at all (default: True)
            timeout: Total timeout in seconds for sessions created here (default: none)
            ssl_context: SSL context, or False to skip verification (default: aiohttp's)
        """
        self.max_redirects = max_redirects
        self.follow_redirects = follow_redirects
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.ssl_context = ssl_context
        self.session = session
        self._owns_session = session is None
        self._session_lock = asyncio.Lock()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session exists, creating it if needed."""
        async with self._session_lock:
            if self.session is None or self.session.closed:
                self.session = aiohttp.ClientSession(
                    timeout=self.timeout,
                    auto_decompress=False,
                    # Only send Accept-Encoding when AcceptCompressed asks for it.
                    skip_auto_headers=("Accept-Encoding",),
                )
                self._owns_session = True
            return self.session

    async def send(self, request: Request) -> Response:
        url = request.url
        if url.scheme not in SUPPORTED_SCHEMES:
            raise UnsupportedSchemeError(url.scheme, url=str(url))

        session = await self._ensure_session()
        kwargs: dict[str, Any] = {}
        if self.ssl_context is not None:
            kwargs["ssl"] = self.ssl_context
        try:
            resp = await session.request(
                request.method,
                url,
                headers=request.headers,
                data=request.body,
                allow_redirects=self.follow_redirects,
                max_redirects=self.max_redirects,
                **kwargs,
            )
        except aiohttp.TooManyRedirects as e:
            raise TooManyRedirectsError(str(url), max_redirects=self.max_redirects) from e
        except aiohttp.InvalidURL as e:
            # Also raised when a redirect points at a non-HTTP URL.
            scheme = URL(str(e.url)).scheme
            if scheme and scheme not in SUPPORTED_SCHEMES:
                raise UnsupportedSchemeError(scheme, url=str(url)) from e
            raise TransportError(f"invalid URL {e.url}", url=str(url)) from e
        except aiohttp.ClientConnectorCertificateError as e:
            raise CertificateError(f"certificate is not trusted: {e}", url=str(url)) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"{request.method} {url}: {e}", url=str(url)) from e
        except ssl.SSLCertVerificationError as e:
            raise CertificateError(f"certificate is not trusted: {e}", url=str(url)) from e
        except ValueError as e:
            # Malformed header names and values are rejected with ValueError.
            if "header" in str(e).lower():
                raise InvalidHeaderError(f"invalid header: {e}", url=str(url)) from e
            raise

        logger.debug(f"{request.method} {url} {resp.status}")
        return Response(
            status=resp.status,
            headers=resp.headers.copy(),
            body=AiohttpBody(resp),
            reason=resp.reason or "",
            request=request,
        )

    async def close(self) -> None:
        """Close the session if it was created by this transport."""
        async with self._session_lock:
            if self._owns_session and self.session is not None and not self.session.closed:
                await self.session.close()
            self.session = None

    async def __aenter__(self) -> AiohttpTransport:
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        await self.close()
