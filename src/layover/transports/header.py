"""
Header transport: applies a fixed set of headers to every request.

Useful to set an Authorization bearer token on all requests of a client.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from layover.core.types import Request, Response, Transport

HeaderValues = str | Sequence[str] | None


class Header:
    """
    Adds, replaces or removes headers on each request.

    - A key mapped to None or an empty list removes the header.
    - A key mapped to a string or a one-element list replaces the header.
    - A key mapped to several values appends them to the existing ones.

    Examples:
        >>> transport = Header(AiohttpTransport(), {"Authorization": f"Bearer {token}"})
    """

    def __init__(self, transport: Transport, headers: Mapping[str, HeaderValues]):
        self.transport = transport
        self.headers = {key: _values(value) for key, value in headers.items()}

    async def send(self, request: Request) -> Response:
        request = request.clone()
        for key, values in self.headers.items():
            if not values:
                request.headers.popall(key, None)
            elif len(values) == 1:
                request.headers[key] = values[0]
            else:
                for value in values:
                    request.headers.add(key, value)
        return await self.transport.send(request)

    def unwrap(self) -> Transport:
        return self.transport


def _values(value: HeaderValues) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)
