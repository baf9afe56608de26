"""
Async byte streams used for request and response bodies.

A stream is consumed once. Request bodies that must be sent again are
re-created through the request's ``get_body`` factory instead.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

CHUNK_SIZE = 64 * 1024


class ByteStream(ABC):
    """Readable, closable async byte stream."""

    @abstractmethod
    async def read(self, n: int = -1) -> bytes:
        """Read up to ``n`` bytes, or everything left when ``n`` is negative. Returns b"" at EOF."""

    async def close(self) -> None:
        """Release the underlying resources."""

    async def readall(self) -> bytes:
        """Read until EOF."""
        chunks = []
        while True:
            chunk = await self.read(CHUNK_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self.read(CHUNK_SIZE)
            if not chunk:
                return
            yield chunk

    async def __aenter__(self) -> ByteStream:
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        await self.close()


class BytesStream(ByteStream):
    """In-memory stream over a bytes buffer."""

    def __init__(self, data: bytes = b""):
        self._data = memoryview(bytes(data))
        self._pos = 0
        self.closed = False

    async def read(self, n: int = -1) -> bytes:
        if n < 0:
            n = len(self._data) - self._pos
        chunk = self._data[self._pos : self._pos + n]
        self._pos += len(chunk)
        return bytes(chunk)

    async def close(self) -> None:
        self.closed = True

    def getvalue(self) -> bytes:
        """The whole buffer, regardless of the read position."""
        return self._data.tobytes()

    def __len__(self) -> int:
        return len(self._data)


class EmptyStream(BytesStream):
    """Stream with no content, used for bodiless responses."""

    def __init__(self) -> None:
        super().__init__(b"")
