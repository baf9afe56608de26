"""
Streaming content codecs keyed by HTTP content-coding token.

Each codec wraps a source ByteStream and compresses or decompresses it
lazily, one chunk per read, so bodies are never fully buffered.
"""

from __future__ import annotations

import zlib
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import brotli
import zstandard

from layover.core.streams import CHUNK_SIZE, ByteStream
from layover.exceptions import ContentEncodingError


class Compressor(Protocol):
    def compress(self, data: bytes) -> bytes: ...

    def flush(self) -> bytes: ...


class Decompressor(Protocol):
    def decompress(self, data: bytes) -> bytes: ...

    def flush(self) -> bytes: ...


class _BrotliCompressor:
    def __init__(self, level: int):
        self._c = brotli.Compressor(quality=level)

    def compress(self, data: bytes) -> bytes:
        return self._c.process(data)

    def flush(self) -> bytes:
        return self._c.finish()


class _BrotliDecompressor:
    def __init__(self) -> None:
        self._d = brotli.Decompressor()

    def decompress(self, data: bytes) -> bytes:
        return self._d.process(data)

    def flush(self) -> bytes:
        if not self._d.is_finished():
            raise ContentEncodingError("truncated br stream", encoding="br")
        return b""


class _ZstdCompressor:
    def __init__(self, level: int):
        self._c = zstandard.ZstdCompressor(level=level).compressobj()

    def compress(self, data: bytes) -> bytes:
        return self._c.compress(data)

    def flush(self) -> bytes:
        return self._c.flush()


class _ZstdDecompressor:
    def __init__(self) -> None:
        self._d = zstandard.ZstdDecompressor().decompressobj()

    def decompress(self, data: bytes) -> bytes:
        return self._d.decompress(data)

    def flush(self) -> bytes:
        if not self._d.eof:
            raise ContentEncodingError("truncated zstd stream", encoding="zstd")
        return b""


class _GzipDecompressor:
    def __init__(self) -> None:
        self._d = zlib.decompressobj(wbits=16 + zlib.MAX_WBITS)

    def decompress(self, data: bytes) -> bytes:
        return self._d.decompress(data)

    def flush(self) -> bytes:
        out = self._d.flush()
        if not self._d.eof:
            raise ContentEncodingError("truncated gzip stream", encoding="gzip")
        return out


@dataclass(frozen=True)
class Codec:
    """A content coding: how to build its compressor and decompressor."""

    name: str
    default_level: int
    compressor: Callable[[int], Compressor]
    decompressor: Callable[[], Decompressor]


CODECS: dict[str, Codec] = {
    "gzip": Codec(
        name="gzip",
        default_level=3,
        compressor=lambda level: zlib.compressobj(level, zlib.DEFLATED, 16 + zlib.MAX_WBITS),
        decompressor=_GzipDecompressor,
    ),
    "br": Codec(name="br", default_level=3, compressor=_BrotliCompressor, decompressor=_BrotliDecompressor),
    # Level 1 is zstd's fastest setting.
    "zstd": Codec(name="zstd", default_level=1, compressor=_ZstdCompressor, decompressor=_ZstdDecompressor),
}


def get_codec(name: str) -> Codec:
    """
    Look up a codec by content-coding token.

    Raises:
        ContentEncodingError: The coding is not supported
    """
    try:
        return CODECS[name]
    except KeyError:
        raise ContentEncodingError(f"unsupported Content-Encoding {name!r}", encoding=name) from None


class _TransformStream(ByteStream):
    """Applies a streaming transform to every chunk read from ``source``."""

    def __init__(self, source: ByteStream, step: Callable[[bytes], bytes], finish: Callable[[], bytes]):
        self._source = source
        self._step = step
        self._finish = finish
        self._buffer = bytearray()
        self._eof = False

    async def _fill(self, n: int) -> None:
        while not self._eof and (n < 0 or len(self._buffer) < n):
            chunk = await self._source.read(CHUNK_SIZE)
            if chunk:
                self._buffer += self._step(chunk)
            else:
                self._buffer += self._finish()
                self._eof = True

    async def read(self, n: int = -1) -> bytes:
        await self._fill(n)
        if n < 0:
            n = len(self._buffer)
        out = bytes(self._buffer[:n])
        del self._buffer[:n]
        return out

    async def close(self) -> None:
        await self._source.close()


class CompressStream(_TransformStream):
    """Compresses ``source`` with ``encoding``."""

    def __init__(self, source: ByteStream, encoding: str, level: int | None = None):
        codec = get_codec(encoding)
        compressor = codec.compressor(codec.default_level if level is None else level)
        super().__init__(source, compressor.compress, compressor.flush)
        self.encoding = encoding


class DecompressStream(_TransformStream):
    """Decompresses ``source`` encoded with ``encoding``; corrupt input raises ContentEncodingError."""

    def __init__(self, source: ByteStream, encoding: str):
        decompressor = get_codec(encoding).decompressor()
        super().__init__(source, self._wrap(decompressor.decompress, encoding), self._wrap(decompressor.flush, encoding))
        self.encoding = encoding

    @staticmethod
    def _wrap(func: Callable, encoding: str) -> Callable:
        def call(*args: bytes) -> bytes:
            try:
                return func(*args)
            except ContentEncodingError:
                raise
            except Exception as e:
                raise ContentEncodingError(f"corrupt {encoding} stream: {e}", encoding=encoding) from e

        return call
