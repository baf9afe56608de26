"""
Tests for the streaming content codecs.
"""

import gzip
import os

import pytest

from layover.codecs import CODECS, CompressStream, DecompressStream, get_codec
from layover.core.streams import BytesStream
from layover.exceptions import ContentEncodingError


class TestCodecs:
    """Tests for codec lookup and streaming transforms."""

    def test_registered_codecs(self):
        """Test gzip, br and zstd are available with their default levels."""
        assert {name: codec.default_level for name, codec in CODECS.items()} == {"gzip": 3, "br": 3, "zstd": 1}

    def test_unknown_codec(self):
        """Test an unknown coding raises ContentEncodingError."""
        with pytest.raises(ContentEncodingError, match="deflate"):
            get_codec("deflate")

    @pytest.mark.asyncio
    async def test_small_reads_reassemble(self):
        """Test small partial reads of a large random body reassemble exactly."""
        payload = os.urandom(300_000)
        stream = DecompressStream(CompressStream(BytesStream(payload), "zstd"), "zstd")

        chunks = []
        while chunk := await stream.read(1000):
            chunks.append(chunk)

        assert b"".join(chunks) == payload
        assert all(len(c) <= 1000 for c in chunks)

    @pytest.mark.asyncio
    async def test_gzip_output_is_standard(self):
        """Test gzip output can be read by the gzip module."""
        compressed = await CompressStream(BytesStream(b"hello world"), "gzip", level=9).readall()
        assert gzip.decompress(compressed) == b"hello world"

    @pytest.mark.asyncio
    async def test_close_closes_source(self):
        """Test closing a transform closes its source."""
        source = BytesStream(b"data")
        await CompressStream(source, "br").close()
        assert source.closed

    @pytest.mark.asyncio
    @pytest.mark.parametrize("encoding", ["gzip", "zstd"])
    async def test_corrupt_input(self, encoding):
        """Test corrupt compressed input raises ContentEncodingError."""
        stream = DecompressStream(BytesStream(b"definitely not compressed"), encoding)

        with pytest.raises(ContentEncodingError) as exc_info:
            await stream.readall()

        assert exc_info.value.encoding == encoding

    @pytest.mark.asyncio
    @pytest.mark.parametrize("encoding", ["br", "zstd"])
    async def test_truncated_stream(self, encoding):
        """Test a truncated stream is detected at EOF."""
        compressed = await CompressStream(BytesStream(os.urandom(10_000)), encoding).readall()
        stream = DecompressStream(BytesStream(compressed[: len(compressed) // 2]), encoding)

        with pytest.raises(ContentEncodingError, match=encoding):
            await stream.readall()
