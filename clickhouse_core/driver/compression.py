import zlib
from typing import AsyncGenerator, AsyncIterable, Optional, Union

import lz4.frame
import zstandard

from clickhouse_core.driver.exceptions import OperationalError, ProgrammingError

available_compression = ['gzip', 'deflate', 'lz4', 'zstd']
request_compression = ['gzip', 'lz4', 'zstd']


def create_decompressor(encoding: str):
    """Create an incremental decompressor for the response Content-Encoding"""
    if encoding == 'gzip':
        return zlib.decompressobj(16 + zlib.MAX_WBITS)
    if encoding == 'deflate':
        return zlib.decompressobj()
    if encoding == 'zstd':
        return zstandard.ZstdDecompressor().decompressobj()
    if encoding == 'lz4':
        return lz4.frame.LZ4FrameDecompressor()
    raise OperationalError(f"Unsupported compression type: '{encoding}'. "
                           f"Supported compression: {', '.join(available_compression)}")


def decompress_response(data: bytes, encoding: Optional[str]) -> bytes:
    """Decompress a complete response body based on the Content-Encoding header"""
    if not encoding or encoding == 'identity':
        return data
    decompressor = create_decompressor(encoding)
    result = decompressor.decompress(data)
    if hasattr(decompressor, 'flush'):
        result += decompressor.flush()
    return result


async def decompress_stream(chunks: AsyncIterable[bytes], encoding: str) -> AsyncGenerator[bytes, None]:
    decompressor = create_decompressor(encoding)
    async for chunk in chunks:
        decompressed = decompressor.decompress(chunk)
        if decompressed:
            yield decompressed
    if hasattr(decompressor, 'flush'):
        final = decompressor.flush()
        if final:
            yield final


class Compressor:
    """Incremental compressor for request bodies"""

    def __init__(self, encoding: str):
        if encoding not in request_compression:
            raise ProgrammingError(f"Unsupported request compression '{encoding}'. "
                                   f"Supported compression: {', '.join(request_compression)}")
        self.encoding = encoding
        self._started = False
        if encoding == 'gzip':
            self._impl = zlib.compressobj(wbits=16 + zlib.MAX_WBITS)
        elif encoding == 'zstd':
            self._impl = zstandard.ZstdCompressor().compressobj()
        else:
            self._impl = lz4.frame.LZ4FrameCompressor()

    def compress(self, data: bytes) -> bytes:
        if self.encoding == 'lz4':
            if not self._started:
                self._started = True
                return self._impl.begin() + self._impl.compress(data)
            return self._impl.compress(data)
        return self._impl.compress(data)

    def flush(self) -> bytes:
        if self.encoding == 'lz4':
            prefix = b'' if self._started else self._impl.begin()
            self._started = True
            return prefix + self._impl.flush()
        return self._impl.flush()


def compress_body(body: Union[bytes, AsyncIterable[bytes]], encoding: str):
    """
    Compress a request body
    :param body: Complete body as str or bytes, or an async iterable of byte chunks
    :param encoding: One of the supported request compression types
    :return: Compressed bytes, or an async generator of compressed chunks
    """
    compressor = Compressor(encoding)
    if isinstance(body, str):
        body = body.encode()
    if isinstance(body, (bytes, bytearray, memoryview)):
        return compressor.compress(bytes(body)) + compressor.flush()
    return _compress_stream(body, compressor)


async def _compress_stream(chunks: AsyncIterable[bytes], compressor: Compressor) -> AsyncGenerator[bytes, None]:
    async for chunk in chunks:
        compressed = compressor.compress(chunk)
        if compressed:
            yield compressed
    final = compressor.flush()
    if final:
        yield final
