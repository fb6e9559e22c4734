import asyncio
import gzip
import zlib

import lz4.frame
import pytest
import zstandard

from clickhouse_core.driver.compression import Compressor, compress_body, decompress_response, decompress_stream
from clickhouse_core.driver.exceptions import OperationalError, ProgrammingError

DATA = b''.join(f'{{"id":{ix},"name":"row_{ix}"}}\n'.encode() for ix in range(1000))

decompressors = {
    'gzip': gzip.decompress,
    'lz4': lz4.frame.decompress,
    'zstd': lambda data: zstandard.ZstdDecompressor().decompressobj().decompress(data),
}


async def _chunks(data: bytes, size: int = 100):
    for ix in range(0, len(data), size):
        yield data[ix:ix + size]


async def _join(chunks) -> bytes:
    return b''.join([chunk async for chunk in chunks])


@pytest.mark.parametrize('encoding', ['gzip', 'lz4', 'zstd'])
def test_compress_body(encoding):
    assert decompressors[encoding](compress_body(DATA, encoding)) == DATA
    assert decompressors[encoding](compress_body(DATA.decode(), encoding)) == DATA
    compressed = asyncio.run(_join(compress_body(_chunks(DATA), encoding)))
    assert decompressors[encoding](compressed) == DATA


@pytest.mark.parametrize('encoding', ['gzip', 'lz4', 'zstd'])
def test_compress_empty_stream(encoding):
    compressed = asyncio.run(_join(compress_body(_chunks(b''), encoding)))
    assert decompressors[encoding](compressed) == b''


def test_unsupported_request_compression():
    with pytest.raises(ProgrammingError):
        Compressor('deflate')


@pytest.mark.parametrize('encoding, compress', [
    ('gzip', gzip.compress),
    ('deflate', zlib.compress),
    ('lz4', lz4.frame.compress),
    ('zstd', lambda data: zstandard.ZstdCompressor().compress(data)),
])
def test_decompress(encoding, compress):
    compressed = compress(DATA)
    assert decompress_response(compressed, encoding) == DATA
    assert asyncio.run(_join(decompress_stream(_chunks(compressed, 37), encoding))) == DATA


def test_identity():
    assert decompress_response(DATA, None) == DATA
    assert decompress_response(DATA, 'identity') == DATA


def test_unsupported_response_compression():
    with pytest.raises(OperationalError):
        decompress_response(b'abc', 'br')
