import asyncio
import io

import pytest

from clickhouse_core import common
from clickhouse_core.driver.encoder import BufferValuesEncoder, StreamValuesEncoder
from clickhouse_core.driver.exceptions import DataError, NotSupportedError, ProgrammingError
from clickhouse_core.driver.formats import DataFormat

encoders = [BufferValuesEncoder(), StreamValuesEncoder()]


async def _async_rows(rows):
    for row in rows:
        yield row


def _collect(body) -> bytes:
    if isinstance(body, bytes):
        return body

    async def read():
        return b''.join([chunk async for chunk in body])

    return asyncio.run(read())


@pytest.mark.parametrize('encoder', encoders)
def test_valid_values(encoder):
    encoder.validate_insert_values([{'a': 1}], DataFormat.JSONEachRow)
    encoder.validate_insert_values(([1, 'a'], (2, 'b')), DataFormat.JSONCompactEachRow)
    encoder.validate_insert_values({'1': {'a': 1}}, DataFormat.JSONObjectEachRow)
    encoder.validate_insert_values('1,a\n', DataFormat.CSV)
    encoder.validate_insert_values(b'PAR1', DataFormat.Parquet)
    encoder.validate_insert_values(iter([{'a': 1}]), DataFormat.JSONEachRow)
    encoder.validate_insert_values(io.BytesIO(b'1\ta\n'), DataFormat.TabSeparated)


@pytest.mark.parametrize('encoder', encoders)
def test_record_shape_mismatch(encoder):
    with pytest.raises(DataError):
        encoder.validate_insert_values([[1, 2]], DataFormat.JSONEachRow)
    with pytest.raises(DataError):
        encoder.validate_insert_values(['{"a": 1}'], DataFormat.JSONStringsEachRow)
    with pytest.raises(DataError):
        encoder.validate_insert_values({'1': [1]}, DataFormat.JSONObjectEachRow)


@pytest.mark.parametrize('encoder', encoders)
def test_compact_records_not_shape_checked(encoder):
    encoder.validate_insert_values([{'a': 1}], DataFormat.JSONCompactEachRow)
    encoder.validate_insert_values([[1, 'a'], {'b': 2}], DataFormat.JSONCompactStringsEachRow)
    body = encoder.encode_values([{'a': 1}], DataFormat.JSONCompactEachRow)
    assert _collect(body) == b'{"a":1}\n'


@pytest.mark.parametrize('encoder', encoders)
def test_values_type_mismatch(encoder):
    with pytest.raises(DataError):
        encoder.validate_insert_values('{"a": 1}', DataFormat.JSONEachRow)
    with pytest.raises(DataError):
        encoder.validate_insert_values({'a': 1}, DataFormat.JSONEachRow)
    with pytest.raises(DataError):
        encoder.validate_insert_values([['1', 'a']], DataFormat.CSV)
    with pytest.raises(DataError):
        encoder.validate_insert_values(iter([{'a': 1}]), DataFormat.JSONObjectEachRow)
    with pytest.raises(DataError):
        encoder.validate_insert_values(42, DataFormat.JSONEachRow)


@pytest.mark.parametrize('encoder', encoders)
def test_output_only_formats(encoder):
    with pytest.raises(ProgrammingError):
        encoder.validate_insert_values([{'a': 1}], DataFormat.JSON)
    with pytest.raises(ProgrammingError):
        encoder.validate_insert_values([{'a': 1}], DataFormat.JSONEachRowWithProgress)


def test_buffer_rejects_async_stream():
    encoder = BufferValuesEncoder()
    with pytest.raises(NotSupportedError):
        encoder.validate_insert_values(_async_rows([{'a': 1}]), DataFormat.JSONEachRow)


def test_stream_accepts_async_stream():
    StreamValuesEncoder().validate_insert_values(_async_rows([{'a': 1}]), DataFormat.JSONEachRow)


@pytest.mark.parametrize('encoder', encoders)
def test_encode_json_records(encoder):
    body = encoder.encode_values([{'id': 1, 'name': 'a'}, {'id': 2, 'name': 'b'}], DataFormat.JSONEachRow)
    assert _collect(body) == b'{"id":1,"name":"a"}\n{"id":2,"name":"b"}\n'
    body = encoder.encode_values([[1, 'a'], (2, None)], DataFormat.JSONCompactEachRow)
    assert _collect(body) == b'[1,"a"]\n[2,null]\n'


@pytest.mark.parametrize('encoder', encoders)
def test_encode_object_each_row(encoder):
    body = encoder.encode_values({'first': {'x': 1}, 'second': {'x': 2}}, DataFormat.JSONObjectEachRow)
    assert body == b'{"first":{"x":1},"second":{"x":2}}\n'


@pytest.mark.parametrize('encoder', encoders)
def test_encode_raw(encoder):
    assert encoder.encode_values('1,a\n2,b\n', DataFormat.CSV) == b'1,a\n2,b\n'
    assert encoder.encode_values(bytearray(b'PAR1'), DataFormat.Parquet) == b'PAR1'
    body = encoder.encode_values(io.BytesIO(b'1\ta\n2\tb\n'), DataFormat.TabSeparated)
    assert _collect(body) == b'1\ta\n2\tb\n'
    body = encoder.encode_values(iter(['1,a\n', b'2,b\n']), DataFormat.CSV)
    assert _collect(body) == b'1,a\n2,b\n'


def test_invalid_record_in_sync_stream():
    with pytest.raises(DataError):
        BufferValuesEncoder().encode_values(iter([{'a': 1}, [2]]), DataFormat.JSONEachRow)
    body = StreamValuesEncoder().encode_values(iter([{'a': 1}, [2]]), DataFormat.JSONEachRow)
    with pytest.raises(DataError):
        _collect(body)


def test_stream_encoder_chunks():
    encoder = StreamValuesEncoder(chunk_size=16)
    rows = [[ix, f'name_{ix}'] for ix in range(10)]

    async def read():
        return [chunk async for chunk in encoder.encode_values(rows, DataFormat.JSONCompactEachRow)]

    chunks = asyncio.run(read())
    assert len(chunks) > 1
    assert all(len(chunk) >= 16 for chunk in chunks[:-1])
    assert b''.join(chunks) == b''.join(f'[{ix},"name_{ix}"]\n'.encode() for ix in range(10))


def test_stream_encoder_async_values():
    encoder = StreamValuesEncoder()
    body = encoder.encode_values(_async_rows([{'a': 1}, {'a': 2}]), DataFormat.JSONEachRow)
    assert _collect(body) == b'{"a":1}\n{"a":2}\n'
    body = encoder.encode_values(_async_rows(['1,a\n', b'2,b\n']), DataFormat.CSV)
    assert _collect(body) == b'1,a\n2,b\n'
    body = encoder.encode_values(_async_rows([{'a': 1}, [2]]), DataFormat.JSONEachRow)
    with pytest.raises(DataError):
        _collect(body)


def test_chunk_size_setting():
    common.set_setting('insert_chunk_size', 32)
    encoder = StreamValuesEncoder()
    assert encoder.chunk_size == 32
    assert StreamValuesEncoder(chunk_size=8).chunk_size == 8
