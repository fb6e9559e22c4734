from abc import ABC, abstractmethod
from typing import Any, AsyncGenerator, AsyncIterable, Iterable, Iterator, Mapping, Optional, Union

from clickhouse_core import common, json_impl
from clickhouse_core.driver.exceptions import DataError, NotSupportedError, ProgrammingError
from clickhouse_core.driver.formats import (DataFormat, validate_format, output_only_formats, row_object_formats,
                                            is_streamable_json, is_record_json, is_raw_format, is_binary_format)

BUFFER_TYPES = (str, bytes, bytearray, memoryview)


def is_async_stream(values: Any) -> bool:
    return hasattr(values, '__aiter__')


def is_sync_stream(values: Any) -> bool:
    if isinstance(values, BUFFER_TYPES) or isinstance(values, (list, tuple, Mapping)):
        return False
    return hasattr(values, 'read') or hasattr(values, '__iter__')


def validate_record(record: Any, fmt: DataFormat, index: int):
    if fmt in row_object_formats:
        if not isinstance(record, Mapping):
            raise DataError(f'Record {index} has type {type(record).__name__}, '
                            f'but {fmt} format expects each record to be a dict')


def _to_bytes(chunk: Union[str, bytes, bytearray, memoryview]) -> bytes:
    if isinstance(chunk, str):
        return chunk.encode()
    if isinstance(chunk, (bytes, bytearray, memoryview)):
        return bytes(chunk)
    raise DataError(f'Raw insert chunks must be str or bytes, not {type(chunk).__name__}')


def json_line(record: Any) -> bytes:
    return json_impl.any_to_json(record) + b'\n'


def _iter_file(source) -> Iterator[bytes]:
    while True:
        chunk = source.read(common.get_setting('insert_chunk_size'))
        if not chunk:
            break
        yield _to_bytes(chunk)


def _iter_items(values) -> Iterator[Any]:
    if hasattr(values, 'read'):
        return _iter_file(values)
    return iter(values)


class ValuesEncoder(ABC):
    """
    Validates and serializes insert values for a chosen data format.  Validation happens before any request
    is sent to the server.  Encoding is deterministic -- one JSON document per line for the JSON formats
    """

    def validate_insert_values(self, values: Any, fmt: Union[str, DataFormat]):
        """
        Check that the shape of the dataset matches the insert format
        :param values: list or tuple of records, dict (JSONObjectEachRow), str/bytes (raw formats),
          or a sync/async iterable of records or raw chunks
        :param fmt: Insert format
        """
        fmt = validate_format(fmt)
        if fmt in output_only_formats:
            raise ProgrammingError(f'{fmt} format is not supported for inserts')
        if isinstance(values, BUFFER_TYPES):
            if not is_raw_format(fmt) and not is_binary_format(fmt):
                raise DataError(f'Insert values of type {type(values).__name__} cannot be used with {fmt} format, '
                                'expected a list of records or a stream')
            return
        if isinstance(values, Mapping):
            if not is_record_json(fmt):
                raise DataError(f'Insert values of type dict can only be used with JSONObjectEachRow format, got {fmt}')
            for key, record in values.items():
                if not isinstance(record, Mapping):
                    raise DataError(f'Record {key} has type {type(record).__name__}, but {fmt} format '
                                    'expects each record to be a dict')
            return
        if isinstance(values, (list, tuple)):
            if not is_streamable_json(fmt):
                raise DataError(f'Cannot encode values of type {type(values).__name__} with {fmt} format')
            for ix, record in enumerate(values):
                validate_record(record, fmt, ix)
            return
        if is_async_stream(values) or is_sync_stream(values):
            if is_record_json(fmt):
                raise DataError(f'Insert values for {fmt} format must be a dict')
            self._validate_stream(values)
            return
        raise DataError(f'Unsupported insert values type {type(values).__name__}')

    def _validate_stream(self, values: Any):
        pass

    @abstractmethod
    def encode_values(self, values: Any, fmt: Union[str, DataFormat]):
        """
        Serialize validated insert values
        :param values: Insert values, previously accepted by validate_insert_values
        :param fmt: Insert format
        :return: Transport ready request body
        """


class BufferValuesEncoder(ValuesEncoder):
    """
    Encodes the complete dataset into a single bytes object, for environments without streaming request bodies
    """

    def _validate_stream(self, values: Any):
        if is_async_stream(values):
            raise NotSupportedError('Async streams are not supported as insert values by the buffered client')

    def encode_values(self, values: Any, fmt: Union[str, DataFormat]) -> bytes:
        fmt = validate_format(fmt)
        if isinstance(values, BUFFER_TYPES):
            return _to_bytes(values)
        if isinstance(values, Mapping):
            return json_line(values)
        if isinstance(values, (list, tuple)):
            return b''.join(json_line(record) for record in values)
        return b''.join(_encode_items(_iter_items(values), fmt))


class StreamValuesEncoder(ValuesEncoder):
    """
    Encodes insert values lazily as an async generator of byte chunks, so large datasets and streams are
    never fully materialized in memory
    """

    def __init__(self, chunk_size: Optional[int] = None):
        """
        :param chunk_size: Minimum size of the yielded body chunks, defaults to the insert_chunk_size common setting
        """
        self._chunk_size = chunk_size

    @property
    def chunk_size(self) -> int:
        return self._chunk_size or common.get_setting('insert_chunk_size')

    def encode_values(self, values: Any, fmt: Union[str, DataFormat]) -> Union[bytes, AsyncGenerator[bytes, None]]:
        fmt = validate_format(fmt)
        if isinstance(values, BUFFER_TYPES):
            return _to_bytes(values)
        if isinstance(values, Mapping):
            return json_line(values)
        if isinstance(values, (list, tuple)):
            return self._chunked(json_line(record) for record in values)
        if is_async_stream(values):
            return self._chunked_async(_encode_async_items(values, fmt))
        return self._chunked(_encode_items(_iter_items(values), fmt))

    async def _chunked(self, pieces: Iterable[bytes]) -> AsyncGenerator[bytes, None]:
        buffer = bytearray()
        for piece in pieces:
            buffer += piece
            if len(buffer) >= self.chunk_size:
                yield bytes(buffer)
                buffer.clear()
        if buffer:
            yield bytes(buffer)

    async def _chunked_async(self, pieces: AsyncIterable[bytes]) -> AsyncGenerator[bytes, None]:
        buffer = bytearray()
        async for piece in pieces:
            buffer += piece
            if len(buffer) >= self.chunk_size:
                yield bytes(buffer)
                buffer.clear()
        if buffer:
            yield bytes(buffer)


def _encode_items(items: Iterable[Any], fmt: DataFormat) -> Iterator[bytes]:
    if is_streamable_json(fmt):
        for ix, record in enumerate(items):
            validate_record(record, fmt, ix)
            yield json_line(record)
    else:
        for chunk in items:
            yield _to_bytes(chunk)


async def _encode_async_items(items: AsyncIterable[Any], fmt: DataFormat) -> AsyncGenerator[bytes, None]:
    ix = 0
    async for item in items:
        if is_streamable_json(fmt):
            validate_record(item, fmt, ix)
            yield json_line(item)
        else:
            yield _to_bytes(item)
        ix += 1
