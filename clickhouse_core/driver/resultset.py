import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncGenerator, AsyncIterable, Callable, Dict, List, Optional, Union

from clickhouse_core import json_impl
from clickhouse_core.driver.exceptions import (DataError, NotSupportedError, ProgrammingError, StreamClosedError,
                                               StreamFailureError)
from clickhouse_core.driver.formats import (DataFormat, validate_format, is_binary_format, is_raw_format,
                                            is_single_document_json, is_record_json)

logger = logging.getLogger(__name__)

OnError = Callable[[Exception], None]


class Row:
    """
    A single record of a streamed result set, as the raw text line received from ClickHouse
    """
    __slots__ = ('text', 'format')

    def __init__(self, text: str, fmt: DataFormat):
        self.text = text
        self.format = fmt

    def json(self) -> Any:
        """
        :return: The record parsed as JSON.  Only valid for the JSON streaming formats
        """
        if is_raw_format(self.format):
            raise DataError(f'Cannot decode {self.format} row as JSON')
        return json_impl.json_loads(self.text)

    def __repr__(self):
        return f'Row({self.text!r})'


class ResultSet(ABC):
    """
    Lazy, forward only view of a query response.  The response can be consumed exactly once, using one of
    bytes(), text(), json(), stream() or async iteration.  If reading or decoding the response fails, the on_error
    handler is invoked once with the exception, which is then raised to the consumer
    """

    def __init__(self,
                 fmt: Union[str, DataFormat],
                 query_id: str,
                 on_error: Optional[OnError] = None,
                 response_headers: Optional[Dict[str, str]] = None):
        self.format = validate_format(fmt)
        self.query_id = query_id
        self.response_headers = response_headers if response_headers is not None else {}
        self._on_error = on_error
        self._consumed = False

    @abstractmethod
    def _chunks(self) -> AsyncIterable[bytes]:
        """Raw response chunks"""

    @abstractmethod
    async def _release(self):
        """Release the underlying response"""

    @property
    def consumed(self) -> bool:
        return self._consumed

    def _start(self):
        if self._consumed:
            raise StreamClosedError
        self._consumed = True

    def _report_error(self, ex: Exception):
        handler = self._on_error
        self._on_error = None
        if handler is not None:
            try:
                handler(ex)
            except Exception:  # pylint: disable=broad-exception-caught
                logger.warning('ResultSet error handler failed', exc_info=True)

    async def _read_all(self) -> bytes:
        parts = []
        try:
            async for chunk in self._chunks():
                parts.append(chunk)
        except Exception as ex:
            self._report_error(ex)
            raise
        finally:
            await self._release()
        return b''.join(parts)

    def _decode(self, data: bytes) -> str:
        try:
            return data.decode()
        except UnicodeDecodeError as ex:
            self._report_error(ex)
            raise DataError(f'Invalid UTF-8 in {self.format} response') from ex

    async def bytes(self) -> bytes:
        """
        :return: The complete response body
        """
        self._start()
        return await self._read_all()

    async def text(self) -> str:
        """
        :return: The complete response body as a string
        """
        if is_binary_format(self.format):
            raise NotSupportedError(f'{self.format} is a binary format, use bytes() instead')
        self._start()
        return self._decode(await self._read_all())

    async def json(self) -> Any:
        """
        Materialize the whole response as Python objects.  Single document JSON formats (JSON, JSONCompact, etc.)
        and JSONObjectEachRow return the parsed document, the streaming JSON formats return a list of records
        """
        if is_raw_format(self.format) or is_binary_format(self.format):
            raise DataError(f'Cannot decode {self.format} as JSON')
        self._start()
        text = self._decode(await self._read_all())
        try:
            if is_single_document_json(self.format) or is_record_json(self.format):
                return json_impl.json_loads(text)
            return [json_impl.json_loads(line) for line in text.split('\n') if line]
        except ValueError as ex:
            self._report_error(ex)
            raise DataError(f'Unable to parse {self.format} response as JSON: {ex}') from ex

    def stream(self) -> AsyncGenerator[List[Row], None]:
        """
        Stream the response as blocks of rows, one block per chunk received from the server
        :return: Async generator of lists of Row objects
        """
        if is_single_document_json(self.format) or is_record_json(self.format) or is_binary_format(self.format):
            raise ProgrammingError(f'{self.format} format is not streamable')
        self._start()
        return self._row_blocks()

    async def _row_blocks(self) -> AsyncGenerator[List[Row], None]:
        pending = b''
        try:
            async for chunk in self._chunks():
                lines = (pending + chunk).split(b'\n')
                pending = lines.pop()
                rows = [Row(line.decode(), self.format) for line in lines if line]
                if rows:
                    yield rows
            if pending:
                yield [Row(pending.decode(), self.format)]
        except UnicodeDecodeError as ex:
            self._report_error(ex)
            raise StreamFailureError(f'Invalid UTF-8 in {self.format} response stream') from ex
        except Exception as ex:
            self._report_error(ex)
            raise
        finally:
            await self._release()

    def __aiter__(self):
        return self._rows()

    async def _rows(self):
        async for block in self.stream():
            for row in block:
                yield row

    async def close(self):
        """
        Discard the unconsumed response and release the connection
        """
        self._consumed = True
        await self._release()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class StreamResultSet(ResultSet):
    """
    ResultSet reading an async iterable of byte chunks as they arrive from the server
    """

    def __init__(self,
                 stream: AsyncIterable[bytes],
                 fmt: Union[str, DataFormat],
                 query_id: str,
                 on_error: Optional[OnError] = None,
                 response_headers: Optional[Dict[str, str]] = None):
        super().__init__(fmt, query_id, on_error, response_headers)
        self._stream = stream

    async def _chunks(self):
        if self._stream is None:
            raise StreamClosedError
        async for chunk in self._stream:
            yield chunk

    async def _release(self):
        stream = self._stream
        self._stream = None
        if stream is None:
            return
        closer = getattr(stream, 'aclose', None) or getattr(stream, 'close', None)
        if closer is not None:
            result = closer()
            if inspect.isawaitable(result):
                await result


class BufferResultSet(ResultSet):
    """
    ResultSet over a response body that was fully received by the transport
    """

    def __init__(self,
                 data: bytes,
                 fmt: Union[str, DataFormat],
                 query_id: str,
                 on_error: Optional[OnError] = None,
                 response_headers: Optional[Dict[str, str]] = None):
        super().__init__(fmt, query_id, on_error, response_headers)
        self._data = data

    async def _chunks(self):
        if self._data is None:
            raise StreamClosedError
        if self._data:
            yield self._data

    async def _release(self):
        self._data = None


def make_stream_result_set(stream: AsyncIterable[bytes],
                           fmt: Union[str, DataFormat],
                           query_id: str,
                           on_error: Optional[OnError] = None,
                           response_headers: Optional[Dict[str, str]] = None) -> StreamResultSet:
    return StreamResultSet(stream, fmt, query_id, on_error, response_headers)


def make_buffer_result_set(data: bytes,
                           fmt: Union[str, DataFormat],
                           query_id: str,
                           on_error: Optional[OnError] = None,
                           response_headers: Optional[Dict[str, str]] = None) -> BufferResultSet:
    return BufferResultSet(data, fmt, query_id, on_error, response_headers)
