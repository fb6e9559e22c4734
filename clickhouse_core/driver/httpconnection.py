import asyncio
import logging
import re
import ssl
import uuid
from base64 import b64encode
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
import certifi
import pytz

from clickhouse_core import common
from clickhouse_core.driver.common import dict_copy, format_bind_value, format_setting_value
from clickhouse_core.driver.compression import compress_body, decompress_response, decompress_stream
from clickhouse_core.driver.config import ClientConfig
from clickhouse_core.driver.connection import (Connection, ConnQueryResult, CommandResult, ExecResult,
                                               ConnInsertResult, PingResult)
from clickhouse_core.driver.exceptions import ClickHouseCoreError, ClickHouseError, OperationalError
from clickhouse_core.driver.params import BasicAuth, EffectiveQueryParams, TokenAuth
from clickhouse_core.driver.summary import QuerySummary

logger = logging.getLogger(__name__)

ex_header = 'X-ClickHouse-Exception-Code'
query_id_header = 'X-ClickHouse-Query-Id'
error_re = re.compile(r'(?:Code|Error): (?P<code>\d+).*Exception: (?P<message>.+)'
                      r'\((?P<type>[A-Z0-9_]*[A-Z]{3}[A-Z0-9_]*)\)', re.DOTALL)
ABORTED_MESSAGE = 'The user aborted a request.'


def parse_error(body: str, status: int, code_header: Optional[str] = None) -> ClickHouseError:
    """
    Build a ClickHouseError from the text of a ClickHouse HTTP error response
    :param body: Decompressed response body
    :param status: HTTP status code
    :param code_header: Value of the X-ClickHouse-Exception-Code header, if any
    """
    match = error_re.search(body)
    if match:
        return ClickHouseError(match.group('message').strip(), int(match.group('code')), match.group('type'))
    code = int(code_header) if code_header and code_header.isdigit() else None
    message = body.strip() or f'HTTP driver received HTTP status {status}'
    return ClickHouseError(message, code)


def request_body_error(ex: BaseException) -> Optional[ClickHouseCoreError]:
    """
    aiohttp wraps exceptions raised by a request body generator in a ClientConnectionError.  Returns the
    library error, such as a DataError for an invalid streamed record, that caused ex, if there is one
    """
    seen = set()
    cause = ex.__cause__ or ex.__context__
    while cause is not None and id(cause) not in seen:
        if isinstance(cause, ClickHouseCoreError):
            return cause
        seen.add(id(cause))
        cause = cause.__cause__ or cause.__context__
    return None


def _close_abandoned(task: asyncio.Future):
    # An aborted request can still complete with a response that nobody will read
    if task.cancelled() or task.exception() is not None:
        return
    task.result().close()


class ResponseStream:
    """
    Async iterator over the body of an HTTP response.  The response is released back to the connection pool
    when the body is exhausted, or dropped when the stream is closed early
    """

    def __init__(self, response: aiohttp.ClientResponse, encoding: Optional[str] = None):
        self.response = response
        self.encoding = encoding
        self._gen = None

    def __aiter__(self):
        if self._gen is None:
            self._gen = self._read()
        return self._gen

    async def _read(self):
        chunks = self.response.content.iter_chunked(common.get_setting('response_read_size'))
        if self.encoding:
            chunks = decompress_stream(chunks, self.encoding)
        try:
            async for chunk in chunks:
                yield chunk
        except aiohttp.ClientPayloadError as ex:
            raise OperationalError(f'Failed to read response data from server: {ex}') from ex
        finally:
            self.response.release()

    async def close(self):
        if self._gen is not None:
            await self._gen.aclose()
        if not self.response.closed:
            if self.response.content.at_eof():
                self.response.release()
            else:
                logger.debug('Closing unconsumed response stream')
                self.response.close()


# pylint: disable=too-many-instance-attributes
class AiohttpConnection(Connection):
    """
    Connection to the ClickHouse HTTP interface using a pooled aiohttp session
    """

    def __init__(self, config: ClientConfig, stream_responses: bool = True):
        """
        :param config: Client configuration
        :param stream_responses: If True, query and exec responses are returned as a ResponseStream.  Otherwise,
          the complete response body is read into a bytes object before returning
        """
        self.config = config
        self.url = config.url.rstrip('/')
        self.stream_responses = stream_responses
        self.headers = {'User-Agent': common.build_client_name(config.application),
                        'Accept-Encoding': 'identity'}
        if config.access_token:
            self.default_auth = TokenAuth(config.access_token)
        elif config.username:
            self.default_auth = BasicAuth(config.username, config.password)
        else:
            self.default_auth = None
        self.bind_tz = pytz.timezone(config.bind_tz) if config.bind_tz else None
        self._timeout = aiohttp.ClientTimeout(total=None,
                                              connect=config.connect_timeout,
                                              sock_connect=config.connect_timeout,
                                              sock_read=config.request_timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    def _ssl_context(self):
        if not self.url.startswith('https'):
            return None
        if not self.config.verify:
            return False
        context = ssl.create_default_context(cafile=self.config.ca_cert or certifi.where())
        if self.config.client_cert:
            context.load_cert_chain(self.config.client_cert, self.config.client_cert_key)
        return context

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector_kwargs: Dict[str, Any] = {'limit': self.config.max_open_connections}
            ssl_context = self._ssl_context()
            if ssl_context is not None:
                connector_kwargs['ssl'] = ssl_context
            if self.config.keep_alive:
                connector_kwargs['keepalive_timeout'] = self.config.idle_socket_ttl
            else:
                connector_kwargs['force_close'] = True
            self._session = aiohttp.ClientSession(connector=aiohttp.TCPConnector(**connector_kwargs),
                                                  timeout=self._timeout,
                                                  headers=self.headers,
                                                  trust_env=False,
                                                  auto_decompress=False)
        return self._session

    @staticmethod
    def _query_id(params: EffectiveQueryParams) -> str:
        if params.query_id:
            return params.query_id
        if common.get_setting('autogenerate_query_id'):
            return str(uuid.uuid4())
        return ''

    def _search_params(self, params: EffectiveQueryParams, query_id: str,
                       query: Optional[str] = None) -> List[Tuple[str, str]]:
        search = []
        if self.config.database:
            search.append(('database', self.config.database))
        if query is not None:
            search.append(('query', query))
        if query_id:
            search.append(('query_id', query_id))
        if params.session_id:
            search.append(('session_id', params.session_id))
        if params.role:
            roles = [params.role] if isinstance(params.role, str) else params.role
            search.extend(('role', role) for role in roles)
        settings = dict_copy({'enable_http_compression': 1} if self.config.compress_response else None,
                             params.settings)
        for key, value in settings.items():
            if value is not None:
                search.append((key, format_setting_value(value)))
        if params.parameters:
            for key, value in params.parameters.items():
                search.append((f'param_{key}', format_bind_value(value, self.bind_tz)))
        return search

    def _request_headers(self, params: EffectiveQueryParams, extra: Optional[Dict[str, str]] = None):
        headers = dict_copy(self.config.http_headers, extra)
        auth = params.auth or self.default_auth
        if isinstance(auth, TokenAuth):
            headers['Authorization'] = f'Bearer {auth.access_token}'
        elif isinstance(auth, BasicAuth):
            credentials = b64encode(f'{auth.username}:{auth.password}'.encode()).decode()
            headers['Authorization'] = f'Basic {credentials}'
        if self.config.compress_response:
            headers['Accept-Encoding'] = self.config.compress_response
        if params.opentelemetry_headers:
            for name in ('traceparent', 'tracestate'):
                value = params.opentelemetry_headers.get(name)
                if value:
                    headers[name] = value
        return headers

    # pylint: disable=too-many-arguments
    async def _raw_request(self,
                           params: EffectiveQueryParams,
                           query_id: str,
                           data: Any = None,
                           query: Optional[str] = None,
                           headers: Optional[Dict[str, str]] = None) -> aiohttp.ClientResponse:
        session = self._get_session()
        search = self._search_params(params, query_id, query)
        req_headers = self._request_headers(params, headers)
        logger.debug('Sending request to %s, query_id: %s', self.url, query_id)
        abort_signal = params.abort_signal
        if abort_signal is not None and abort_signal.is_set():
            raise OperationalError(ABORTED_MESSAGE)
        try:
            request = self._post(session, search, req_headers, data)
            if abort_signal is None:
                response = await request
            else:
                response = await self._abortable(request, abort_signal)
        except (aiohttp.ClientError, asyncio.TimeoutError) as ex:
            body_error = request_body_error(ex)
            if body_error is not None:
                raise body_error from None
            raise OperationalError(f'Network Error: {ex}') from ex
        if 200 <= response.status < 300 and not response.headers.get(ex_header):
            return response
        return await self._error_handler(response)

    async def _post(self, session: aiohttp.ClientSession, search, headers, data) -> aiohttp.ClientResponse:
        return await session.post(f'{self.url}/', params=search, headers=headers, data=data)

    @staticmethod
    async def _abortable(request, abort_signal: asyncio.Event) -> aiohttp.ClientResponse:
        request_task = asyncio.ensure_future(request)
        abort_task = asyncio.ensure_future(abort_signal.wait())
        try:
            done, _ = await asyncio.wait({request_task, abort_task}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            request_task.cancel()
            raise
        finally:
            abort_task.cancel()
        if request_task in done:
            return request_task.result()
        request_task.cancel()
        request_task.add_done_callback(_close_abandoned)
        raise OperationalError(ABORTED_MESSAGE)

    async def _error_handler(self, response: aiohttp.ClientResponse):
        """
        Raises the ClickHouseError for an error response.  The error body is always decompressed, even when the
        caller asked for a raw response stream
        """
        body = ''
        try:
            raw_body = await response.read()
            body = decompress_response(raw_body, response.headers.get('Content-Encoding'))
            body = body.decode(errors='backslashreplace')
        except Exception:  # pylint: disable=broad-exception-caught
            logger.warning('Failed to read error response body', exc_info=True)
        finally:
            response.close()
        raise parse_error(body, response.status, response.headers.get(ex_header))

    def _response_body(self, response: aiohttp.ClientResponse, decompress: bool = True):
        encoding = response.headers.get('Content-Encoding')
        if encoding == 'identity' or not decompress:
            encoding = None
        return ResponseStream(response, encoding)

    async def _read_body(self, response: aiohttp.ClientResponse, decompress: bool = True) -> bytes:
        try:
            data = await response.read()
        except aiohttp.ClientPayloadError as ex:
            raise OperationalError(f'Failed to read response data from server: {ex}') from ex
        finally:
            response.release()
        if decompress:
            return decompress_response(data, response.headers.get('Content-Encoding'))
        return data

    async def _discard(self, response: aiohttp.ClientResponse):
        try:
            await response.read()
        except aiohttp.ClientPayloadError as ex:
            body_error = request_body_error(ex)
            if body_error is not None:
                raise body_error from None
            logger.debug('Ignoring payload error reading discarded response', exc_info=True)
        finally:
            response.release()

    async def _body(self, response: aiohttp.ClientResponse, decompress: bool = True):
        if self.stream_responses:
            return self._response_body(response, decompress)
        return await self._read_body(response, decompress)

    @staticmethod
    def _response_query_id(response: aiohttp.ClientResponse, query_id: str) -> str:
        return response.headers.get(query_id_header, query_id)

    def _compressed(self, data: Any, headers: Dict[str, str]):
        if not self.config.compress_request or data is None:
            return data
        if not isinstance(data, (str, bytes, bytearray, memoryview)) and not hasattr(data, '__aiter__'):
            logger.debug('Request compression skipped for body of type %s', type(data).__name__)
            return data
        headers['Content-Encoding'] = self.config.compress_request
        return compress_body(data, self.config.compress_request)

    async def query(self, query: str, params: EffectiveQueryParams) -> ConnQueryResult:
        query_id = self._query_id(params)
        response = await self._raw_request(params, query_id, data=query.encode())
        return ConnQueryResult(stream=await self._body(response),
                               query_id=self._response_query_id(response, query_id),
                               response_headers=dict(response.headers))

    async def command(self, query: str, params: EffectiveQueryParams) -> CommandResult:
        query_id = self._query_id(params)
        response = await self._raw_request(params, query_id, data=query.encode())
        await self._discard(response)
        return CommandResult(query_id=self._response_query_id(response, query_id),
                             summary=QuerySummary.from_headers(response.headers),
                             response_headers=dict(response.headers))

    async def exec(self, query: str,
                   params: EffectiveQueryParams,
                   values: Any = None,
                   decompress_response_stream: bool = True) -> ExecResult:
        query_id = self._query_id(params)
        if values is None:
            response = await self._raw_request(params, query_id, data=query.encode())
        else:
            headers = {}
            data = self._compressed(values, headers)
            response = await self._raw_request(params, query_id, data=data, query=query, headers=headers)
        return ExecResult(stream=await self._body(response, decompress_response_stream),
                          query_id=self._response_query_id(response, query_id),
                          summary=QuerySummary.from_headers(response.headers),
                          response_headers=dict(response.headers))

    async def insert(self, query: str, values: Any, params: EffectiveQueryParams) -> ConnInsertResult:
        query_id = self._query_id(params)
        headers = {'Content-Type': 'application/octet-stream'}
        data = self._compressed(values, headers)
        response = await self._raw_request(params, query_id, data=data, query=query, headers=headers)
        await self._discard(response)
        return ConnInsertResult(query_id=self._response_query_id(response, query_id),
                                summary=QuerySummary.from_headers(response.headers),
                                response_headers=dict(response.headers))

    async def ping(self) -> PingResult:
        try:
            session = self._get_session()
            async with session.get(f'{self.url}/ping') as response:
                if response.status == 200:
                    await response.read()
                    return PingResult(success=True)
                body = (await response.read()).decode(errors='backslashreplace')
                return PingResult(success=False, error=parse_error(body, response.status))
        except Exception as ex:  # pylint: disable=broad-exception-caught
            logger.debug('ping failed', exc_info=True)
            return PingResult(success=False, error=ex)

    async def close(self):
        if self._session is not None:
            await self._session.close()
            self._session = None
