import logging
from dataclasses import fields
from typing import Any, Dict, Optional, Union

from clickhouse_core.driver.config import ClientConfig, ImplementationDetails
from clickhouse_core.driver.connection import CommandResult, ExecResult, InsertResult, PingResult
from clickhouse_core.driver.flavors import stream_impl
from clickhouse_core.driver.formats import DataFormat, validate_format
from clickhouse_core.driver.params import BaseQueryParams, EffectiveQueryParams, merge_query_params
from clickhouse_core.driver.resultset import ResultSet
from clickhouse_core.driver.statement import as_insert_columns, format_query, insert_query, prepare_statement

logger = logging.getLogger(__name__)

_base_params = tuple(f.name for f in fields(BaseQueryParams))


# pylint: disable=too-many-arguments,unused-argument
class Client:
    """
    Asynchronous ClickHouse client.  The transport, the result set type and the insert values encoder are
    supplied by the ImplementationDetails, so the same client logic serves the streaming and buffered flavors
    """

    def __init__(self, config: ClientConfig, impl: Optional[ImplementationDetails] = None):
        """
        :param config: Client configuration, see clickhouse_core.driver.config.config_from_url
        :param impl: Flavor specific collaborators, defaults to the streaming implementation
        """
        impl = impl or stream_impl()
        self.config = config
        self.settings: Dict[str, Any] = dict(config.settings)
        self.session_id = config.session_id
        self.role = config.role
        self.connection = impl.make_connection(config)
        self._make_result_set = impl.make_result_set
        self._values_encoder = impl.values_encoder

    def _with_client_params(self, lcls: Dict[str, Any]) -> EffectiveQueryParams:
        call_params = BaseQueryParams(**{name: lcls[name] for name in _base_params})
        return merge_query_params(self.settings, self.session_id, self.role, call_params)

    async def query(self,
                    query: str,
                    fmt: Union[str, DataFormat] = DataFormat.JSON,
                    *,
                    settings: Optional[Dict[str, Any]] = None,
                    parameters: Optional[Dict[str, Any]] = None,
                    abort_signal=None,
                    query_id: Optional[str] = None,
                    session_id: Optional[str] = None,
                    role=None,
                    auth=None,
                    opentelemetry_headers: Optional[Dict[str, str]] = None) -> ResultSet:
        """
        Run a statement that returns data.  A FORMAT clause for fmt is appended to the statement
        :param query: Statement text, a trailing semicolon is removed
        :param fmt: Response data format
        :param settings: ClickHouse settings for this query, merged over the client settings
        :param parameters: Values for {name:Type} query parameters
        :param abort_signal: asyncio.Event that cancels the request when set
        :param query_id: Query id, generated by the transport if not supplied
        :param session_id: Overrides the client session id
        :param role: Overrides the client role(s)
        :param auth: Overrides the client credentials for this request
        :param opentelemetry_headers: Trace context headers (traceparent, tracestate)
        :return: ResultSet, which must be consumed or closed
        """
        fmt = validate_format(fmt)
        statement = format_query(query, fmt)
        params = self._with_client_params(locals())
        result = await self.connection.query(statement, params)

        def on_error(err: Exception):
            logger.error('Error while processing the ResultSet. session_id: %s, role: %s, query: %s, query_id: %s',
                         params.session_id, params.role, statement, result.query_id, exc_info=err)

        return self._make_result_set(result.stream, fmt, result.query_id, on_error, result.response_headers)

    async def command(self,
                      query: str,
                      *,
                      settings: Optional[Dict[str, Any]] = None,
                      parameters: Optional[Dict[str, Any]] = None,
                      abort_signal=None,
                      query_id: Optional[str] = None,
                      session_id: Optional[str] = None,
                      role=None,
                      auth=None,
                      opentelemetry_headers: Optional[Dict[str, str]] = None) -> CommandResult:
        """
        Run a DDL or other statement that produces no meaningful output.  The response body is discarded
        :return: CommandResult with the query id, summary and response headers
        """
        params = self._with_client_params(locals())
        return await self.connection.command(prepare_statement(query), params)

    async def exec(self,
                   query: str,
                   values: Any = None,
                   decompress_response_stream: bool = True,
                   *,
                   settings: Optional[Dict[str, Any]] = None,
                   parameters: Optional[Dict[str, Any]] = None,
                   abort_signal=None,
                   query_id: Optional[str] = None,
                   session_id: Optional[str] = None,
                   role=None,
                   auth=None,
                   opentelemetry_headers: Optional[Dict[str, str]] = None) -> ExecResult:
        """
        Run an arbitrary statement and return the raw response
        :param query: Statement text, sent unchanged except for whitespace and trailing semicolon removal
        :param values: Optional request body, sent as is
        :param decompress_response_stream: If False the response stream is returned still compressed.  Error
          responses are always decompressed
        :return: ExecResult whose stream must be consumed or closed by the caller
        """
        params = self._with_client_params(locals())
        return await self.connection.exec(prepare_statement(query), params, values, decompress_response_stream)

    async def insert(self,
                     table: str,
                     values: Any,
                     fmt: Union[str, DataFormat] = DataFormat.JSONCompactEachRow,
                     columns=None,
                     *,
                     settings: Optional[Dict[str, Any]] = None,
                     parameters: Optional[Dict[str, Any]] = None,
                     abort_signal=None,
                     query_id: Optional[str] = None,
                     session_id: Optional[str] = None,
                     role=None,
                     auth=None,
                     opentelemetry_headers: Optional[Dict[str, str]] = None) -> InsertResult:
        """
        Insert data into a table
        :param table: Target table name, optionally qualified with the database
        :param values: A list/tuple of records, a dict for JSONObjectEachRow, raw str/bytes, or a sync/async
          stream of records or raw chunks
        :param fmt: Insert data format
        :param columns: A list of column names, or {'except': [names]} to insert into all other columns
        :return: InsertResult.  executed is False if values was an empty list or tuple and nothing was sent
        """
        if isinstance(values, (list, tuple)) and len(values) == 0:
            return InsertResult(False, '', None, {})
        fmt = validate_format(fmt)
        self._values_encoder.validate_insert_values(values, fmt)
        statement = insert_query(table, fmt, as_insert_columns(columns))
        params = self._with_client_params(locals())
        body = self._values_encoder.encode_values(values, fmt)
        result = await self.connection.insert(statement, body, params)
        return InsertResult(True, result.query_id, result.summary, result.response_headers)

    async def ping(self) -> PingResult:
        """
        Check that the server is reachable.  Never raises, failures are reported in PingResult.error
        """
        return await self.connection.ping()

    async def close(self):
        await self.connection.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_value, exc_traceback):
        await self.close()
