from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from clickhouse_core.driver.params import EffectiveQueryParams
from clickhouse_core.driver.summary import QuerySummary


@dataclass
class ConnQueryResult:
    stream: Any
    query_id: str
    response_headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class CommandResult:
    query_id: str
    summary: Optional[QuerySummary] = None
    response_headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class ExecResult:
    """
    Result of a raw exec call.  The stream must be fully consumed or closed by the caller, otherwise the
    underlying HTTP connection is not released until the transport times out
    """
    stream: Any
    query_id: str
    summary: Optional[QuerySummary] = None
    response_headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class ConnInsertResult:
    query_id: str
    summary: Optional[QuerySummary] = None
    response_headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class InsertResult:
    """
    executed is False (and query_id empty) when there was nothing to insert and no request was sent
    """
    executed: bool
    query_id: str
    summary: Optional[QuerySummary] = None
    response_headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class PingResult:
    success: bool
    error: Optional[Exception] = None


class Connection(ABC):
    """
    Transport used by the Client to send statements to ClickHouse.  Implementations own sockets, TLS,
    authentication headers, pooling and compression
    """

    @abstractmethod
    async def query(self, query: str, params: EffectiveQueryParams) -> ConnQueryResult:
        """
        Send a statement that produces tabular output
        :param query: Final statement text, including the FORMAT clause
        :param params: Merged per call parameters
        :return: ConnQueryResult whose stream holds the (decompressed) response body
        """

    @abstractmethod
    async def command(self, query: str, params: EffectiveQueryParams) -> CommandResult:
        """
        Send a statement without useful output.  The response body is discarded
        """

    @abstractmethod
    async def exec(self, query: str,
                   params: EffectiveQueryParams,
                   values: Any = None,
                   decompress_response_stream: bool = True) -> ExecResult:
        """
        Send a statement and return the raw response stream
        :param query: Statement text, sent as is
        :param params: Merged per call parameters
        :param values: Optional request body, already serialized in the format named in the statement
        :param decompress_response_stream: If False, a compressed response is returned still compressed.  Error
          responses are always decompressed to build the exception
        """

    @abstractmethod
    async def insert(self, query: str, values: Any, params: EffectiveQueryParams) -> ConnInsertResult:
        """
        Send an INSERT statement with its encoded values as the request body
        """

    @abstractmethod
    async def ping(self) -> PingResult:
        """
        Check that the server is reachable.  Never raises, failures are returned in the PingResult
        """

    @abstractmethod
    async def close(self):
        """
        Release all transport resources
        """
