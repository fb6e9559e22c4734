"""
The driver exception classes here include all named exceptions required by the DB API 2.0 specification.
Validation of insert values and statement arguments raises DataError or ProgrammingError before any request
is sent, while errors returned by the ClickHouse server surface as ClickHouseError, a DatabaseError
"""
from typing import Optional


class ClickHouseCoreError(Exception):
    """Exception class for all exceptions raised by the clickhouse_core library"""


class Warning(Warning, ClickHouseCoreError):  # pylint: disable=redefined-builtin
    """Exception for important warnings"""


class Error(ClickHouseCoreError):
    """Base class for all errors raised by the driver"""


class InterfaceError(Error):
    """Errors related to the use of the client interface"""


class DatabaseError(Error):
    """Errors related to the database"""


class DataError(DatabaseError):
    """Errors caused by problems with the processed data, such as records that don't match the insert format"""


class OperationalError(DatabaseError):
    """Errors related to the operation of the database or the network transport, such as lost connections"""


class IntegrityError(DatabaseError):
    """Errors caused by an inconsistency in the database"""


class InternalError(DatabaseError):
    """Internal database errors"""


class ProgrammingError(DatabaseError):
    """Errors caused by invalid arguments or an unsupported usage pattern"""


class NotSupportedError(DatabaseError):
    """A method or format is not supported by the selected client implementation"""


class StreamClosedError(ProgrammingError):
    """
    Attempt to consume a result stream that has already been consumed or closed
    """

    def __init__(self):
        super().__init__('Executing a streaming operation on a closed or already consumed stream')


class StreamFailureError(Error):
    """
    Stream failed unexpectedly while reading or decoding the response
    """


class ClickHouseError(DatabaseError):
    """
    Exception returned by the ClickHouse server, with the numeric error code and the error type name when
    they could be parsed from the response
    """

    def __init__(self, message: str, code: Optional[int] = None, error_type: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.type = error_type
