from clickhouse_core.driver.config import ImplementationDetails
from clickhouse_core.driver.encoder import BufferValuesEncoder, StreamValuesEncoder
from clickhouse_core.driver.httpconnection import AiohttpConnection
from clickhouse_core.driver.resultset import make_buffer_result_set, make_stream_result_set


def stream_impl() -> ImplementationDetails:
    """
    Responses are decoded incrementally as they arrive and insert values are sent as a streamed request body
    """
    return ImplementationDetails(make_connection=lambda config: AiohttpConnection(config, stream_responses=True),
                                 make_result_set=make_stream_result_set,
                                 values_encoder=StreamValuesEncoder())


def buffer_impl() -> ImplementationDetails:
    """
    Responses are fully read before they are returned and insert values are encoded into a single buffer
    """
    return ImplementationDetails(make_connection=lambda config: AiohttpConnection(config, stream_responses=False),
                                 make_result_set=make_buffer_result_set,
                                 values_encoder=BufferValuesEncoder())
