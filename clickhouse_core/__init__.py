from clickhouse_core.common import version
from clickhouse_core.driver import create_client

driver_name = 'clickhousecore'


def get_client(**kwargs):
    return create_client(**kwargs)


__all__ = ['create_client', 'get_client', 'version', 'driver_name']
