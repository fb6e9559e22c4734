import pytest

from clickhouse_core import common, json_impl, version
from clickhouse_core.driver.exceptions import ProgrammingError


def test_common_settings():
    assert common.get_setting('autogenerate_query_id') is True
    common.set_setting('autogenerate_query_id', False)
    assert common.get_setting('autogenerate_query_id') is False
    with pytest.raises(ProgrammingError):
        common.set_setting('dict_parameter_format', 'yaml')
    with pytest.raises(ProgrammingError):
        common.get_setting('not_a_setting')


def test_client_name():
    assert common.build_client_name().startswith(f'clickhouse-core/{version()} (lv:py/')
    common.set_setting('product_name', 'reporting/2.1')
    assert common.build_client_name('etl').startswith('etl reporting/2.1 clickhouse-core/')


def test_json_library_selection():
    try:
        json_impl.set_json_library('python')
        assert json_impl.any_to_json({'a': [1, 'é']}) == '{"a":[1,"é"]}'.encode()
        assert json_impl.json_loads(b'{"a":1}') == {'a': 1}
        with pytest.raises(NotImplementedError):
            json_impl.set_json_library('simplejson')
    finally:
        json_impl.set_json_library()


def test_sized_settings():
    assert common.get_setting('insert_chunk_size') == 1024 * 1024
    common.set_setting('insert_chunk_size', 4096)
    assert common.get_setting('insert_chunk_size') == 4096
    with pytest.raises(ProgrammingError):
        common.set_setting('response_read_size', '64k')
    common.reset_settings()
    assert common.get_setting('insert_chunk_size') == 1024 * 1024


def test_version():
    assert version()
