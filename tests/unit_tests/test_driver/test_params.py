import asyncio

import pytest

from clickhouse_core.driver.exceptions import ProgrammingError
from clickhouse_core.driver.params import BaseQueryParams, BasicAuth, TokenAuth, merge_query_params


def test_call_settings_override_client_settings():
    client_settings = {'max_threads': 4, 'readonly': 1}
    params = merge_query_params(client_settings, None, None,
                                BaseQueryParams(settings={'max_threads': 8, 'max_block_size': 1000}))
    assert params.settings == {'max_threads': 8, 'readonly': 1, 'max_block_size': 1000}
    assert client_settings == {'max_threads': 4, 'readonly': 1}


def test_client_defaults_used_when_not_overridden():
    params = merge_query_params({'readonly': 1}, 'client_session', ['r1', 'r2'], BaseQueryParams())
    assert params.settings == {'readonly': 1}
    assert params.session_id == 'client_session'
    assert params.role == ['r1', 'r2']


def test_call_session_and_role_override():
    params = merge_query_params(None, 'client_session', 'client_role',
                                BaseQueryParams(session_id='call_session', role='call_role'))
    assert params.settings == {}
    assert params.session_id == 'call_session'
    assert params.role == 'call_role'


def test_pass_through_values():
    abort = asyncio.Event()
    headers = {'traceparent': '00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01'}
    call = BaseQueryParams(parameters={'x': 1}, abort_signal=abort, query_id='qid',
                           auth=BasicAuth('user', 'pw'), opentelemetry_headers=headers)
    params = merge_query_params({}, None, None, call)
    assert params.parameters == {'x': 1}
    assert params.abort_signal is abort
    assert params.query_id == 'qid'
    assert params.auth == BasicAuth('user', 'pw')
    assert params.opentelemetry_headers == headers


def test_auth_from_dict():
    assert BaseQueryParams(auth={'username': 'u', 'password': 'p'}).auth == BasicAuth('u', 'p')
    assert BaseQueryParams(auth={'username': 'u'}).auth == BasicAuth('u', '')
    assert BaseQueryParams(auth={'access_token': 'jwt'}).auth == TokenAuth('jwt')
    with pytest.raises(ProgrammingError):
        BaseQueryParams(auth={'token': 'jwt'})
