import logging

import pytest

from clickhouse_core import common


@pytest.fixture(autouse=True)
def clean_global_state():
    yield
    common.reset_settings()
    logging.getLogger('clickhouse_core').setLevel(logging.NOTSET)
