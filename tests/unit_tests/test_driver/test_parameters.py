import uuid
from datetime import date, datetime
from enum import Enum
from ipaddress import IPv4Address

import pytest
import pytz

from clickhouse_core import common
from clickhouse_core.driver.common import coerce_bool, coerce_int, format_bind_value, format_setting_value


class Color(Enum):
    RED = 'red'


# pylint: disable=inconsistent-quotes
@pytest.mark.parametrize('value, expected', [
    ("a", "a"),
    ("a'", r"a\'"),
    ("a\tb\nc", r"a\tb\nc"),
    ("back\\slash", r"back\\slash"),
    (None, r"\N"),
    (True, "1"),
    (17, "17"),
    (2.5, "2.5"),
    ([], "[]"),
    ([1, None], "[1, NULL]"),
    (["a'"], r"['a\'']"),
    ([["a"]], "[['a']]"),
    (("a", 1), "('a', 1)"),
    (date(2023, 6, 1), '2023-06-01'),
    (datetime(2023, 6, 1, 20, 4, 5), '2023-06-01 20:04:05'),
    ([date(2023, 6, 1), date(2023, 8, 5)], "['2023-06-01', '2023-08-05']"),
    (Color.RED, "red"),
    (uuid.UUID('2c6b4e5a-3f6d-4b5e-9a1c-7d8e9f0a1b2c'), '2c6b4e5a-3f6d-4b5e-9a1c-7d8e9f0a1b2c'),
    ([IPv4Address('10.0.0.1')], "['10.0.0.1']"),
])
def test_format_bind_value(value, expected):
    assert format_bind_value(value) == expected


def test_bind_timezone():
    dt = pytz.UTC.localize(datetime(2023, 6, 1, 12, 0, 0))
    assert format_bind_value(dt) == '2023-06-01 12:00:00'
    assert format_bind_value(dt, pytz.timezone('America/Denver')) == '2023-06-01 06:00:00'


def test_dict_parameter_format():
    assert format_bind_value({'a': 1}) == '{"a":1}'
    common.set_setting('dict_parameter_format', 'map')
    assert format_bind_value({'a': 1, 'b': None}) == "{'a':1, 'b':NULL}"


@pytest.mark.parametrize('value, expected', [
    (True, '1'),
    (False, '0'),
    (100, '100'),
    ('best_effort', 'best_effort'),
    ({'a': 1}, '{"a":1}'),
])
def test_format_setting_value(value, expected):
    assert format_setting_value(value) == expected


def test_coerce():
    assert coerce_int(None) == 0
    assert coerce_int('42') == 42
    assert coerce_bool('Yes')
    assert coerce_bool(True)
    assert not coerce_bool('0')
    assert not coerce_bool(None)
