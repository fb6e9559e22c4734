import ipaddress
import uuid
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Any, Dict, Optional, Union

from clickhouse_core import common
from clickhouse_core import json_impl

BS = '\\'
must_escape = (BS, '\'', '\t', '\n')
escape_map = {'\t': 't', '\n': 'n'}


def dict_copy(source: Dict = None, update: Optional[Dict] = None) -> Dict:
    copy = source.copy() if source else {}
    if update:
        copy.update(update)
    return copy


def coerce_int(val: Optional[Union[str, int]]) -> int:
    if not val:
        return 0
    return int(val)


def coerce_bool(val: Optional[Union[str, bool]]):
    if not val:
        return False
    return val is True or (isinstance(val, str) and val.lower() in ('true', '1', 'y', 'yes'))


def format_setting_value(value: Any) -> str:
    """
    Render a ClickHouse setting value as an HTTP query parameter
    """
    if isinstance(value, bool):
        return '1' if value else '0'
    if isinstance(value, (dict, list)):
        return json_impl.any_to_json(value).decode()
    return str(value)


def _escape_str(value: str):
    return ''.join(f'{BS}{escape_map.get(c, c)}' if c in must_escape else c for c in value)


# pylint: disable=too-many-return-statements
def format_bind_value(value: Any, bind_tz: Optional[tzinfo] = None, top_level: bool = True) -> str:
    """
    Format Python values as server side query parameters (the {name:Type} binding syntax)
    :param value: Python object
    :param bind_tz: Timezone aware datetime values are converted to this timezone before formatting
    :param top_level: Strings are quoted only when nested in a container
    :return: String representation expected by ClickHouse for the parameter
    """
    if value is None:
        return 'NULL' if not top_level else '\\N'
    if isinstance(value, bool):
        return '1' if value else '0'
    if isinstance(value, str):
        return _escape_str(value) if top_level else f"'{_escape_str(value)}'"
    if isinstance(value, datetime):
        if value.tzinfo is not None and bind_tz is not None:
            value = value.astimezone(bind_tz)
        formatted = value.strftime('%Y-%m-%d %H:%M:%S')
        return formatted if top_level else f"'{formatted}'"
    if isinstance(value, date):
        return value.isoformat() if top_level else f"'{value.isoformat()}'"
    if isinstance(value, (list, set, frozenset)):
        return f"[{', '.join(format_bind_value(x, bind_tz, False) for x in value)}]"
    if isinstance(value, tuple):
        return f"({', '.join(format_bind_value(x, bind_tz, False) for x in value)})"
    if isinstance(value, dict):
        if common.get_setting('dict_parameter_format') == 'json':
            return json_impl.any_to_json(value).decode()
        pairs = [format_bind_value(k, bind_tz, False) + ':' + format_bind_value(v, bind_tz, False)
                 for k, v in value.items()]
        return f"{{{', '.join(pairs)}}}"
    if isinstance(value, Enum):
        return format_bind_value(value.value, bind_tz, top_level)
    if isinstance(value, (uuid.UUID, ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return str(value) if top_level else f"'{value}'"
    return str(value)
