import os
import sys
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version as dist_version
from typing import Any, Sequence, Optional, Dict

from clickhouse_core.driver.exceptions import ProgrammingError


def version():
    try:
        return dist_version('clickhouse-core')
    except PackageNotFoundError:
        version_fn = os.path.join(os.path.dirname(__file__), 'VERSION')
        if os.path.isfile(version_fn):
            with open(version_fn, encoding='utf-8') as version_file:
                return version_file.readline().strip()
        return 'development'


@dataclass
class CommonSetting:
    """
    Process wide library option.  An empty options sequence accepts any value of the default's type
    """
    name: str
    options: Sequence[Any]
    default: Any
    value: Optional[Any] = None


_common_settings: Dict[str, CommonSetting] = {}


def build_client_name(application: Optional[str] = None) -> str:
    """
    The User-Agent sent with every request, of the form
    `<application> <product_name> clickhouse-core/<version> (lv:py/<python version>; os:<platform>)`
    """
    product_name = get_setting('product_name')
    product_name = product_name.strip() + ' ' if product_name else ''
    application = application.strip() + ' ' if application else ''
    py_version = sys.version.split(' ', maxsplit=1)[0]
    return f'{application}{product_name}clickhouse-core/{version()} (lv:py/{py_version}; os:{sys.platform})'


def get_setting(name: str):
    setting = _common_settings.get(name)
    if setting is None:
        raise ProgrammingError(f'Unrecognized common setting {name}')
    return setting.value if setting.value is not None else setting.default


def set_setting(name: str, value: Any):
    setting = _common_settings.get(name)
    if setting is None:
        raise ProgrammingError(f'Unrecognized common setting {name}')
    if setting.options:
        if value not in setting.options:
            raise ProgrammingError(f'Unrecognized option {value} for setting {name}')
    elif not isinstance(value, type(setting.default)):
        raise ProgrammingError(f'Setting {name} requires a value of type {type(setting.default).__name__}')
    if value == setting.default:
        setting.value = None
    else:
        setting.value = value


def reset_settings():
    """
    Restore every common setting to its default
    """
    for setting in _common_settings.values():
        setting.value = None


def _init_common(name: str, options: Sequence[Any], default: Any):
    _common_settings[name] = CommonSetting(name, options, default)


# Generate a UUID4 query id for requests that don't specify one
_init_common('autogenerate_query_id', (True, False), True)

# Dictionary query parameters are sent as JSON objects or as ClickHouse Map literals
_init_common('dict_parameter_format', ('json', 'map'), 'json')

# Prepended to the User-Agent
_init_common('product_name', (), '')

# Size in bytes of the request body chunks produced by the streaming insert encoder
_init_common('insert_chunk_size', (), 1024 * 1024)

# Size in bytes of the reads from a streamed response body
_init_common('response_read_size', (), 512 * 1024)
