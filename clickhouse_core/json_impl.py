import logging
import json as py_json
from collections import OrderedDict
from typing import Any, Union

try:
    import orjson
except ImportError:
    orjson = None

try:
    import ujson
except ImportError:
    ujson = None


def _pyjson_to_json(obj: Any) -> bytes:
    return py_json.dumps(obj, separators=(',', ':'), ensure_ascii=False).encode()


def _ujson_to_json(obj: Any) -> bytes:
    return ujson.dumps(obj, ensure_ascii=False).encode()  # pylint: disable=c-extension-no-member


logger = logging.getLogger(__name__)
_to_json = OrderedDict()
_to_json['orjson'] = orjson.dumps if orjson else None  # pylint: disable=no-member
_to_json['ujson'] = _ujson_to_json if ujson else None
_to_json['python'] = _pyjson_to_json

_from_json = OrderedDict()
_from_json['orjson'] = orjson.loads if orjson else None  # pylint: disable=no-member
_from_json['ujson'] = ujson.loads if ujson else None  # pylint: disable=c-extension-no-member
_from_json['python'] = py_json.loads

any_to_json = _pyjson_to_json
_json_loads = py_json.loads


def json_loads(source: Union[str, bytes]) -> Any:
    return _json_loads(source)


def set_json_library(impl: str = None):
    global any_to_json, _json_loads  # pylint: disable=global-statement
    if impl:
        func = _to_json.get(impl)
        if not func:
            raise NotImplementedError(f'JSON library {impl} is not supported')
        any_to_json = func
        _json_loads = _from_json[impl]
        logger.info('Using %s library for JSON', impl)
        return
    for library, func in _to_json.items():
        if func:
            logger.info('Using %s library for writing JSON byte strings', library)
            any_to_json = func
            _json_loads = _from_json[library]
            break


set_json_library()
