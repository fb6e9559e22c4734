import logging
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, Optional, Sequence, Union
from urllib.parse import urlparse, parse_qsl, unquote

from clickhouse_core.driver.common import coerce_bool
from clickhouse_core.driver.compression import available_compression, request_compression
from clickhouse_core.driver.encoder import ValuesEncoder
from clickhouse_core.driver.exceptions import ProgrammingError

logger = logging.getLogger(__name__)

DEFAULT_URL = 'http://localhost:8123'
SETTING_PREFIXES = ('clickhouse_setting_', 'ch_')
HEADER_PREFIX = 'http_header_'
log_levels = {'TRACE': logging.DEBUG, 'DEBUG': logging.DEBUG, 'INFO': logging.INFO, 'WARN': logging.WARNING,
              'WARNING': logging.WARNING, 'ERROR': logging.ERROR, 'OFF': logging.CRITICAL + 10}


# pylint: disable=too-many-instance-attributes
@dataclass
class ClientConfig:
    """
    Client and transport configuration.  Everything except url is optional
    """
    url: str = DEFAULT_URL
    username: Optional[str] = None
    password: str = ''
    access_token: Optional[str] = None
    database: Optional[str] = None
    compress_request: Optional[str] = None
    compress_response: Optional[str] = 'gzip'
    request_timeout: float = 300.0
    connect_timeout: float = 10.0
    max_open_connections: int = 10
    keep_alive: bool = True
    idle_socket_ttl: float = 2.5
    http_headers: Dict[str, str] = field(default_factory=dict)
    application: Optional[str] = None
    session_id: Optional[str] = None
    role: Optional[Union[str, Sequence[str]]] = None
    settings: Dict[str, Any] = field(default_factory=dict)
    bind_tz: Optional[str] = None
    log_level: Optional[str] = None
    verify: bool = True
    ca_cert: Optional[str] = None
    client_cert: Optional[str] = None
    client_cert_key: Optional[str] = None

    def __post_init__(self):
        self.compress_request = _compression(self.compress_request, request_compression, 'request')
        self.compress_response = _compression(self.compress_response, available_compression, 'response')
        if self.access_token and self.username:
            raise ProgrammingError('Either username/password or access_token may be configured, not both')
        if self.log_level is not None:
            level = log_levels.get(str(self.log_level).upper())
            if level is None:
                raise ProgrammingError(f'Unrecognized log level {self.log_level}')
            logging.getLogger('clickhouse_core').setLevel(level)


def _compression(value: Any, options: Sequence[str], name: str) -> Optional[str]:
    if value is None or value is False:
        return None
    if value is True:
        return 'gzip'
    if isinstance(value, str):
        if value.lower() in ('', 'false', '0', 'none'):
            return None
        if value.lower() in ('true', '1'):
            return 'gzip'
        if value in options:
            return value
    raise ProgrammingError(f'Unsupported {name} compression {value}')


# pylint: disable=too-many-branches
def config_from_url(url: Optional[str] = None, **overrides) -> ClientConfig:
    """
    Build a ClientConfig from a ClickHouse URL of the form http[s]://user:password@host:port/database?params.
    Arguments passed explicitly take precedence over values from the URL
    :param url: ClickHouse URL
    :param overrides: ClientConfig fields.  settings and http_headers are merged with the URL values
    :return: ClientConfig
    """
    config_fields = {f.name for f in fields(ClientConfig)}
    unknown = set(overrides) - config_fields
    if unknown:
        raise ProgrammingError(f"Unrecognized client configuration {', '.join(sorted(unknown))}")
    values: Dict[str, Any] = {}
    settings: Dict[str, Any] = {}
    http_headers: Dict[str, str] = {}
    if url:
        parsed = urlparse(url)
        if parsed.scheme not in ('http', 'https'):
            raise ProgrammingError(f'Unsupported ClickHouse URL scheme {parsed.scheme}')
        if not parsed.hostname:
            raise ProgrammingError(f'ClickHouse URL {url} is missing the host')
        port = parsed.port or (8443 if parsed.scheme == 'https' else 8123)
        values['url'] = f'{parsed.scheme}://{parsed.hostname}:{port}'
        if parsed.username:
            values['username'] = unquote(parsed.username)
        if parsed.password:
            values['password'] = unquote(parsed.password)
        if parsed.path and parsed.path != '/':
            values['database'] = parsed.path[1:].split('/')[0]
        roles = []
        for key, value in parse_qsl(parsed.query, keep_blank_values=True):
            if key == 'role':
                roles.append(value)
            elif key in ('database', 'application', 'session_id', 'access_token', 'log_level'):
                values[key] = value
            elif key == 'request_timeout':
                values['request_timeout'] = float(value) / 1000
            elif key == 'max_open_connections':
                values['max_open_connections'] = int(value)
            elif key == 'compression_request':
                values['compress_request'] = value
            elif key == 'compression_response':
                values['compress_response'] = value
            elif key == 'keep_alive_enabled':
                values['keep_alive'] = coerce_bool(value)
            elif key == 'keep_alive_idle_socket_ttl':
                values['idle_socket_ttl'] = float(value) / 1000
            elif key.startswith(HEADER_PREFIX):
                http_headers[key[len(HEADER_PREFIX):]] = value
            else:
                for prefix in SETTING_PREFIXES:
                    if key.startswith(prefix):
                        settings[key[len(prefix):]] = value
                        break
                else:
                    raise ProgrammingError(f'Unknown URL parameter {key}')
        if roles:
            values['role'] = roles[0] if len(roles) == 1 else roles
    settings.update(overrides.pop('settings', None) or {})
    http_headers.update(overrides.pop('http_headers', None) or {})
    values.update({k: v for k, v in overrides.items() if v is not None})
    logger.debug('Client configuration from URL %s: %s', url, sorted(values))
    return ClientConfig(settings=settings, http_headers=http_headers, **values)


@dataclass(frozen=True)
class ImplementationDetails:
    """
    The environment specific collaborators of a Client.  Stream capable and buffer only flavors are
    selected at construction and never branched on inside the Client
    """
    make_connection: Callable[[ClientConfig], Any]
    make_result_set: Callable[..., Any]
    values_encoder: ValuesEncoder

