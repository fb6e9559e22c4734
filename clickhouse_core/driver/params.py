import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from clickhouse_core.driver.common import dict_copy
from clickhouse_core.driver.exceptions import ProgrammingError

Role = Union[str, Sequence[str]]


@dataclass(frozen=True)
class BasicAuth:
    username: str
    password: str = ''


@dataclass(frozen=True)
class TokenAuth:
    access_token: str


Auth = Union[BasicAuth, TokenAuth]


@dataclass
class BaseQueryParams:
    """
    Per call options shared by all client operations.  A value of None means "inherit the client default"
    for settings, session_id and role, and "not set" for everything else
    """
    settings: Optional[Dict[str, Any]] = None
    parameters: Optional[Dict[str, Any]] = None
    abort_signal: Optional[asyncio.Event] = None
    query_id: Optional[str] = None
    session_id: Optional[str] = None
    role: Optional[Role] = None
    auth: Optional[Auth] = None
    opentelemetry_headers: Optional[Dict[str, str]] = None

    def __post_init__(self):
        self.auth = as_auth(self.auth)


@dataclass(frozen=True)
class EffectiveQueryParams:
    """
    The merged parameters actually sent with one request
    """
    settings: Dict[str, Any] = field(default_factory=dict)
    parameters: Optional[Dict[str, Any]] = None
    abort_signal: Optional[asyncio.Event] = None
    query_id: Optional[str] = None
    session_id: Optional[str] = None
    role: Optional[Role] = None
    auth: Optional[Auth] = None
    opentelemetry_headers: Optional[Dict[str, str]] = None


def merge_query_params(client_settings: Optional[Dict[str, Any]],
                       client_session_id: Optional[str],
                       client_role: Optional[Role],
                       params: BaseQueryParams) -> EffectiveQueryParams:
    """
    Combines client level defaults with the options of a single call
    :param client_settings: ClickHouse settings configured for the client
    :param client_session_id: Session id configured for the client
    :param client_role: Role or roles configured for the client
    :param params: Options supplied with the call
    :return: A new EffectiveQueryParams.  Call settings override client settings key by key
    """
    return EffectiveQueryParams(
        settings=dict_copy(client_settings, params.settings),
        parameters=params.parameters,
        abort_signal=params.abort_signal,
        query_id=params.query_id,
        session_id=params.session_id if params.session_id is not None else client_session_id,
        role=params.role if params.role is not None else client_role,
        auth=params.auth,
        opentelemetry_headers=params.opentelemetry_headers)


def as_auth(auth: Any) -> Optional[Auth]:
    """
    Accepts a BasicAuth/TokenAuth or a dict with either username/password or access_token keys
    """
    if auth is None or isinstance(auth, (BasicAuth, TokenAuth)):
        return auth
    if isinstance(auth, Mapping):
        if 'access_token' in auth:
            return TokenAuth(auth['access_token'])
        if 'username' in auth:
            return BasicAuth(auth['username'], auth.get('password', ''))
    raise ProgrammingError('Auth override must contain either username and password or access_token')
