from .client import IgApiClient
from .config import ClientConfig, load_config
from .errors import (
    AppError, ConfigError, CookieNotFound, DeviceError, ErrorKind,
    NetworkError, NoCheckpoint, ParseError, ResponseError,
    SessionFormatError, UserIdNotFound,
)
from .models import RequestDescriptor, RequestOptions, ResponseEnvelope
from .request import Channel, RequestDispatcher, decode_body, merge_options
from .signing import SignatureEngine, canonical_json
from .state import ExportState, SessionState, load_session, save_session
from .taxonomy import classify_error

__version__ = '0.1.0'

__all__ = [
    'AppError', 'Channel', 'ClientConfig', 'ConfigError',
    'CookieNotFound', 'DeviceError', 'ErrorKind', 'ExportState',
    'IgApiClient', 'NetworkError', 'NoCheckpoint', 'ParseError',
    'RequestDescriptor', 'RequestDispatcher', 'RequestOptions',
    'ResponseEnvelope', 'ResponseError', 'SessionFormatError',
    'SessionState', 'SignatureEngine', 'UserIdNotFound',
    'canonical_json', 'classify_error', 'decode_body',
    'load_config', 'load_session', 'merge_options', 'save_session',
]
