import enum
from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ResponseEnvelope


# ============================================
#  ERROR KINDS
# ============================================

class ErrorKind(str, enum.Enum):
    """Closed set of failure kinds a caller can branch on."""

    ACTION_SPAM = 'action_spam'
    NOT_FOUND = 'not_found'
    CHECKPOINT = 'checkpoint'
    LOGIN_REQUIRED = 'login_required'
    PRIVATE_USER = 'private_user'
    SENTRY_BLOCK = 'sentry_block'
    INACTIVE_USER = 'inactive_user'
    RESPONSE = 'response'
    NETWORK = 'network'
    DECODE = 'decode'
    COOKIE_NOT_FOUND = 'cookie_not_found'
    USER_ID_NOT_FOUND = 'user_id_not_found'
    NO_CHECKPOINT = 'no_checkpoint'
    CONFIG = 'config'
    SESSION_FORMAT = 'session_format'
    CLIENT = 'client'


# ============================================
#  EXCEPTIONS
# ============================================

class AppError(Exception):
    """Base application error."""

    kind: ErrorKind = ErrorKind.CLIENT


class ConfigError(AppError):
    """Missing or invalid configuration."""

    kind = ErrorKind.CONFIG


class SessionFormatError(AppError):
    """Persisted session record is malformed."""

    kind = ErrorKind.SESSION_FORMAT


class DeviceError(AppError):
    """Device identity missing or malformed."""


class NetworkError(AppError):
    kind = ErrorKind.NETWORK

    def __init__(self, msg: str,
                 retryable: bool = True):
        super().__init__(msg)
        self.retryable = retryable


class ParseError(AppError):
    """2xx response body is not valid JSON."""

    kind = ErrorKind.DECODE

    def __init__(self, msg: str, text: str = ''):
        super().__init__(msg)
        self.text = text


class CookieNotFound(AppError):
    kind = ErrorKind.COOKIE_NOT_FOUND

    def __init__(self, key: str):
        super().__init__(f'Cookie "{key}" not found')
        self.key = key


class UserIdNotFound(AppError):
    kind = ErrorKind.USER_ID_NOT_FOUND

    def __init__(self):
        super().__init__(
            'Could not extract user id'
            ' from cookies or challenge')


class NoCheckpoint(AppError):
    kind = ErrorKind.NO_CHECKPOINT

    def __init__(self):
        super().__init__('No checkpoint data available')


class ResponseError(AppError):
    """Server answered, but not with status "ok".

    ``kind`` tells which taxonomy rule matched. The full
    envelope stays on ``response`` for callers that need
    more than the message.
    """

    kind = ErrorKind.RESPONSE

    def __init__(self, envelope: 'ResponseEnvelope',
                 kind: ErrorKind = ErrorKind.RESPONSE):
        body = envelope.json
        message = body.get('message')
        if not isinstance(message, str) or not message:
            message = None
        super().__init__(
            message
            or f'{envelope.method} {envelope.url}'
               f' - {envelope.status_code}'
               f' {envelope.status_text};')
        self.kind = kind
        self.response = envelope
        self.text: Optional[str] = message

    @property
    def method(self) -> str:
        return self.response.method

    @property
    def url(self) -> str:
        return self.response.url

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def status_text(self) -> str:
        return self.response.status_text

    @property
    def body(self) -> Any:
        return self.response.body

    @property
    def checkpoint(self) -> Optional[dict]:
        if self.kind is ErrorKind.CHECKPOINT:
            return self.response.json
        return None
