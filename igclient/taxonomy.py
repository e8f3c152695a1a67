import logging
from typing import Optional, TYPE_CHECKING

from .errors import ErrorKind, ResponseError
from .models import ResponseEnvelope

if TYPE_CHECKING:
    from .state import SessionState

log = logging.getLogger('igclient')

LOGGED_OUT_MESSAGES = ('user_has_logged_out', 'login_required')
PRIVATE_USER_MESSAGE = 'not authorized to view user'
CHALLENGE_MESSAGE = 'challenge_required'


def classify_error(
        envelope: ResponseEnvelope,
        state: Optional['SessionState'] = None
) -> ResponseError:
    """Map a failed envelope to exactly one error kind.

    Rules run in order, first match wins. A
    ``challenge_required`` body is also recorded as the
    session checkpoint.
    """
    body = envelope.json
    kind = ErrorKind.RESPONSE
    message = body.get('message')

    if body.get('spam'):
        kind = ErrorKind.ACTION_SPAM
    elif envelope.status_code == 404:
        kind = ErrorKind.NOT_FOUND
    elif isinstance(message, str) and message == CHALLENGE_MESSAGE:
        kind = ErrorKind.CHECKPOINT
        if state is not None:
            state.checkpoint = body
    elif isinstance(message, str) and message in LOGGED_OUT_MESSAGES:
        kind = ErrorKind.LOGIN_REQUIRED
    elif (isinstance(message, str)
          and message.lower() == PRIVATE_USER_MESSAGE):
        kind = ErrorKind.PRIVATE_USER
    elif body.get('error_type') == 'sentry_block':
        kind = ErrorKind.SENTRY_BLOCK
    elif body.get('error_type') == 'inactive user':
        kind = ErrorKind.INACTIVE_USER

    log.debug(
        '%s %s -> %d classified as %s',
        envelope.method, envelope.url,
        envelope.status_code, kind.value)
    return ResponseError(envelope, kind)
