import pytest

from igclient.errors import ErrorKind, ResponseError
from igclient.models import ResponseEnvelope
from igclient.state import SessionState
from igclient.taxonomy import classify_error


def _envelope(body, status=400, status_text='Bad Request'):
    return ResponseEnvelope(
        body=body, status_code=status, status_text=status_text,
        method='POST', url='https://i.instagram.com/api/v1/x/')


CHALLENGE = {
    'message': 'challenge_required',
    'challenge': {'api_path': '/challenge/1/abc/'},
    'status': 'fail',
}


@pytest.mark.parametrize('body,status,kind', [
    ({'spam': True, 'message': 'feedback_required'}, 400,
     ErrorKind.ACTION_SPAM),
    ({'message': 'whatever'}, 404, ErrorKind.NOT_FOUND),
    (CHALLENGE, 400, ErrorKind.CHECKPOINT),
    ({'message': 'login_required'}, 403, ErrorKind.LOGIN_REQUIRED),
    ({'message': 'user_has_logged_out'}, 403,
     ErrorKind.LOGIN_REQUIRED),
    ({'message': 'Not authorized to view user'}, 400,
     ErrorKind.PRIVATE_USER),
    ({'error_type': 'sentry_block', 'message': 'x'}, 400,
     ErrorKind.SENTRY_BLOCK),
    ({'error_type': 'inactive user', 'message': 'y'}, 400,
     ErrorKind.INACTIVE_USER),
    ({'message': 'something else', 'status': 'fail'}, 400,
     ErrorKind.RESPONSE),
])
def test_classification(body, status, kind):
    error = classify_error(_envelope(body, status))
    assert isinstance(error, ResponseError)
    assert error.kind is kind


def test_spam_wins_over_not_found():
    error = classify_error(_envelope({'spam': True}, 404))
    assert error.kind is ErrorKind.ACTION_SPAM


def test_not_found_wins_over_challenge():
    state = SessionState()
    error = classify_error(_envelope(CHALLENGE, 404), state)
    assert error.kind is ErrorKind.NOT_FOUND
    assert state.checkpoint is None


def test_challenge_wins_over_sentry_block():
    body = dict(CHALLENGE, error_type='sentry_block')
    assert classify_error(_envelope(body)).kind is ErrorKind.CHECKPOINT


def test_checkpoint_recorded_on_state():
    state = SessionState()
    error = classify_error(_envelope(CHALLENGE), state)
    assert state.checkpoint == CHALLENGE
    assert error.checkpoint == CHALLENGE
    assert state.challenge_url == '/api/v1/challenge/1/abc/'


def test_non_checkpoint_error_has_no_checkpoint():
    error = classify_error(_envelope({'message': 'login_required'}))
    assert error.checkpoint is None


def test_message_taken_from_body():
    error = classify_error(_envelope({'message': 'feedback_required',
                                      'spam': True}))
    assert str(error) == 'feedback_required'
    assert error.text == 'feedback_required'


def test_generic_message_without_body_message():
    error = classify_error(_envelope('<html>oops</html>', 502,
                                     'Bad Gateway'))
    assert error.kind is ErrorKind.RESPONSE
    assert str(error) == (
        'POST https://i.instagram.com/api/v1/x/ - 502 Bad Gateway;')
    assert error.body == '<html>oops</html>'
    assert error.status_code == 502


def test_non_string_message_is_ignored():
    error = classify_error(_envelope({'message': {'nested': 1}}))
    assert error.kind is ErrorKind.RESPONSE
    assert str(error).endswith('400 Bad Request;')
