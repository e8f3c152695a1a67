import base64
import hashlib
import hmac

from igclient.signing import SignatureEngine, canonical_json
from igclient.state import SessionState


def _engine(**kw):
    return SignatureEngine(SessionState(**kw))


def test_signature_is_hmac_sha256_hex():
    engine = _engine(signature_key='Jefe')
    assert engine.signature('what do ya want for nothing?') == (
        '5bdcc146bf60754e6a042426089575c7'
        '5a003f089d2739839dec58b964ec3843')


def test_canonical_json_is_compact_and_keeps_order():
    assert canonical_json({'b': 1, 'a': 'é', 'c': [1, 2]}) == (
        '{"b":1,"a":"é","c":[1,2]}')


def test_sign_formats_signed_body():
    engine = _engine(signature_key='k', signature_version='4')
    signed = engine.sign({'username': 'cat', 'device_id': 'android-1'})

    assert signed['ig_sig_key_version'] == '4'
    signature, body = signed['signed_body'].split('.', 1)
    assert body == '{"username":"cat","device_id":"android-1"}'
    assert signature == engine.signature(body)
    assert len(signature) == 64


def test_sign_is_deterministic():
    payload = {'q': 'x', 'n': 5}
    assert _engine().sign(payload) == _engine().sign(payload)


def test_sign_object_equals_sign_of_its_json():
    engine = _engine()
    payload = {'_uuid': 'abc', 'count': 3, 'nested': {'a': True}}
    assert engine.sign(payload) == engine.sign(canonical_json(payload))


def test_sign_uses_session_key():
    payload = {'a': 1}
    assert (_engine(signature_key='one').sign(payload)
            != _engine(signature_key='two').sign(payload))


def test_user_breadcrumb_shape():
    engine = _engine(user_breadcrumb_key='crumb')
    size = 10
    token = engine.user_breadcrumb(size)

    assert token.endswith('\n')
    sig_b64, data_b64, tail = token.split('\n')
    assert tail == ''

    data = base64.b64decode(data_b64).decode()
    parts = data.split(' ')
    assert len(parts) == 4
    assert all(p.isdigit() for p in parts)
    got_size, term, count, now_ms = map(int, parts)
    assert got_size == size
    assert 2000 + size + 15000 <= term <= 3000 + size + 20000
    assert count >= 1
    assert now_ms > 1_500_000_000_000

    signature = base64.b64decode(sig_b64).decode()
    assert signature == hmac.new(
        b'crumb', data.encode(), hashlib.sha256).hexdigest()


def test_user_breadcrumb_zero_size_has_one_event():
    data = base64.b64decode(
        _engine().user_breadcrumb(0).split('\n')[1]).decode()
    assert data.split(' ')[2] == '1'
