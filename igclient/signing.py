import base64
import hashlib
import hmac
import json
import random
import time
from typing import Any, Dict, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .state import SessionState

Payload = Union[Dict[str, Any], str]
SignedPayload = Dict[str, str]


def canonical_json(payload: Any) -> str:
    """Compact JSON, insertion order kept, non-ASCII unescaped."""
    return json.dumps(
        payload, separators=(',', ':'),
        ensure_ascii=False)


def _hmac_hex(key: str, data: str) -> str:
    return hmac.new(
        key.encode('utf-8'),
        data.encode('utf-8'),
        hashlib.sha256).hexdigest()


class SignatureEngine:
    """HMAC signing of request payloads and typing breadcrumbs.

    Keys and key version are read from the session on every
    call, so an imported session signs with its own keys.
    """

    def __init__(self, state: 'SessionState'):
        self.state = state

    def signature(self, data: str) -> str:
        return _hmac_hex(self.state.signature_key, data)

    def sign(self, payload: Payload) -> SignedPayload:
        body = (
            payload if isinstance(payload, str)
            else canonical_json(payload))
        return {
            'ig_sig_key_version': self.state.signature_version,
            'signed_body': f'{self.signature(body)}.{body}',
        }

    def user_breadcrumb(self, size: int) -> str:
        term = round(
            random.uniform(2, 3) * 1000
            + size
            + random.uniform(15, 20) * 1000)
        event_count = max(1, round(size / random.uniform(2, 3)))
        data = (
            f'{size} {term} {event_count}'
            f' {int(time.time() * 1000)}')
        signature = _hmac_hex(
            self.state.user_breadcrumb_key, data)
        sig_b64 = base64.b64encode(
            signature.encode('ascii')).decode('ascii')
        data_b64 = base64.b64encode(
            data.encode('utf-8')).decode('ascii')
        return f'{sig_b64}\n{data_b64}\n'
