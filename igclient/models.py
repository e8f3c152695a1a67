from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import aiohttp


# ============================================
#  REQUEST DESCRIPTOR
# ============================================

@dataclass
class RequestDescriptor:
    """One logical call: path, query, method, headers
    and at most one body (form, raw bytes or multipart).
    """

    url: str
    qs: Dict[str, Any] = field(default_factory=dict)
    method: Optional[str] = None
    headers: Dict[str, Any] = field(default_factory=dict)
    form: Optional[Mapping[str, Any]] = None
    body: Optional[bytes] = None
    form_data: Optional[aiohttp.FormData] = None

    def __post_init__(self):
        given = [
            name for name in ('form', 'body', 'form_data')
            if getattr(self, name) is not None]
        if len(given) > 1:
            raise ValueError(
                f'RequestDescriptor accepts one body,'
                f' got: {", ".join(given)}')

    @property
    def has_body(self) -> bool:
        return (self.form is not None
                or self.body is not None
                or self.form_data is not None)


# ============================================
#  OPTION LAYER
# ============================================

@dataclass
class RequestOptions:
    """One precedence layer of request options.

    ``None`` scalars mean "not set in this layer".
    """

    method: Optional[str] = None
    base_url: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)
    headers: Mapping[str, Any] = field(default_factory=dict)
    verify_ssl: Optional[bool] = None
    compress: Optional[bool] = None


# ============================================
#  RESPONSE ENVELOPE
# ============================================

@dataclass
class ResponseEnvelope:
    body: Any
    status_code: int
    status_text: str
    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    text: str = ''

    @property
    def json(self) -> Dict[str, Any]:
        """Decoded body as a dict, empty for anything else."""
        if isinstance(self.body, dict):
            return self.body
        return {}

    @property
    def status(self) -> Optional[str]:
        return self.json.get('status')

    @property
    def ok(self) -> bool:
        return self.status == 'ok'
