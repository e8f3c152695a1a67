"""
Request dispatcher.

Every call goes through the same pipeline: merge the
caller's options over computed app headers and session
defaults, pick a transport for the configured proxy, send
with a bounded number of attempts, decode the body without
losing integer precision, and either return the envelope or
raise the one error the response classifies as.
"""

import asyncio
import json
import logging
import random
import time
from typing import (
    Any, Awaitable, Callable, Dict, List, Mapping, Optional, Set,
    Union,
)

import aiohttp
from aiohttp_socks import ProxyError
from multidict import CIMultiDict
from yarl import URL

from .config import ClientConfig
from .constants import MAX_SAFE_FLOAT_DIGITS, MAX_SAFE_INTEGER
from .errors import AppError, NetworkError, ParseError
from .models import RequestDescriptor, RequestOptions, ResponseEnvelope
from .signing import (
    Payload, SignatureEngine, SignedPayload, canonical_json,
)
from .state import SessionState
from .taxonomy import classify_error
from .transport import ProxyRoute, build_connector, resolve_proxy
from .utils import jitter_delay, truncate_header

log = logging.getLogger('igclient')

Subscriber = Callable[[Any], Union[None, Awaitable[None]]]


# ============================================
#  NOTIFICATION CHANNEL
# ============================================

class Channel:
    """Fan-out of one value per call to subscribers.

    Delivery is scheduled on the loop, so subscribers run
    after the call that published has already resolved.
    """

    def __init__(self, name: str):
        self.name = name
        self._subscribers: List[Subscriber] = []
        self._tasks: Set[asyncio.Task] = set()

    def subscribe(
            self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def publish(self, value: Any = None) -> None:
        if not self._subscribers:
            return
        loop = asyncio.get_running_loop()
        for callback in list(self._subscribers):
            loop.call_soon(self._deliver, callback, value)

    def _deliver(self, callback: Subscriber, value: Any) -> None:
        result = callback(value)
        if asyncio.iscoroutine(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def __len__(self) -> int:
        return len(self._subscribers)


# ============================================
#  OPTION MERGE
# ============================================

def merge_options(*layers: RequestOptions) -> RequestOptions:
    """Merge option layers, highest precedence first.

    Scalars take the first layer that sets them. Params
    merge per key, headers per key case-insensitively.
    """
    merged = RequestOptions()
    headers: CIMultiDict = CIMultiDict()
    params: Dict[str, Any] = {}
    for layer in reversed(layers):
        for key, value in layer.headers.items():
            headers[key] = value
        params.update(layer.params)
    for name in ('method', 'base_url', 'verify_ssl', 'compress'):
        for layer in layers:
            value = getattr(layer, name)
            if value is not None:
                setattr(merged, name, value)
                break
    merged.headers = headers
    merged.params = params
    return merged


def _wire_value(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (dict, list, tuple)):
        return canonical_json(value)
    return str(value)


def _wire_mapping(data: Mapping[str, Any]) -> Dict[str, str]:
    return {
        str(key): _wire_value(value)
        for key, value in data.items()
        if value is not None}


# ============================================
#  DECODE
# ============================================

def _parse_int(text: str) -> Union[int, str]:
    value = int(text)
    if abs(value) > MAX_SAFE_INTEGER:
        return text
    return value


def _parse_float(text: str) -> Union[float, str]:
    mantissa = text.lower().split('e')[0]
    digits = mantissa.replace('-', '').replace('.', '').lstrip('0')
    if len(digits) > MAX_SAFE_FLOAT_DIGITS:
        return text
    return float(text)


def decode_body(text: str, status: int) -> Any:
    """Decode JSON, keeping big numbers as strings.

    An unparsable body is fatal only for 2xx responses;
    otherwise the raw text becomes the body.
    """
    if not text:
        return None
    try:
        return json.loads(
            text, parse_int=_parse_int, parse_float=_parse_float)
    except json.JSONDecodeError as exc:
        if 200 <= status < 300:
            raise ParseError(
                f'JSON: {exc}, {text[:200]}', text) from exc
        return text


# ============================================
#  DISPATCHER
# ============================================

class RequestDispatcher:
    """Composes, sends and classifies API calls for one session.

    The ``end`` channel gets the envelope of every finished
    call (``None`` when the transport failed), the ``error``
    channel every error a call raises.
    """

    def __init__(
            self, state: SessionState,
            config: Optional[ClientConfig] = None):
        self.state = state
        self.config = config or ClientConfig()
        self.signer = SignatureEngine(state)
        self.end = Channel('end')
        self.error = Channel('error')
        self._session: Optional[aiohttp.ClientSession] = None
        self._route: Optional[ProxyRoute] = None
        # Calls in flight per session, current or retired
        self._in_flight: Dict[aiohttp.ClientSession, int] = {}

    async def __aenter__(self) -> 'RequestDispatcher':
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        sessions = set(self._in_flight)
        if self._session is not None:
            sessions.add(self._session)
        for session in sessions:
            if not session.closed:
                await session.close()
        self._in_flight.clear()
        self._session = None
        self._route = None

    # ---- Signing primitives ----

    def signature(self, data: str) -> str:
        return self.signer.signature(data)

    def sign(self, payload: Payload) -> SignedPayload:
        return self.signer.sign(payload)

    def user_breadcrumb(self, size: int) -> str:
        return self.signer.user_breadcrumb(size)

    # ---- Entry points ----

    async def send(
            self, descriptor: RequestDescriptor,
            only_check_http_status: bool = False
    ) -> ResponseEnvelope:
        """Query/header request, with an optional www-form body."""
        if descriptor.body is not None or descriptor.form_data is not None:
            raise ValueError(
                'send() takes form bodies only;'
                ' use send_body() or send_form_data()')
        data = (
            _wire_mapping(descriptor.form)
            if descriptor.form is not None else None)
        return await self._send_request(
            descriptor, data, only_check_http_status)

    async def send_body(
            self, descriptor: RequestDescriptor,
            only_check_http_status: bool = False
    ) -> ResponseEnvelope:
        if descriptor.body is None:
            raise ValueError('send_body() needs descriptor.body')
        return await self._send_request(
            descriptor, descriptor.body, only_check_http_status)

    async def send_form_data(
            self, descriptor: RequestDescriptor,
            only_check_http_status: bool = False
    ) -> ResponseEnvelope:
        if descriptor.form_data is None:
            raise ValueError(
                'send_form_data() needs descriptor.form_data')
        return await self._send_request(
            descriptor, descriptor.form_data,
            only_check_http_status)

    # ---- Build ----

    def default_headers(self) -> Dict[str, str]:
        state = self.state
        total_bytes = random.randint(500_000, 900_000)
        total_time_ms = random.randint(50, 150)
        return {
            'User-Agent': state.app_user_agent,
            'X-Pigeon-Session-Id': state.pigeon_session_id,
            'X-Pigeon-Rawclienttime': f'{time.time():.3f}',
            'X-IG-Connection-Speed':
                f'{random.randint(1000, 3700)}kbps',
            'X-IG-Bandwidth-Speed-KBPS':
                f'{total_bytes / total_time_ms:.3f}',
            'X-IG-Bandwidth-TotalBytes-B': str(total_bytes),
            'X-IG-Bandwidth-TotalTime-MS': str(total_time_ms),
            'X-IG-Connection-Type': state.connection_type_header,
            'X-IG-Capabilities': state.capabilities_header,
            'X-IG-App-ID': state.fb_analytics_application_id,
            'X-IG-VP9-Capable': 'true',
            'Accept-Language': state.language.replace('_', '-'),
            'Host': self.config.api_host,
        }

    def session_defaults(self, has_body: bool) -> RequestOptions:
        return RequestOptions(
            method='POST' if has_body else 'GET',
            base_url=self.config.base_url,
            headers={'Connection': 'Keep-Alive'},
            verify_ssl=self.config.verify_ssl,
            compress=self.config.compress)

    def build_options(
            self, descriptor: RequestDescriptor) -> RequestOptions:
        caller = RequestOptions(
            method=(descriptor.method.upper()
                    if descriptor.method else None),
            params=descriptor.qs,
            headers=descriptor.headers)
        computed = RequestOptions(headers=self.default_headers())
        options = merge_options(
            caller, computed,
            self.session_defaults(descriptor.has_body))
        if options.compress and 'Accept-Encoding' not in options.headers:
            options.headers['Accept-Encoding'] = 'gzip'
        options.headers = CIMultiDict(
            (k, _wire_value(v)) for k, v in options.headers.items()
            if v is not None)
        options.params = _wire_mapping(options.params)
        return options

    # ---- Transport ----

    async def _get_session(
            self, route: ProxyRoute) -> aiohttp.ClientSession:
        jar = self.state.cookie_jar
        if (self._session is not None
                and not self._session.closed
                and self._route == route
                and self._session.cookie_jar is jar):
            return self._session
        await self._retire(self._session)
        self._session = aiohttp.ClientSession(
            connector=build_connector(route, self.config.verify_ssl),
            cookie_jar=jar,
            skip_auto_headers=('Accept-Encoding',))
        self._route = route
        log.debug(
            'HTTP session opened (route=%s)', route.kind)
        return self._session

    async def _retire(
            self, session: Optional[aiohttp.ClientSession]) -> None:
        """Close a replaced session once no call is using it."""
        if session is None or session.closed:
            return
        pending = self._in_flight.get(session, 0)
        if pending:
            log.debug(
                'HTTP session retired, %d calls still in flight',
                pending)
            return
        await session.close()

    async def _release(self, session: aiohttp.ClientSession) -> None:
        remaining = self._in_flight.get(session, 0) - 1
        if remaining > 0:
            self._in_flight[session] = remaining
            return
        self._in_flight.pop(session, None)
        if session is not self._session and not session.closed:
            await session.close()

    async def _send_request(
            self, descriptor: RequestDescriptor,
            data: Any,
            only_check_http_status: bool
    ) -> ResponseEnvelope:
        options = self.build_options(descriptor)
        url = URL(options.base_url).join(URL(descriptor.url))
        try:
            envelope = await self._fault_tolerant_request(
                options, url, data)
        except AppError as exc:
            self.end.publish(None)
            self.error.publish(exc)
            raise

        self.end.publish(envelope)
        if envelope.ok or (
                only_check_http_status
                and envelope.status_code == 200):
            return envelope

        error = classify_error(envelope, self.state)
        log.warning(
            '%s %s -> %d %s: %s',
            envelope.method, envelope.url, envelope.status_code,
            error.kind.value, error)
        self.error.publish(error)
        raise error

    async def _fault_tolerant_request(
            self, options: RequestOptions,
            url: URL, data: Any) -> ResponseEnvelope:
        route = resolve_proxy(self.state.proxy_url)
        session = await self._get_session(route)
        kw: Dict[str, Any] = {
            'params': options.params,
            'headers': options.headers,
            'ssl': bool(options.verify_ssl),
            'timeout': aiohttp.ClientTimeout(
                total=self.config.request_timeout),
        }
        if route.request_proxy:
            kw['proxy'] = route.request_proxy
        if data is not None:
            kw['data'] = data

        if self.config.debug_requests:
            self._log_request(options, url)

        self._in_flight[session] = self._in_flight.get(session, 0) + 1
        try:
            envelope = await self._attempts(session, options, url, kw)
        finally:
            await self._release(session)

        envelope.body = decode_body(
            envelope.text, envelope.status_code)
        return envelope

    async def _attempts(
            self, session: aiohttp.ClientSession,
            options: RequestOptions, url: URL,
            kw: Dict[str, Any]) -> ResponseEnvelope:
        attempts = max(1, self.config.max_attempts)
        last_exc: Optional[BaseException] = None
        for attempt in range(attempts):
            try:
                async with session.request(
                        options.method, url, **kw) as resp:
                    raw = await resp.read()
                    return ResponseEnvelope(
                        body=None,
                        status_code=resp.status,
                        status_text=resp.reason or '',
                        method=resp.method,
                        url=str(resp.url),
                        headers=CIMultiDict(resp.headers),
                        text=raw.decode('utf-8', errors='replace'))
            except (asyncio.TimeoutError,
                    aiohttp.ClientError,
                    ProxyError) as exc:
                last_exc = exc
                log.warning(
                    '%s %s: %s: %s (attempt %d/%d)',
                    options.method, url, type(exc).__name__,
                    exc, attempt + 1, attempts)
                if attempt + 1 < attempts:
                    await asyncio.sleep(jitter_delay(
                        attempt, self.config.retry_base_delay))
        raise NetworkError(
            f'{type(last_exc).__name__}: {last_exc}',
            retryable=False) from last_exc

    def _log_request(
            self, options: RequestOptions, url: URL) -> None:
        log.debug('%s %s', options.method, url)
        for key in sorted(options.headers.keys()):
            log.debug(
                '  %s: %s', key,
                truncate_header(options.headers[key]))
        if options.params:
            log.debug(
                '  params: %s', ', '.join(sorted(options.params)))
