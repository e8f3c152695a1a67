"""
Session identity and persistence.

A ``SessionState`` holds everything the server uses to
recognise one emulated phone: signing keys, app metadata,
the device fingerprint derived from a seed, the cookie jar
(authoritative login state) and the last checkpoint /
challenge records. ``ExportState`` is its flat, JSON-safe
snapshot; rotating ids are recomputed, never stored.
"""

import asyncio
import copy
import json
import logging
import math
import os
import random
import sys
import time
import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime
from email.utils import parsedate_to_datetime
from http.cookies import CookieError, Morsel, SimpleCookie
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import aiohttp
from yarl import URL

from .constants import (
    APP_VERSION, APP_VERSION_CODE, BATTERY_PERIOD_MAX,
    BATTERY_PERIOD_MIN, BREADCRUMB_KEY, BUILDS,
    CHARGING_WINDOW_MS, COOKIE_CSRF_TOKEN, COOKIE_USER_ID,
    COOKIE_USERNAME, CSRF_TOKEN_MISSING,
    DEFAULT_SESSION_ID_LIFETIME_MS, DEVICE_ID_ALPHABET,
    DEVICE_ID_LENGTH, DEVICE_ID_PREFIX, DEVICES, EXPERIMENTS,
    FACEBOOK_ANALYTICS_APPLICATION_ID,
    FACEBOOK_ORCA_APPLICATION_ID, FACEBOOK_OTA_FIELDS, HOST,
    API_URL_PREFIX, LOGIN_EXPERIMENTS, SIGNATURE_KEY,
    SIGNATURE_VERSION, SUPPORTED_CAPABILITIES,
    WEBVIEW_CHROME_VERSION,
)
from .errors import (
    CookieNotFound, DeviceError, NoCheckpoint,
    SessionFormatError, UserIdNotFound,
)
from .utils import run_in_io, safe_get

log = logging.getLogger('igclient')

COOKIE_STORE_VERSION = 1


def _now_ms() -> int:
    return int(time.time() * 1000)


def _guid(rng: random.Random) -> str:
    return str(uuid.UUID(int=rng.getrandbits(128), version=4))


def _local_timezone_offset() -> str:
    offset = datetime.now().astimezone().utcoffset()
    return str(int(offset.total_seconds()) if offset else 0)


def _default_capabilities() -> List[Dict[str, Any]]:
    return [dict(c) for c in SUPPORTED_CAPABILITIES]


# ============================================
#  EXPORT STATE
# ============================================

@dataclass
class ExportState:
    """Field-stable persisted session record.

    Renaming or dropping a field breaks every session
    file written before the change.
    """

    signature_key: str
    signature_version: str
    user_breadcrumb_key: str
    app_version: str
    app_version_code: str
    fb_analytics_application_id: str
    fb_ota_fields: str
    fb_orca_application_id: str
    login_experiments: str
    experiments: str
    supported_capabilities: List[Dict[str, Any]]
    language: str
    timezone_offset: str
    radio_type: str
    capabilities_header: str
    connection_type_header: str
    device_string: str
    build: str
    uuid: str
    phone_id: str
    adid: str
    device_id: str
    checkpoint: Optional[Dict[str, Any]]
    challenge: Optional[Dict[str, Any]]
    client_session_id_lifetime: int
    pigeon_session_id_lifetime: int
    cookies: str

    def to_dict(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)}

    @classmethod
    def from_dict(
            cls, data: Any) -> 'ExportState':
        if not isinstance(data, dict):
            raise SessionFormatError(
                f'Session record must be an object,'
                f' got {type(data).__name__}')
        names = [f.name for f in fields(cls)]
        missing = [n for n in names if n not in data]
        if missing:
            raise SessionFormatError(
                f'Session record missing:'
                f' {", ".join(missing)}')
        unknown = sorted(set(data) - set(names))
        if unknown:
            log.warning(
                'Session record: ignoring unknown keys %s',
                ', '.join(unknown))
        return cls(**{n: data[n] for n in names})


SNAPSHOT_FIELDS = tuple(
    f.name for f in fields(ExportState)
    if f.name != 'cookies')


# ============================================
#  COOKIE STORE
# ============================================

CookieKey = Tuple[str, str, str]


def _default_path(url: URL) -> str:
    path = url.path
    if not path.startswith('/'):
        return '/'
    return '/' + path[1:path.rfind('/')]


def _expires_at(morsel: Morsel) -> Optional[int]:
    """Absolute expiry in epoch ms; Max-Age wins over Expires."""
    max_age = morsel['max-age']
    if max_age:
        try:
            return _now_ms() + int(max_age) * 1000
        except ValueError:
            pass
    expires = morsel['expires']
    if expires:
        try:
            return int(parsedate_to_datetime(expires).timestamp() * 1000)
        except (TypeError, ValueError, IndexError):
            return None
    return None


def _is_expired(record: Dict[str, Any]) -> bool:
    expires_at = record.get('expiresAt')
    return expires_at is not None and expires_at <= _now_ms()


def _check_record(record: Any) -> Dict[str, Any]:
    try:
        for name in ('key', 'value', 'domain'):
            if not isinstance(record[name], str):
                raise TypeError(f'{name} must be a string')
        expires_at = record.get('expiresAt')
        if expires_at is not None and not isinstance(expires_at, int):
            raise TypeError('expiresAt must be an integer')
        SimpleCookie()[record['key']] = record['value']
    except (CookieError, KeyError, TypeError, AttributeError) as exc:
        raise SessionFormatError(
            f'Cookie record {record!r}: {exc}') from exc
    return record


def _record_morsel(record: Dict[str, Any]) -> Tuple[str, Morsel]:
    """Rebuild a stored record; returns (response host, morsel)."""
    domain = record['domain'].lstrip('.')
    cookies = SimpleCookie()
    cookies[record['key']] = record['value']
    morsel = cookies[record['key']]
    morsel['path'] = record.get('path') or '/'
    if not record.get('hostOnly'):
        morsel['domain'] = domain
    if record.get('expires'):
        morsel['expires'] = record['expires']
    if record.get('expiresAt') is not None:
        remaining = (record['expiresAt'] - _now_ms()) / 1000
        morsel['max-age'] = str(max(1, math.ceil(remaining)))
    if record.get('secure'):
        morsel['secure'] = True
    if record.get('httpOnly'):
        morsel['httponly'] = True
    if record.get('sameSite'):
        morsel['samesite'] = record['sameSite']
    return domain, morsel


def _record_matches(record: Dict[str, Any], host: str) -> bool:
    domain = record['domain'].lstrip('.')
    if record.get('hostOnly'):
        domain_ok = host == domain
    else:
        domain_ok = host == domain or host.endswith(f'.{domain}')
    return (domain_ok
            and (record.get('path') or '/') == '/'
            and not _is_expired(record))


class SessionCookieJar(aiohttp.CookieJar):
    """aiohttp jar that also keeps, per stored cookie, the
    host-only flag and the absolute expiry (epoch ms)."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._meta: Dict[CookieKey, Tuple[bool, Optional[int]]] = {}

    def update_cookies(self, cookies, response_url: URL = URL()) -> None:
        if isinstance(cookies, Mapping):
            cookies = cookies.items()
        hostname = response_url.raw_host or ''
        stored: List[Tuple[str, Morsel]] = []
        for name, cookie in cookies:
            if not isinstance(cookie, Morsel):
                tmp = SimpleCookie()
                tmp[name] = cookie
                cookie = tmp[name]
            # Same domain/path defaulting as aiohttp, so the key
            # matches the morsel it stores.
            domain = cookie['domain'] or ''
            if domain.endswith('.'):
                domain = ''
            if domain.startswith('.'):
                domain = domain[1:]
            path = cookie['path']
            if not path or not path.startswith('/'):
                path = _default_path(response_url)
                cookie['path'] = path
            self._meta[(domain or hostname, path, name)] = (
                not domain, _expires_at(cookie))
            stored.append((name, cookie))
        super().update_cookies(stored, response_url)

    def clear(self, predicate=None) -> None:
        super().clear(predicate)
        if predicate is None:
            self._meta.clear()

    def dump_records(self) -> List[Dict[str, Any]]:
        records = []
        for morsel in self:
            host_only, expires_at = self._meta.get(
                (morsel['domain'], morsel['path'], morsel.key),
                (False, None))
            record = {
                'key': morsel.key,
                'value': morsel.value,
                'domain': morsel['domain'],
                'path': morsel['path'] or '/',
                'hostOnly': host_only,
                'expires': morsel['expires'] or None,
                'expiresAt': expires_at,
                'secure': bool(morsel['secure']),
                'httpOnly': bool(morsel['httponly']),
                'sameSite': morsel['samesite'] or None,
            }
            if not _is_expired(record):
                records.append(record)
        return records

    def load_records(self, records: List[Dict[str, Any]]) -> None:
        for record in records:
            if _is_expired(record):
                continue
            domain, morsel = _record_morsel(record)
            self.update_cookies(
                {morsel.key: morsel},
                response_url=URL.build(
                    scheme='https', host=domain, path='/'))
            # Keep the exported expiry, not the rounded Max-Age
            key = (domain, morsel['path'], morsel.key)
            if key in self._meta:
                self._meta[key] = (
                    bool(record.get('hostOnly')),
                    record.get('expiresAt'))


# ============================================
#  SESSION STATE
# ============================================

@dataclass
class SessionState:
    signature_key: str = SIGNATURE_KEY
    signature_version: str = SIGNATURE_VERSION
    user_breadcrumb_key: str = BREADCRUMB_KEY
    app_version: str = APP_VERSION
    app_version_code: str = APP_VERSION_CODE
    fb_analytics_application_id: str = (
        FACEBOOK_ANALYTICS_APPLICATION_ID)
    fb_ota_fields: str = FACEBOOK_OTA_FIELDS
    fb_orca_application_id: str = FACEBOOK_ORCA_APPLICATION_ID
    login_experiments: str = LOGIN_EXPERIMENTS
    experiments: str = EXPERIMENTS
    supported_capabilities: List[Dict[str, Any]] = field(
        default_factory=_default_capabilities)
    language: str = 'en_US'
    timezone_offset: str = field(
        default_factory=_local_timezone_offset)
    radio_type: str = 'wifi-none'
    capabilities_header: str = '3brTvw=='
    connection_type_header: str = 'WIFI'

    # Device identity, filled by generate_device()
    device_string: str = ''
    build: str = ''
    uuid: str = ''
    phone_id: str = ''
    # Google Play advertising id
    adid: str = ''
    device_id: str = ''

    checkpoint: Optional[Dict[str, Any]] = None
    challenge: Optional[Dict[str, Any]] = None
    client_session_id_lifetime: int = (
        DEFAULT_SESSION_ID_LIFETIME_MS)
    pigeon_session_id_lifetime: int = (
        DEFAULT_SESSION_ID_LIFETIME_MS)

    proxy_url: str = ''

    _cookie_jar: Optional[SessionCookieJar] = field(
        default=None, init=False, repr=False, compare=False)
    # Records held until a jar can be created inside a loop
    _pending_cookies: List[Dict[str, Any]] = field(
        default_factory=list, init=False, repr=False, compare=False)

    # ---- Cookie jar ----

    @property
    def cookie_jar(self) -> SessionCookieJar:
        """The live jar; must be first touched inside a running
        loop, since aiohttp binds the jar to it."""
        if self._cookie_jar is None:
            self._cookie_jar = SessionCookieJar(unsafe=True)
            records, self._pending_cookies = self._pending_cookies, []
            self._cookie_jar.load_records(records)
        return self._cookie_jar

    def _active_jar(self) -> Optional[SessionCookieJar]:
        if self._cookie_jar is None:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                return None
        return self.cookie_jar

    def extract_cookie(self, key: str) -> Optional[Morsel]:
        jar = self._active_jar()
        if jar is not None:
            cookies = jar.filter_cookies(URL(f'https://{HOST}/'))
            return cookies.get(key)
        for record in reversed(self._pending_cookies):
            if record['key'] == key and _record_matches(record, HOST):
                return _record_morsel(record)[1]
        return None

    def extract_cookie_value(self, key: str) -> str:
        cookie = self.extract_cookie(key)
        if cookie is None:
            raise CookieNotFound(key)
        return cookie.value

    @property
    def cookie_csrf_token(self) -> str:
        try:
            return self.extract_cookie_value(COOKIE_CSRF_TOKEN)
        except CookieNotFound:
            return CSRF_TOKEN_MISSING

    @property
    def cookie_user_id(self) -> str:
        return self.extract_cookie_value(COOKIE_USER_ID)

    @property
    def cookie_username(self) -> str:
        return self.extract_cookie_value(COOKIE_USERNAME)

    def extract_user_id(self) -> str:
        try:
            return self.cookie_user_id
        except CookieNotFound:
            user_id = safe_get(self.challenge, 'user_id')
            if not user_id:
                raise UserIdNotFound() from None
            return str(user_id)

    def serialize_cookie_jar(self) -> str:
        jar = self._active_jar()
        if jar is not None:
            records = jar.dump_records()
        else:
            records = [
                dict(r) for r in self._pending_cookies
                if not _is_expired(r)]
        return json.dumps({
            'version': COOKIE_STORE_VERSION,
            'storeType': 'aiohttp',
            'cookies': records,
        })

    def deserialize_cookie_jar(self, cookies: str) -> None:
        try:
            raw = json.loads(cookies)
            records = raw['cookies']
            if not isinstance(records, list):
                raise TypeError('cookies must be a list')
        except (json.JSONDecodeError, TypeError, KeyError) as exc:
            raise SessionFormatError(
                f'Cookie store: {exc}') from exc
        records = [_check_record(r) for r in records]

        jar = self._active_jar()
        if jar is None:
            self._pending_cookies = records
            log.debug('Cookie store held: %d cookies', len(records))
            return
        jar.clear()
        jar.load_records(records)
        log.debug('Cookie jar restored: %d cookies', len(jar))

    # ---- Checkpoint / challenge ----

    @property
    def challenge_url(self) -> str:
        api_path = safe_get(self.checkpoint, 'challenge', 'api_path')
        if not api_path:
            raise NoCheckpoint()
        return f'{API_URL_PREFIX}{api_path}'

    # ---- Device ----

    def generate_device(self, seed: str) -> None:
        rng = random.Random(seed)
        self.device_string = rng.choice(DEVICES)
        device_hex = ''.join(
            rng.choice(DEVICE_ID_ALPHABET)
            for _ in range(DEVICE_ID_LENGTH))
        self.device_id = f'{DEVICE_ID_PREFIX}{device_hex}'
        self.uuid = _guid(rng)
        self.phone_id = _guid(rng)
        self.adid = _guid(rng)
        self.build = rng.choice(BUILDS)
        log.debug(
            'Device generated: %s (%s)',
            self.device_id, self.device_payload['model'])

    def generate_temporary_guid(
            self, seed: str, lifetime: int) -> str:
        bucket = _now_ms() // lifetime
        rng = random.Random(f'{seed}:{self.device_id}:{bucket}')
        return _guid(rng)

    @property
    def client_session_id(self) -> str:
        """App-session id; the app changes it on every
        launch, here it rotates each lifetime window."""
        return self.generate_temporary_guid(
            'clientSessionId', self.client_session_id_lifetime)

    @property
    def pigeon_session_id(self) -> str:
        return self.generate_temporary_guid(
            'pigeonSessionId', self.pigeon_session_id_lifetime)

    @property
    def battery_level(self) -> int:
        period = random.Random(self.device_id).randrange(
            BATTERY_PERIOD_MIN, BATTERY_PERIOD_MAX)
        return 100 - (round(_now_ms() / 1000 / period) % 100)

    @property
    def is_charging(self) -> bool:
        window = _now_ms() // CHARGING_WINDOW_MS
        return random.Random(
            f'{self.device_id}{window}').random() < 0.5

    @property
    def device_payload(self) -> Dict[str, str]:
        parts = [p.strip() for p in self.device_string.split(';')]
        if len(parts) < 5 or '/' not in parts[0]:
            raise DeviceError(
                f'Malformed device string'
                f' "{self.device_string}";'
                f' call generate_device() first')
        android_version, android_release = parts[0].split('/', 1)
        return {
            'android_version': android_version,
            'android_release': android_release,
            'manufacturer': parts[3].split('/')[0],
            'model': parts[4],
        }

    @property
    def app_user_agent(self) -> str:
        return (
            f'Instagram {self.app_version} Android'
            f' ({self.device_string}; {self.language};'
            f' {self.app_version_code})')

    @property
    def web_user_agent(self) -> str:
        payload = self.device_payload
        return (
            f'Mozilla/5.0 (Linux; Android'
            f' {payload["android_release"]};'
            f' {payload["model"]} Build/{self.build}; wv)'
            f' AppleWebKit/537.36 (KHTML, like Gecko)'
            f' Version/4.0 Chrome/{WEBVIEW_CHROME_VERSION}'
            f' Mobile Safari/537.36 {self.app_user_agent}')

    def is_experiment_enabled(self, experiment: str) -> bool:
        return experiment in self.experiments.split(',')

    # ---- Export / import ----

    def export_state(self) -> ExportState:
        values = {
            name: copy.deepcopy(getattr(self, name))
            for name in SNAPSHOT_FIELDS}
        return ExportState(
            cookies=self.serialize_cookie_jar(), **values)

    def import_state(
            self,
            snapshot: Union[ExportState, Dict[str, Any]]) -> None:
        if not isinstance(snapshot, ExportState):
            snapshot = ExportState.from_dict(snapshot)
        for name in SNAPSHOT_FIELDS:
            setattr(self, name,
                    copy.deepcopy(getattr(snapshot, name)))
        self.deserialize_cookie_jar(snapshot.cookies)


# ============================================
#  SESSION FILE
# ============================================

def _save_sync(path: str, data: dict) -> None:
    tmp = f'{path}.tmp'
    with open(tmp, 'w') as f:
        json.dump(data, f, indent=2)
    if (sys.platform == 'win32'
            and os.path.exists(path)):
        os.remove(path)
    os.rename(tmp, path)


def _load_sync(path: str) -> Any:
    with open(path, 'r') as f:
        return json.load(f)


async def save_session(
        state: SessionState, path: str) -> None:
    data = state.export_state().to_dict()
    try:
        await run_in_io(_save_sync, path, data)
    except IOError as exc:
        log.error('Session save (%s): %s', path, exc)
        raise
    log.info('Session saved: %s', path)


async def load_session(
        path: str,
        state: Optional[SessionState] = None
) -> SessionState:
    try:
        raw = await run_in_io(_load_sync, path)
    except json.JSONDecodeError as exc:
        raise SessionFormatError(
            f'Session file {path}: {exc}') from exc
    state = state if state is not None else SessionState()
    state.import_state(raw)
    log.info('Session loaded: %s (%s)', path, state.device_id)
    return state
