import json
import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict

from yarl import URL

from .constants import BASE_URL, HOST
from .errors import ConfigError

log = logging.getLogger('igclient')


# ============================================
#  CONFIG
# ============================================

@dataclass(frozen=True)
class ClientConfig:
    api_host: str = HOST
    base_url: str = BASE_URL
    proxy_url: str = ''

    # Single attempt, no automatic retry
    max_attempts: int = 1
    retry_base_delay: float = 0.5
    request_timeout: float = 60.0

    # No certificate validation, no compressed bodies
    verify_ssl: bool = False
    compress: bool = False

    session_path: str = 'session.json'

    # Log outgoing headers (truncated) at DEBUG
    debug_requests: bool = False

    def validate(self) -> None:
        problems = []
        if self.max_attempts < 1:
            problems.append(
                f'max_attempts must be >= 1,'
                f' got {self.max_attempts}')
        if self.request_timeout <= 0:
            problems.append(
                f'request_timeout must be > 0,'
                f' got {self.request_timeout}')
        base = URL(self.base_url)
        if base.scheme not in ('http', 'https') or not base.host:
            problems.append(
                f'base_url "{self.base_url}" is not'
                f' an absolute http(s) URL')
        if not self.api_host:
            problems.append('api_host is empty')
        if problems:
            raise ConfigError('; '.join(problems))

    def with_overrides(
            self, **kwargs) -> 'ClientConfig':
        return replace(self, **kwargs)


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def load_config(
        path: str = 'config.json') -> ClientConfig:
    overrides: Dict[str, Any] = {}
    valid_keys = {f.name for f in fields(ClientConfig)}

    if os.path.exists(path):
        try:
            with open(path, 'r') as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ConfigError(
                    f'Config root in {path} must be an object')
            for key, val in raw.items():
                if key in valid_keys:
                    overrides[key] = val
                else:
                    log.warning(
                        'Config: unknown key "%s" ignored', key)
            log.info('Config: %s', path)
        except (json.JSONDecodeError,
                IOError) as exc:
            log.warning('Config error (%s): %s', path, exc)

    env_map = {
        'IG_API_HOST': ('api_host', str),
        'IG_BASE_URL': ('base_url', str),
        'IG_PROXY_URL': ('proxy_url', str),
        'IG_SESSION_PATH': ('session_path', str),
        'IG_MAX_ATTEMPTS': ('max_attempts', int),
        'IG_REQUEST_TIMEOUT': ('request_timeout', float),
        'IG_VERIFY_SSL': ('verify_ssl', _to_bool),
        'IG_DEBUG_REQUESTS': ('debug_requests', _to_bool),
    }
    for env_key, (conf_key, conv) in env_map.items():
        val = os.environ.get(env_key)
        if val:
            try:
                overrides[conf_key] = conv(val)
            except (ValueError, TypeError):
                log.warning(
                    'Env %s=%r is not a valid %s',
                    env_key, val, conf_key)

    config = ClientConfig(**overrides)
    config.validate()
    return config
