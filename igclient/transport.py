import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp
from aiohttp_socks import ProxyConnector, ProxyType
from yarl import URL

log = logging.getLogger('igclient')

ROUTE_DIRECT = 'direct'
ROUTE_TUNNEL = 'tunnel'
ROUTE_SOCKS = 'socks'

TUNNEL_SCHEMES = ('http', 'https')

SOCKS_SCHEMES = {
    'socks': ProxyType.SOCKS5,
    'socks5': ProxyType.SOCKS5,
    'socks5h': ProxyType.SOCKS5,
    'socks4': ProxyType.SOCKS4,
    'socks4a': ProxyType.SOCKS4,
}

# Schemes that resolve the target hostname on the proxy
REMOTE_DNS_SCHEMES = ('socks', 'socks5h', 'socks4a')

DEFAULT_SOCKS_PORT = 1080


# ============================================
#  PROXY ROUTE
# ============================================

@dataclass(frozen=True)
class ProxyRoute:
    kind: str = ROUTE_DIRECT
    url: str = ''

    @property
    def request_proxy(self) -> Optional[str]:
        """Value for aiohttp's per-request ``proxy=``."""
        if self.kind == ROUTE_TUNNEL:
            return self.url
        return None


def resolve_proxy(proxy_url: Optional[str]) -> ProxyRoute:
    """Pick a transport route from the proxy scheme.

    http/https tunnel with CONNECT, socks* go through a
    SOCKS connector, anything else is sent directly.
    """
    if not proxy_url or not proxy_url.strip():
        return ProxyRoute()
    parsed = URL(proxy_url.strip())
    scheme = parsed.scheme.lower()
    if scheme in TUNNEL_SCHEMES and parsed.host:
        return ProxyRoute(ROUTE_TUNNEL, str(parsed))
    if scheme in SOCKS_SCHEMES and parsed.host:
        return ProxyRoute(ROUTE_SOCKS, str(parsed))
    log.warning(
        'Proxy "%s" has unsupported scheme "%s",'
        ' sending directly',
        parsed.with_password(None) if parsed.host else '<invalid>',
        scheme or '<none>')
    return ProxyRoute()


def build_connector(
        route: ProxyRoute,
        verify_ssl: bool = False) -> aiohttp.BaseConnector:
    if route.kind == ROUTE_SOCKS:
        url = URL(route.url)
        scheme = url.scheme.lower()
        log.debug(
            'SOCKS connector: %s:%s (%s)',
            url.host, url.port or DEFAULT_SOCKS_PORT, scheme)
        return ProxyConnector(
            proxy_type=SOCKS_SCHEMES[scheme],
            host=url.host,
            port=url.port or DEFAULT_SOCKS_PORT,
            username=url.user,
            password=url.password,
            rdns=scheme in REMOTE_DNS_SCHEMES,
            ssl=verify_ssl)
    return aiohttp.TCPConnector(ssl=verify_ssl)
