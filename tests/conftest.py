import contextlib
from http.cookies import SimpleCookie

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from yarl import URL

from igclient import state as state_module
from igclient.config import ClientConfig
from igclient.state import SessionState


@contextlib.asynccontextmanager
async def _serve(handler):
    app = web.Application()
    app.router.add_route('*', '/{tail:.*}', handler)
    server = TestServer(app)
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


@pytest.fixture
def serve():
    """Async context manager running ``handler`` on a local server."""
    return _serve


@pytest.fixture
def frozen_now(monkeypatch):
    """Pin the session clock; returns a setter for the current ms."""
    now = {'ms': 1_700_000_000_000}
    monkeypatch.setattr(state_module, '_now_ms', lambda: now['ms'])

    def set_now(ms: int) -> None:
        now['ms'] = ms
    return set_now


@pytest.fixture
def state():
    s = SessionState()
    s.generate_device('test-seed')
    return s


def server_config(server, **kw) -> ClientConfig:
    return ClientConfig(base_url=str(server.make_url('/')), **kw)


@pytest.fixture
def config_for():
    return server_config


def add_cookie(state, name, value,
               domain='.instagram.com',
               url='https://i.instagram.com/'):
    cookies = SimpleCookie()
    cookies[name] = value
    if domain:
        cookies[name]['domain'] = domain
    cookies[name]['path'] = '/'
    state.cookie_jar.update_cookies(cookies, response_url=URL(url))


@pytest.fixture
def set_cookie():
    return add_cookie
