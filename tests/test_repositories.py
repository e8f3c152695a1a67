import pytest
from aiohttp import web

from igclient.client import IgApiClient


async def record(request: web.Request) -> web.Response:
    return web.json_response({
        'status': 'ok',
        'method': request.method,
        'path': request.path,
        'query': dict(request.query),
    })


@pytest.mark.asyncio
async def test_tag_search(serve, state, config_for):
    async with serve(record) as server:
        async with IgApiClient(config_for(server), state) as client:
            body = await client.tag.search('cats')
    assert body['method'] == 'GET'
    assert body['path'] == '/api/v1/tags/search/'
    assert body['query'] == {
        'timezone_offset': state.timezone_offset,
        'q': 'cats',
        'count': '30',
    }


@pytest.mark.asyncio
async def test_tag_section_quotes_tag(serve, state, config_for):
    async with serve(record) as server:
        async with IgApiClient(config_for(server), state) as client:
            body = await client.tag.section('hello world', 'recent')
    assert body['path'] == '/api/v1/tags/hello world/sections/'
    assert body['query']['tab'] == 'recent'


@pytest.mark.asyncio
async def test_tag_story(serve, state, config_for):
    async with serve(record) as server:
        async with IgApiClient(config_for(server), state) as client:
            body = await client.tag.story(17843)
    assert body['method'] == 'GET'
    assert body['path'] == '/api/v1/tags/17843/story/'


@pytest.mark.asyncio
async def test_client_builds_state_from_config():
    from igclient.config import ClientConfig

    client = IgApiClient(ClientConfig(proxy_url='socks5://p:1080'))
    assert client.state.proxy_url == 'socks5://p:1080'
    assert client.request.state is client.state
    await client.close()
