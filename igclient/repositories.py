from typing import Any, Dict, Union, TYPE_CHECKING
from urllib.parse import quote

from .models import RequestDescriptor

if TYPE_CHECKING:
    from .client import IgApiClient

SEARCH_PAGE_SIZE = 30


class Repository:
    """Endpoint group bound to one client."""

    def __init__(self, client: 'IgApiClient'):
        self.client = client


class TagRepository(Repository):

    async def search(self, q: str) -> Dict[str, Any]:
        response = await self.client.request.send(RequestDescriptor(
            url='/api/v1/tags/search/',
            qs={
                'timezone_offset': self.client.state.timezone_offset,
                'q': q,
                'count': SEARCH_PAGE_SIZE,
            }))
        return response.body

    async def section(self, q: str, tab: str) -> Dict[str, Any]:
        response = await self.client.request.send(RequestDescriptor(
            url=f'/api/v1/tags/{quote(q)}/sections/',
            qs={
                'timezone_offset': self.client.state.timezone_offset,
                'tab': tab,
                'count': SEARCH_PAGE_SIZE,
            }))
        return response.body

    async def story(
            self, tag_id: Union[int, str]) -> Dict[str, Any]:
        response = await self.client.request.send(RequestDescriptor(
            url=f'/api/v1/tags/{tag_id}/story/',
            method='GET'))
        return response.body
