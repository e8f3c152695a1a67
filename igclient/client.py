from typing import Optional

from .config import ClientConfig
from .repositories import TagRepository
from .request import RequestDispatcher
from .state import SessionState


class IgApiClient:
    """Session state, dispatcher and endpoint groups
    wired together for one logical session."""

    def __init__(
            self, config: Optional[ClientConfig] = None,
            state: Optional[SessionState] = None):
        self.config = config or ClientConfig()
        self.state = state or SessionState(
            proxy_url=self.config.proxy_url)
        self.request = RequestDispatcher(self.state, self.config)
        self.tag = TagRepository(self)

    async def __aenter__(self) -> 'IgApiClient':
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        await self.request.close()
