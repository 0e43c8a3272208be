from typing import Optional

import aiohttp

from query_server.errors import ServiceUnavailable
from query_server.models import QueryResponse, response_from_dict


class QueryClientSession:
    def __init__(self, base_url: str):
        self._base_url = base_url.rstrip('/')
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> 'QueryClientSession':
        self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def query(self, sql: str) -> QueryResponse:
        if self._session is None:
            raise RuntimeError("QueryClientSession must be used as an async context manager")
        async with self._session.get(f'{self._base_url}/', params={'query': sql}) as response:
            if response.status == 503:
                raise ServiceUnavailable("Query service has no metadata yet")
            response.raise_for_status()
            return response_from_dict(await response.json())
