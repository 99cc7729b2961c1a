# src/http_builder/async_client.py
"""
Async фасад над блокирующим core.

Каждый вызов выполняется в worker thread через ``asyncio.to_thread``:
те же исключения, тот же Response.
"""

import asyncio
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .core.request import Request
    from .core.response import Response


class AsyncRequest:
    """
    Async обёртка над Request.

    Example:
        >>> response = await client.r().set_query_param("page", 1).as_async().get("users")
        >>> response.json()
    """

    def __init__(self, request: 'Request'):
        self._request = request

    @property
    def request(self) -> 'Request':
        return self._request

    def __getattr__(self, name: str) -> Any:
        # Мутаторы Request возвращают Request; оборачиваем обратно для chaining
        attr = getattr(self._request, name)
        if not name.startswith("set_") or not callable(attr):
            return attr

        def wrapper(*args: Any, **kwargs: Any) -> 'AsyncRequest':
            attr(*args, **kwargs)
            return self

        return wrapper

    async def execute(self, method: str, path: str = "") -> 'Response':
        return await asyncio.to_thread(self._request.execute, method, path)

    async def get(self, path: str = "") -> 'Response':
        return await self.execute("GET", path)

    async def post(self, path: str = "") -> 'Response':
        return await self.execute("POST", path)

    async def put(self, path: str = "") -> 'Response':
        return await self.execute("PUT", path)

    async def delete(self, path: str = "") -> 'Response':
        return await self.execute("DELETE", path)

    async def patch(self, path: str = "") -> 'Response':
        return await self.execute("PATCH", path)

    async def head(self, path: str = "") -> 'Response':
        return await self.execute("HEAD", path)

    async def options(self, path: str = "") -> 'Response':
        return await self.execute("OPTIONS", path)
