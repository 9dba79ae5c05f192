"""
Браузерная сторона без браузера: загружает страницу, гидрирует кэш из HTML
и рендерит клиентские компоненты так же, как это делает static/client.js.

    async with BrowserSession("http://localhost:8000") as browser:
        await browser.open("/users")
        html = await browser.render_users()   # без RPC-запроса: данные уже в кэше
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from frontend.components.users_client import users_client, users_client_suspense
from frontend.hydration import read_dehydrated_state
from frontend.rpc_client import RpcHttpClient
from shared.logging_config import logger
from shared.query import QueryClient, hydrate


# Как и на сервере, даём гидрированным данным минуту свежести
BROWSER_STALE_TIME_SECONDS = 60.0


def make_browser_query_client(**default_options: Any) -> QueryClient:
    options: Dict[str, Any] = {"stale_time": BROWSER_STALE_TIME_SECONDS}
    options.update(default_options)
    return QueryClient(is_server=False, default_options=options)


class BrowserSession:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 20.0,
        query_client: Optional[QueryClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        # Один httpx-клиент на сессию: cookie сохраняются между страницами и RPC
        self.http = httpx.AsyncClient(
            base_url=self.base_url,
            transport=transport,
            timeout=timeout,
            follow_redirects=True,
        )
        self.rpc = RpcHttpClient(base_url=self.base_url, http_client=self.http)
        self.trpc = self.rpc.options_proxy()
        # Кэш браузера переживает переходы между страницами
        self.query_client = query_client or make_browser_query_client()
        self.last_response: Optional[httpx.Response] = None
        self.hydrated_queries = 0

    async def __aenter__(self) -> "BrowserSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    @property
    def url(self) -> Optional[str]:
        return str(self.last_response.url) if self.last_response is not None else None

    @property
    def html(self) -> str:
        return self.last_response.text if self.last_response is not None else ""

    async def open(self, path: str) -> httpx.Response:
        """Перейти на страницу и гидрировать кэш её состоянием."""
        resp = await self.http.get(path)
        self.last_response = resp
        state = read_dehydrated_state(resp.text) if "text/html" in resp.headers.get("content-type", "") else None
        self.hydrated_queries = hydrate(self.query_client, state)
        logger.debug("Открыта страница %s (%s), гидрировано запросов: %s", path, resp.status_code, self.hydrated_queries)
        return resp

    async def submit_form(self, path: str, data: Dict[str, str]) -> httpx.Response:
        resp = await self.http.post(path, data=data)
        self.last_response = resp
        self.hydrated_queries = hydrate(self.query_client, read_dehydrated_state(resp.text))
        return resp

    async def render_users(self) -> str:
        """Отрендерить UsersClient в режиме приостановки."""
        return await users_client_suspense(self.trpc, self.query_client)

    def render_users_now(self) -> str:
        """Отрендерить UsersClient в ручном режиме (без ожидания)."""
        return users_client(self.trpc, self.query_client)
