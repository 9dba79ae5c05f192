"""
Клиент для обращения браузерной стороны к RPC-процедурам backend по HTTP.

    client = RpcHttpClient("http://localhost:8000")
    users = await client.query("getUsers")
    trpc = client.options_proxy()
    await query_client.fetch_query(trpc.getUsers.query_options())
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import httpx

from shared.logging_config import get_logger
from shared.rpc import OptionsProxy

logger = get_logger("rpc.client")


NETWORK_ERROR = "NETWORK_ERROR"


class RpcClientError(Exception):
    def __init__(self, code: str, message: str, http_status: Optional[int] = None, path: Optional[str] = None) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.path = path
        super().__init__(f"{code}: {message}")

    @classmethod
    def from_envelope(cls, envelope: Dict[str, Any], http_status: Optional[int], path: str) -> "RpcClientError":
        error = envelope.get("error") or {}
        data = error.get("data") or {}
        return cls(
            code=data.get("code") or "INTERNAL_SERVER_ERROR",
            message=error.get("message") or "Unknown error",
            http_status=data.get("httpStatus") or http_status,
            path=data.get("path") or path,
        )


class RpcHttpClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        rpc_prefix: Optional[str] = None,
        timeout: float = 20.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = (base_url or os.getenv("APP_BASE_URL", "http://localhost:8000")).rstrip("/")
        self.rpc_prefix = rpc_prefix or os.getenv("APP_RPC_PREFIX", "/api/trpc")
        self.timeout = timeout
        # Общий httpx-клиент нужен, чтобы запросы шли с cookie сессии
        self._http = http_client

    def _url(self, path: str) -> str:
        return f"{self.base_url}{self.rpc_prefix}/{path}"

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = self._url(path)
        try:
            if self._http is not None:
                return await self._http.request(method, url, **kwargs)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Ошибка сети при вызове RPC %s: %s", path, e)
            raise RpcClientError(NETWORK_ERROR, str(e) or type(e).__name__, path=path) from e

    @staticmethod
    def _decode(resp: httpx.Response, path: str) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise RpcClientError(
                "PARSE_ERROR",
                f"Unexpected non-JSON response ({resp.status_code})",
                http_status=resp.status_code,
                path=path,
            ) from e

    @classmethod
    def _unwrap(cls, envelope: Any, http_status: int, path: str) -> Any:
        if not isinstance(envelope, dict):
            raise RpcClientError("PARSE_ERROR", "Unexpected response shape", http_status=http_status, path=path)
        if "error" in envelope:
            raise RpcClientError.from_envelope(envelope, http_status, path)
        return (envelope.get("result") or {}).get("data")

    async def query(self, path: str, input: Any = None) -> Any:
        params = {"input": json.dumps(input)} if input is not None else None
        logger.debug("RPC query: %s input=%r", path, input)
        resp = await self._send("GET", path, params=params)
        return self._unwrap(self._decode(resp, path), resp.status_code, path)

    async def mutate(self, path: str, input: Any = None) -> Any:
        logger.debug("RPC mutation: %s input=%r", path, input)
        resp = await self._send("POST", path, json=input)
        return self._unwrap(self._decode(resp, path), resp.status_code, path)

    async def batch_query(self, calls: Sequence[Tuple[str, Any]]) -> List[Union[Any, RpcClientError]]:
        """Пакет query за один HTTP-запрос. Ошибка отдельного вызова возвращается на его месте."""
        if not calls:
            return []
        paths = ",".join(path for path, _ in calls)
        inputs = {str(i): value for i, (_, value) in enumerate(calls) if value is not None}
        params = {"batch": "1", "input": json.dumps(inputs)}
        resp = await self._send("GET", paths, params=params)
        payload = self._decode(resp, paths)
        if not isinstance(payload, list):
            # Ошибка разбора всего пакета приходит одним конвертом
            raise RpcClientError.from_envelope(payload if isinstance(payload, dict) else {}, resp.status_code, paths)

        results: List[Union[Any, RpcClientError]] = []
        for (path, _), envelope in zip(calls, payload):
            try:
                results.append(self._unwrap(envelope, resp.status_code, path))
            except RpcClientError as e:
                results.append(e)
        return results

    def options_proxy(self) -> OptionsProxy:
        return OptionsProxy(self.query)
