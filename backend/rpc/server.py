"""
Серверная сторона паттерна предзагрузки.

На каждый HTTP-запрос страницы создаётся свой QueryClient: данные одного
пользователя не должны попасть в кэш другого. Процедуры вызываются внутри
процесса через Caller, без HTTP.
"""

from typing import Any, Dict

from fastapi import Depends

from backend.core.settings import settings
from backend.rpc.context import RpcContext, get_rpc_context
from backend.rpc.router import app_router
from shared.query import QueryClient, QueryOptions, dehydrate
from shared.rpc import caller_options_proxy


def make_query_client() -> QueryClient:
    # stale_time > 0, чтобы браузер не перезапрашивал данные сразу после гидрации
    return QueryClient(
        is_server=True,
        default_options={"stale_time": settings.QUERY_STALE_TIME_SECONDS},
    )


class ServerRpc:
    def __init__(self, ctx: RpcContext) -> None:
        self.ctx = ctx
        self.caller = app_router.create_caller(ctx)
        self.trpc = caller_options_proxy(self.caller)
        self.query_client = make_query_client()

    async def prefetch(self, *options: QueryOptions) -> None:
        for opts in options:
            await self.query_client.prefetch_query(opts)

    def dehydrated_state(self) -> Dict[str, Any]:
        return dehydrate(self.query_client)


def get_server_rpc(ctx: RpcContext = Depends(get_rpc_context)) -> ServerRpc:
    return ServerRpc(ctx)
