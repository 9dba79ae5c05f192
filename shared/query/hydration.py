"""
Перенос состояния кэша с сервера в браузер (dehydrate / hydrate).

Формат совместим с TanStack Query:
{"mutations": [], "queries": [{"queryKey": ..., "queryHash": ..., "state": {...}}]}
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Dict, Optional

from shared.logging_config import get_logger
from shared.query.cache import FETCH_IDLE, STATUS_SUCCESS, Query, QueryOptions, QueryState
from shared.query.client import QueryClient

logger = get_logger("query")


def default_should_dehydrate_query(query: Query) -> bool:
    return query.state.status == STATUS_SUCCESS


def dehydrate(
    client: QueryClient,
    should_dehydrate_query: Optional[Callable[[Query], bool]] = None,
) -> Dict[str, Any]:
    should_dehydrate = should_dehydrate_query or default_should_dehydrate_query
    queries = [
        {
            "queryKey": query.query_key,
            "queryHash": query.query_hash,
            "state": query.state.to_dict(),
        }
        for query in client.all_queries()
        if should_dehydrate(query)
    ]
    return {"mutations": [], "queries": queries}


def hydrate(client: QueryClient, dehydrated_state: Optional[Dict[str, Any]]) -> int:
    """Положить запросы из dehydrated state в кэш клиента. Ничего не загружает.

    Запрос, у которого в кэше уже есть более новые данные, не перезаписывается.
    Возвращает количество запросов, чьё состояние было записано.
    """
    if not dehydrated_state:
        return 0
    if not isinstance(dehydrated_state, dict):
        raise TypeError("dehydrated state must be a dict")

    cache = client.get_query_cache()
    written = 0
    for item in dehydrated_state.get("queries") or []:
        state = replace(QueryState.from_dict(item.get("state") or {}), fetch_status=FETCH_IDLE)
        query_key = item.get("queryKey")
        query_hash = item.get("queryHash")
        existing = cache.get(query_hash) if query_hash else cache.find(query_key)

        if existing is not None:
            if existing.state.data_updated_at < state.data_updated_at:
                existing.set_state(replace(state, fetch_status=existing.state.fetch_status))
                written += 1
            continue

        options = client.default_query_options(QueryOptions(query_key=query_key))
        cache.build(options, state=state, query_hash=query_hash)
        written += 1

    logger.debug("Гидрировано запросов: %s", written)
    return written
