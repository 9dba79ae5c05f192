"""
Чтение запросов компонентами.

use_query - "ручной" режим: сразу возвращает текущее состояние (pending/success/error),
компонент сам решает, что показывать, пока данных нет.

use_suspense_query - режим приостановки: компонент ждёт (await), пока данные появятся;
ошибка пробрасывается в ближайший boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from shared.query.cache import (
    FETCH_FETCHING,
    STATUS_ERROR,
    STATUS_PENDING,
    STATUS_SUCCESS,
    Query,
    QueryOptions,
)
from shared.query.client import QueryClient


@dataclass(frozen=True)
class QueryResult:
    data: Any
    error: Any
    status: str
    fetch_status: str
    data_updated_at: int
    is_stale: bool

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING

    @property
    def is_success(self) -> bool:
        return self.status == STATUS_SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status == STATUS_ERROR

    @property
    def is_fetching(self) -> bool:
        return self.fetch_status == FETCH_FETCHING

    @property
    def is_loading(self) -> bool:
        return self.is_pending and self.is_fetching

    @classmethod
    def from_query(cls, query: Query, is_stale: bool) -> "QueryResult":
        state = query.state
        return cls(
            data=state.data,
            error=state.error,
            status=state.status,
            fetch_status=state.fetch_status,
            data_updated_at=state.data_updated_at,
            is_stale=is_stale,
        )


def use_query(client: QueryClient, options: QueryOptions) -> QueryResult:
    opts = client.default_query_options(options)
    query = client.build_query(opts)
    stale = query.is_stale(opts.stale_time)
    if opts.enabled and stale and not query.is_fetching:
        client.schedule_fetch(query, opts)
    return QueryResult.from_query(query, query.is_stale(opts.stale_time))


async def use_suspense_query(client: QueryClient, options: QueryOptions) -> QueryResult:
    opts = client.default_query_options(options)
    query = client.build_query(opts)

    if query.state.status != STATUS_SUCCESS:
        # Данных нет - приостанавливаемся до их появления (ошибка уходит в boundary)
        await query.fetch(opts)
    elif query.is_stale(opts.stale_time) and not query.is_fetching:
        # Устаревшие данные отдаём сразу, обновляем в фоне
        client.schedule_fetch(query, opts)

    return QueryResult.from_query(query, query.is_stale(opts.stale_time))
