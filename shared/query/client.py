"""
QueryClient - точка входа в кэш запросов.

На сервере клиент создаётся на каждый запрос (is_server=True): он не повторяет
запросы при ошибках и никогда не запускает фоновые обновления.
В браузере клиент живёт всё время сессии (is_server=False).
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Union

from shared.logging_config import get_logger
from shared.query.cache import (
    FETCH_IDLE,
    STATUS_SUCCESS,
    Query,
    QueryCache,
    QueryKey,
    QueryOptions,
    QueryState,
    now_ms,
)

logger = get_logger("query")


DEFAULT_GC_TIME = 5 * 60.0
BROWSER_RETRY = 3

Updater = Union[Any, Callable[[Any], Any]]


class QueryClient:
    def __init__(
        self,
        is_server: bool = False,
        default_options: Optional[Dict[str, Any]] = None,
        query_cache: Optional[QueryCache] = None,
    ) -> None:
        self.is_server = is_server
        self._cache = query_cache or QueryCache()
        self._defaults: Dict[str, Any] = {
            "stale_time": 0.0,
            # На сервере кэш живёт ровно один HTTP-запрос, собирать мусор незачем
            "gc_time": math.inf if is_server else DEFAULT_GC_TIME,
            "retry": 0 if is_server else BROWSER_RETRY,
            "retry_delay": None,
        }
        if default_options:
            self._defaults.update(default_options)

    def get_query_cache(self) -> QueryCache:
        return self._cache

    def default_query_options(self, options: QueryOptions) -> QueryOptions:
        """Заполнить незаданные поля опций значениями по умолчанию клиента."""
        overrides = {
            name: value
            for name, value in self._defaults.items()
            if getattr(options, name, None) is None
        }
        return replace(options, **overrides) if overrides else options

    def build_query(self, options: QueryOptions) -> Query:
        self._cache.collect_garbage()
        return self._cache.build(self.default_query_options(options))

    # === Загрузка данных ===

    async def fetch_query(self, options: QueryOptions) -> Any:
        """Вернуть свежие данные из кэша или загрузить их. Ошибки пробрасываются."""
        opts = self.default_query_options(options)
        query = self.build_query(opts)
        if query.is_stale(opts.stale_time):
            return await query.fetch(opts)
        return query.state.data

    async def prefetch_query(self, options: QueryOptions) -> None:
        """Как fetch_query, но никогда не бросает исключений."""
        try:
            await self.fetch_query(options)
        except Exception as e:  # noqa: BLE001
            logger.warning("Предзагрузка запроса %s не удалась: %s", options.query_key, e)

    def _find(self, query_key: QueryKey) -> Optional[Query]:
        # Чтение кэша тоже удаляет запросы с истёкшим gc_time
        self._cache.collect_garbage()
        return self._cache.find(query_key)

    async def ensure_query_data(self, options: QueryOptions) -> Any:
        """Вернуть данные из кэша (даже устаревшие), загрузить только если их нет."""
        query = self._find(options.query_key)
        if query is not None and query.state.status == STATUS_SUCCESS:
            query.touch()
            return query.state.data
        return await self.fetch_query(options)

    # === Прямая работа с данными кэша ===

    def get_query_data(self, query_key: QueryKey) -> Any:
        query = self._find(query_key)
        if query is None:
            return None
        query.touch()
        return query.state.data

    def get_query_state(self, query_key: QueryKey) -> Optional[QueryState]:
        query = self._find(query_key)
        return query.state if query is not None else None

    def set_query_data(self, query_key: QueryKey, updater: Updater) -> Any:
        """Записать данные в кэш. Если updater вернул None - кэш не меняется."""
        previous = self.get_query_data(query_key)
        data = updater(previous) if callable(updater) else updater
        if data is None:
            return None
        query = self.build_query(QueryOptions(query_key=query_key))
        query.set_state(
            replace(
                query.state,
                data=data,
                data_updated_at=now_ms(),
                error=None,
                status=STATUS_SUCCESS,
                fetch_status=FETCH_IDLE if not query.is_fetching else query.state.fetch_status,
                is_invalidated=False,
            )
        )
        return data

    def invalidate_queries(self, query_key: Optional[QueryKey] = None) -> int:
        """Пометить подходящие запросы устаревшими. Возвращает количество запросов."""
        queries = self._cache.find_all(query_key)
        for query in queries:
            query.invalidate()
        return len(queries)

    def remove_queries(self, query_key: Optional[QueryKey] = None) -> int:
        queries = self._cache.find_all(query_key)
        for query in queries:
            self._cache.remove(query)
        return len(queries)

    def is_fetching(self, query_key: Optional[QueryKey] = None) -> int:
        return len(self._cache.find_all(query_key, predicate=lambda q: q.is_fetching))

    def clear(self) -> None:
        self._cache.clear()

    def schedule_fetch(self, query: Query, options: QueryOptions) -> bool:
        """Запустить фоновый fetch, если есть работающий event loop."""
        if self.is_server:
            return False
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("Нет работающего event loop, фоновая загрузка %s пропущена", query.query_hash)
            return False
        query.start_fetch(options)
        return True

    def all_queries(self) -> List[Query]:
        return self._cache.get_all()
