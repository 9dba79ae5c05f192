"""
Кэш запросов: ключи, состояние запроса, сам запрос и хранилище запросов.

Семантика повторяет TanStack Query:
- один Query на хэш ключа;
- не больше одного выполняющегося запроса (fetch) на Query, остальные ждут его;
- после ошибки запрос повторяется `retry` раз с экспоненциальной задержкой.
"""

from __future__ import annotations

import asyncio
import json
import math
import time
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, List, Optional

from shared.logging_config import get_logger

logger = get_logger("query")


QueryKey = List[Any]
QueryFn = Callable[[], Awaitable[Any]]
Listener = Callable[[str, "Query"], None]

STATUS_PENDING = "pending"
STATUS_SUCCESS = "success"
STATUS_ERROR = "error"

FETCH_IDLE = "idle"
FETCH_FETCHING = "fetching"


def now_ms() -> int:
    return int(time.time() * 1000)


def hash_query_key(query_key: QueryKey) -> str:
    """Стабильный хэш ключа: JSON с отсортированными ключами объектов."""
    return json.dumps(query_key, sort_keys=True, separators=(",", ":"), default=str)


def partial_match_key(query_key: Any, prefix: Any) -> bool:
    """Проверить, что `prefix` является частичным совпадением для `query_key`.

    Списки сравниваются поэлементно по префиксу, словари - по подмножеству ключей.
    """
    if query_key == prefix:
        return True
    if isinstance(query_key, dict) and isinstance(prefix, dict):
        return all(k in query_key and partial_match_key(query_key[k], v) for k, v in prefix.items())
    if isinstance(query_key, list) and isinstance(prefix, list):
        if len(prefix) > len(query_key):
            return False
        return all(partial_match_key(query_key[i], prefix[i]) for i in range(len(prefix)))
    return False


def default_retry_delay(attempt: int) -> float:
    """Задержка перед повтором в секундах: 1s, 2s, 4s ... но не больше 30s."""
    return min(1000 * (2 ** attempt), 30000) / 1000


@dataclass
class QueryOptions:
    query_key: QueryKey
    query_fn: Optional[QueryFn] = None
    # Время (в секундах), в течение которого данные считаются свежими; math.inf - никогда не устаревают
    stale_time: Optional[float] = None
    # Время (в секундах) хранения неиспользуемого запроса в кэше
    gc_time: Optional[float] = None
    retry: Optional[int] = None
    # Фиксированная задержка между повторами (секунды); None - экспоненциальная
    retry_delay: Optional[float] = None
    enabled: bool = True


@dataclass
class QueryState:
    data: Any = None
    data_updated_at: int = 0
    error: Any = None
    error_updated_at: int = 0
    fetch_failure_count: int = 0
    status: str = STATUS_PENDING
    fetch_status: str = FETCH_IDLE
    is_invalidated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Сериализация в формат dehydrated state (camelCase, как у TanStack)."""
        error = self.error
        if isinstance(error, BaseException):
            error = {"name": type(error).__name__, "message": str(error)}
        return {
            "data": self.data,
            "dataUpdatedAt": self.data_updated_at,
            "error": error,
            "errorUpdatedAt": self.error_updated_at,
            "fetchFailureCount": self.fetch_failure_count,
            "fetchStatus": self.fetch_status,
            "isInvalidated": self.is_invalidated,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "QueryState":
        return cls(
            data=raw.get("data"),
            data_updated_at=int(raw.get("dataUpdatedAt") or 0),
            error=raw.get("error"),
            error_updated_at=int(raw.get("errorUpdatedAt") or 0),
            fetch_failure_count=int(raw.get("fetchFailureCount") or 0),
            status=raw.get("status") or STATUS_PENDING,
            fetch_status=raw.get("fetchStatus") or FETCH_IDLE,
            is_invalidated=bool(raw.get("isInvalidated", False)),
        )


def _consume_task_exception(task: "asyncio.Task[Any]") -> None:
    # Фоновые запросы никто может не ждать: забираем исключение, чтобы asyncio не ругался
    if not task.cancelled():
        task.exception()


class Query:
    """Один элемент кэша."""

    def __init__(
        self,
        cache: "QueryCache",
        query_key: QueryKey,
        query_hash: str,
        options: QueryOptions,
        state: Optional[QueryState] = None,
    ) -> None:
        self.cache = cache
        self.query_key = query_key
        self.query_hash = query_hash
        self.options = options
        self.state = state or QueryState()
        self.last_used_at = now_ms()
        self._task: Optional["asyncio.Task[Any]"] = None

    def __repr__(self) -> str:
        return f"Query({self.query_hash}, status={self.state.status}, fetch_status={self.state.fetch_status})"

    def touch(self) -> None:
        self.last_used_at = now_ms()

    def set_options(self, options: QueryOptions) -> None:
        # Гидрированный запрос не знает свою query_fn, пока его не запросят с опциями
        if options.query_fn is None and self.options.query_fn is not None:
            options = replace(options, query_fn=self.options.query_fn)
        self.options = options

    def set_state(self, state: QueryState) -> None:
        self.state = state
        self.touch()
        self.cache.notify("updated", self)

    @property
    def is_fetching(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_stale(self, stale_time: Optional[float] = None) -> bool:
        if self.state.status != STATUS_SUCCESS or self.state.is_invalidated:
            return True
        if stale_time is None:
            stale_time = self.options.stale_time or 0.0
        if math.isinf(stale_time):
            return False
        return now_ms() - self.state.data_updated_at >= stale_time * 1000

    def is_gc_eligible(self, at: Optional[int] = None) -> bool:
        if self.is_fetching:
            return False
        gc_time = self.options.gc_time
        if gc_time is None or math.isinf(gc_time):
            return False
        at = now_ms() if at is None else at
        return at - self.last_used_at >= gc_time * 1000

    def invalidate(self) -> None:
        if not self.state.is_invalidated:
            self.set_state(replace(self.state, is_invalidated=True))

    def start_fetch(self, options: Optional[QueryOptions] = None) -> "asyncio.Task[Any]":
        """Запустить fetch (или вернуть уже выполняющийся).

        Должен вызываться внутри работающего event loop.
        """
        if options is not None:
            self.set_options(options)
        if self.is_fetching:
            return self._task  # type: ignore[return-value]
        if self.options.query_fn is None:
            raise RuntimeError(f"Missing query_fn for query {self.query_hash}")

        self.set_state(replace(self.state, fetch_status=FETCH_FETCHING))
        task = asyncio.get_running_loop().create_task(self._run())
        task.add_done_callback(_consume_task_exception)
        self._task = task
        return task

    async def fetch(self, options: Optional[QueryOptions] = None) -> Any:
        # shield: отмена одного ожидающего не отменяет общий запрос
        return await asyncio.shield(self.start_fetch(options))

    async def _run(self) -> Any:
        options = self.options
        retries = options.retry or 0
        attempt = 0
        while True:
            try:
                data = await options.query_fn()  # type: ignore[misc]
            except asyncio.CancelledError:
                self.set_state(replace(self.state, fetch_status=FETCH_IDLE))
                raise
            except Exception as e:  # noqa: BLE001
                if attempt < retries:
                    delay = options.retry_delay if options.retry_delay is not None else default_retry_delay(attempt)
                    attempt += 1
                    logger.debug(
                        "Запрос %s завершился ошибкой (%s), повтор %s/%s через %.2fs",
                        self.query_hash,
                        e,
                        attempt,
                        retries,
                        delay,
                    )
                    self.state = replace(self.state, fetch_failure_count=attempt)
                    await asyncio.sleep(delay)
                    continue
                self.set_state(
                    replace(
                        self.state,
                        error=e,
                        error_updated_at=now_ms(),
                        fetch_failure_count=attempt + 1,
                        status=STATUS_ERROR,
                        fetch_status=FETCH_IDLE,
                    )
                )
                raise
            self.set_state(
                QueryState(
                    data=data,
                    data_updated_at=now_ms(),
                    status=STATUS_SUCCESS,
                    fetch_status=FETCH_IDLE,
                )
            )
            return data


class QueryCache:
    """Хранилище запросов по хэшу ключа."""

    def __init__(self) -> None:
        self._queries: Dict[str, Query] = {}
        self._listeners: List[Listener] = []

    def __len__(self) -> int:
        return len(self._queries)

    def build(
        self,
        options: QueryOptions,
        state: Optional[QueryState] = None,
        query_hash: Optional[str] = None,
    ) -> Query:
        query_hash = query_hash or hash_query_key(options.query_key)
        query = self._queries.get(query_hash)
        if query is None:
            query = Query(self, options.query_key, query_hash, options, state)
            self._queries[query_hash] = query
            self.notify("added", query)
        else:
            query.set_options(options)
            query.touch()
        return query

    def get(self, query_hash: str) -> Optional[Query]:
        return self._queries.get(query_hash)

    def find(self, query_key: QueryKey) -> Optional[Query]:
        return self._queries.get(hash_query_key(query_key))

    def get_all(self) -> List[Query]:
        return list(self._queries.values())

    def find_all(
        self,
        query_key: Optional[QueryKey] = None,
        predicate: Optional[Callable[[Query], bool]] = None,
    ) -> List[Query]:
        result = []
        for query in self._queries.values():
            if query_key is not None and not partial_match_key(query.query_key, query_key):
                continue
            if predicate is not None and not predicate(query):
                continue
            result.append(query)
        return result

    def remove(self, query: Query) -> None:
        if self._queries.get(query.query_hash) is query:
            del self._queries[query.query_hash]
            self.notify("removed", query)

    def clear(self) -> None:
        for query in list(self._queries.values()):
            self.remove(query)

    def collect_garbage(self) -> int:
        """Удалить запросы, которые не использовались дольше gc_time."""
        at = now_ms()
        removed = 0
        for query in list(self._queries.values()):
            if query.is_gc_eligible(at):
                self.remove(query)
                removed += 1
        if removed:
            logger.debug("Удалено устаревших запросов из кэша: %s", removed)
        return removed

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, event: str, query: Query) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, query)
            except Exception as e:  # noqa: BLE001
                logger.warning("Ошибка в подписчике кэша запросов: %s", e, exc_info=True)
