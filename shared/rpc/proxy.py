"""
Прокси опций запросов: связывает процедуры RPC с кэшем запросов.

    trpc = OptionsProxy(call)
    await query_client.prefetch_query(trpc.getUsers.query_options())

`call(path, input)` - любая асинхронная функция вызова процедуры: на сервере это
вызов внутри процесса (Caller), в браузере - HTTP-запрос.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, List, Tuple

from pydantic_core import to_jsonable_python

from shared.query.cache import QueryKey, QueryOptions


CallFn = Callable[[str, Any], Awaitable[Any]]


def get_query_key(path: str, input: Any = None, type: str = "query") -> QueryKey:
    """Ключ вида [["getUsers"], {"type": "query"}] (с "input", если он задан)."""
    meta = {"type": type}
    if input is not None:
        meta["input"] = to_jsonable_python(input)
    return [path.split("."), meta]


class OptionsProxy:
    def __init__(self, call: CallFn, path: Tuple[str, ...] = ()) -> None:
        self._call = call
        self._path = path

    def __getattr__(self, name: str) -> "OptionsProxy":
        if name.startswith("_"):
            raise AttributeError(name)
        return OptionsProxy(self._call, self._path + (name,))

    def __repr__(self) -> str:
        return f"OptionsProxy({'.'.join(self._path) or '<root>'})"

    @property
    def path(self) -> str:
        return ".".join(self._path)

    def path_key(self) -> List[List[str]]:
        """Ключ-префикс для всех запросов этой процедуры (или роутера)."""
        return [list(self._path)]

    def query_key(self, input: Any = None) -> QueryKey:
        return get_query_key(self.path, input)

    def query_options(self, input: Any = None, **overrides: Any) -> QueryOptions:
        path = self.path
        call = self._call
        payload = to_jsonable_python(input) if input is not None else None

        async def query_fn() -> Any:
            return await call(path, payload)

        query_fn.__name__ = f"query_{path.replace('.', '_')}"
        return QueryOptions(query_key=get_query_key(path, input), query_fn=query_fn, **overrides)


def caller_options_proxy(caller: Any) -> OptionsProxy:
    """Прокси поверх Caller: процедуры вызываются внутри процесса."""

    async def call(path: str, input: Any) -> Any:
        return await caller.call(path, input)

    return OptionsProxy(call)
