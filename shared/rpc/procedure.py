"""
Процедуры RPC: типизированный вход (pydantic), цепочка middleware и резолвер.

    get_users = (
        public_procedure
        .output(list[UserOut])
        .query(lambda ctx, _: UserRepository(ctx.db).find_many())
    )
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Optional, Tuple

from pydantic import TypeAdapter, ValidationError
from starlette.concurrency import run_in_threadpool

from shared.logging_config import get_logger
from shared.rpc.errors import RpcError, RpcErrorCode

logger = get_logger("rpc")


QUERY = "query"
MUTATION = "mutation"

Resolver = Callable[[Any, Any], Any]
Handler = Callable[[Any], Awaitable[Any]]
# middleware(ctx, call_next) -> результат; call_next(ctx) запускает остальную цепочку
Middleware = Callable[[Any, Handler], Awaitable[Any]]


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(x) for x in item.get("loc", ())) or "input"
        parts.append(f"{loc}: {item.get('msg')}")
    return "; ".join(parts)


class Procedure:
    def __init__(
        self,
        type: str,
        resolver: Resolver,
        input_model: Any = None,
        output_type: Any = None,
        middlewares: Tuple[Middleware, ...] = (),
    ) -> None:
        if type not in (QUERY, MUTATION):
            raise ValueError(f"Unknown procedure type: {type}")
        self.type = type
        self.resolver = resolver
        self.input_model = input_model
        self.output_type = output_type
        self.middlewares = middlewares
        self._input_adapter = TypeAdapter(input_model) if input_model is not None else None
        self._output_adapter = TypeAdapter(output_type if output_type is not None else Any)

    def __repr__(self) -> str:
        name = getattr(self.resolver, "__name__", "resolver")
        return f"Procedure({self.type}, {name})"

    def parse_input(self, raw_input: Any) -> Any:
        if self._input_adapter is None:
            return None
        try:
            return self._input_adapter.validate_python(raw_input)
        except ValidationError as e:
            raise RpcError(RpcErrorCode.BAD_REQUEST, _format_validation_error(e)) from e

    def serialize_output(self, result: Any) -> Any:
        value = self._output_adapter.validate_python(result, from_attributes=True)
        return self._output_adapter.dump_python(value, mode="json")

    async def call(self, ctx: Any, raw_input: Any = None, path: str = "") -> Any:
        """Вызвать процедуру и вернуть JSON-совместимый результат."""
        value = self.parse_input(raw_input)

        async def run_resolver(current_ctx: Any) -> Any:
            if inspect.iscoroutinefunction(self.resolver):
                return await self.resolver(current_ctx, value)
            # Синхронные резолверы (запросы к БД) не должны блокировать event loop
            result = await run_in_threadpool(self.resolver, current_ctx, value)
            if inspect.isawaitable(result):
                result = await result
            return result

        handler: Handler = run_resolver
        for middleware in reversed(self.middlewares):
            handler = _chain(middleware, handler)

        try:
            result = await handler(ctx)
            return self.serialize_output(result)
        except RpcError:
            raise
        except Exception as e:  # noqa: BLE001
            logger.error("Ошибка при выполнении процедуры %s: %s", path or self, e, exc_info=True)
            raise RpcError(RpcErrorCode.INTERNAL_SERVER_ERROR, "Internal server error") from e


def _chain(middleware: Middleware, call_next: Handler) -> Handler:
    async def handler(ctx: Any) -> Any:
        return await middleware(ctx, call_next)

    return handler


class ProcedureBuilder:
    """Неизменяемый построитель процедур: каждый вызов возвращает новый builder."""

    def __init__(
        self,
        input_model: Any = None,
        output_type: Any = None,
        middlewares: Tuple[Middleware, ...] = (),
    ) -> None:
        self._input_model = input_model
        self._output_type = output_type
        self._middlewares = middlewares

    def input(self, model: Any) -> "ProcedureBuilder":
        return ProcedureBuilder(model, self._output_type, self._middlewares)

    def output(self, output_type: Any) -> "ProcedureBuilder":
        return ProcedureBuilder(self._input_model, output_type, self._middlewares)

    def use(self, middleware: Middleware) -> "ProcedureBuilder":
        return ProcedureBuilder(self._input_model, self._output_type, self._middlewares + (middleware,))

    def _build(self, type: str, resolver: Resolver) -> Procedure:
        return Procedure(
            type,
            resolver,
            input_model=self._input_model,
            output_type=self._output_type,
            middlewares=self._middlewares,
        )

    def query(self, resolver: Resolver) -> Procedure:
        return self._build(QUERY, resolver)

    def mutation(self, resolver: Resolver) -> Procedure:
        return self._build(MUTATION, resolver)


public_procedure = ProcedureBuilder()


async def enforce_user(ctx: Any, call_next: Handler) -> Any:
    """Middleware: пропускает только запросы с авторизованным пользователем."""
    if getattr(ctx, "user", None) is None:
        raise RpcError(RpcErrorCode.UNAUTHORIZED, "Authentication required")
    return await call_next(ctx)


protected_procedure = public_procedure.use(enforce_user)
