from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple, Union

from shared.rpc.errors import RpcError, RpcErrorCode
from shared.rpc.procedure import Procedure


class Router:
    """Набор процедур. Вложенные роутеры разворачиваются в пути через точку: "auth.session"."""

    def __init__(self, procedures: Mapping[str, Union[Procedure, "Router"]]) -> None:
        self._procedures: Dict[str, Procedure] = {}
        for name, item in procedures.items():
            if not name or "." in name:
                raise ValueError(f"Invalid procedure name: {name!r}")
            if isinstance(item, Router):
                for sub_path, procedure in item.procedures.items():
                    self._procedures[f"{name}.{sub_path}"] = procedure
            elif isinstance(item, Procedure):
                self._procedures[name] = item
            else:
                raise TypeError(f"{name!r} must be a Procedure or Router, got {type(item).__name__}")

    @property
    def procedures(self) -> Dict[str, Procedure]:
        return dict(self._procedures)

    def get(self, path: str) -> Optional[Procedure]:
        return self._procedures.get(path)

    async def call(self, ctx: Any, path: str, raw_input: Any = None, type: Optional[str] = None) -> Any:
        procedure = self.get(path)
        if procedure is None:
            raise RpcError(RpcErrorCode.NOT_FOUND, f'No procedure found on path "{path}"')
        if type is not None and procedure.type != type:
            raise RpcError(
                RpcErrorCode.METHOD_NOT_SUPPORTED,
                f'Procedure "{path}" is a {procedure.type}, not a {type}',
            )
        return await procedure.call(ctx, raw_input, path=path)

    def create_caller(self, ctx: Any) -> "Caller":
        return Caller(self, ctx)


class Caller:
    """Вызов процедур внутри процесса, без HTTP.

    await caller.call("getUsers")
    await caller.getUsers()
    await caller.auth.session()
    """

    def __init__(self, router: Router, ctx: Any, path: Tuple[str, ...] = ()) -> None:
        self._router = router
        self._ctx = ctx
        self._path = path

    def __getattr__(self, name: str) -> "Caller":
        if name.startswith("_"):
            raise AttributeError(name)
        return Caller(self._router, self._ctx, self._path + (name,))

    async def __call__(self, raw_input: Any = None) -> Any:
        return await self._router.call(self._ctx, ".".join(self._path), raw_input)

    async def call(self, path: str, raw_input: Any = None) -> Any:
        return await self._router.call(self._ctx, path, raw_input)
