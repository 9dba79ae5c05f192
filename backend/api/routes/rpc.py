"""
HTTP-адаптер RPC.

GET  {RPC_PREFIX}/getUsers?input=<json>               - query
POST {RPC_PREFIX}/some.mutation  (JSON body)          - mutation
GET  {RPC_PREFIX}/a,b?batch=1&input={"0":..,"1":..}   - пакет запросов

Ответ: {"result": {"data": ...}} или {"error": {...}} (см. RpcError.to_envelope).
"""

import json
from typing import Any, List, Optional, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from backend.core.settings import settings
from backend.rpc.context import RpcContext, get_rpc_context
from backend.rpc.router import app_router
from shared.logging_config import logger
from shared.rpc import MUTATION, QUERY, RpcError, RpcErrorCode


router = APIRouter(prefix=settings.RPC_PREFIX, tags=["rpc"])


def _parse_json(raw: Optional[str]) -> Any:
    if raw is None or raw == "":
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise RpcError(RpcErrorCode.PARSE_ERROR, f"Invalid JSON input: {e.msg}") from e


async def _call_one(ctx: RpcContext, path: str, raw_input: Any, type: str) -> Tuple[int, dict]:
    try:
        data = await app_router.call(ctx, path, raw_input, type=type)
    except RpcError as e:
        if e.code == RpcErrorCode.INTERNAL_SERVER_ERROR:
            logger.error("RPC %s %s: %s", type, path, e.message)
        else:
            logger.info("RPC %s %s отклонён: %s (%s)", type, path, e.message, e.code.value)
        return e.code.http_status, e.to_envelope(path)
    return 200, {"result": {"data": data}}


async def _read_input(request: Request, type: str) -> Any:
    if type == QUERY:
        return _parse_json(request.query_params.get("input"))
    body = await request.body()
    try:
        text = body.decode("utf-8") if body else None
    except UnicodeDecodeError as e:
        raise RpcError(RpcErrorCode.PARSE_ERROR, "Request body is not valid UTF-8") from e
    return _parse_json(text)


async def handle_rpc_request(request: Request, path: str, type: str, ctx: RpcContext) -> JSONResponse:
    is_batch = request.query_params.get("batch") in ("1", "true")
    paths: List[str] = path.split(",") if is_batch else [path]

    try:
        raw_input = await _read_input(request, type)
        if is_batch and raw_input is not None and not isinstance(raw_input, dict):
            raise RpcError(RpcErrorCode.BAD_REQUEST, 'Batch input must be an object like {"0": ...}')
    except RpcError as e:
        envelopes = [e.to_envelope(p) for p in paths]
        return JSONResponse(envelopes if is_batch else envelopes[0], status_code=e.code.http_status)

    if not is_batch:
        status_code, envelope = await _call_one(ctx, path, raw_input, type)
        return JSONResponse(envelope, status_code=status_code)

    inputs = raw_input or {}
    results = []
    # Вызовы пакета выполняются последовательно: у них общая сессия БД
    for index, item_path in enumerate(paths):
        results.append(await _call_one(ctx, item_path, inputs.get(str(index)), type))

    statuses = {status_code for status_code, _ in results}
    status_code = statuses.pop() if len(statuses) == 1 else 207
    return JSONResponse([envelope for _, envelope in results], status_code=status_code)


@router.get("/{path:path}", summary="Вызов RPC query")
async def rpc_query(path: str, request: Request, ctx: RpcContext = Depends(get_rpc_context)) -> JSONResponse:
    return await handle_rpc_request(request, path, QUERY, ctx)


@router.post("/{path:path}", summary="Вызов RPC mutation")
async def rpc_mutation(path: str, request: Request, ctx: RpcContext = Depends(get_rpc_context)) -> JSONResponse:
    return await handle_rpc_request(request, path, MUTATION, ctx)
