import asyncio
import threading
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import List

import pytest
from pydantic import BaseModel

from shared.query import partial_match_key
from shared.rpc import (
    OptionsProxy,
    Router,
    RpcError,
    RpcErrorCode,
    get_query_key,
    protected_procedure,
    public_procedure,
)


class GreetInput(BaseModel):
    name: str
    times: int = 1


class Event(BaseModel):
    title: str
    at: datetime


def greet(ctx, data: GreetInput) -> str:
    return " ".join([f"hi {data.name}"] * data.times)


async def list_events(ctx, _input) -> List[Event]:
    return [Event(title="launch", at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc))]


def whoami(ctx, _input) -> str:
    return ctx.user


def explode(ctx, _input):
    raise ValueError("secret details")


router = Router(
    {
        "greet": public_procedure.input(GreetInput).output(str).query(greet),
        "events": public_procedure.output(List[Event]).query(list_events),
        "explode": public_procedure.query(explode),
        "auth": Router({"whoami": protected_procedure.output(str).query(whoami)}),
        "rename": public_procedure.input(GreetInput).mutation(lambda ctx, data: data.name.upper()),
    }
)


def test_router_flattens_nested_paths():
    assert set(router.procedures) == {"greet", "events", "explode", "auth.whoami", "rename"}
    assert router.get("auth.whoami").type == "query"
    assert router.get("rename").type == "mutation"


def test_router_rejects_bad_names():
    with pytest.raises(ValueError):
        Router({"a.b": public_procedure.query(greet)})
    with pytest.raises(TypeError):
        Router({"a": greet})


@pytest.mark.anyio
async def test_input_is_validated():
    ctx = SimpleNamespace(user=None)
    assert await router.call(ctx, "greet", {"name": "ada", "times": 2}) == "hi ada hi ada"

    with pytest.raises(RpcError) as excinfo:
        await router.call(ctx, "greet", {"times": "many"})
    assert excinfo.value.code == RpcErrorCode.BAD_REQUEST
    assert "name" in excinfo.value.message


@pytest.mark.anyio
async def test_async_resolver_output_is_json_ready():
    data = await router.call(SimpleNamespace(user=None), "events")
    assert data == [{"title": "launch", "at": "2024-01-02T03:04:05Z"}]


@pytest.mark.anyio
async def test_unexpected_error_becomes_internal_error():
    with pytest.raises(RpcError) as excinfo:
        await router.call(SimpleNamespace(user=None), "explode")
    assert excinfo.value.code == RpcErrorCode.INTERNAL_SERVER_ERROR
    assert "secret" not in excinfo.value.message


@pytest.mark.anyio
async def test_protected_procedure_requires_user():
    with pytest.raises(RpcError) as excinfo:
        await router.call(SimpleNamespace(user=None), "auth.whoami")
    assert excinfo.value.code == RpcErrorCode.UNAUTHORIZED

    assert await router.call(SimpleNamespace(user="ada"), "auth.whoami") == "ada"


@pytest.mark.anyio
async def test_unknown_path_and_wrong_type():
    ctx = SimpleNamespace(user=None)
    with pytest.raises(RpcError) as excinfo:
        await router.call(ctx, "missing")
    assert excinfo.value.code == RpcErrorCode.NOT_FOUND

    with pytest.raises(RpcError) as excinfo:
        await router.call(ctx, "rename", {"name": "x"}, type="query")
    assert excinfo.value.code == RpcErrorCode.METHOD_NOT_SUPPORTED


@pytest.mark.anyio
async def test_middlewares_run_in_order():
    seen = []

    async def outer(ctx, call_next):
        seen.append("outer")
        return await call_next(ctx)

    async def inner(ctx, call_next):
        seen.append("inner")
        return await call_next(SimpleNamespace(user="from-middleware"))

    procedure = public_procedure.use(outer).use(inner).query(lambda ctx, _: ctx.user)

    assert await procedure.call(SimpleNamespace(user=None)) == "from-middleware"
    assert seen == ["outer", "inner"]


@pytest.mark.anyio
async def test_caller_attribute_access():
    caller = router.create_caller(SimpleNamespace(user="grace"))
    assert await caller.auth.whoami() == "grace"
    assert await caller.greet({"name": "bob"}) == "hi bob"
    assert await caller.call("greet", {"name": "eve"}) == "hi eve"


def test_query_keys():
    assert get_query_key("getUsers") == [["getUsers"], {"type": "query"}]
    assert get_query_key("auth.session", {"id": 1}) == [["auth", "session"], {"type": "query", "input": {"id": 1}}]


@pytest.mark.anyio
async def test_options_proxy_builds_query_options():
    calls = []

    async def call(path, input):
        calls.append((path, input))
        return "result"

    trpc = OptionsProxy(call)
    options = trpc.greet.query_options(GreetInput(name="ada"), stale_time=5)

    assert options.query_key == [["greet"], {"type": "query", "input": {"name": "ada", "times": 1}}]
    assert options.stale_time == 5
    assert await options.query_fn() == "result"
    assert calls == [("greet", {"name": "ada", "times": 1})]

    assert partial_match_key(trpc.auth.whoami.query_key(), trpc.auth.path_key())
    assert not partial_match_key(trpc.greet.query_key(), trpc.auth.path_key())


def test_error_envelope_shape():
    envelope = RpcError(RpcErrorCode.NOT_FOUND, "nope").to_envelope("getUsers")
    assert envelope == {
        "error": {
            "message": "nope",
            "code": -32004,
            "data": {"code": "NOT_FOUND", "httpStatus": 404, "path": "getUsers"},
        }
    }


def _in_event_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


@pytest.mark.anyio
async def test_sync_resolvers_run_off_the_event_loop():
    seen = {}

    def blocking(ctx, _input):
        seen["sync"] = (threading.get_ident(), _in_event_loop())
        return "done"

    async def non_blocking(ctx, _input):
        seen["async"] = (threading.get_ident(), _in_event_loop())
        return "done"

    ctx = SimpleNamespace(user=None)
    assert await public_procedure.query(blocking).call(ctx) == "done"
    assert await public_procedure.query(non_blocking).call(ctx) == "done"

    sync_thread, sync_in_loop = seen["sync"]
    assert not sync_in_loop
    assert sync_thread != threading.get_ident()
    assert seen["async"] == (threading.get_ident(), True)
