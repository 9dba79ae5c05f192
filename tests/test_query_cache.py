import asyncio
import math

import pytest

from shared.query import QueryClient, QueryOptions, partial_match_key, use_query, use_suspense_query
from shared.query import cache as cache_module
from shared.query.cache import default_retry_delay


KEY = [["getUsers"], {"type": "query"}]


class CountingFn:
    def __init__(self, results):
        self._results = list(results)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        result = self._results.pop(0) if len(self._results) > 1 else self._results[0]
        if isinstance(result, Exception):
            raise result
        return result


def test_partial_match_key():
    assert partial_match_key(KEY, [["getUsers"]])
    assert partial_match_key([["auth", "session"], {"type": "query"}], [["auth"]])
    assert partial_match_key(KEY, [["getUsers"], {"type": "query"}])
    assert not partial_match_key(KEY, [["getPosts"]])
    assert not partial_match_key(KEY, [["getUsers"], {"type": "mutation"}])


@pytest.mark.anyio
async def test_fetch_query_returns_cached_data_while_fresh():
    client = QueryClient(is_server=True)
    fn = CountingFn([["ada"]])
    options = QueryOptions(query_key=KEY, query_fn=fn, stale_time=60)

    assert await client.fetch_query(options) == ["ada"]
    assert await client.fetch_query(options) == ["ada"]
    assert fn.calls == 1
    assert client.get_query_data(KEY) == ["ada"]


@pytest.mark.anyio
async def test_fetch_query_refetches_stale_data():
    client = QueryClient(is_server=True)
    fn = CountingFn([["v1"], ["v2"]])
    options = QueryOptions(query_key=KEY, query_fn=fn, stale_time=0)

    assert await client.fetch_query(options) == ["v1"]
    assert await client.fetch_query(options) == ["v2"]
    assert fn.calls == 2


@pytest.mark.anyio
async def test_concurrent_fetches_share_one_request():
    client = QueryClient(is_server=True)
    release = asyncio.Event()
    calls = 0

    async def slow():
        nonlocal calls
        calls += 1
        await release.wait()
        return "done"

    options = QueryOptions(query_key=KEY, query_fn=slow)
    first = asyncio.ensure_future(client.fetch_query(options))
    second = asyncio.ensure_future(client.fetch_query(options))
    await asyncio.sleep(0)
    assert client.is_fetching(KEY) == 1

    release.set()
    assert await asyncio.gather(first, second) == ["done", "done"]
    assert calls == 1
    assert client.is_fetching() == 0


@pytest.mark.anyio
async def test_prefetch_query_never_raises_and_stores_error():
    client = QueryClient(is_server=True)
    options = QueryOptions(query_key=KEY, query_fn=CountingFn([RuntimeError("db down")]))

    await client.prefetch_query(options)

    state = client.get_query_state(KEY)
    assert state.status == "error"
    assert str(state.error) == "db down"
    assert client.get_query_data(KEY) is None


@pytest.mark.anyio
async def test_fetch_query_retries_then_succeeds():
    client = QueryClient(is_server=False)
    fn = CountingFn([RuntimeError("1"), RuntimeError("2"), "ok"])
    options = QueryOptions(query_key=KEY, query_fn=fn, retry=2, retry_delay=0)

    assert await client.fetch_query(options) == "ok"
    assert fn.calls == 3
    assert client.get_query_state(KEY).fetch_failure_count == 0


@pytest.mark.anyio
async def test_fetch_query_raises_after_retries_exhausted():
    client = QueryClient(is_server=False)
    fn = CountingFn([RuntimeError("boom")])
    options = QueryOptions(query_key=KEY, query_fn=fn, retry=1, retry_delay=0)

    with pytest.raises(RuntimeError, match="boom"):
        await client.fetch_query(options)
    assert fn.calls == 2
    assert client.get_query_state(KEY).fetch_failure_count == 2


def test_server_client_defaults():
    server = QueryClient(is_server=True)
    browser = QueryClient(is_server=False)
    options = QueryOptions(query_key=KEY)

    assert server.default_query_options(options).retry == 0
    assert math.isinf(server.default_query_options(options).gc_time)
    assert browser.default_query_options(options).retry == 3
    assert browser.default_query_options(QueryOptions(query_key=KEY, retry=1)).retry == 1


def test_set_query_data_with_updater():
    client = QueryClient(is_server=True)
    client.set_query_data(KEY, ["ada"])
    client.set_query_data(KEY, lambda old: old + ["alan"])
    assert client.get_query_data(KEY) == ["ada", "alan"]

    # None from the updater leaves the cache untouched
    assert client.set_query_data(KEY, lambda old: None) is None
    assert client.get_query_data(KEY) == ["ada", "alan"]


@pytest.mark.anyio
async def test_invalidate_queries_by_prefix_forces_refetch():
    client = QueryClient(is_server=True)
    fn = CountingFn([["v1"], ["v2"]])
    options = QueryOptions(query_key=KEY, query_fn=fn, stale_time=math.inf)
    other = [["auth", "session"], {"type": "query"}]
    client.set_query_data(other, {"id": 1})

    await client.fetch_query(options)
    assert client.invalidate_queries([["getUsers"]]) == 1
    assert client.get_query_state(KEY).is_invalidated
    assert not client.get_query_state(other).is_invalidated

    assert await client.fetch_query(options) == ["v2"]
    assert not client.get_query_state(KEY).is_invalidated


@pytest.mark.anyio
async def test_unused_queries_are_garbage_collected():
    client = QueryClient(is_server=False, default_options={"gc_time": 0})
    await client.fetch_query(QueryOptions(query_key=KEY, query_fn=CountingFn(["a"])))

    client.build_query(QueryOptions(query_key=["other"]))

    assert client.get_query_data(KEY) is None
    assert len(client.get_query_cache()) == 1


def test_cache_notifies_subscribers():
    client = QueryClient(is_server=True)
    events = []
    unsubscribe = client.get_query_cache().subscribe(lambda event, query: events.append((event, query.query_key)))

    client.set_query_data(KEY, [])
    client.remove_queries()
    unsubscribe()
    client.set_query_data(KEY, [])

    assert [e for e, _ in events] == ["added", "updated", "removed"]


def test_use_query_on_server_never_fetches():
    client = QueryClient(is_server=True)
    fn = CountingFn(["a"])

    result = use_query(client, QueryOptions(query_key=KEY, query_fn=fn))

    assert result.is_pending
    assert not result.is_fetching
    assert fn.calls == 0


@pytest.mark.anyio
async def test_use_query_in_browser_starts_background_fetch():
    client = QueryClient(is_server=False)
    options = QueryOptions(query_key=KEY, query_fn=CountingFn([["ada"]]), stale_time=60)

    first = use_query(client, options)
    assert first.is_pending
    assert first.is_loading

    await client.get_query_cache().find(KEY).fetch()

    second = use_query(client, options)
    assert second.is_success
    assert second.data == ["ada"]


@pytest.mark.anyio
async def test_use_query_reports_error_state():
    client = QueryClient(is_server=False)
    options = QueryOptions(query_key=KEY, query_fn=CountingFn([RuntimeError("nope")]), retry=0)
    await client.prefetch_query(options)

    result = use_query(client, QueryOptions(query_key=KEY, query_fn=CountingFn([RuntimeError("nope")]), enabled=False))

    assert result.is_error
    assert str(result.error) == "nope"


@pytest.mark.anyio
async def test_use_suspense_query_waits_for_data():
    client = QueryClient(is_server=True)
    fn = CountingFn([["ada"]])

    result = await use_suspense_query(client, QueryOptions(query_key=KEY, query_fn=fn))

    assert result.is_success
    assert result.data == ["ada"]
    assert fn.calls == 1


@pytest.mark.anyio
async def test_use_suspense_query_raises_error():
    client = QueryClient(is_server=True)

    with pytest.raises(RuntimeError, match="broken"):
        await use_suspense_query(client, QueryOptions(query_key=KEY, query_fn=CountingFn([RuntimeError("broken")])))


@pytest.mark.anyio
async def test_use_suspense_query_returns_stale_data_and_refreshes():
    client = QueryClient(is_server=False)
    client.set_query_data(KEY, ["old"])
    fn = CountingFn([["new"]])

    result = await use_suspense_query(client, QueryOptions(query_key=KEY, query_fn=fn, stale_time=0))

    assert result.data == ["old"]
    assert result.is_fetching

    await client.get_query_cache().find(KEY).fetch()
    assert client.get_query_data(KEY) == ["new"]
    assert fn.calls == 1


@pytest.mark.anyio
async def test_ensure_query_data_accepts_stale_cache():
    client = QueryClient(is_server=True)
    fn = CountingFn([["fetched"]])
    options = QueryOptions(query_key=KEY, query_fn=fn, stale_time=0)

    client.set_query_data(KEY, ["cached"])
    assert await client.ensure_query_data(options) == ["cached"]
    assert fn.calls == 0

    client.remove_queries(KEY)
    assert await client.ensure_query_data(options) == ["fetched"]
    assert fn.calls == 1


@pytest.mark.parametrize(
    "attempt, delay",
    [(0, 1.0), (1, 2.0), (2, 4.0), (4, 16.0), (5, 30.0), (10, 30.0)],
)
def test_default_retry_delay_backs_off_up_to_thirty_seconds(attempt, delay):
    assert default_retry_delay(attempt) == delay


def test_expired_queries_are_dropped_on_read(monkeypatch):
    client = QueryClient(is_server=False, default_options={"gc_time": 60})
    client.set_query_data(KEY, ["ada"])
    assert client.get_query_data(KEY) == ["ada"]

    later = cache_module.now_ms() + 61 * 1000
    monkeypatch.setattr(cache_module, "now_ms", lambda: later)

    assert client.get_query_state(KEY) is None
    assert client.get_query_data(KEY) is None
    assert len(client.get_query_cache()) == 0
