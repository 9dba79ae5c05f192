import asyncio

import pytest

pytest.importorskip("fastapi")
pytest.importorskip("bs4")

from bs4 import BeautifulSoup

from backend.core.settings import settings
from backend.repositories.user_repository import UserRepository
from frontend.hydration import read_dehydrated_state


USERS_KEY = [["getUsers"], {"type": "query"}]


def test_home_page_renders_users_from_orm(client, users):
    resp = client.get("/")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert 'class="text-3xl text-center font-bold underline"' in resp.text
    assert "ada@example.com" in resp.text
    assert "alan@example.com" in resp.text
    # The home page does not go through the query cache
    assert read_dehydrated_state(resp.text) is None


def test_users_page_embeds_prefetched_state(client, users):
    resp = client.get("/users")

    assert resp.status_code == 200
    assert 'id="users-client" data-state="success"' in resp.text

    state = read_dehydrated_state(resp.text)
    assert [q["queryKey"] for q in state["queries"]] == [USERS_KEY]
    query_state = state["queries"][0]["state"]
    assert query_state["status"] == "success"
    assert [u["email"] for u in query_state["data"]] == ["ada@example.com", "alan@example.com"]


def test_users_page_renders_error_fallback_when_database_fails(client, monkeypatch):
    def broken(self):
        raise RuntimeError("database is unavailable")

    monkeypatch.setattr(UserRepository, "find_many", broken)
    resp = client.get("/users")

    assert resp.status_code == 200
    assert 'data-state="error"' in resp.text
    assert "database is unavailable" not in resp.text
    assert read_dehydrated_state(resp.text)["queries"] == []


def test_lazy_users_page_renders_spinner(client, users):
    resp = client.get("/users/lazy")

    assert resp.status_code == 200
    assert 'data-state="pending"' in resp.text
    assert 'class="spinner"' in resp.text
    assert "ada@example.com" not in resp.text
    assert read_dehydrated_state(resp.text)["queries"] == []


def test_dashboard_redirects_guests_to_login(client, users):
    resp = client.get("/dashboard", follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"] == "/login?next=%2Fdashboard"


def test_dashboard_for_signed_in_user(client, users, login):
    login(users[0])
    resp = client.get("/dashboard")

    assert resp.status_code == 200
    assert "Welcome, Ada Lovelace" in resp.text
    state = read_dehydrated_state(resp.text)
    keys = [q["queryKey"] for q in state["queries"]]
    assert [["auth", "session"], {"type": "query"}] in keys
    assert USERS_KEY in keys


def test_nav_shows_logout_for_signed_in_user(client, users, login):
    assert 'action="/logout"' not in client.get("/").text
    login(users[0])
    assert 'action="/logout"' in client.get("/").text


def test_static_client_script_is_served(client):
    resp = client.get("/static/client.js")
    assert resp.status_code == 200
    assert "__QUERY_STATE__" in resp.text


def test_users_page_queries_database_outside_event_loop(client, users, monkeypatch):
    original = UserRepository.find_many
    calls = []

    def spy(self):
        try:
            asyncio.get_running_loop()
            calls.append("in-loop")
        except RuntimeError:
            calls.append("worker-thread")
        return original(self)

    monkeypatch.setattr(UserRepository, "find_many", spy)

    assert client.get("/users").status_code == 200
    assert client.get(f"{settings.RPC_PREFIX}/getUsers").status_code == 200
    assert calls == ["worker-thread", "worker-thread"]


def test_pages_tell_the_browser_script_where_rpc_lives(client, monkeypatch):
    monkeypatch.setattr(settings, "RPC_PREFIX", "/rpc/v2")

    resp = client.get("/users/lazy")

    body = BeautifulSoup(resp.text, "html.parser").body
    assert body["data-rpc-prefix"] == "/rpc/v2"
    assert '<script src="/static/client.js"' in resp.text
