"""
Клиентский компонент со списком пользователей.

Один и тот же код рендерится на сервере (с серверным QueryClient и вызовом
процедур внутри процесса) и в браузере (с гидрированным QueryClient и HTTP).
Разметка в обоих случаях совпадает, поэтому гидрация не даёт расхождений.
"""

import json
from html import escape
from typing import Any

from frontend.components.spinner import render_spinner
from shared.query import QueryClient, use_query, use_suspense_query
from shared.rpc import OptionsProxy


USERS_CLIENT_ID = "users-client"


def _stringify(value: Any) -> str:
    # Аналог JSON.stringify: компактно и без экранирования юникода
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def render_users(users: Any) -> str:
    return (
        f'<div id="{USERS_CLIENT_ID}" data-state="success">'
        f"{escape(_stringify(users))}"
        "</div>"
    )


def render_users_error(error: Any) -> str:
    message = getattr(error, "message", None) or str(error) or "Something went wrong"
    return (
        f'<div id="{USERS_CLIENT_ID}" data-state="error" role="alert">'
        f"Failed to load users: {escape(message)}"
        "</div>"
    )


async def users_client_suspense(trpc: OptionsProxy, query_client: QueryClient) -> str:
    """Режим приостановки: ждём данные, ошибка уходит в boundary."""
    result = await use_suspense_query(query_client, trpc.getUsers.query_options())
    return render_users(result.data)


def users_client(trpc: OptionsProxy, query_client: QueryClient) -> str:
    """Ручной режим: пока данных нет - спиннер, при ошибке - сообщение."""
    result = use_query(query_client, trpc.getUsers.query_options())
    if result.is_pending:
        return f'<div id="{USERS_CLIENT_ID}" data-state="pending">{render_spinner()}</div>'
    if result.is_error:
        return render_users_error(result.error)
    return render_users(result.data)
