"""
Содержимое страниц (без каркаса, см. layout.render_document).
"""

import json
from html import escape
from typing import Any, Dict

from backend.models.user import User
from frontend.components.boundaries import hydration_boundary


def home_body(users: Any) -> str:
    payload = json.dumps(users, separators=(",", ":"), ensure_ascii=False)
    return f'<div class="text-3xl text-center font-bold underline">{escape(payload)}</div>'


def users_body(state: Dict[str, Any], content: str, prefetched: bool = True) -> str:
    hint = (
        "Users were prefetched on the server and hydrated into the browser cache."
        if prefetched
        else "Nothing was prefetched: the browser fetches users after the page loads."
    )
    return f"<h1>Users</h1><p>{hint}</p>{hydration_boundary(state, content)}"


def dashboard_body(user: User, state: Dict[str, Any], content: str) -> str:
    who = escape(user.name or user.email)
    return (
        f"<h1>Welcome, {who}</h1>"
        f"<p>Signed in as {escape(user.email)}.</p>"
        "<h2>All users</h2>"
        f"{hydration_boundary(state, content)}"
    )
