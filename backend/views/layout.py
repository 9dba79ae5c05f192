"""
Общий каркас HTML-страниц.
"""

from html import escape
from typing import Optional

from backend.core.settings import settings
from backend.models.user import User


STYLES = """
body { font-family: system-ui, sans-serif; margin: 0; padding: 0 1rem; }
nav { display: flex; gap: 1rem; align-items: center; padding: 1rem 0; border-bottom: 1px solid #ddd; }
nav form { margin-left: auto; }
main { padding: 1rem 0; }
.text-3xl { font-size: 1.875rem; }
.text-center { text-align: center; }
.font-bold { font-weight: 700; }
.underline { text-decoration: underline; }
.spinner-circle { display: inline-block; width: 1rem; height: 1rem; border: 2px solid #999;
  border-top-color: transparent; border-radius: 50%; animation: spin 1s linear infinite; }
.sr-only { position: absolute; width: 1px; height: 1px; overflow: hidden; clip: rect(0, 0, 0, 0); }
.field-error, .form-error, .error-boundary { color: #b00020; }
@keyframes spin { to { transform: rotate(360deg); } }
"""


def render_nav(user: Optional[User]) -> str:
    links = [
        '<a href="/">Home</a>',
        '<a href="/users">Users</a>',
        '<a href="/users/lazy">Users (no prefetch)</a>',
        '<a href="/dashboard">Dashboard</a>',
    ]
    if user is None:
        links.append(f'<a href="{escape(settings.LOGIN_PATH)}">Log in</a>')
        links.append('<a href="/signup">Sign up</a>')
        return f"<nav>{''.join(links)}</nav>"
    who = escape(user.name or user.email)
    logout = (
        '<form method="post" action="/logout">'
        f'<span class="who">{who}</span> <button type="submit">Log out</button>'
        "</form>"
    )
    return f"<nav>{''.join(links)}{logout}</nav>"


def render_document(title: str, body: str, user: Optional[User] = None) -> str:
    return (
        "<!DOCTYPE html>"
        '<html lang="en">'
        "<head>"
        '<meta charset="utf-8">'
        '<meta name="viewport" content="width=device-width, initial-scale=1">'
        f"<title>{escape(title)} | {escape(settings.APP_NAME)}</title>"
        f"<style>{STYLES}</style>"
        '<script src="/static/client.js" defer></script>'
        "</head>"
        f'<body data-rpc-prefix="{escape(settings.RPC_PREFIX)}">'
        f"{render_nav(user)}"
        f"<main>{body}</main>"
        "</body>"
        "</html>"
    )
