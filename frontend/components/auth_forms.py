"""
Формы входа и регистрации.
"""

from html import escape
from typing import Dict, Optional


def _field(name: str, label: str, type: str, value: str = "", error: Optional[str] = None) -> str:
    value_attr = f' value="{escape(value)}"' if value and type != "password" else ""
    error_html = f'<p class="field-error" id="{name}-error">{escape(error)}</p>' if error else ""
    invalid = ' aria-invalid="true"' if error else ""
    return (
        '<div class="field">'
        f'<label for="{name}">{escape(label)}</label>'
        f'<input id="{name}" name="{name}" type="{type}"{value_attr}{invalid} required>'
        f"{error_html}"
        "</div>"
    )


def _form_error(errors: Dict[str, str]) -> str:
    message = errors.get("__all__")
    return f'<p class="form-error" role="alert">{escape(message)}</p>' if message else ""


def register_form(values: Optional[Dict[str, str]] = None, errors: Optional[Dict[str, str]] = None) -> str:
    values = values or {}
    errors = errors or {}
    return (
        '<form class="auth-form" method="post" action="/signup">'
        "<h1>Create an account</h1>"
        f"{_form_error(errors)}"
        f'{_field("name", "Name", "text", values.get("name", ""), errors.get("name"))}'
        f'{_field("email", "Email", "email", values.get("email", ""), errors.get("email"))}'
        f'{_field("password", "Password", "password", error=errors.get("password"))}'
        f'{_field("confirm_password", "Confirm password", "password", error=errors.get("confirm_password"))}'
        '<button type="submit">Sign up</button>'
        '<p>Already have an account? <a href="/login">Log in</a></p>'
        "</form>"
    )


def login_form(
    values: Optional[Dict[str, str]] = None,
    errors: Optional[Dict[str, str]] = None,
    next_path: Optional[str] = None,
) -> str:
    values = values or {}
    errors = errors or {}
    next_input = f'<input type="hidden" name="next" value="{escape(next_path)}">' if next_path else ""
    return (
        '<form class="auth-form" method="post" action="/login">'
        "<h1>Log in</h1>"
        f"{_form_error(errors)}"
        f"{next_input}"
        f'{_field("email", "Email", "email", values.get("email", ""), errors.get("email"))}'
        f'{_field("password", "Password", "password", error=errors.get("password"))}'
        '<button type="submit">Log in</button>'
        '<p>No account yet? <a href="/signup">Sign up</a></p>'
        "</form>"
    )
