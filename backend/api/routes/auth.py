"""
Регистрация, вход и выход (HTML-формы).
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, Form, Query
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from backend.api.deps import get_db_dep
from backend.auth.guards import require_unauth, safe_next_path
from backend.auth.session import clear_session_cookie, set_session_cookie
from backend.core.settings import settings
from backend.schemas.user import LoginForm, RegisterForm
from backend.services.user_service import InvalidCredentialsError, UserAlreadyExistsError, UserService
from backend.views.layout import render_document
from frontend.components.auth_forms import login_form, register_form


router = APIRouter(tags=["auth"])


def form_errors(error: ValidationError) -> Dict[str, str]:
    """Ошибки pydantic -> {поле: сообщение}; ошибки всей формы относим к confirm_password."""
    errors: Dict[str, str] = {}
    for item in error.errors():
        loc = item.get("loc") or ()
        field = str(loc[0]) if loc else "confirm_password"
        message = str(item.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, message)
    return errors


def _signup_page(values: Optional[Dict[str, str]] = None, errors: Optional[Dict[str, str]] = None, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(render_document("Sign up", register_form(values, errors)), status_code=status_code)


def _login_page(
    values: Optional[Dict[str, str]] = None,
    errors: Optional[Dict[str, str]] = None,
    next_path: Optional[str] = None,
    status_code: int = 200,
) -> HTMLResponse:
    return HTMLResponse(render_document("Log in", login_form(values, errors, next_path)), status_code=status_code)


@router.get("/signup", response_class=HTMLResponse, summary="Форма регистрации", dependencies=[Depends(require_unauth)])
def signup_page() -> HTMLResponse:
    return _signup_page()


@router.post("/signup", summary="Зарегистрироваться", dependencies=[Depends(require_unauth)])
def signup(
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    db: Session = Depends(get_db_dep),
):
    values = {"name": name, "email": email}
    try:
        form = RegisterForm(name=name, email=email, password=password, confirm_password=confirm_password)
    except ValidationError as e:
        return _signup_page(values, form_errors(e), status_code=400)

    try:
        user = UserService(db).register(form)
    except UserAlreadyExistsError as e:
        return _signup_page(values, {"email": str(e)}, status_code=409)

    response = RedirectResponse(url=settings.AFTER_LOGIN_PATH, status_code=303)
    set_session_cookie(response, user.id)
    return response


@router.get("/login", response_class=HTMLResponse, summary="Форма входа", dependencies=[Depends(require_unauth)])
def login_page(next: Optional[str] = Query(None)) -> HTMLResponse:
    return _login_page(next_path=safe_next_path(next) if next else None)


@router.post("/login", summary="Войти", dependencies=[Depends(require_unauth)])
def login(
    email: str = Form(""),
    password: str = Form(""),
    next: Optional[str] = Form(None),
    db: Session = Depends(get_db_dep),
):
    values = {"email": email}
    next_path = safe_next_path(next) if next else None
    try:
        form = LoginForm(email=email, password=password)
        user = UserService(db).authenticate(form)
    except ValidationError as e:
        return _login_page(values, form_errors(e), next_path, status_code=400)
    except InvalidCredentialsError as e:
        return _login_page(values, {"__all__": str(e)}, next_path, status_code=401)

    response = RedirectResponse(url=safe_next_path(next), status_code=303)
    set_session_cookie(response, user.id)
    return response


@router.post("/logout", summary="Выйти")
def logout() -> RedirectResponse:
    response = RedirectResponse(url=settings.LOGIN_PATH, status_code=303)
    clear_session_cookie(response)
    return response
