"""
Охрана страниц по состоянию сессии.

require_auth - страница только для вошедших: иначе редирект на LOGIN_PATH?next=<путь>.
require_unauth - страница только для гостей (вход/регистрация): иначе редирект на AFTER_LOGIN_PATH.
"""

from typing import Optional
from urllib.parse import urlencode

from fastapi import Depends, Request
from fastapi.responses import RedirectResponse

from backend.api.deps import get_current_user
from backend.core.settings import settings
from backend.models.user import User
from shared.logging_config import logger


class RedirectRequired(Exception):
    def __init__(self, location: str, status_code: int = 303) -> None:
        self.location = location
        self.status_code = status_code
        super().__init__(location)


def safe_next_path(value: Optional[str], default: Optional[str] = None) -> str:
    """Разрешаем редирект только на относительный путь этого же сайта."""
    default = default or settings.AFTER_LOGIN_PATH
    if not value or not value.startswith("/") or value.startswith("//") or "\\" in value:
        return default
    return value


def login_redirect_location(request: Request) -> str:
    next_path = request.url.path
    if request.url.query:
        next_path = f"{next_path}?{request.url.query}"
    return f"{settings.LOGIN_PATH}?{urlencode({'next': next_path})}"


def require_auth(request: Request, user: Optional[User] = Depends(get_current_user)) -> User:
    if user is None:
        logger.debug("Нет сессии для %s, редирект на страницу входа", request.url.path)
        raise RedirectRequired(login_redirect_location(request))
    return user


def require_unauth(user: Optional[User] = Depends(get_current_user)) -> None:
    if user is not None:
        raise RedirectRequired(settings.AFTER_LOGIN_PATH)


async def redirect_required_handler(request: Request, exc: RedirectRequired) -> RedirectResponse:
    return RedirectResponse(url=exc.location, status_code=exc.status_code)
