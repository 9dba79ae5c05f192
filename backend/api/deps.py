from typing import Generator, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from backend.core.database import get_db
from backend.core.security import decode_session_token
from backend.core.settings import settings
from backend.models.user import User
from backend.repositories.user_repository import UserRepository


def get_db_dep() -> Generator[Session, None, None]:
    """FastAPI dependency для доступа к БД."""
    with get_db() as db:
        yield db


def get_current_user(request: Request, db: Session = Depends(get_db_dep)) -> Optional[User]:
    """Пользователь из cookie сессии или None."""
    user_id = decode_session_token(request.cookies.get(settings.SESSION_COOKIE_NAME))
    if user_id is None:
        return None
    return UserRepository(db).get(user_id)
