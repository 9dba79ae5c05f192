from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from backend.api.deps import get_current_user, get_db_dep
from backend.models.user import User


@dataclass
class RpcContext:
    """Контекст вызова процедуры: сессия БД и текущий пользователь (если вошёл)."""

    db: Session
    user: Optional[User] = None
    request: Optional[Request] = None


def create_context(request: Optional[Request], db: Session, user: Optional[User] = None) -> RpcContext:
    return RpcContext(db=db, user=user, request=request)


def get_rpc_context(
    request: Request,
    db: Session = Depends(get_db_dep),
    user: Optional[User] = Depends(get_current_user),
) -> RpcContext:
    """FastAPI dependency: контекст RPC для текущего HTTP-запроса."""
    return create_context(request, db, user)
