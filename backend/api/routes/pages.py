"""
Страницы, которые рендерятся на сервере.

/            - данные читаются прямо из ORM и выводятся как JSON;
/users       - getUsers предзагружается, кэш передаётся в браузер, UsersClient рендерится из кэша;
/users/lazy  - без предзагрузки: сервер отдаёт спиннер, данные запрашивает браузер;
/dashboard   - то же, что /users, но только для вошедших пользователей.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from backend.api.deps import get_current_user, get_db_dep
from backend.auth.guards import require_auth
from backend.models.user import User
from backend.repositories.user_repository import UserRepository
from backend.rpc.server import ServerRpc, get_server_rpc
from backend.schemas.user import UserOut
from backend.views.layout import render_document
from backend.views.pages import dashboard_body, home_body, users_body
from frontend.components.boundaries import suspense_boundary
from frontend.components.spinner import render_spinner
from frontend.components.users_client import render_users_error, users_client, users_client_suspense
from shared.logging_config import logger


router = APIRouter(tags=["pages"])


@router.get("/", response_class=HTMLResponse, summary="Главная: пользователи напрямую из БД")
def home_page(
    db: Session = Depends(get_db_dep),
    user: Optional[User] = Depends(get_current_user),
) -> HTMLResponse:
    users = [UserOut.model_validate(u).model_dump(mode="json") for u in UserRepository(db).find_many()]
    logger.info("Пользователи для главной страницы: %s", users)
    return HTMLResponse(render_document("Home", home_body(users), user))


async def _render_users_client(rpc: ServerRpc) -> str:
    return await suspense_boundary(
        lambda: users_client_suspense(rpc.trpc, rpc.query_client),
        fallback=render_spinner(),
        error_fallback=render_users_error,
    )


@router.get("/users", response_class=HTMLResponse, summary="Пользователи: предзагрузка + гидрация")
async def users_page(rpc: ServerRpc = Depends(get_server_rpc)) -> HTMLResponse:
    await rpc.prefetch(rpc.trpc.getUsers.query_options())
    state = rpc.dehydrated_state()
    content = await _render_users_client(rpc)
    return HTMLResponse(render_document("Users", users_body(state, content), rpc.ctx.user))


@router.get("/users/lazy", response_class=HTMLResponse, summary="Пользователи: загрузка в браузере")
async def users_lazy_page(rpc: ServerRpc = Depends(get_server_rpc)) -> HTMLResponse:
    # Серверный клиент в ручном режиме ничего не загружает - отдаём спиннер
    content = users_client(rpc.trpc, rpc.query_client)
    state = rpc.dehydrated_state()
    return HTMLResponse(render_document("Users", users_body(state, content, prefetched=False), rpc.ctx.user))


@router.get("/dashboard", response_class=HTMLResponse, summary="Личный кабинет (только для вошедших)")
async def dashboard_page(
    user: User = Depends(require_auth),
    rpc: ServerRpc = Depends(get_server_rpc),
) -> HTMLResponse:
    await rpc.prefetch(
        rpc.trpc.auth.session.query_options(),
        rpc.trpc.getUsers.query_options(),
    )
    state = rpc.dehydrated_state()
    content = await _render_users_client(rpc)
    return HTMLResponse(render_document("Dashboard", dashboard_body(user, state, content), user))
