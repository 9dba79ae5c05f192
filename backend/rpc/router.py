"""
Корневой роутер процедур приложения.

getUsers      - публичный query без входных параметров, список пользователей;
auth.session  - защищённый query, текущий пользователь.
"""

from typing import List

from backend.repositories.user_repository import UserRepository
from backend.rpc.context import RpcContext
from backend.schemas.user import UserOut
from shared.rpc import Router, protected_procedure, public_procedure


def get_users(ctx: RpcContext, _input: None) -> List[UserOut]:
    users = UserRepository(ctx.db).find_many()
    return [UserOut.model_validate(u) for u in users]


def get_session(ctx: RpcContext, _input: None) -> UserOut:
    return UserOut.model_validate(ctx.user)


app_router = Router(
    {
        "getUsers": public_procedure.output(List[UserOut]).query(get_users),
        "auth": Router(
            {
                "session": protected_procedure.output(UserOut).query(get_session),
            }
        ),
    }
)
