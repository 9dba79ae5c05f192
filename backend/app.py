from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from backend.api.routes.auth import router as auth_router
from backend.api.routes.health import router as health_router
from backend.api.routes.pages import router as pages_router
from backend.api.routes.rpc import router as rpc_router
from backend.auth.guards import RedirectRequired, redirect_required_handler
from backend.core.database import get_db, init_db
from backend.core.settings import settings
from backend.services.user_service import UserService
from shared.logging_config import logger


STATIC_DIR = Path(__file__).resolve().parent.parent / "frontend" / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if settings.SEED_DEMO_USERS:
        with get_db() as db:
            UserService(db).seed_demo_users()
    logger.info("%s запущен", settings.APP_NAME)
    yield


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Охрана страниц сообщает о редиректе исключением
    app.add_exception_handler(RedirectRequired, redirect_required_handler)

    app.mount("/static", StaticFiles(directory=STATIC_DIR, check_dir=False), name="static")

    # Базовый префикс API v1
    prefix = settings.API_V1_PREFIX
    app.include_router(health_router, prefix=prefix)
    app.include_router(rpc_router)
    app.include_router(auth_router)
    app.include_router(pages_router)

    return app


app = create_app()
