import os
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from backend.core.settings import settings
from shared.logging_config import logger


Base = declarative_base()


def _safe_url(url: str) -> str:
    """URL БД для логов (без пароля)."""
    if "@" not in url or "://" not in url:
        return url
    scheme, rest = url.split("://", 1)
    auth_part, host_part = rest.rsplit("@", 1)
    user = auth_part.split(":", 1)[0]
    return f"{scheme}://{user}:***@{host_part}"


def make_engine(url: str) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # SQLite-соединение используется из потоков FastAPI
        connect_args["check_same_thread"] = False
        if ":///" in url:
            path = url.split(":///", 1)[1]
            db_dir = os.path.dirname(path)
            if path != ":memory:" and db_dir:
                os.makedirs(db_dir, exist_ok=True)
    logger.info("🔗 URL базы данных: %s", _safe_url(url))
    return create_engine(url, connect_args=connect_args)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def get_db() -> Generator[Session, None, None]:
    """Синхронная сессия БД."""
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """Создать таблицы, если их ещё нет."""
    # Модели должны быть импортированы, чтобы попасть в metadata
    from backend.models import user  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
