from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.api.deps import get_db_dep
from backend.core.settings import settings
from backend.schemas.common import HealthResponse
from shared.logging_config import logger


router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Проверка состояния сервиса")
def health_check(db: Session = Depends(get_db_dep)) -> HealthResponse:
    database = "ok"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("БД недоступна: %s", e)
        database = "error"
    return HealthResponse(
        status="ok" if database == "ok" else "degraded",
        app=settings.APP_NAME,
        database=database,
    )
