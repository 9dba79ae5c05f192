from typing import List

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Глобальные настройки веб-приложения.

    Все чувствительные значения берутся из переменных окружения / .env.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        # Чужие переменные окружения игнорируем, чтобы не было ValidationError при старте
        extra="ignore",
    )

    # Общие
    APP_NAME: str = "Hydration Demo"
    API_V1_PREFIX: str = "/api/v1"
    # Префикс HTTP-адаптера RPC
    RPC_PREFIX: str = "/api/trpc"

    # CORS / внешние клиенты
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    # БД
    DATABASE_URL: str = "sqlite:///./data/app.db"
    # Создать демо-пользователей при старте, если таблица пуста
    SEED_DEMO_USERS: bool = False

    # Сессии
    SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    SESSION_COOKIE_NAME: str = "session"
    SESSION_TTL_MINUTES: int = 60 * 24 * 7
    SESSION_COOKIE_SECURE: bool = False
    PASSWORD_HASH_ITERATIONS: int = 390000

    # Куда отправлять неавторизованных и уже авторизованных пользователей
    LOGIN_PATH: str = "/login"
    AFTER_LOGIN_PATH: str = "/"

    # Кэш запросов на сервере
    QUERY_STALE_TIME_SECONDS: float = 60.0


settings = Settings()
