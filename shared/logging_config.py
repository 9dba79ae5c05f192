"""
Логирование веб-приложения.

Все модули пишут в дерево логгеров "web": приложение - в "web", слой кэша
запросов - в "web.query", RPC - в "web.rpc" (см. get_logger).

Вывод идёт в консоль (docker logs) и, если LOG_TO_FILE не выключен, в ротируемый
файл LOG_DIR/web.log.

Переменные окружения:
- LOG_DIR - каталог логов (data/logs)
- LOG_TO_FILE - писать ли файл логов (true)
- LOG_MAX_BYTES / LOG_BACKUP_COUNT - ротация файла (10MB, 5 файлов)
- LOG_LEVEL - уровень логирования (INFO)
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import List


ROOT_LOGGER_NAME = "web"

LOG_DIR = os.getenv("LOG_DIR", "data/logs")
LOG_FILE = os.path.join(LOG_DIR, "web.log")
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "true").lower() == "true"
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", str(10 * 1024 * 1024)))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Библиотеки, которые слишком многословны на INFO
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine")

_configured = False


def _build_handlers() -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if LOG_TO_FILE:
        os.makedirs(LOG_DIR, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                LOG_FILE,
                maxBytes=LOG_MAX_BYTES,
                backupCount=LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        )
    return handlers


def setup_logging() -> logging.Logger:
    """Настроить корневой логгер один раз за процесс и вернуть логгер приложения."""
    global _configured

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if _configured:
        return logger

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    root_logger = logging.getLogger()
    root_logger.setLevel(LOG_LEVEL)
    for handler in _build_handlers():
        handler.setLevel(LOG_LEVEL)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
    if LOG_TO_FILE:
        logger.info(
            "Логирование инициализировано: уровень %s, файл %s (maxBytes=%s, backupCount=%s)",
            LOG_LEVEL,
            LOG_FILE,
            LOG_MAX_BYTES,
            LOG_BACKUP_COUNT,
        )
    else:
        logger.info("Логирование инициализировано: уровень %s, только консоль", LOG_LEVEL)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Дочерний логгер подсистемы, например get_logger("query") -> "web.query"."""
    setup_logging()
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


# Глобальный логгер
logger = setup_logging()
