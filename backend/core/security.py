"""
Хэширование паролей и токены сессии.

Пароль хранится как "pbkdf2_sha256$<итерации>$<соль hex>$<хэш hex>".
Сессия - JWT в cookie, sub = id пользователя.
"""

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from backend.core.settings import settings
from shared.logging_config import logger


PBKDF2_ALGORITHM = "pbkdf2_sha256"


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    iterations = iterations or settings.PASSWORD_HASH_ITERATIONS
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), iterations)
    return f"{PBKDF2_ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        algorithm, iterations, salt, expected = password_hash.split("$")
        if algorithm != PBKDF2_ALGORITHM:
            return False
        digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), int(iterations))
    except (ValueError, AttributeError):
        # Повреждённый хэш считаем несовпадением
        return False
    return hmac.compare_digest(digest.hex(), expected)


def create_session_token(user_id: int, ttl_minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    ttl = ttl_minutes if ttl_minutes is not None else settings.SESSION_TTL_MINUTES
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=ttl),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_session_token(token: Optional[str]) -> Optional[int]:
    """Вернуть id пользователя из токена или None, если токен невалиден/истёк."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Токен сессии истёк")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning("Невалидный токен сессии: %s", e)
        return None
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
