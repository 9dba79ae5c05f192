from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from backend.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(100))
    # PBKDF2-хэш пароля, см. backend.core.security
    password_hash = Column(String(255), nullable=False)
    email_verified = Column(Boolean, default=False)
    # URL аватара
    image = Column(String(500))
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email!r})"
