"""
Сервис работы с пользователями: регистрация и проверка логина.
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.core.security import hash_password, verify_password
from backend.models.user import User
from backend.repositories.user_repository import UserRepository
from backend.schemas.user import LoginForm, RegisterForm
from shared.logging_config import logger


class UserServiceError(Exception):
    pass


class UserAlreadyExistsError(UserServiceError):
    pass


class InvalidCredentialsError(UserServiceError):
    pass


DEMO_USERS = [
    ("ada@example.com", "Ada Lovelace"),
    ("alan@example.com", "Alan Turing"),
    ("grace@example.com", "Grace Hopper"),
]


class UserService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = UserRepository(db)

    def register(self, form: RegisterForm) -> User:
        if self.repo.get_by_email(form.email) is not None:
            raise UserAlreadyExistsError("User with this email already exists")
        try:
            user = self.repo.create(
                email=form.email,
                name=form.name,
                password_hash=hash_password(form.password),
            )
        except IntegrityError as e:
            # Параллельная регистрация с тем же email
            self.db.rollback()
            raise UserAlreadyExistsError("User with this email already exists") from e
        logger.info("Зарегистрирован пользователь id=%s email=%s", user.id, user.email)
        return user

    def authenticate(self, form: LoginForm) -> User:
        user = self.repo.get_by_email(form.email)
        if user is None or not verify_password(form.password, user.password_hash):
            logger.info("Неудачная попытка входа: %s", form.email)
            raise InvalidCredentialsError("Invalid email or password")
        return user

    def seed_demo_users(self, password: str = "password123") -> int:
        """Создать демо-пользователей, если таблица пуста. Возвращает количество созданных."""
        if self.repo.count() > 0:
            return 0
        for email, name in DEMO_USERS:
            self.repo.create(email=email, name=name, password_hash=hash_password(password))
        logger.info("Создано демо-пользователей: %s", len(DEMO_USERS))
        return len(DEMO_USERS)
