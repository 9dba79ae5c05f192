"""
Репозиторий пользователей: единственное место, где запросы к таблице users пишутся руками.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from backend.models.user import User


class UserRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_many(self) -> List[User]:
        return self.db.query(User).order_by(User.id.asc()).all()

    def get(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter_by(email=email).first()

    def count(self) -> int:
        return self.db.query(User).count()

    def create(self, email: str, password_hash: str, name: Optional[str] = None, image: Optional[str] = None) -> User:
        user = User(email=email, name=name, password_hash=password_hash, image=image)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user
