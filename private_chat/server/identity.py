"""Read-only access to registered user identities."""
from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy.orm import sessionmaker

from ..shared.dto import UserDTO
from .models import User


class IdentityStore(ABC):
    @abstractmethod
    def find_by_username(self, username: str) -> Optional[UserDTO]:
        pass

    @abstractmethod
    def list_all(self) -> List[UserDTO]:
        pass


def _to_dto(user: User) -> UserDTO:
    return UserDTO(username=user.username, avatar=user.avatar, display_name=user.display_name)


class SqlIdentityStore(IdentityStore):
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def find_by_username(self, username: str) -> Optional[UserDTO]:
        db = self.session_factory()
        try:
            user = db.query(User).filter(User.username == username).first()
            return _to_dto(user) if user else None
        finally:
            db.close()

    def list_all(self) -> List[UserDTO]:
        db = self.session_factory()
        try:
            return [_to_dto(user) for user in db.query(User).order_by(User.username).all()]
        finally:
            db.close()
