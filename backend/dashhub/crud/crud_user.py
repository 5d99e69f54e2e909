"""CRUD operations for User model."""
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from dashhub.core.enums import Role
from dashhub.core.security import get_password_hash
from dashhub.crud.base import CRUDBase
from dashhub.models.user import User


class CRUDUser(CRUDBase[User, BaseModel, BaseModel]):
    """CRUD operations for User."""

    def get_by_email(self, db: Session, *, email: str) -> Optional[User]:
        """Get user by email."""
        return db.query(User).filter(User.email == email).first()

    def get_role(self, db: Session, *, user_id: int) -> Optional[Role]:
        """Resolve the role of a user; None when the user does not exist or the stored role is unknown."""
        row = db.query(User.role).filter(User.id == user_id).first()
        if row is None:
            return None
        try:
            return Role(row[0])
        except ValueError:
            return None

    def create_user(
        self, db: Session, *, email: str, name: str, password: str, role: Role = Role.VIEWER
    ) -> User:
        """Create new user with hashed password."""
        db_obj = User(
            email=email,
            name=name,
            password_hash=get_password_hash(password),
            role=Role(role).value,
            is_active=True,
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj


user = CRUDUser(User)
