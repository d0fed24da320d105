"""
Persistence layer for user records.

All database access goes through UserRepository. SQLAlchemy errors are
classified into UniqueConstraintViolationError (duplicate phone number) and
RepositoryError (everything else); nothing is retried.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .auth import hash_password
from .models import User
from .validators import NewUser, ProfileUpdate

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for unique_violation
PG_UNIQUE_VIOLATION = "23505"


class RepositoryError(Exception):
    """Generic persistence failure."""


class UniqueConstraintViolationError(RepositoryError):
    """A value in a unique column (phone_number) already exists."""


class UserNotFoundError(RepositoryError):
    """No user row matched."""


@dataclass(frozen=True)
class UserFilter:
    user_id: Optional[int] = None
    phone_number: Optional[str] = None

    def is_empty(self) -> bool:
        return self.user_id is None and not self.phone_number


def is_unique_constraint_violation(exc: Exception) -> bool:
    """
    Check whether a database error was raised by a UNIQUE constraint.

    Args:
        exc: Exception raised by SQLAlchemy

    Returns:
        True for PostgreSQL unique_violation (23505) and SQLite
        "UNIQUE constraint failed" errors
    """
    if not isinstance(exc, IntegrityError):
        return False

    orig = exc.orig
    if getattr(orig, "pgcode", None) == PG_UNIQUE_VIOLATION:
        return True
    if getattr(orig, "sqlstate", None) == PG_UNIQUE_VIOLATION:
        return True
    return "unique constraint" in str(orig).lower()


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def _fail(self, exc: SQLAlchemyError, action: str) -> RepositoryError:
        self.db.rollback()
        if is_unique_constraint_violation(exc):
            logger.info("Unique constraint violated while trying to %s", action)
            return UniqueConstraintViolationError(str(exc.orig))
        logger.error("Failed to %s: %s", action, exc)
        return RepositoryError(f"failed to {action}")

    def insert_user(self, new_user: NewUser) -> int:
        user = User(
            full_name=new_user.full_name,
            phone_number=new_user.phone_number,
            password=hash_password(new_user.password),
            created_time=datetime.utcnow(),
            successful_login_count=0,
        )
        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except SQLAlchemyError as e:
            raise self._fail(e, "insert user") from e
        return user.id

    def get_users(self, user_filter: UserFilter) -> List[User]:
        if user_filter.is_empty():
            raise ValueError("user filter cannot be empty")

        query = self.db.query(User)
        if user_filter.phone_number:
            query = query.filter(User.phone_number == user_filter.phone_number)
        if user_filter.user_id is not None:
            query = query.filter(User.id == user_filter.user_id)

        try:
            return query.all()
        except SQLAlchemyError as e:
            raise self._fail(e, "get users") from e

    def get_single_user(self, user_filter: UserFilter) -> User:
        users = self.get_users(user_filter)
        if not users:
            raise UserNotFoundError("user not found")
        return users[0]

    def update_user(self, user_id: int, profile: ProfileUpdate) -> int:
        """
        Apply a partial profile update.

        Args:
            user_id: ID of the user to update
            profile: Fields to change; None fields are left untouched

        Returns:
            Number of rows affected (0 when the user does not exist)
        """
        values = {"updated_time": datetime.utcnow()}
        if profile.full_name is not None:
            values["full_name"] = profile.full_name
        if profile.phone_number is not None:
            values["phone_number"] = profile.phone_number

        try:
            result = self.db.execute(update(User).where(User.id == user_id).values(**values))
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail(e, "update user") from e
        return result.rowcount

    def increment_successful_login_count(self, user_id: int) -> None:
        try:
            result = self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(successful_login_count=User.successful_login_count + 1)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail(e, "increment successful login count") from e

        if result.rowcount == 0:
            raise UserNotFoundError("user not found")
