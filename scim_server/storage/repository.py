"""User repository: the only way the core reaches the relational store.

The core depends on ``UserRepository`` and never on a live database handle.
``SqlAlchemyUserRepository`` implements it with one session (and one
transaction) per operation, so a user row and its email rows are always
committed together.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from scim_server.storage.exceptions import ConstraintViolation, StorageError, UniquenessViolation
from scim_server.storage.models import User

logger = logging.getLogger(__name__)

CONSTRAINT_VIOLATION_DETAIL = "Required attribute missing or invalid"


class UserRepository(ABC):
    """Store operations used by the provisioning service."""

    @abstractmethod
    def get(self, user_id: int) -> Optional[User]:
        """Return the user with its emails, or None."""

    @abstractmethod
    def list(self, user_name: Optional[str] = None) -> list[User]:
        """Return users (with emails) ordered by descending id.

        Args:
            user_name: Exact, case-sensitive userName to match; None for all users
        """

    @abstractmethod
    def add(self, user: User) -> User:
        """Insert a new user and its emails; the store assigns ``user.id``."""

    @abstractmethod
    def update(self, user_id: int, apply: Callable[[User], object]) -> Optional[User]:
        """Load a user, mutate it with ``apply`` and commit once.

        Returns:
            The updated user, or None when ``user_id`` does not exist
        """

    def ping(self) -> bool:
        """Check that the store is reachable."""
        return True


class SqlAlchemyUserRepository(UserRepository):
    """Relational implementation backed by a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    @staticmethod
    def _select_users():
        return select(User).options(selectinload(User.emails))

    def get(self, user_id: int) -> Optional[User]:
        try:
            with self._session_factory() as session:
                return session.scalar(self._select_users().where(User.id == user_id))
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load user {user_id}: {exc}") from exc

    def list(self, user_name: Optional[str] = None) -> list[User]:
        statement = self._select_users().order_by(User.id.desc())
        if user_name is not None:
            statement = statement.where(User.user_name == user_name)
        try:
            with self._session_factory() as session:
                return list(session.scalars(statement))
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to list users: {exc}") from exc

    def add(self, user: User) -> User:
        user_name = user.user_name
        try:
            with self._session_factory() as session:
                session.add(user)
                self._commit(session, user_name, None)
                logger.info("Created user id=%s userName=%s", user.id, user_name)
                return user
        except StorageError:
            raise
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to create user: {exc}") from exc

    def update(self, user_id: int, apply: Callable[[User], object]) -> Optional[User]:
        try:
            with self._session_factory() as session:
                user = session.scalar(self._select_users().where(User.id == user_id))
                if user is None:
                    return None
                apply(user)
                self._commit(session, user.user_name, user_id)
                logger.info("Updated user id=%s userName=%s", user_id, user.user_name)
                return user
        except StorageError:
            raise
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to update user {user_id}: {exc}") from exc

    def ping(self) -> bool:
        try:
            with self._session_factory() as session:
                session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            logger.warning("Store ping failed: %s", exc)
            return False

    def _commit(self, session: Session, user_name: Optional[str], user_id: Optional[int]) -> None:
        """Commit, translating integrity failures into storage exceptions."""
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise self._classify_integrity_error(session, exc, user_name, user_id) from exc

    @staticmethod
    def _classify_integrity_error(
        session: Session,
        exc: IntegrityError,
        user_name: Optional[str],
        user_id: Optional[int],
    ) -> ConstraintViolation:
        # A concurrent writer may have won the race; the unique index decides
        owner_id = None
        if user_name is not None:
            owner_id = session.scalar(select(User.id).where(User.user_name == user_name))
        if owner_id is not None and owner_id != user_id:
            logger.warning("userName conflict: %s already owned by id=%s", user_name, owner_id)
            return UniquenessViolation(f"User with userName '{user_name}' already exists", user_name)
        logger.warning("Constraint violation on user write: %s", exc.orig)
        return ConstraintViolation(CONSTRAINT_VIOLATION_DETAIL)
