"""Relational store for provisioned users (SQLAlchemy)."""
from .database import create_db_engine, create_session_factory, init_db
from .exceptions import ConstraintViolation, StorageError, UniquenessViolation
from .models import Base, Email, User
from .repository import SqlAlchemyUserRepository, UserRepository

__all__ = [
    "Base",
    "ConstraintViolation",
    "Email",
    "SqlAlchemyUserRepository",
    "StorageError",
    "UniquenessViolation",
    "User",
    "UserRepository",
    "create_db_engine",
    "create_session_factory",
    "init_db",
]
