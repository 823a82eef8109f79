"""SQLAlchemy models for provisioned users and their email addresses.

A User strongly owns its Email rows: emails are only created, updated and
removed through the owning user (``delete-orphan`` cascade), and the email
natural key is the pair (value, user_id).
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Declarative base for all persisted SCIM resources."""


class User(Base):
    """Provisioned user account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Opaque identifier assigned by the identity provider
    external_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    user_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    middle_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    emails: Mapped[list["Email"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Email.value",
    )

    def __repr__(self) -> str:
        return f"<User id={self.id!r} user_name={self.user_name!r} active={self.active!r}>"


class Email(Base):
    """Email address owned by a user."""

    __tablename__ = "emails"

    value: Mapped[str] = mapped_column(String(255), primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    # Free-form label ("work", "personal", ...)
    type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    # Several rows may be primary; callers decide
    primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    user: Mapped[User] = relationship(back_populates="emails")

    def __repr__(self) -> str:
        return f"<Email value={self.value!r} type={self.type!r} primary={self.primary!r}>"
