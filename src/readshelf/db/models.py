"""SQLAlchemy ORM models for the record store.

Tables:
- books: Book records, one row per book in a user's collection
- users: Local accounts used by the session provider
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .schemas import BookStatus


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


class Book(Base):
    """Book model - one entry of a user's reading collection."""

    __tablename__ = "books"

    # Primary key
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    # Ownership; the column keeps the store's name
    owner_id: Mapped[str] = mapped_column("user_id", String(36), nullable=False, index=True)

    # Descriptive metadata, fixed once added
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    authors: Mapped[str] = mapped_column(String(500), nullable=False)
    cover: Mapped[str] = mapped_column(Text, nullable=False)
    isbn: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default=BookStatus.TO_READ.value, nullable=False, index=True
    )

    # Timestamps (ISO datetime)
    added_at: Mapped[str] = mapped_column(String(32), default=utc_now_iso, nullable=False)
    status_changed_at: Mapped[Optional[str]] = mapped_column(String(32))

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}', status={self.status})>"


class User(Base):
    """Local account - email plus salted password hash."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[str] = mapped_column(String(32), default=utc_now_iso)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
