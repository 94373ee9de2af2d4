"""Record store operations.

Handles database connection, session management, and the small set of
operations the collection needs: select by owner, insert, and a status
update scoped to the owning user.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from pydantic import ValidationError
from sqlalchemy import create_engine, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import StoreError
from .models import Base, Book, User
from .schemas import BookCreate, BookRecord, BookStatus

logger = logging.getLogger(__name__)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


class BookStore:
    """Database connection and book record operations."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. If None, uses the
                     configured READSHELF_DB_PATH.
        """
        if db_path is None:
            from ..config import get_config

            db_path = str(get_config().db_path)

        self.db_path = Path(db_path)
        self._is_memory = str(db_path) == ":memory:"

        if not self._is_memory:
            self._ensure_directory()

        # For in-memory databases, use StaticPool to reuse the same connection
        # This ensures all sessions share the same in-memory database
        if self._is_memory:
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                connect_args={"check_same_thread": False},
            )
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager.

        SQLAlchemy errors are rolled back and re-raised as StoreError.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(str(e.orig) if getattr(e, "orig", None) else str(e)) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ========================================================================
    # Book Operations
    # ========================================================================

    def select_by_owner(self, owner_id: str) -> list[BookRecord]:
        """Get every book belonging to owner_id, oldest first.

        Raises:
            StoreError: If the query fails or a stored row is not a valid book
        """
        with self.get_session() as s:
            stmt = (
                select(Book)
                .where(Book.owner_id == owner_id)
                .order_by(Book.added_at, Book.id)
            )
            rows = s.execute(stmt).scalars().all()
            try:
                return [BookRecord.model_validate(row) for row in rows]
            except ValidationError as e:
                raise StoreError(f"Invalid book row for owner {owner_id}: {e}") from e

    def insert(self, book: BookCreate) -> BookRecord:
        """Insert a book and return the committed row with its generated id."""
        with self.get_session() as s:
            db_book = Book(
                owner_id=book.owner_id,
                title=book.title,
                authors=book.authors,
                cover=book.cover,
                isbn=book.isbn,
                description=book.description,
                status=book.status.value,
                added_at=_iso(book.added_at),
                status_changed_at=_iso(book.status_changed_at),
            )
            s.add(db_book)
            s.flush()
            record = BookRecord.model_validate(db_book)

        logger.debug("Inserted book %s for owner %s", record.id, record.owner_id)
        return record

    def update_status(
        self, book_id: str, owner_id: str, status: BookStatus, changed_at
    ) -> bool:
        """Set status and status_changed_at on one book.

        The update is filtered by both id and owner, so it can never touch
        another user's row.

        Returns:
            True if a row was updated, False if no row matched
        """
        with self.get_session() as s:
            stmt = (
                update(Book)
                .where(Book.id == book_id, Book.owner_id == owner_id)
                .values(status=status.value, status_changed_at=_iso(changed_at))
            )
            result = s.execute(stmt)
            return result.rowcount > 0

    def get_book(self, book_id: str) -> Optional[BookRecord]:
        """Get a book by ID regardless of owner.

        Not used by the collection, which reads through select_by_owner;
        kept for checking what actually reached the database.
        """
        with self.get_session() as s:
            book = s.get(Book, book_id)
            return BookRecord.model_validate(book) if book else None

    # ========================================================================
    # User Operations
    # ========================================================================

    def create_user(self, email: str, password_hash: str) -> User:
        """Create a local account.

        Raises:
            StoreError: If the email is already registered
        """
        try:
            with self.get_session() as s:
                user = User(email=email, password_hash=password_hash)
                s.add(user)
                s.flush()
                s.expunge(user)
                return user
        except StoreError as e:
            if isinstance(e.__cause__, IntegrityError):
                raise StoreError(f"Email already registered: {email}") from e
            raise

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get an account by email."""
        with self.get_session() as s:
            user = s.execute(select(User).where(User.email == email)).scalar_one_or_none()
            if user:
                s.expunge(user)
            return user

    def get_user(self, user_id: str) -> Optional[User]:
        """Get an account by ID."""
        with self.get_session() as s:
            user = s.get(User, user_id)
            if user:
                s.expunge(user)
            return user


# Global store instance
_store: Optional[BookStore] = None


def get_store(db_path: Optional[str] = None) -> BookStore:
    """Get or create the global store instance."""
    global _store
    if _store is None:
        _store = BookStore(db_path)
        _store.create_tables()
    return _store


def reset_store() -> None:
    """Reset the global store instance. Used for testing."""
    global _store
    _store = None
