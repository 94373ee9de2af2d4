"""Pytest configuration and shared fixtures.

This module provides fixtures for testing readshelf, including temporary
record stores, signed-in sessions, sample catalog items and a CLI runner.
"""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

import pytest

from readshelf.api.google_books import GoogleBooksClient
from readshelf.app import ShelfApp
from readshelf.auth.provider import LocalSessionProvider
from readshelf.collection.manager import CollectionStateManager
from readshelf.config import reset_config
from readshelf.db.schemas import BookRecord, BookStatus, SearchResultItem
from readshelf.db.store import BookStore, reset_store


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    # Cleanup
    if db_path.exists():
        db_path.unlink()


@pytest.fixture(scope="function")
def store(temp_db_path: Path) -> Generator[BookStore, None, None]:
    """Create a test store instance."""
    reset_store()
    reset_config()

    book_store = BookStore(str(temp_db_path))
    book_store.create_tables()
    yield book_store

    book_store.engine.dispose()
    reset_store()


@pytest.fixture
def session_path(tmp_path: Path) -> Path:
    """Path for the persisted session file."""
    return tmp_path / "session.json"


@pytest.fixture
def provider(store: BookStore, session_path: Path) -> LocalSessionProvider:
    """Session provider backed by the test store."""
    return LocalSessionProvider(store, session_path)


@pytest.fixture
def signed_in(provider: LocalSessionProvider):
    """A registered and signed-in user."""
    provider.sign_up("reader@example.com", "secret-password")
    return provider.sign_in("reader@example.com", "secret-password")


@pytest.fixture
def manager(store: BookStore) -> CollectionStateManager:
    """Collection manager over the test store."""
    return CollectionStateManager(store)


@pytest.fixture
def alerts() -> list[str]:
    """Collects messages passed to the alert callback."""
    return []


@pytest.fixture
def catalog() -> MagicMock:
    """A catalog client whose search is mocked."""
    return MagicMock(spec=GoogleBooksClient)


@pytest.fixture
def shelf_app(provider, catalog, manager, alerts) -> Generator[ShelfApp, None, None]:
    """ShelfApp wired to the test store and a mocked catalog."""
    app = ShelfApp(provider, catalog, manager, alert=alerts.append)
    yield app
    app.close()


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def foundation() -> SearchResultItem:
    """Sample search result."""
    return SearchResultItem(
        external_id="vol-foundation",
        title="Foundation",
        authors="Isaac Asimov",
        cover="https://books.example/foundation.jpg",
        isbn="9780553293357",
        description="The first Foundation novel.",
    )


@pytest.fixture
def dune() -> SearchResultItem:
    """Another sample search result."""
    return SearchResultItem(
        external_id="vol-dune",
        title="Dune",
        authors="Frank Herbert",
    )


@pytest.fixture
def make_record():
    """Factory for committed BookRecords that never touched a store."""

    def _make(
        book_id: str,
        status: BookStatus = BookStatus.TO_READ,
        owner_id: str = "u1",
        title: str = "Dune",
    ) -> BookRecord:
        return BookRecord(
            id=book_id,
            owner_id=owner_id,
            title=title,
            status=status,
            added_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )

    return _make


# ============================================================================
# CLI Testing Fixtures
# ============================================================================


@pytest.fixture
def cli_env(tmp_path: Path) -> Generator[Path, None, None]:
    """Point configuration at a temporary database and session file."""
    reset_store()
    reset_config()
    os.environ["READSHELF_DB_PATH"] = str(tmp_path / "books.db")
    os.environ["READSHELF_SESSION_PATH"] = str(tmp_path / "session.json")

    yield tmp_path

    reset_store()
    reset_config()
    for key in ("READSHELF_DB_PATH", "READSHELF_SESSION_PATH"):
        os.environ.pop(key, None)


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner."""
    from typer.testing import CliRunner
    return CliRunner()
