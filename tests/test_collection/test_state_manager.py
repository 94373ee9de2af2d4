"""Tests for the collection state manager."""

import asyncio
import time
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from readshelf.collection.manager import CollectionStateManager
from readshelf.collection.state import CollectionState
from readshelf.db.schemas import BookCreate, BookRecord, BookStatus, SearchResultItem
from readshelf.db.store import BookStore
from readshelf.errors import FetchError, PersistError, StoreError


def assert_consistent(state: CollectionState) -> None:
    """Every status key present, every id once, bucket matches status."""
    assert set(state.keys()) == set(BookStatus)
    seen = []
    for status in BookStatus:
        for book in state[status]:
            assert book.status == status
            seen.append(book.id)
    assert len(seen) == len(set(seen))


def seed(store: BookStore, owner_id: str, title: str, status=BookStatus.TO_READ):
    return store.insert(
        BookCreate(
            owner_id=owner_id,
            title=title,
            status=status,
            added_at=datetime.now(timezone.utc),
        )
    )


class TestLoad:
    """Tests for loading the collection."""

    @pytest.mark.asyncio
    async def test_load_partitions_rows(self, store, manager):
        """Test that load groups the owner's rows by status."""
        dune = seed(store, "u1", "Dune")
        emma = seed(store, "u1", "Emma", BookStatus.READ)
        seed(store, "u2", "Someone else's book")

        state = await manager.load("u1")

        assert [b.id for b in state[BookStatus.TO_READ]] == [dune.id]
        assert [b.id for b in state[BookStatus.READ]] == [emma.id]
        assert state[BookStatus.READING] == ()
        assert state[BookStatus.ABANDONED] == ()
        assert manager.owner_id == "u1"
        assert_consistent(state)

    @pytest.mark.asyncio
    async def test_load_replaces_wholesale(self, store, manager, foundation):
        """Test that load discards whatever was held locally."""
        await manager.add("u1", foundation)
        seed(store, "u2", "Other")

        state = await manager.load("u2")

        assert state.total() == 1
        assert state[BookStatus.TO_READ][0].title == "Other"

    @pytest.mark.asyncio
    async def test_load_failure_keeps_previous_state(self, manager, foundation):
        """Test that a failed load raises FetchError and keeps the old state."""
        await manager.add("u1", foundation)
        before = manager.state

        manager.store = MagicMock()
        manager.store.select_by_owner.side_effect = StoreError("connection refused")

        with pytest.raises(FetchError, match="connection refused"):
            await manager.load("u1")

        assert manager.state is before

    @pytest.mark.asyncio
    async def test_first_load_failure_leaves_empty_state(self):
        """Test that a failing first load leaves four empty buckets."""
        store = MagicMock()
        store.select_by_owner.side_effect = StoreError("boom")
        manager = CollectionStateManager(store)

        with pytest.raises(FetchError):
            await manager.load("u1")

        assert manager.state == CollectionState.empty()
        assert manager.owner_id is None


class TestAdd:
    """Tests for adding books."""

    @pytest.mark.asyncio
    async def test_add_appends_to_to_read(self, store, manager, foundation):
        """Test that add stores a TO_READ row and appends it locally."""
        record = await manager.add("u1", foundation)

        assert record.status == BookStatus.TO_READ
        assert record.owner_id == "u1"
        assert record.title == "Foundation"
        assert record.status_changed_at is None
        assert manager.state[BookStatus.TO_READ] == (record,)
        assert store.get_book(record.id) == record

    @pytest.mark.asyncio
    async def test_add_uses_store_generated_id(self, foundation):
        """Test that the id comes from the store's insert."""
        store = MagicMock()
        store.insert.side_effect = lambda row: _committed(row, "42")
        manager = CollectionStateManager(store)

        record = await manager.add("u1", SearchResultItem(title="Foundation", authors="Asimov"))

        assert record.id == "42"
        assert [b.id for b in manager.state[BookStatus.TO_READ]] == ["42"]
        assert manager.state[BookStatus.TO_READ][0].status == BookStatus.TO_READ

    @pytest.mark.asyncio
    async def test_add_twice_creates_two_books(self, manager, foundation):
        """Test that add is not idempotent."""
        first = await manager.add("u1", foundation)
        second = await manager.add("u1", foundation)

        assert first.id != second.id
        assert [b.id for b in manager.state[BookStatus.TO_READ]] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_add_preserves_order(self, manager, foundation, dune):
        """Test that books are appended in insertion order."""
        await manager.add("u1", dune)
        await manager.add("u1", foundation)

        titles = [b.title for b in manager.state[BookStatus.TO_READ]]
        assert titles == ["Dune", "Foundation"]

    @pytest.mark.asyncio
    async def test_add_failure_leaves_state(self, foundation):
        """Test that a failed insert raises PersistError with the cause."""
        store = MagicMock()
        store.insert.side_effect = StoreError("disk full")
        manager = CollectionStateManager(store)

        with pytest.raises(PersistError, match="disk full") as exc_info:
            await manager.add("u1", foundation)

        assert isinstance(exc_info.value.cause, StoreError)
        assert manager.state == CollectionState.empty()

    @pytest.mark.asyncio
    async def test_add_requires_title(self, manager):
        """Test that an item without a title is rejected."""
        item = SearchResultItem.model_construct(title="   ")

        with pytest.raises(ValueError, match="title"):
            await manager.add("u1", item)


class TestMove:
    """Tests for moving books between statuses."""

    @pytest.mark.asyncio
    async def test_move_relocates_book(self, store, manager, foundation, dune):
        """Test that move updates the store and both buckets."""
        book = await manager.add("u1", foundation)
        other = await manager.add("u1", dune)
        await manager.move("u1", other.id, BookStatus.TO_READ, BookStatus.READ)

        moved = await manager.move("u1", book.id, BookStatus.TO_READ, BookStatus.READ)

        assert moved.status == BookStatus.READ
        assert moved.status_changed_at >= book.added_at
        assert manager.state[BookStatus.TO_READ] == ()
        assert [b.id for b in manager.state[BookStatus.READ]] == [other.id, book.id]
        assert store.get_book(book.id).status == BookStatus.READ
        assert_consistent(manager.state)

    @pytest.mark.asyncio
    async def test_move_refreshes_timestamp(self, manager, foundation):
        """Test that every move refreshes status_changed_at."""
        book = await manager.add("u1", foundation)
        first = await manager.move("u1", book.id, BookStatus.TO_READ, BookStatus.READING)
        second = await manager.move("u1", book.id, BookStatus.READING, BookStatus.ABANDONED)

        assert second.status_changed_at >= first.status_changed_at
        assert manager.state.find(book.id).status == BookStatus.ABANDONED

    @pytest.mark.asyncio
    async def test_move_absent_is_noop(self, manager, foundation):
        """Test that moving a book not in from_status changes nothing."""
        book = await manager.add("u1", foundation)
        manager.store = MagicMock(wraps=manager.store)
        before = manager.state

        result = await manager.move("u1", book.id, BookStatus.READING, BookStatus.READ)

        assert result is None
        assert manager.state is before
        manager.store.update_status.assert_not_called()

    @pytest.mark.asyncio
    async def test_move_same_status_rejected(self, manager, foundation):
        """Test that from_status must differ from to_status."""
        book = await manager.add("u1", foundation)

        with pytest.raises(ValueError):
            await manager.move("u1", book.id, BookStatus.TO_READ, BookStatus.TO_READ)

    @pytest.mark.asyncio
    async def test_move_failure_leaves_state(self, manager, foundation):
        """Test that a failed update keeps the book where it was."""
        book = await manager.add("u1", foundation)
        manager.store = MagicMock()
        manager.store.update_status.side_effect = StoreError("network error")

        with pytest.raises(PersistError, match="network error"):
            await manager.move("u1", book.id, BookStatus.TO_READ, BookStatus.READ)

        assert [b.id for b in manager.state[BookStatus.TO_READ]] == [book.id]
        assert manager.state[BookStatus.READ] == ()

    @pytest.mark.asyncio
    async def test_move_other_owner_rejected(self, store, manager, foundation):
        """Test that the update is scoped to the owner."""
        book = await manager.add("u1", foundation)

        with pytest.raises(PersistError, match="no book"):
            await manager.move("intruder", book.id, BookStatus.TO_READ, BookStatus.READ)

        assert store.get_book(book.id).status == BookStatus.TO_READ
        assert manager.state.find(book.id).status == BookStatus.TO_READ

    @pytest.mark.asyncio
    async def test_concurrent_moves_last_response_wins(self, make_record):
        """Test that the store response landing last decides the bucket."""
        store = MagicMock()
        store.select_by_owner.return_value = [make_record("1")]

        def slow_update(book_id, owner_id, status, changed_at):
            # READING is slow, so the READ response lands first
            if status == BookStatus.READING:
                time.sleep(0.2)
            return True

        store.update_status.side_effect = slow_update
        manager = CollectionStateManager(store)
        await manager.load("u1")

        results = await asyncio.gather(
            manager.move("u1", "1", BookStatus.TO_READ, BookStatus.READING),
            manager.move("u1", "1", BookStatus.TO_READ, BookStatus.READ),
        )

        assert all(r is not None for r in results)
        assert manager.state.find("1").status == BookStatus.READING
        assert_consistent(manager.state)
        assert manager.state.total() == 1


def _committed(row: BookCreate, book_id: str) -> BookRecord:
    return BookRecord(id=book_id, **row.model_dump())
