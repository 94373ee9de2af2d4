"""Collection state manager.

Owns the in-memory CollectionState for one session and keeps it in step
with the record store. Every mutation is committed to the store first and
only then reflected locally; there are no optimistic updates.

Operations are coroutines. The store client is blocking, so each call runs
in a worker thread and only the issuing operation waits on it. Operations
are not serialized against each other.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from ..db.schemas import BookCreate, BookRecord, BookStatus, SearchResultItem
from ..db.store import BookStore
from ..errors import FetchError, PersistError, StoreError
from .state import CollectionState

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CollectionStateManager:
    """Manages the status-partitioned collection of one user."""

    def __init__(self, store: BookStore):
        """Initialize manager.

        Args:
            store: Record store client
        """
        self.store = store
        self._state = CollectionState.empty()
        self._owner_id: Optional[str] = None

    @property
    def state(self) -> CollectionState:
        """The current collection. Replaced, never mutated in place."""
        return self._state

    @property
    def owner_id(self) -> Optional[str]:
        """Owner of the currently loaded collection, if any."""
        return self._owner_id

    def reset(self) -> None:
        """Drop the loaded collection, e.g. after the session changes."""
        self._state = CollectionState.empty()
        self._owner_id = None

    async def load(self, owner_id: str) -> CollectionState:
        """Fetch every book of owner_id and replace the state wholesale.

        Raises:
            FetchError: If the store call fails; the previous state is kept
        """
        try:
            records = await asyncio.to_thread(self.store.select_by_owner, owner_id)
        except StoreError as e:
            raise FetchError(f"Could not load books: {e}") from e

        self._state = CollectionState.from_records(records)
        self._owner_id = owner_id
        logger.debug("Loaded %d books for %s", self._state.total(), owner_id)
        return self._state

    async def add(self, owner_id: str, item: SearchResultItem) -> BookRecord:
        """Store a search result as a new TO_READ book and append it locally.

        Not idempotent: adding the same item twice creates two books.

        Raises:
            ValueError: If the item has no title
            PersistError: If the store insert fails; the state is unchanged
        """
        if not item.title or not item.title.strip():
            raise ValueError("A book needs a title")

        row = BookCreate.from_search_item(item, owner_id=owner_id, now=_now())
        try:
            record = await asyncio.to_thread(self.store.insert, row)
        except StoreError as e:
            raise PersistError("Could not add the book", cause=e) from e

        self._state = self._state.with_added(record)
        logger.debug("Added %s (%s) to %s", record.id, record.title, record.status.value)
        return record

    async def move(
        self,
        owner_id: str,
        book_id: str,
        from_status: BookStatus,
        to_status: BookStatus,
    ) -> Optional[BookRecord]:
        """Change a book's status in the store, then move it between buckets.

        Returns None without touching the store when book_id is not in the
        from_status bucket.

        Raises:
            ValueError: If from_status equals to_status
            PersistError: If the store update fails or matches no row owned
                by owner_id; the state is unchanged
        """
        from_status = BookStatus(from_status)
        to_status = BookStatus(to_status)
        if from_status == to_status:
            raise ValueError(f"Book is already in {to_status.label}")

        if self._state.find(book_id, from_status) is None:
            logger.debug("Move of %s ignored: not in %s", book_id, from_status.value)
            return None

        changed_at = _now()
        try:
            updated = await asyncio.to_thread(
                self.store.update_status, book_id, owner_id, to_status, changed_at
            )
        except StoreError as e:
            raise PersistError("Could not update the status", cause=e) from e
        if not updated:
            raise PersistError(
                "Could not update the status",
                cause=LookupError(f"no book {book_id} for this user"),
            )

        # Another operation may have relocated or reloaded the book while the
        # store call was in flight; the latest confirmed write decides.
        current = self._state.find(book_id)
        if current is None:
            logger.debug("Book %s vanished from local state during move", book_id)
            return None

        moved = current.model_copy(
            update={"status": to_status, "status_changed_at": changed_at}
        )
        self._state = self._state.with_moved(moved)
        logger.debug("Moved %s from %s to %s", book_id, from_status.value, to_status.value)
        return moved
