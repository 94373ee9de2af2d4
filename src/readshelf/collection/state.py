"""Immutable, status-partitioned view of a user's books."""

from collections.abc import Iterable, Iterator, Mapping
from typing import Optional

from ..db.schemas import BookRecord, BookStatus


class CollectionState(Mapping):
    """Mapping from every BookStatus to the ordered tuple of books in it.

    All four statuses are always present. Each book id lives in exactly one
    bucket, the one matching its status. Instances are never mutated;
    with_added and with_moved return a new state.
    """

    __slots__ = ("_buckets",)

    def __init__(self, buckets: Optional[Mapping[BookStatus, Iterable[BookRecord]]] = None):
        buckets = buckets or {}
        self._buckets: dict[BookStatus, tuple[BookRecord, ...]] = {
            status: tuple(buckets.get(status, ())) for status in BookStatus
        }
        for status, books in self._buckets.items():
            for book in books:
                if book.status != status:
                    raise ValueError(
                        f"Book {book.id} has status {book.status.value} "
                        f"but was placed in {status.value}"
                    )

    @classmethod
    def empty(cls) -> "CollectionState":
        """State with four empty buckets."""
        return cls()

    @classmethod
    def from_records(cls, records: Iterable[BookRecord]) -> "CollectionState":
        """Partition records into buckets by their status, keeping order."""
        buckets: dict[BookStatus, list[BookRecord]] = {status: [] for status in BookStatus}
        for record in records:
            buckets[record.status].append(record)
        return cls(buckets)

    # Mapping protocol

    def __getitem__(self, status: BookStatus) -> tuple[BookRecord, ...]:
        return self._buckets[BookStatus(status)]

    def __iter__(self) -> Iterator[BookStatus]:
        return iter(self._buckets)

    def __len__(self) -> int:
        return len(self._buckets)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CollectionState):
            return self._buckets == other._buckets
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._buckets.items()))

    def __repr__(self) -> str:
        counts = ", ".join(f"{s.value}={len(b)}" for s, b in self._buckets.items())
        return f"<CollectionState({counts})>"

    # Queries

    def total(self) -> int:
        """Number of books across all buckets."""
        return sum(len(books) for books in self._buckets.values())

    def find(
        self, book_id: str, status: Optional[BookStatus] = None
    ) -> Optional[BookRecord]:
        """Find a book by id, optionally only within one bucket."""
        statuses = [status] if status is not None else list(self._buckets)
        for s in statuses:
            for book in self._buckets[s]:
                if book.id == book_id:
                    return book
        return None

    # Transitions

    def with_added(self, record: BookRecord) -> "CollectionState":
        """Return a new state with record appended to its status bucket."""
        buckets = dict(self._buckets)
        buckets[record.status] = buckets[record.status] + (record,)
        return CollectionState(buckets)

    def with_moved(self, record: BookRecord) -> "CollectionState":
        """Return a new state with record relocated to its status bucket.

        Any existing copy of the same id is removed from whichever bucket
        holds it, and the record is appended to the end of its new bucket.
        """
        buckets = {
            status: tuple(b for b in books if b.id != record.id)
            for status, books in self._buckets.items()
        }
        buckets[record.status] = buckets[record.status] + (record,)
        return CollectionState(buckets)
