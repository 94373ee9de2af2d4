"""Pydantic schemas for data validation.

These schemas describe books as they move between the catalog, the record
store and the in-memory collection.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

PLACEHOLDER_COVER = "/placeholder-book.png"
UNKNOWN_AUTHOR = "Unknown author"
UNKNOWN_ISBN = "Unknown ISBN"
NO_DESCRIPTION = "No description"


class BookStatus(str, Enum):
    """Reading status of a book. Closed set."""

    TO_READ = "TO_READ"
    READING = "READING"
    READ = "READ"
    ABANDONED = "ABANDONED"

    @property
    def label(self) -> str:
        """Human-readable name for display."""
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    BookStatus.TO_READ: "To read",
    BookStatus.READING: "Reading",
    BookStatus.READ: "Read",
    BookStatus.ABANDONED: "Abandoned",
}


# ============================================================================
# Book Schemas
# ============================================================================


class BookBase(BaseModel):
    """Descriptive fields shared by search results and stored books."""

    title: str = Field(..., min_length=1, description="Book title")
    authors: str = Field(default=UNKNOWN_AUTHOR, description="Authors, comma separated")
    cover: str = Field(default=PLACEHOLDER_COVER, description="Cover image URL")
    isbn: str = Field(default=UNKNOWN_ISBN)
    description: str = Field(default=NO_DESCRIPTION)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        """Strip surrounding whitespace so blank titles fail min_length."""
        if isinstance(v, str):
            return v.strip()
        return v


class SearchResultItem(BookBase):
    """A transient catalog result that can be added to the collection."""

    external_id: Optional[str] = Field(None, description="Catalog volume ID")


class BookCreate(BookBase):
    """Row sent to the store when a book is added."""

    owner_id: str
    status: BookStatus = Field(default=BookStatus.TO_READ)
    added_at: datetime
    status_changed_at: Optional[datetime] = None

    @classmethod
    def from_search_item(
        cls, item: SearchResultItem, owner_id: str, now: datetime
    ) -> "BookCreate":
        """Build a new TO_READ row for owner_id from a search result."""
        return cls(
            owner_id=owner_id,
            title=item.title,
            authors=item.authors,
            cover=item.cover,
            isbn=item.isbn,
            description=item.description,
            status=BookStatus.TO_READ,
            added_at=now,
        )


class BookRecord(BookBase):
    """A committed book row, including store-generated fields."""

    id: str
    owner_id: str
    status: BookStatus
    added_at: datetime
    status_changed_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "frozen": True}


# ============================================================================
# Session Schemas
# ============================================================================


class Session(BaseModel):
    """An authenticated identity. All store operations are scoped to it."""

    user_id: str
    email: str
    access_token: str
    created_at: datetime
