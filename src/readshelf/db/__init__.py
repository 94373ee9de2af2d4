"""Database module for the book record store."""

from .models import Book, User
from .schemas import (
    BookCreate,
    BookRecord,
    BookStatus,
    SearchResultItem,
    Session,
)
from .store import BookStore, get_store, reset_store

__all__ = [
    "Book",
    "User",
    "BookCreate",
    "BookRecord",
    "BookStatus",
    "SearchResultItem",
    "Session",
    "BookStore",
    "get_store",
    "reset_store",
]
