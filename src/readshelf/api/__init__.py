"""API module for the external book catalog."""

from .google_books import CatalogItem, GoogleBooksClient

__all__ = [
    "CatalogItem",
    "GoogleBooksClient",
]
