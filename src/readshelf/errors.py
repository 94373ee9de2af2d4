"""Exception hierarchy for readshelf.

Read-path failures (loading the collection, searching the catalog) raise
FetchError. Write-path failures (adding or moving a book) raise PersistError.
"""

from typing import Optional


class ReadshelfError(Exception):
    """Base exception for all readshelf errors."""

    pass


class FetchError(ReadshelfError):
    """Raised when reading from the store or the catalog fails."""

    pass


class CatalogError(FetchError):
    """Raised when the catalog search request fails."""

    pass


class PersistError(ReadshelfError):
    """Raised when a write to the store fails.

    The underlying cause is kept so its text can be shown to the user.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class AuthError(ReadshelfError):
    """Raised by session operations (sign up, sign in, sign out)."""

    pass


class StoreError(ReadshelfError):
    """Raised by the record store client when the database call fails."""

    pass
