"""Authentication module: local accounts and the active session."""

from .provider import LocalSessionProvider

__all__ = [
    "LocalSessionProvider",
]
