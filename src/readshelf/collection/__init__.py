"""Collection module: the user's books partitioned by reading status."""

from .manager import CollectionStateManager
from .state import CollectionState

__all__ = [
    "CollectionState",
    "CollectionStateManager",
]
