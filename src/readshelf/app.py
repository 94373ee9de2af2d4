"""Application facade used by the presentation layer.

ShelfApp wires the session provider, the catalog client and the collection
manager together and turns their exceptions into Outcome values. Failures
fall into two tiers:

- read path (load_collection, search_catalog): logged only; the caller
  keeps showing the stale or empty view
- write path (add_to_collection, move_book): logged and passed to the
  alert callback with the underlying cause
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from pydantic import ValidationError

from .api.google_books import GoogleBooksClient
from .auth.provider import LocalSessionProvider
from .collection.manager import CollectionStateManager
from .collection.state import CollectionState
from .db.schemas import BookStatus, SearchResultItem, Session
from .errors import AuthError, FetchError, PersistError

logger = logging.getLogger(__name__)

Alert = Callable[[str], None]


@dataclass
class Outcome:
    """Result of a presentation-facing operation."""

    ok: bool
    message: str = ""
    value: Any = None


@dataclass
class AppContext:
    """Session plus collection state, shared with the presentation layer."""

    manager: CollectionStateManager
    session: Optional[Session] = None
    search_results: list[SearchResultItem] = field(default_factory=list)

    @property
    def collection(self) -> CollectionState:
        return self.manager.state


class ShelfApp:
    """Presentation-facing operations over one user's reading collection."""

    def __init__(
        self,
        provider: LocalSessionProvider,
        catalog: GoogleBooksClient,
        manager: CollectionStateManager,
        alert: Optional[Alert] = None,
        search_limit: int = 5,
    ):
        self.provider = provider
        self.catalog = catalog
        self.alert = alert or (lambda message: None)
        self.search_limit = search_limit
        self.context = AppContext(manager=manager, session=provider.get_current_session())
        self._unsubscribe = provider.on_session_change(self._on_session_change)

    def close(self) -> None:
        """Stop listening for session changes."""
        self._unsubscribe()

    def _on_session_change(self, session: Optional[Session]) -> None:
        self.context.session = session
        self.context.search_results = []
        self.context.manager.reset()

    def _require_session(self) -> Session:
        if self.context.session is None:
            raise AuthError("Not signed in")
        return self.context.session

    def _fail_write(self, what: str, error: Exception) -> Outcome:
        logger.error("%s failed: %s", what, error)
        message = f"{what} failed: {error}"
        self.alert(message)
        return Outcome(ok=False, message=message)

    # ========================================================================
    # Session
    # ========================================================================

    def sign_up(self, email: str, password: str) -> Outcome:
        try:
            user_id = self.provider.sign_up(email, password)
        except AuthError as e:
            self.alert(str(e))
            return Outcome(ok=False, message=str(e))
        return Outcome(ok=True, message="Account created, you can sign in now", value=user_id)

    async def sign_in(self, email: str, password: str) -> Outcome:
        """Sign in and load the new owner's collection."""
        try:
            session = self.provider.sign_in(email, password)
        except AuthError as e:
            self.alert(str(e))
            return Outcome(ok=False, message=str(e))
        await self.load_collection()
        return Outcome(ok=True, message=f"Signed in as {session.email}", value=session)

    def sign_out(self) -> Outcome:
        try:
            self.provider.sign_out()
        except AuthError as e:
            logger.error("Sign out failed: %s", e)
            return Outcome(ok=False, message=str(e))
        return Outcome(ok=True, message="Signed out")

    # ========================================================================
    # Collection
    # ========================================================================

    async def load_collection(self) -> Outcome:
        """Reload the collection from the store. Failures are only logged."""
        try:
            session = self._require_session()
            state = await self.context.manager.load(session.user_id)
        except (AuthError, FetchError) as e:
            logger.warning("Loading the collection failed: %s", e)
            return Outcome(ok=False, message=str(e), value=self.context.collection)
        return Outcome(ok=True, value=state)

    def search_catalog(self, query: str) -> Outcome:
        """Search the catalog. Failures degrade to an empty result list."""
        if not query.strip():
            return Outcome(ok=True, value=[])

        try:
            items = self.catalog.search(query.strip(), max_results=self.search_limit)
        except FetchError as e:
            logger.warning("Catalog search failed: %s", e)
            self.context.search_results = []
            return Outcome(ok=False, message=str(e), value=[])

        results = []
        for item in items:
            try:
                results.append(item.to_search_result())
            except ValidationError as e:
                logger.warning("Dropping catalog item %s: %s", item.external_id, e)
        self.context.search_results = results
        return Outcome(ok=True, value=results)

    async def add_to_collection(self, item: SearchResultItem) -> Outcome:
        try:
            session = self._require_session()
            record = await self.context.manager.add(session.user_id, item)
        except (AuthError, PersistError, ValueError) as e:
            return self._fail_write("Adding the book", e)

        self.context.search_results = []
        return Outcome(ok=True, message=f"Added: {record.title}", value=record)

    async def move_book(
        self, book_id: str, from_status: BookStatus, to_status: BookStatus
    ) -> Outcome:
        try:
            session = self._require_session()
            record = await self.context.manager.move(
                session.user_id, book_id, from_status, to_status
            )
        except (AuthError, PersistError, ValueError) as e:
            return self._fail_write("Updating the status", e)

        if record is None:
            return Outcome(ok=True, message="Nothing to move")
        return Outcome(
            ok=True, message=f"Moved {record.title} to {record.status.label}", value=record
        )
