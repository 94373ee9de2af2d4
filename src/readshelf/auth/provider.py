"""Local session provider.

Accounts live in the ``users`` table of the record store. The active
session is kept in a small JSON file so it survives between CLI runs.
Listeners registered with on_session_change are called with the new
Session (or None) whenever someone signs in or out.
"""

import json
import logging
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from pydantic import EmailStr, TypeAdapter, ValidationError
from werkzeug.security import check_password_hash, generate_password_hash

from ..db.schemas import Session
from ..db.store import BookStore
from ..errors import AuthError, StoreError

logger = logging.getLogger(__name__)

SessionListener = Callable[[Optional[Session]], None]

MIN_PASSWORD_LENGTH = 6
_email_adapter = TypeAdapter(EmailStr)


class LocalSessionProvider:
    """Issues and validates sessions for local accounts."""

    def __init__(self, store: BookStore, session_path: Path):
        """Initialize provider.

        Args:
            store: Record store holding the users table
            session_path: File where the active session is persisted
        """
        self.store = store
        self.session_path = Path(session_path)
        self._listeners: list[SessionListener] = []

    # ========================================================================
    # Accounts
    # ========================================================================

    def sign_up(self, email: str, password: str) -> str:
        """Register a new account. Does not sign in.

        Returns:
            The new user's ID

        Raises:
            AuthError: On malformed email, short password, or duplicate email
        """
        email = email.strip().lower()
        try:
            email = _email_adapter.validate_python(email)
        except ValidationError:
            raise AuthError(f"Invalid email address: {email}")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        try:
            user = self.store.create_user(email, generate_password_hash(password))
        except StoreError as e:
            raise AuthError(str(e)) from e

        logger.info("Registered account %s", email)
        return user.id

    def sign_in(self, email: str, password: str) -> Session:
        """Verify credentials, persist the session and notify listeners.

        Raises:
            AuthError: If the credentials are wrong
        """
        email = email.strip().lower()
        try:
            user = self.store.get_user_by_email(email)
        except StoreError as e:
            raise AuthError(str(e)) from e

        if user is None or not check_password_hash(user.password_hash, password):
            raise AuthError("Invalid login credentials")

        session = Session(
            user_id=user.id,
            email=user.email,
            access_token=secrets.token_urlsafe(32),
            created_at=datetime.now(timezone.utc),
        )
        self._write_session(session)
        self._notify(session)
        return session

    def sign_out(self) -> None:
        """End the current session and notify listeners.

        Raises:
            AuthError: If the session file cannot be removed
        """
        try:
            self.session_path.unlink(missing_ok=True)
        except OSError as e:
            raise AuthError(f"Could not sign out: {e}") from e
        self._notify(None)

    def get_current_session(self) -> Optional[Session]:
        """Return the persisted session, or None if there is no valid one."""
        if not self.session_path.exists():
            return None

        try:
            session = Session.model_validate_json(self.session_path.read_text())
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.session_path, e)
            return None

        try:
            user = self.store.get_user(session.user_id)
        except StoreError as e:
            logger.warning("Could not validate session: %s", e)
            return None
        if user is None:
            return None
        return session

    # ========================================================================
    # Listeners
    # ========================================================================

    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, session: Optional[Session]) -> None:
        for listener in list(self._listeners):
            listener(session)

    def _write_session(self, session: Session) -> None:
        try:
            self.session_path.parent.mkdir(parents=True, exist_ok=True)
            self.session_path.write_text(json.dumps(session.model_dump(mode="json")))
        except OSError as e:
            raise AuthError(f"Could not save session: {e}") from e
