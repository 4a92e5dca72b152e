"""Identity provider backed by the service's auth endpoints.

The provider has two layers:

- stateless token operations (password_grant, refresh_grant, get_user, logout)
  used directly by the API server, where every request carries its own token
- a stateful current session with change notification, used by the CLI
  and the session gate
"""

import logging
from collections import deque
from enum import Enum
from typing import Any, Callable, Optional

from epoch_timesheet.backend.client import BackendClient
from epoch_timesheet.backend.session_file import SessionFile
from epoch_timesheet.core.errors import AuthenticationError
from epoch_timesheet.core.models import Identity, Session

logger = logging.getLogger(__name__)

AUTH_PATH = "/auth/v1"

# Refresh a little before the access token actually expires
EXPIRY_LEEWAY_SECONDS = 30


class SessionEvent(str, Enum):
    """Kinds of session change announced to subscribers."""

    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


SessionCallback = Callable[[SessionEvent, Optional[Session]], None]


class Subscription:
    """Handle returned by IdentityProvider.on_session_change."""

    def __init__(self, provider: "IdentityProvider", callback: SessionCallback):
        self._provider = provider
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        """Stop receiving session changes. Safe to call more than once."""
        if self.active:
            self._provider._remove_subscription(self)
            self.active = False


class IdentityProvider:
    """Sign-in, sign-out and session tracking for one user."""

    def __init__(self, client: BackendClient, session_file: Optional[SessionFile] = None):
        """Initialize identity provider.

        Args:
            client: Shared backend client
            session_file: Where to persist the current session (None keeps it in memory)
        """
        self.client = client
        self.session_file = session_file
        self._session: Optional[Session] = None
        self._loaded = session_file is None
        self._subscriptions: list[Subscription] = []
        self._pending: deque[tuple[SessionEvent, Optional[Session]]] = deque()
        self._dispatching = False

    # Stateless token operations

    def _token_request(self, grant_type: str, payload: dict[str, Any]) -> Session:
        response = self.client.request(
            "POST",
            f"{AUTH_PATH}/token",
            params={"grant_type": grant_type},
            json=payload,
            error_class=AuthenticationError,
        )
        return Session.from_dict(response.json())

    def password_grant(self, email: str, password: str) -> Session:
        """Exchange email and password for a session.

        Raises:
            AuthenticationError: If the credentials are rejected or the call fails
        """
        return self._token_request("password", {"email": email, "password": password})

    def refresh_grant(self, refresh_token: str) -> Session:
        """Exchange a refresh token for a new session.

        Raises:
            AuthenticationError: If the refresh token is rejected or the call fails
        """
        return self._token_request("refresh_token", {"refresh_token": refresh_token})

    def get_user(self, access_token: str) -> Identity:
        """Look up the identity that owns an access token.

        Raises:
            AuthenticationError: If the token is invalid or expired
        """
        response = self.client.request(
            "GET", f"{AUTH_PATH}/user", token=access_token, error_class=AuthenticationError
        )
        return Identity.from_dict(response.json())

    def logout(self, access_token: str) -> None:
        """Revoke an access token on the backend."""
        self.client.request(
            "POST", f"{AUTH_PATH}/logout", token=access_token, error_class=AuthenticationError
        )

    # Current session

    def get_session(self) -> Optional[Session]:
        """Get the current session, refreshing it if it has expired.

        Returns:
            Current session or None when signed out
        """
        session = self._current()
        if session is None or not session.is_expired(EXPIRY_LEEWAY_SECONDS):
            return session

        if session.refresh_token:
            try:
                return self.refresh_session()
            except AuthenticationError as e:
                logger.warning(f"Session refresh failed, signing out: {e}")

        self._set_session(None)
        self._emit(SessionEvent.SIGNED_OUT, None)
        return None

    def sign_in_with_password(self, email: str, password: str) -> Session:
        """Sign in and make the new session current.

        Raises:
            AuthenticationError: If the credentials are rejected or the call fails
        """
        session = self.password_grant(email, password)
        self._set_session(session)
        logger.info(f"Signed in as {session.user.label}")
        self._emit(SessionEvent.SIGNED_IN, session)
        return session

    def sign_up(self, email: str, password: str) -> Optional[Session]:
        """Register a new account.

        Returns:
            The new session, or None when the backend requires email confirmation

        Raises:
            AuthenticationError: If registration is rejected or the call fails
        """
        response = self.client.request(
            "POST",
            f"{AUTH_PATH}/signup",
            json={"email": email, "password": password},
            error_class=AuthenticationError,
        )
        data = response.json()
        if not data.get("access_token"):
            logger.info(f"Sign-up for {email} awaits confirmation")
            return None

        session = Session.from_dict(data)
        self._set_session(session)
        self._emit(SessionEvent.SIGNED_IN, session)
        return session

    def refresh_session(self) -> Session:
        """Replace the current session with a refreshed one.

        Raises:
            AuthenticationError: If there is no refreshable session or refresh fails
        """
        current = self._current()
        if current is None or not current.refresh_token:
            raise AuthenticationError("No session to refresh")

        session = self.refresh_grant(current.refresh_token)
        self._set_session(session)
        logger.debug(f"Session refreshed for {session.user.label}")
        self._emit(SessionEvent.TOKEN_REFRESHED, session)
        return session

    def sign_out(self) -> None:
        """Sign out locally, revoking the token on the backend when possible."""
        session = self._current()
        if session is not None:
            try:
                self.logout(session.access_token)
            except AuthenticationError as e:
                logger.warning(f"Remote sign-out failed, clearing local session anyway: {e}")

        self._set_session(None)
        self._emit(SessionEvent.SIGNED_OUT, None)

    def _current(self) -> Optional[Session]:
        if not self._loaded:
            self._session = self.session_file.load() if self.session_file else None
            self._loaded = True
        return self._session

    def _set_session(self, session: Optional[Session]) -> None:
        self._session = session
        self._loaded = True
        if self.session_file is None:
            return
        if session is None:
            self.session_file.clear()
        else:
            self.session_file.save(session)

    # Change notification

    def on_session_change(self, callback: SessionCallback) -> Subscription:
        """Register a callback for session changes.

        Args:
            callback: Called with (event, session) after every change

        Returns:
            Subscription handle; call unsubscribe() to stop notifications
        """
        subscription = Subscription(self, callback)
        self._subscriptions.append(subscription)
        return subscription

    def _remove_subscription(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _emit(self, event: SessionEvent, session: Optional[Session]) -> None:
        """Deliver an event to every subscriber.

        Events emitted from inside a callback are queued and delivered once
        the current round finishes, so callbacks never run re-entrantly.
        """
        self._pending.append((event, session))
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._pending:
                pending_event, pending_session = self._pending.popleft()
                for subscription in list(self._subscriptions):
                    if not subscription.active:
                        continue
                    try:
                        subscription.callback(pending_event, pending_session)
                    except Exception:
                        logger.exception(f"Session change callback failed on {pending_event.value}")
        finally:
            self._dispatching = False
