"""Session gate: decides whether the workspace or the login surface is shown."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from epoch_timesheet.backend.auth import IdentityProvider, SessionEvent, Subscription
from epoch_timesheet.core.errors import BackendError
from epoch_timesheet.core.models import Identity, Session

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    """Result of resolving the current session."""

    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class SessionState:
    """Current gate state; session is set only when authenticated."""

    status: SessionStatus
    session: Optional[Session] = None

    @property
    def identity(self) -> Optional[Identity]:
        return self.session.user if self.session else None

    @classmethod
    def from_session(cls, session: Optional[Session]) -> "SessionState":
        if session is None:
            return cls(SessionStatus.UNAUTHENTICATED)
        return cls(SessionStatus.AUTHENTICATED, session)


StateListener = Callable[[SessionState], None]


class SessionGate:
    """Tracks the signed-in identity and announces changes to listeners.

    The first call to resolve_session() subscribes to the identity provider;
    every later sign-in, sign-out or token refresh updates the state and
    notifies the gate's listeners. close() releases the subscription.
    """

    def __init__(self, provider: IdentityProvider):
        self.provider = provider
        self._state = SessionState(SessionStatus.LOADING)
        self._subscription: Optional[Subscription] = None
        self._listeners: list[StateListener] = []
        self._closed = False

    @property
    def state(self) -> SessionState:
        return self._state

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback invoked with the new state after each change."""
        self._listeners.append(listener)

    def resolve_session(self) -> SessionState:
        """Resolve the current session and subscribe to future changes.

        Provider failures resolve to UNAUTHENTICATED.

        Returns:
            The resolved state
        """
        try:
            session = self.provider.get_session()
        except BackendError as e:
            logger.warning(f"Could not resolve session: {e}")
            session = None

        self._update(SessionState.from_session(session))

        if self._subscription is None and not self._closed:
            self._subscription = self.provider.on_session_change(self._on_session_change)

        return self._state

    def _on_session_change(self, event: SessionEvent, session: Optional[Session]) -> None:
        logger.debug(f"Session change: {event.value}")
        self._update(SessionState.from_session(session))

    def _update(self, state: SessionState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def close(self) -> None:
        """Release the provider subscription."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._closed = True

    def __enter__(self) -> "SessionGate":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
