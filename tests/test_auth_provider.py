"""Tests for the identity provider and session change notification."""

import time
from pathlib import Path
from typing import Optional

import pytest  # type: ignore[import-not-found]

from epoch_timesheet.backend.auth import IdentityProvider, SessionEvent
from epoch_timesheet.backend.client import BackendClient
from epoch_timesheet.backend.session_file import SessionFile
from epoch_timesheet.core.errors import AuthenticationError
from epoch_timesheet.core.models import Session

from conftest import FakeBackend


@pytest.fixture
def session_file(temp_dir: Path) -> SessionFile:
    return SessionFile(temp_dir / "session.json")


@pytest.fixture
def provider(backend_client: BackendClient, session_file: SessionFile) -> IdentityProvider:
    return IdentityProvider(backend_client, session_file)


class EventRecorder:
    """Collects (event, session) pairs delivered to a subscriber."""

    def __init__(self) -> None:
        self.events: list[tuple[SessionEvent, Optional[Session]]] = []

    def __call__(self, event: SessionEvent, session: Optional[Session]) -> None:
        self.events.append((event, session))

    @property
    def kinds(self) -> list[SessionEvent]:
        return [event for event, _ in self.events]


class TestTokenOperations:
    """Test the stateless token operations."""

    def test_password_grant(self, backend_client: BackendClient) -> None:
        """Test exchanging credentials for a session."""
        session = IdentityProvider(backend_client).password_grant("ana@example.com", "ana-password")

        assert session.user.email == "ana@example.com"
        assert session.access_token
        assert session.refresh_token
        assert session.expires_at is not None

    def test_wrong_password(self, backend_client: BackendClient) -> None:
        """Test rejected credentials raise AuthenticationError."""
        with pytest.raises(AuthenticationError, match="Invalid login credentials") as exc_info:
            IdentityProvider(backend_client).password_grant("ana@example.com", "nope")

        assert exc_info.value.status_code == 400

    def test_get_user(self, backend_client: BackendClient, ana_session: Session) -> None:
        """Test looking up the owner of a token."""
        identity = IdentityProvider(backend_client).get_user(ana_session.access_token)

        assert identity == ana_session.user

    def test_get_user_invalid_token(self, backend_client: BackendClient) -> None:
        """Test unknown tokens are rejected."""
        with pytest.raises(AuthenticationError) as exc_info:
            IdentityProvider(backend_client).get_user("forged")

        assert exc_info.value.status_code == 401

    def test_refresh_grant_rotates_token(
        self, backend_client: BackendClient, ana_session: Session
    ) -> None:
        """Test a refresh token can be used once."""
        provider = IdentityProvider(backend_client)
        assert ana_session.refresh_token is not None

        refreshed = provider.refresh_grant(ana_session.refresh_token)

        assert refreshed.access_token != ana_session.access_token
        assert refreshed.user == ana_session.user
        with pytest.raises(AuthenticationError):
            provider.refresh_grant(ana_session.refresh_token)

    def test_logout_revokes_token(
        self, backend_client: BackendClient, ana_session: Session
    ) -> None:
        """Test a revoked token no longer resolves."""
        provider = IdentityProvider(backend_client)

        provider.logout(ana_session.access_token)

        with pytest.raises(AuthenticationError):
            provider.get_user(ana_session.access_token)


class TestCurrentSession:
    """Test the stateful current session."""

    def test_initially_signed_out(self, provider: IdentityProvider) -> None:
        """Test no session without a saved file."""
        assert provider.get_session() is None

    def test_sign_in_persists_session(
        self, provider: IdentityProvider, session_file: SessionFile
    ) -> None:
        """Test signing in saves the session for the next process."""
        session = provider.sign_in_with_password("ana@example.com", "ana-password")

        assert provider.get_session() == session
        assert session_file.load() == session

    def test_session_restored_from_file(
        self, backend_client: BackendClient, session_file: SessionFile, ana_session: Session
    ) -> None:
        """Test a new provider picks up the saved session."""
        session_file.save(ana_session)

        provider = IdentityProvider(backend_client, session_file)

        assert provider.get_session() == ana_session

    def test_sign_in_failure_keeps_state(
        self, provider: IdentityProvider, session_file: SessionFile
    ) -> None:
        """Test failed sign-in leaves the user signed out."""
        with pytest.raises(AuthenticationError):
            provider.sign_in_with_password("ana@example.com", "wrong")

        assert provider.get_session() is None
        assert not session_file.path.exists()

    def test_sign_out(
        self, provider: IdentityProvider, session_file: SessionFile, fake_backend: FakeBackend
    ) -> None:
        """Test signing out revokes the token and clears the file."""
        session = provider.sign_in_with_password("ana@example.com", "ana-password")

        provider.sign_out()

        assert provider.get_session() is None
        assert not session_file.path.exists()
        assert session.access_token not in fake_backend.tokens

    def test_sign_out_when_backend_unreachable(
        self, provider: IdentityProvider, session_file: SessionFile, fake_backend: FakeBackend
    ) -> None:
        """Test local sign-out succeeds even if the revoke call fails."""
        provider.sign_in_with_password("ana@example.com", "ana-password")
        fake_backend.down = True

        provider.sign_out()

        assert provider.get_session() is None
        assert not session_file.path.exists()

    def test_expired_session_is_refreshed(
        self, backend_client: BackendClient, session_file: SessionFile, fake_backend: FakeBackend
    ) -> None:
        """Test an expired access token is refreshed on access."""
        stale = fake_backend.issue_session("ana@example.com")
        stale.expires_at = int(time.time()) - 10
        session_file.save(stale)
        provider = IdentityProvider(backend_client, session_file)
        recorder = EventRecorder()
        provider.on_session_change(recorder)

        session = provider.get_session()

        assert session is not None
        assert session.access_token != stale.access_token
        assert session.user == stale.user
        assert recorder.kinds == [SessionEvent.TOKEN_REFRESHED]
        assert session_file.load() == session

    def test_expired_session_without_refresh_signs_out(
        self, backend_client: BackendClient, session_file: SessionFile, fake_backend: FakeBackend
    ) -> None:
        """Test an expired session that cannot be refreshed is dropped."""
        stale = fake_backend.issue_session("ana@example.com")
        stale.expires_at = int(time.time()) - 10
        stale.refresh_token = "unknown"
        session_file.save(stale)
        provider = IdentityProvider(backend_client, session_file)
        recorder = EventRecorder()
        provider.on_session_change(recorder)

        assert provider.get_session() is None
        assert recorder.kinds == [SessionEvent.SIGNED_OUT]
        assert not session_file.path.exists()

    def test_sign_out_expired_session_announces_once(
        self, backend_client: BackendClient, session_file: SessionFile, fake_backend: FakeBackend
    ) -> None:
        """Test signing out a stale, unrefreshable session emits one SIGNED_OUT."""
        stale = fake_backend.issue_session("ana@example.com")
        stale.expires_at = int(time.time()) - 10
        stale.refresh_token = "unknown"
        session_file.save(stale)
        provider = IdentityProvider(backend_client, session_file)
        recorder = EventRecorder()
        provider.on_session_change(recorder)

        provider.sign_out()

        assert recorder.kinds == [SessionEvent.SIGNED_OUT]
        assert stale.access_token not in fake_backend.tokens
        assert not session_file.path.exists()

    def test_refresh_without_session(self, provider: IdentityProvider) -> None:
        """Test refreshing requires a session."""
        with pytest.raises(AuthenticationError, match="No session to refresh"):
            provider.refresh_session()

    def test_sign_up_signs_in(self, provider: IdentityProvider) -> None:
        """Test sign-up returns a session when no confirmation is needed."""
        session = provider.sign_up("carol@example.com", "carol-password")

        assert session is not None
        assert session.user.email == "carol@example.com"
        assert provider.get_session() == session

    def test_sign_up_awaiting_confirmation(
        self, provider: IdentityProvider, fake_backend: FakeBackend
    ) -> None:
        """Test sign-up without a session when email confirmation is on."""
        fake_backend.confirm_email = True

        assert provider.sign_up("carol@example.com", "carol-password") is None
        assert provider.get_session() is None

    def test_sign_up_existing_user(self, provider: IdentityProvider) -> None:
        """Test registering an existing email fails."""
        with pytest.raises(AuthenticationError, match="already registered"):
            provider.sign_up("ana@example.com", "whatever")


class TestSessionChangeNotification:
    """Test subscriptions to session changes."""

    def test_events_in_order(self, provider: IdentityProvider) -> None:
        """Test sign-in, refresh and sign-out are announced in order."""
        recorder = EventRecorder()
        provider.on_session_change(recorder)

        session = provider.sign_in_with_password("ana@example.com", "ana-password")
        refreshed = provider.refresh_session()
        provider.sign_out()

        assert recorder.events == [
            (SessionEvent.SIGNED_IN, session),
            (SessionEvent.TOKEN_REFRESHED, refreshed),
            (SessionEvent.SIGNED_OUT, None),
        ]

    def test_unsubscribe(self, provider: IdentityProvider) -> None:
        """Test unsubscribed callbacks receive nothing and unsubscribe is idempotent."""
        recorder = EventRecorder()
        subscription = provider.on_session_change(recorder)

        subscription.unsubscribe()
        subscription.unsubscribe()
        provider.sign_in_with_password("ana@example.com", "ana-password")

        assert recorder.events == []
        assert subscription.active is False

    def test_no_reentrant_dispatch(self, provider: IdentityProvider) -> None:
        """Test changes made inside a callback are delivered after the current round."""
        calls: list[str] = []

        def sign_out_on_sign_in(event: SessionEvent, session: Optional[Session]) -> None:
            calls.append(f"first:{event.value}")
            if event is SessionEvent.SIGNED_IN:
                provider.sign_out()
                calls.append("first:returned")

        def second(event: SessionEvent, session: Optional[Session]) -> None:
            calls.append(f"second:{event.value}")

        provider.on_session_change(sign_out_on_sign_in)
        provider.on_session_change(second)

        provider.sign_in_with_password("ana@example.com", "ana-password")

        assert calls == [
            "first:SIGNED_IN",
            "first:returned",
            "second:SIGNED_IN",
            "first:SIGNED_OUT",
            "second:SIGNED_OUT",
        ]
        assert provider.get_session() is None

    def test_unsubscribe_during_dispatch(self, provider: IdentityProvider) -> None:
        """Test a subscriber removed mid-round is not called again."""
        recorder = EventRecorder()
        subscription = None

        def remover(event: SessionEvent, session: Optional[Session]) -> None:
            assert subscription is not None
            subscription.unsubscribe()

        provider.on_session_change(remover)
        subscription = provider.on_session_change(recorder)

        provider.sign_in_with_password("ana@example.com", "ana-password")

        assert recorder.events == []

    def test_failing_callback_does_not_stop_others(
        self, provider: IdentityProvider, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test one broken subscriber does not starve the rest."""
        recorder = EventRecorder()

        def broken(event: SessionEvent, session: Optional[Session]) -> None:
            raise RuntimeError("boom")

        provider.on_session_change(broken)
        provider.on_session_change(recorder)

        provider.sign_in_with_password("ana@example.com", "ana-password")

        assert recorder.kinds == [SessionEvent.SIGNED_IN]
        assert "Session change callback failed" in caplog.text
