"""Pytest configuration and shared fixtures."""

import json
import tempfile
import time
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest  # type: ignore[import-not-found]

from epoch_timesheet.backend.client import BackendClient
from epoch_timesheet.core.config import ConfigManager
from epoch_timesheet.core.models import Session

BACKEND_URL = "https://backend.test"
ANON_KEY = "anon-test-key"
TABLE_PATH = "/rest/v1/time_entries"


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")


class FakeBackend:
    """In-memory stand-in for the hosted auth and REST service.

    Served through httpx.MockTransport. Row-level security is emulated: a
    token only ever sees and deletes the rows its own user owns, and inserts
    for another user are rejected.
    """

    url = BACKEND_URL
    anon_key = ANON_KEY

    def __init__(self) -> None:
        self.users: dict[str, dict[str, str]] = {}
        self.tokens: dict[str, str] = {}
        self.refresh_tokens: dict[str, str] = {}
        self.rows: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self.confirm_email = False
        self.down = False
        self._failures: dict[tuple[str, str], list[tuple[int, Any]]] = {}
        self._next_id = 1
        self._counter = 0
        self._clock = datetime(2024, 6, 10, 8, 0, tzinfo=timezone.utc)

    # Setup helpers

    def add_user(self, email: str, password: str) -> str:
        """Register an account and return its user id."""
        self._counter += 1
        user_id = f"user-{self._counter}"
        self.users[email] = {"id": user_id, "email": email, "password": password}
        return user_id

    def user_id(self, email: str) -> str:
        return self.users[email]["id"]

    def register_token(self, token: str, user_id: str) -> None:
        """Accept an externally minted access token for a user."""
        self.tokens[token] = user_id

    def issue_session(self, email: str, expires_in: int = 3600) -> Session:
        """Mint tokens for a user as a sign-in would."""
        return Session.from_dict(self._token_payload(self.users[email], expires_in))

    def fail_next(self, method: str, path: str, status: int = 500, body: Any = None) -> None:
        """Make the next matching request fail with the given status."""
        payload = body if body is not None else {"message": "Internal server error"}
        self._failures.setdefault((method, path), []).append((status, payload))

    def add_row(self, email: str, **fields: Any) -> dict[str, Any]:
        """Insert a row directly, bypassing the REST endpoint."""
        row = {
            "date": "2024-06-10",
            "activity": "Activity",
            "project": "Project",
            "time_in": "09:00",
            "time_out": "10:00",
            "billable": "Billable",
            "hours_worked": 1.0,
            "user_id": self.user_id(email),
        }
        row.update(fields)
        return self._store(row)

    def rows_for(self, email: str) -> list[dict[str, Any]]:
        user_id = self.user_id(email)
        return [row for row in self.rows if row["user_id"] == user_id]

    # Internals

    def _token_payload(self, user: dict[str, str], expires_in: int = 3600) -> dict[str, Any]:
        self._counter += 1
        access_token = f"access-{self._counter}"
        refresh_token = f"refresh-{self._counter}"
        self.tokens[access_token] = user["id"]
        self.refresh_tokens[refresh_token] = user["id"]
        return {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": expires_in,
            "expires_at": int(time.time()) + expires_in,
            "refresh_token": refresh_token,
            "user": {"id": user["id"], "email": user["email"]},
        }

    def _user_by_id(self, user_id: str) -> dict[str, str]:
        return next(user for user in self.users.values() if user["id"] == user_id)

    def _store(self, row: dict[str, Any]) -> dict[str, Any]:
        self._clock += timedelta(minutes=1)
        stored = dict(row)
        stored["id"] = self._next_id
        stored["created_at"] = self._clock.isoformat().replace("+00:00", "Z")
        self._next_id += 1
        self.rows.append(stored)
        return stored

    def _caller(self, request: httpx.Request) -> Optional[str]:
        header = request.headers.get("Authorization", "")
        token = header.removeprefix("Bearer ").strip()
        return self.tokens.get(token)

    @staticmethod
    def _json(status: int, body: Any = None) -> httpx.Response:
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    # Transport handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        """Route one request (httpx.MockTransport handler)."""
        self.requests.append(request)
        method, path = request.method, request.url.path

        if self.down:
            raise httpx.ConnectError("Connection refused", request=request)

        failures = self._failures.get((method, path))
        if failures:
            status, body = failures.pop(0)
            return self._json(status, body)

        if request.headers.get("apikey") != ANON_KEY:
            return self._json(401, {"message": "Invalid API key"})

        if path.startswith("/auth/v1/"):
            return self._handle_auth(request, path.removeprefix("/auth/v1/"))
        if path == TABLE_PATH:
            return self._handle_rows(request)
        return self._json(404, {"message": f"No route for {path}"})

    def _handle_auth(self, request: httpx.Request, route: str) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}

        if route == "token":
            grant_type = request.url.params.get("grant_type")
            if grant_type == "password":
                user = self.users.get(body.get("email", ""))
                if user is None or user["password"] != body.get("password"):
                    return self._json(
                        400,
                        {"error": "invalid_grant", "error_description": "Invalid login credentials"},
                    )
                return self._json(200, self._token_payload(user))
            if grant_type == "refresh_token":
                user_id = self.refresh_tokens.pop(body.get("refresh_token", ""), None)
                if user_id is None:
                    return self._json(
                        400,
                        {"error": "invalid_grant", "error_description": "Invalid Refresh Token"},
                    )
                return self._json(200, self._token_payload(self._user_by_id(user_id)))
            return self._json(400, {"msg": "unsupported_grant_type"})

        if route == "signup":
            email = body.get("email", "")
            if email in self.users:
                return self._json(422, {"msg": "User already registered"})
            self.add_user(email, body.get("password", ""))
            user = self.users[email]
            if self.confirm_email:
                return self._json(200, {"id": user["id"], "email": email})
            return self._json(200, self._token_payload(user))

        caller = self._caller(request)
        if caller is None:
            return self._json(401, {"msg": "invalid JWT: unable to parse or verify signature"})

        if route == "user":
            user = self._user_by_id(caller)
            return self._json(200, {"id": user["id"], "email": user["email"], "aud": "authenticated"})
        if route == "logout":
            token = request.headers["Authorization"].removeprefix("Bearer ").strip()
            self.tokens.pop(token, None)
            return self._json(204)
        return self._json(404, {"msg": "Not found"})

    def _handle_rows(self, request: httpx.Request) -> httpx.Response:
        caller = self._caller(request)
        if caller is None:
            return self._json(401, {"message": "JWT expired"})

        visible = [row for row in self.rows if row["user_id"] == caller]
        for key, value in request.url.params.items():
            if key in ("select", "order") or not value.startswith("eq."):
                continue
            visible = [row for row in visible if str(row.get(key)) == value[3:]]

        if request.method == "GET":
            if request.url.params.get("order") == "created_at.desc":
                visible = sorted(visible, key=lambda row: row["created_at"], reverse=True)
            return self._json(200, visible)

        if request.method == "POST":
            row = json.loads(request.content)
            if row.get("user_id") != caller:
                return self._json(
                    403, {"message": 'new row violates row-level security policy for table "time_entries"'}
                )
            return self._json(201, self._store(row))

        if request.method == "DELETE":
            doomed = {id(row) for row in visible}
            self.rows = [row for row in self.rows if id(row) not in doomed]
            return self._json(204)

        return self._json(405, {"message": "Method not allowed"})


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of the tests."""
    for name in ("EPOCH_CONFIG", "EPOCH_BACKEND_URL", "EPOCH_BACKEND_ANON_KEY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Backend with two registered accounts."""
    backend = FakeBackend()
    backend.add_user("ana@example.com", "ana-password")
    backend.add_user("bob@example.com", "bob-password")
    return backend


@pytest.fixture
def transport(fake_backend: FakeBackend) -> httpx.MockTransport:
    return httpx.MockTransport(fake_backend.handle)


@pytest.fixture
def backend_client(transport: httpx.MockTransport) -> Iterator[BackendClient]:
    """Backend client wired to the fake backend."""
    with BackendClient(BACKEND_URL, ANON_KEY, transport=transport) as client:
        yield client


@pytest.fixture
def test_config(temp_dir: Path) -> ConfigManager:
    """Configuration pointing at the fake backend, with files in a temp dir."""
    config = ConfigManager(temp_dir / "config.yml")
    config.set("backend.url", BACKEND_URL)
    config.set("backend.anon_key", ANON_KEY)
    config.set("session.file", str(temp_dir / "session.json"))
    config.set("report.output_dir", str(temp_dir / "reports"))
    return config


@pytest.fixture
def ana_session(fake_backend: FakeBackend) -> Session:
    """Signed-in session for ana@example.com."""
    return fake_backend.issue_session("ana@example.com")


@pytest.fixture
def bob_session(fake_backend: FakeBackend) -> Session:
    """Signed-in session for bob@example.com."""
    return fake_backend.issue_session("bob@example.com")
