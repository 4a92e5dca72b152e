"""HTTP client for the hosted backend service.

One BackendClient is created by the composition root (the CLI group or the
API app factory) and shared by the identity provider and the entry store.
"""

import logging
from typing import Any, Optional

import httpx

from epoch_timesheet.core.config import ConfigManager
from epoch_timesheet.core.errors import BackendError

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Extract a readable message from a backend error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase

    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return str(body)


class BackendClient:
    """Connection to the backend's auth and REST endpoints."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize backend client.

        Args:
            url: Base URL of the backend project
            anon_key: Public (anon) API key
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self._http = httpx.Client(
            base_url=self.url,
            headers={"apikey": anon_key},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls, config: ConfigManager, transport: Optional[httpx.BaseTransport] = None
    ) -> "BackendClient":
        """Create a client from configuration.

        Raises:
            ConfigurationError: If the backend URL or key is not configured
        """
        settings = config.backend_settings()
        return cls(
            settings["url"],
            settings["anon_key"],
            timeout=settings["timeout"],
            transport=transport,
        )

    def request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        error_class: type[BackendError] = BackendError,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request to the backend.

        Args:
            method: HTTP method
            path: Path relative to the backend URL
            token: User access token; the anon key is used when omitted
            error_class: BackendError subclass raised on failure
            **kwargs: Passed through to httpx (params, json, headers)

        Returns:
            Successful response

        Raises:
            BackendError: (or error_class) on transport failure or non-2xx status
        """
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {token or self.anon_key}"

        try:
            response = self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.debug(f"{method} {path} failed: {e}")
            raise error_class(f"Backend request failed: {e}")

        if response.is_error:
            message = _error_message(response)
            logger.debug(f"{method} {path} returned {response.status_code}: {message}")
            raise error_class(message, status_code=response.status_code)

        return response

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._http.close()

    def __enter__(self) -> "BackendClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
