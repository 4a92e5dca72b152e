"""Exception hierarchy for Epoch."""

from typing import Optional


class EpochError(Exception):
    """Base class for all Epoch errors."""


class FormValidationError(EpochError, ValueError):
    """Raised when an entry form is incomplete or malformed.

    Attributes:
        missing: Names of the empty required fields, in form order
    """

    def __init__(
        self, message: str = "Please fill out all fields.", missing: Optional[list[str]] = None
    ):
        super().__init__(message)
        self.missing = missing or []


class ConfigurationError(EpochError, ValueError):
    """Raised when required configuration is missing or invalid."""


class BackendError(EpochError):
    """Raised when a call to the backend service fails.

    Attributes:
        status_code: HTTP status code, or None for transport failures
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StoreError(BackendError):
    """Raised when the row store rejects or fails a request."""


class AuthenticationError(BackendError):
    """Raised when the identity provider rejects or fails a request."""
