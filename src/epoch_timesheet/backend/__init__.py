"""Adapters for the hosted backend service (auth and row store)."""

from epoch_timesheet.backend.auth import IdentityProvider, SessionEvent, Subscription
from epoch_timesheet.backend.client import BackendClient
from epoch_timesheet.backend.entries import EntryStore
from epoch_timesheet.backend.session_file import SessionFile

__all__ = [
    "BackendClient",
    "EntryStore",
    "IdentityProvider",
    "SessionEvent",
    "SessionFile",
    "Subscription",
]
