"""Core models, configuration and timesheet logic."""

from epoch_timesheet.core.errors import (
    AuthenticationError,
    BackendError,
    ConfigurationError,
    EpochError,
    FormValidationError,
    StoreError,
)
from epoch_timesheet.core.models import BillableCategory, EntryForm, Identity, Session, TimeEntry

__all__ = [
    "AuthenticationError",
    "BackendError",
    "BillableCategory",
    "ConfigurationError",
    "EntryForm",
    "EpochError",
    "FormValidationError",
    "Identity",
    "Session",
    "StoreError",
    "TimeEntry",
]
