"""Dependency injection for FastAPI endpoints.

This module provides dependency functions for use with FastAPI's dependency
injection system. The configuration and the shared backend client live in
app state; everything else is built per request from them.
"""

from fastapi import Depends, Request  # type: ignore[import-untyped]

from epoch_timesheet.api.auth import get_current_session
from epoch_timesheet.backend.auth import IdentityProvider
from epoch_timesheet.backend.client import BackendClient
from epoch_timesheet.backend.entries import EntryStore
from epoch_timesheet.core.config import ConfigManager
from epoch_timesheet.core.models import Session
from epoch_timesheet.core.workspace import TimesheetWorkspace
from epoch_timesheet.export.weekly_report import DEFAULT_TITLE


def get_config(request: Request) -> ConfigManager:
    """Get configuration manager instance from app state."""
    config: ConfigManager = request.app.state.config
    return config


def get_backend(request: Request) -> BackendClient:
    """Get the shared backend client from app state."""
    backend: BackendClient = request.app.state.backend
    return backend


def get_identity_provider(backend: BackendClient = Depends(get_backend)) -> IdentityProvider:
    """Get a stateless identity provider.

    Note:
        No session file is attached; the API never holds a "current" user.
    """
    return IdentityProvider(backend)


def get_entry_store(
    backend: BackendClient = Depends(get_backend),
    config: ConfigManager = Depends(get_config),
) -> EntryStore:
    """Get the entry store for the configured table."""
    return EntryStore(backend, table=config.get("backend.table", "time_entries"))


def get_workspace(
    session: Session = Depends(get_current_session),
    store: EntryStore = Depends(get_entry_store),
    config: ConfigManager = Depends(get_config),
) -> TimesheetWorkspace:
    """Get a workspace for the identity behind the request's bearer token."""
    return TimesheetWorkspace(
        store, session, report_title=config.get("report.title", DEFAULT_TITLE)
    )
