"""API endpoints.

This package contains all API endpoint routers organized by resource type.
Each module defines a FastAPI router that is included in the main application.

Available routers:
- system: Health check
- session: Sign in, refresh, sign out
- entries: Time entry listing, logging and deletion
- reports: Weekly report download
"""

__all__ = ["system", "session", "entries", "reports"]

from epoch_timesheet.api.endpoints import entries, reports, session, system  # noqa: F401
