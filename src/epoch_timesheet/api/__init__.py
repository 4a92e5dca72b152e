"""REST API for Epoch.

This module provides a FastAPI-based REST API over the timesheet workspace.

Key features:
- Sign-in proxied to the backend's identity provider
- Listing, logging and deleting the caller's entries
- Weekly report download
- CORS support and request logging
- OpenAPI documentation

Usage:
    # Start server
    epoch api serve

    # Access API docs
    http://localhost:8000/docs
"""

__all__ = ["create_app", "run_server"]

from epoch_timesheet.api.server import create_app, run_server  # noqa: F401
