"""System endpoints for health checks.

This module provides the public health check used by monitors and
load balancers.
"""

from datetime import datetime, timezone

from fastapi import APIRouter  # type: ignore[import-untyped]

from epoch_timesheet import __version__
from epoch_timesheet.api.models import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint.

    Returns:
        Health status information

    Note:
        This endpoint is public (no authentication required).

    Example:
        >>> GET /api/v1/health
        {
            "status": "healthy",
            "timestamp": "2024-06-14T10:30:00Z",
            "version": "0.1.0"
        }
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
    )
