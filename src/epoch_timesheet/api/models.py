"""Pydantic models for API requests and responses.

This module defines the data models used for API requests and responses.
All models use Pydantic for automatic validation and serialization.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field  # type: ignore[import-untyped]

from epoch_timesheet.core.models import BillableCategory

# ============================================================================
# Response Models
# ============================================================================


class EntryResponse(BaseModel):
    """Response model for time entry."""

    id: int
    created_at: datetime
    date: str
    activity: str
    project: str
    time_in: str
    time_out: str
    billable: BillableCategory
    hours_worked: float
    user_id: str

    class Config:
        """Pydantic configuration."""

        from_attributes = True

    @classmethod
    def from_entry(cls, entry):  # type: ignore[no-untyped-def]
        """Create response from TimeEntry model.

        Args:
            entry: TimeEntry instance from core.models

        Returns:
            EntryResponse instance
        """
        return cls(
            id=entry.id,
            created_at=entry.created_at,
            date=entry.date,
            activity=entry.activity,
            project=entry.project,
            time_in=entry.time_in,
            time_out=entry.time_out,
            billable=entry.billable,
            hours_worked=entry.hours_worked,
            user_id=entry.user_id,
        )


class UserResponse(BaseModel):
    """Response model for the signed-in identity."""

    id: str
    email: Optional[str] = None


class TokenResponse(BaseModel):
    """Response model for sign-in and refresh."""

    access_token: str
    token_type: str = "bearer"
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    user: UserResponse

    @classmethod
    def from_session(cls, session):  # type: ignore[no-untyped-def]
        """Create response from Session model."""
        return cls(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_at=session.expires_at,
            user=UserResponse(id=session.user.id, email=session.user.email),
        )


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status (healthy/unhealthy)")
    timestamp: datetime = Field(..., description="Current server timestamp")
    version: str = Field(..., description="API version")


class ErrorResponse(BaseModel):
    """Response model for errors."""

    detail: str = Field(..., description="Error message")
    missing: Optional[list[str]] = Field(None, description="Empty required form fields")


# ============================================================================
# Request Models
# ============================================================================


class CreateEntryRequest(BaseModel):
    """Request model for logging a new entry.

    Fields default to empty so incomplete forms reach the workspace's
    own validation and get the same prompt as every other client.
    """

    date: str = Field("", description="Calendar date (YYYY-MM-DD)")
    activity: str = Field("", max_length=5000, description="Work or activity done")
    project: str = Field("", max_length=200, description="Project label")
    time_in: str = Field("", description="Start time (HH:MM)")
    time_out: str = Field("", description="End time (HH:MM)")
    billable: BillableCategory = BillableCategory.BILLABLE


class LoginRequest(BaseModel):
    """Request model for password sign-in."""

    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    """Request model for refreshing a session."""

    refresh_token: str = Field(..., min_length=1)
