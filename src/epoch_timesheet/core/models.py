"""Core data models for timesheet logging."""

import time
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from epoch_timesheet.core.errors import FormValidationError

# Durations are computed on a fixed day so only the time of day matters
REFERENCE_DATE = "1970-01-01"

REQUIRED_FORM_FIELDS = ("date", "activity", "project", "time_in", "time_out")


class BillableCategory(str, Enum):
    """Billing category of a time entry."""

    BILLABLE = "Billable"
    NON_BILLABLE = "Non-billable"


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _parse_calendar_date(value: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise FormValidationError(f"Invalid date: {value!r}. Use YYYY-MM-DD")


def _parse_clock(value: str) -> datetime:
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(f"{REFERENCE_DATE} {value}", f"%Y-%m-%d {fmt}")
        except ValueError:
            continue
    raise FormValidationError(f"Invalid time: {value!r}. Use HH:MM")


def compute_hours_worked(time_in: str, time_out: str) -> float:
    """Compute hours between two clock times, rounded to two decimals.

    Args:
        time_in: Start time as HH:MM
        time_out: End time as HH:MM

    Returns:
        Hours worked. Negative when time_out is earlier than time_in.

    Raises:
        FormValidationError: If either time cannot be parsed

    Example:
        >>> compute_hours_worked("09:00", "17:30")
        8.5
    """
    delta = _parse_clock(time_out) - _parse_clock(time_in)
    return round(delta.total_seconds() / 3600, 2)


@dataclass
class Identity:
    """Authenticated end user.

    Attributes:
        id: Stable identifier assigned by the identity provider
        email: Email address, used as the display label
    """

    id: str
    email: Optional[str] = None

    @property
    def label(self) -> str:
        """Display label (email, or the id when no email is known)."""
        return self.email or self.id

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Identity":
        """Create Identity from a provider user payload."""
        return cls(id=str(data["id"]), email=data.get("email") or None)


@dataclass
class Session:
    """Backend session for one identity.

    Attributes:
        access_token: Bearer token sent with every backend request
        refresh_token: Token used to obtain a new access token
        expires_at: Expiry as seconds since the epoch (None if unknown)
        user: Identity the session belongs to
    """

    access_token: str
    user: Identity
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None

    def is_expired(self, leeway: int = 0) -> bool:
        """Check whether the access token is (about to be) expired."""
        if self.expires_at is None:
            return False
        return time.time() + leeway >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for the session file."""
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
            "user": asdict(self.user),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Session":
        """Create Session from a token response or session file payload."""
        expires_at = data.get("expires_at")
        if expires_at is None and data.get("expires_in") is not None:
            expires_at = int(time.time()) + int(data["expires_in"])
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=int(expires_at) if expires_at is not None else None,
            user=Identity.from_dict(data["user"]),
        )


@dataclass
class EntryForm:
    """User-entered fields of a new time entry."""

    date: str = ""
    activity: str = ""
    project: str = ""
    time_in: str = ""
    time_out: str = ""
    billable: BillableCategory = BillableCategory.BILLABLE

    def missing_fields(self) -> list[str]:
        """Names of empty required fields, in form order."""
        return [name for name in REQUIRED_FORM_FIELDS if not str(getattr(self, name)).strip()]

    @property
    def category(self) -> BillableCategory:
        """Billing category, Billable when left blank."""
        if self.billable is None or not str(self.billable).strip():
            return BillableCategory.BILLABLE
        try:
            return BillableCategory(self.billable)
        except ValueError:
            raise FormValidationError(f"Invalid billable category: {self.billable!r}")

    def validate(self) -> None:
        """Check that every required field is filled in and the date is valid.

        Raises:
            FormValidationError: If any required field is empty, the date is
                not YYYY-MM-DD or the billable category is unknown
        """
        missing = self.missing_fields()
        if missing:
            raise FormValidationError(missing=missing)
        _parse_calendar_date(self.date)
        self.billable = self.category

    def to_record(self, owner: Identity) -> dict[str, Any]:
        """Build the row to insert, including the computed hours.

        Args:
            owner: Identity that will own the entry

        Returns:
            Row dictionary for the store
        """
        return {
            "date": self.date,
            "activity": self.activity,
            "project": self.project,
            "time_in": self.time_in,
            "time_out": self.time_out,
            "billable": self.category.value,
            "hours_worked": compute_hours_worked(self.time_in, self.time_out),
            "user_id": owner.id,
        }


@dataclass
class TimeEntry:
    """One logged work session, as stored by the backend.

    Attributes:
        id: Store-assigned identifier
        created_at: Store-assigned creation timestamp
        date: Calendar date (YYYY-MM-DD)
        activity: Free-text description of the work done
        project: Free-text project label
        time_in: Start clock time (HH:MM)
        time_out: End clock time (HH:MM)
        billable: Billing category
        hours_worked: Duration in hours, computed at creation time
        user_id: Owning identity
    """

    id: int
    date: str
    activity: str
    project: str
    time_in: str
    time_out: str
    hours_worked: float
    user_id: str
    billable: BillableCategory = BillableCategory.BILLABLE
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def entry_date(self) -> date:
        """Calendar date built from its year/month/day parts (no time zone)."""
        year, month, day = (int(part) for part in self.date.split("-"))
        return date(year, month, day)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "date": self.date,
            "activity": self.activity,
            "project": self.project,
            "time_in": self.time_in,
            "time_out": self.time_out,
            "billable": self.billable.value,
            "hours_worked": self.hours_worked,
            "user_id": self.user_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeEntry":
        """Create TimeEntry from a store row."""
        return cls(
            id=int(data["id"]),
            created_at=_parse_timestamp(data["created_at"]),
            date=data["date"],
            activity=data["activity"],
            project=data["project"],
            time_in=data["time_in"],
            time_out=data["time_out"],
            billable=BillableCategory(data.get("billable") or BillableCategory.BILLABLE.value),
            hours_worked=float(data["hours_worked"]),
            user_id=str(data["user_id"]),
        )
