"""Row store for time entries, backed by the service's REST endpoint."""

import logging
from typing import Any

import httpx

from epoch_timesheet.backend.client import BackendClient
from epoch_timesheet.core.errors import StoreError
from epoch_timesheet.core.models import Session, TimeEntry

logger = logging.getLogger(__name__)

REST_PATH = "/rest/v1"


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise StoreError(f"Malformed response from store: {e}")


def _to_entry(row: dict[str, Any]) -> TimeEntry:
    try:
        return TimeEntry.from_dict(row)
    except (KeyError, TypeError, ValueError) as e:
        raise StoreError(f"Malformed entry row: {e!r}")


class EntryStore:
    """Reads and writes the signed-in user's rows of the entries table.

    Every request carries the caller's access token. The backend's row-level
    security limits each token to rows owned by its user.
    """

    def __init__(self, client: BackendClient, table: str = "time_entries"):
        """Initialize entry store.

        Args:
            client: Shared backend client
            table: Name of the entries table
        """
        self.client = client
        self.table = table

    @property
    def path(self) -> str:
        return f"{REST_PATH}/{self.table}"

    def list_entries(self, session: Session) -> list[TimeEntry]:
        """Load every entry owned by the session's user, newest first.

        Raises:
            StoreError: If the request fails
        """
        response = self.client.request(
            "GET",
            self.path,
            token=session.access_token,
            params={
                "select": "*",
                "user_id": f"eq.{session.user.id}",
                "order": "created_at.desc",
            },
            error_class=StoreError,
        )
        return [_to_entry(row) for row in _json(response)]

    def insert_entry(self, session: Session, record: dict[str, Any]) -> TimeEntry:
        """Insert a row and return it as stored (with id and created_at).

        Raises:
            StoreError: If the request fails
        """
        response = self.client.request(
            "POST",
            self.path,
            token=session.access_token,
            json=record,
            headers={
                "Prefer": "return=representation",
                "Accept": "application/vnd.pgrst.object+json",
            },
            error_class=StoreError,
        )
        entry = _to_entry(_json(response))
        logger.debug(f"Inserted entry {entry.id} for {session.user.label}")
        return entry

    def delete_entry(self, session: Session, entry_id: int) -> None:
        """Delete one row by id.

        Raises:
            StoreError: If the request fails
        """
        self.client.request(
            "DELETE",
            self.path,
            token=session.access_token,
            params={"id": f"eq.{entry_id}"},
            error_class=StoreError,
        )
        logger.debug(f"Deleted entry {entry_id} for {session.user.label}")
