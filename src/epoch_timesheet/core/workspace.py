"""Timesheet workspace: one identity's entries and the actions on them."""

import logging
from datetime import date
from typing import Optional

from epoch_timesheet.backend.entries import EntryStore
from epoch_timesheet.core.errors import FormValidationError, StoreError
from epoch_timesheet.core.models import EntryForm, Identity, Session, TimeEntry
from epoch_timesheet.export.weekly_report import DEFAULT_TITLE, WeeklyReport, render_weekly_report

logger = logging.getLogger(__name__)


class TimesheetWorkspace:
    """In-memory entry collection for one signed-in identity.

    The collection is ordered newest first and only changes after the store
    has confirmed a load, insert or delete. A failed call leaves it as it was.
    """

    def __init__(self, store: EntryStore, session: Session, report_title: str = DEFAULT_TITLE):
        """Initialize workspace.

        Args:
            store: Entry store shared with the rest of the application
            session: Session of the signed-in identity
            report_title: Title used for exported reports
        """
        self.store = store
        self.session = session
        self.report_title = report_title
        self._entries: list[TimeEntry] = []

    @property
    def identity(self) -> Identity:
        return self.session.user

    @property
    def entries(self) -> tuple[TimeEntry, ...]:
        """Snapshot of the current collection, newest first."""
        return tuple(self._entries)

    def load_entries(self) -> tuple[TimeEntry, ...]:
        """Replace the collection with the identity's entries from the store.

        Returns:
            The loaded entries, newest first

        Raises:
            StoreError: If the store call fails (collection unchanged)
        """
        try:
            entries = self.store.list_entries(self.session)
        except StoreError as e:
            logger.error(f"Error fetching entries: {e}")
            raise

        self._entries = list(entries)
        logger.info(f"Loaded {len(self._entries)} entries for {self.identity.label}")
        return self.entries

    def create_entry(self, form: EntryForm) -> TimeEntry:
        """Validate a form, store the entry and prepend it to the collection.

        Args:
            form: Submitted form; the caller clears it on success

        Returns:
            The stored entry, with the id and timestamp assigned by the store

        Raises:
            FormValidationError: If a required field is empty (nothing is written)
            StoreError: If the store call fails (collection unchanged)
        """
        try:
            form.validate()
            record = form.to_record(self.identity)
        except FormValidationError as e:
            logger.info(f"Entry form rejected: {e}")
            raise

        if record["hours_worked"] < 0:
            logger.warning(
                f"Time out {form.time_out} is before time in {form.time_in}; "
                f"storing {record['hours_worked']} hours"
            )

        try:
            entry = self.store.insert_entry(self.session, record)
        except StoreError as e:
            logger.error(f"Error adding entry: {e}")
            raise

        self._entries.insert(0, entry)
        return entry

    def delete_entry(self, entry_id: int) -> None:
        """Delete an entry from the store, then drop it from the collection.

        Raises:
            StoreError: If the store call fails (collection unchanged)
        """
        try:
            self.store.delete_entry(self.session, entry_id)
        except StoreError as e:
            logger.error(f"Error deleting entry: {e}")
            raise

        self._entries = [entry for entry in self._entries if entry.id != entry_id]

    def export_report(self, today: Optional[date] = None) -> WeeklyReport:
        """Render the current collection as the weekly report.

        Args:
            today: Report date (defaults to the current date)

        Returns:
            Rendered report ready to save or download
        """
        return render_weekly_report(
            self._entries, self.identity.label, today=today, title=self.report_title
        )
