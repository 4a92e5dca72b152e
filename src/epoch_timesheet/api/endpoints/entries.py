"""Entry endpoints for the signed-in user's timesheet.

This module provides listing, logging and deleting of time entries. Every
call is scoped to the identity behind the bearer token.
"""

from fastapi import APIRouter, Depends, status  # type: ignore[import-untyped]

from epoch_timesheet.api.dependencies import get_workspace
from epoch_timesheet.api.models import CreateEntryRequest, EntryResponse
from epoch_timesheet.core.models import EntryForm
from epoch_timesheet.core.workspace import TimesheetWorkspace

router = APIRouter()


@router.get("/", response_model=list[EntryResponse])
def list_entries(
    workspace: TimesheetWorkspace = Depends(get_workspace),
) -> list[EntryResponse]:
    """List the caller's entries, newest first.

    Example:
        >>> GET /api/v1/entries/
        [
            {
                "id": 42,
                "date": "2024-06-10",
                "activity": "Wrote the grant report",
                "hours_worked": 8.5,
                ...
            }
        ]
    """
    return [EntryResponse.from_entry(e) for e in workspace.load_entries()]


@router.post("/", response_model=EntryResponse, status_code=status.HTTP_201_CREATED)
def create_entry(
    request: CreateEntryRequest,
    workspace: TimesheetWorkspace = Depends(get_workspace),
) -> EntryResponse:
    """Log a new entry; hours worked are computed from the two times.

    Raises:
        FormValidationError: If a required field is empty (422)

    Example:
        >>> POST /api/v1/entries/
        {
            "date": "2024-06-10",
            "activity": "Site visit",
            "project": "Outreach",
            "time_in": "09:00",
            "time_out": "17:30",
            "billable": "Billable"
        }
    """
    form = EntryForm(
        date=request.date,
        activity=request.activity,
        project=request.project,
        time_in=request.time_in,
        time_out=request.time_out,
        billable=request.billable,
    )
    entry = workspace.create_entry(form)
    return EntryResponse.from_entry(entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(
    entry_id: int,
    workspace: TimesheetWorkspace = Depends(get_workspace),
) -> None:
    """Delete one of the caller's entries.

    Example:
        >>> DELETE /api/v1/entries/42
    """
    workspace.delete_entry(entry_id)
