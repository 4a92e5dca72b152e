"""Report endpoints.

This module serves the weekly staff report as an Excel download.
"""

from datetime import date
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Response  # type: ignore[import-untyped]

from epoch_timesheet.api.dependencies import get_workspace
from epoch_timesheet.core.workspace import TimesheetWorkspace

router = APIRouter()


def content_disposition(filename: str) -> str:
    """Build an attachment header value that survives latin-1 encoding.

    Non-ASCII names get an ASCII ``filename`` fallback plus an RFC 5987
    ``filename*`` carrying the UTF-8 name.
    """
    if filename.isascii():
        return f'attachment; filename="{filename}"'
    fallback = "".join(char if char.isascii() else "_" for char in filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@router.get("/weekly")
def weekly_report(
    today: Optional[date] = Query(None, description="Report date (YYYY-MM-DD), defaults to today"),
    workspace: TimesheetWorkspace = Depends(get_workspace),
) -> Response:
    """Download the weekly report for the caller's entries.

    Returns:
        xlsx attachment named WeeklyReport-<email>-<date>.xlsx

    Example:
        >>> GET /api/v1/reports/weekly
    """
    workspace.load_entries()
    report = workspace.export_report(today=today)
    return Response(
        content=report.content,
        media_type=report.media_type,
        headers={"Content-Disposition": content_disposition(report.filename)},
    )
