"""Report export for Epoch."""

from epoch_timesheet.export.weekly_report import (
    WeeklyReport,
    build_weekly_report,
    render_weekly_report,
)

__all__ = ["WeeklyReport", "build_weekly_report", "render_weekly_report"]
