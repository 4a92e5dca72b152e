"""Epoch - timesheet logging with weekly spreadsheet reports."""

__version__ = "0.1.0"
