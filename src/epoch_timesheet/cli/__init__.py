"""Command-line interface for Epoch."""
