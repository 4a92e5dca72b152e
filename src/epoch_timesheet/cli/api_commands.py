"""CLI commands for the API server."""

import sys
from typing import Optional

import click

from epoch_timesheet.api.server import run_server
from epoch_timesheet.core.config import ConfigManager
from epoch_timesheet.core.errors import ConfigurationError


@click.group()
def api() -> None:
    """API server management commands."""
    pass


@api.command()
@click.option("--host", default=None, help="Host address (default: from config)")
@click.option("--port", type=int, default=None, help="Port number (default: from config)")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int], reload: bool) -> None:
    """Start the API server.

    Examples:
        epoch api serve
        epoch api serve --host 0.0.0.0 --port 8080
        epoch api serve --reload  # Development mode
    """
    config: ConfigManager = ctx.obj["config"]

    # Fail before binding the port when the backend is not configured
    try:
        config.backend_settings()
    except ConfigurationError as e:
        click.echo(click.style(f"❌ {e}", fg="red"), err=True)
        sys.exit(2)

    final_host = host or config.get("api.host", "localhost")
    final_port = port or config.get("api.port", 8000)

    click.echo("🚀 Starting Epoch API server...")
    click.echo(f"   URL: http://{final_host}:{final_port}")
    click.echo(f"   Docs: http://{final_host}:{final_port}/docs")
    if reload:
        click.echo("   Mode: Development (auto-reload enabled)")
    click.echo()

    try:
        run_server(host=final_host, port=final_port, reload=reload, config=config)
    except KeyboardInterrupt:
        click.echo("\n\n👋 Shutting down API server...")
