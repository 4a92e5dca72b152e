"""Main CLI application."""

import json
import sys
from datetime import date
from pathlib import Path
from typing import Any, NoReturn, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from epoch_timesheet import __version__
from epoch_timesheet.backend.auth import IdentityProvider
from epoch_timesheet.backend.client import BackendClient
from epoch_timesheet.backend.entries import EntryStore
from epoch_timesheet.backend.session_file import SessionFile
from epoch_timesheet.cli.api_commands import api
from epoch_timesheet.core.config import ConfigManager
from epoch_timesheet.core.errors import (
    AuthenticationError,
    BackendError,
    ConfigurationError,
    FormValidationError,
)
from epoch_timesheet.core.logging_config import setup_logging
from epoch_timesheet.core.models import BillableCategory, EntryForm
from epoch_timesheet.core.session_gate import SessionGate, SessionStatus
from epoch_timesheet.core.workspace import TimesheetWorkspace
from epoch_timesheet.export.weekly_report import DEFAULT_TITLE

console = Console()
error_console = Console(stderr=True)

# Exit status for missing or invalid configuration
EXIT_CONFIG = 2


def fail(message: str, exit_code: int = 1) -> NoReturn:
    """Print an error and exit."""
    error_console.print(f"[red]Error:[/red] {message}")
    sys.exit(exit_code)


def get_backend(ctx: click.Context) -> BackendClient:
    """Get the backend client, creating it on first use."""
    obj: dict[str, Any] = ctx.obj
    if obj.get("backend") is None:
        try:
            backend = BackendClient.from_config(obj["config"], transport=obj.get("transport"))
        except ConfigurationError as e:
            fail(str(e), EXIT_CONFIG)
        obj["backend"] = backend
        ctx.call_on_close(backend.close)
    client: BackendClient = obj["backend"]
    return client


def get_provider(ctx: click.Context) -> IdentityProvider:
    """Get the identity provider backed by the session file."""
    obj: dict[str, Any] = ctx.obj
    if obj.get("provider") is None:
        obj["provider"] = IdentityProvider(get_backend(ctx), SessionFile(obj["session_file"]))
    provider: IdentityProvider = obj["provider"]
    return provider


def get_workspace(ctx: click.Context) -> TimesheetWorkspace:
    """Get a workspace for the signed-in user, or exit when signed out."""
    config: ConfigManager = ctx.obj["config"]

    with SessionGate(get_provider(ctx)) as gate:
        state = gate.resolve_session()

    if state.status is not SessionStatus.AUTHENTICATED or state.session is None:
        fail("Not signed in. Run: epoch login")

    store = EntryStore(get_backend(ctx), table=config.get("backend.table", "time_entries"))
    return TimesheetWorkspace(
        store, state.session, report_title=config.get("report.title", DEFAULT_TITLE)
    )


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    envvar="EPOCH_CONFIG",
    type=click.Path(dir_okay=False),
    help="Path to config file",
)
@click.option("--session-file", type=click.Path(dir_okay=False), help="Custom session file")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("-v", "--verbose", is_flag=True, help="Log progress to stderr")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[str],
    session_file: Optional[str],
    no_color: bool,
    verbose: bool,
) -> None:
    """Epoch - log your activities, export your weekly report.

    Sign in, record what you worked on, and export an Excel timesheet.
    """
    ctx.ensure_object(dict)

    try:
        config = ConfigManager(Path(config_path) if config_path else None)
    except ConfigurationError as e:
        fail(str(e), EXIT_CONFIG)

    setup_logging("INFO" if verbose else "WARNING", config.get("logging.file"))

    ctx.obj["config"] = config
    ctx.obj["session_file"] = Path(session_file) if session_file else config.session_file_path()

    if no_color:
        console.no_color = True
        error_console.no_color = True


@cli.command()
@click.option("-e", "--email", prompt=True, help="Account email")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
@click.pass_context
def login(ctx: click.Context, email: str, password: str) -> None:
    """Sign in to your account.

    Example:
        epoch login -e ana@example.com
    """
    try:
        session = get_provider(ctx).sign_in_with_password(email, password)
    except AuthenticationError as e:
        fail(f"Sign-in failed: {e}")

    console.print(f"[green]✓[/green] Signed in as {session.user.label}")


@cli.command()
@click.option("-e", "--email", prompt=True, help="Account email")
@click.option(
    "--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Account password"
)
@click.pass_context
def signup(ctx: click.Context, email: str, password: str) -> None:
    """Create a new account.

    Example:
        epoch signup -e ana@example.com
    """
    try:
        session = get_provider(ctx).sign_up(email, password)
    except AuthenticationError as e:
        fail(f"Sign-up failed: {e}")

    if session is None:
        console.print(f"[yellow]Check {email} for a confirmation link, then run: epoch login[/yellow]")
    else:
        console.print(f"[green]✓[/green] Account created, signed in as {session.user.label}")


@cli.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Sign out and forget the stored session."""
    get_provider(ctx).sign_out()
    console.print("[green]✓[/green] Signed out")


@cli.command()
@click.pass_context
def whoami(ctx: click.Context) -> None:
    """Show who is signed in."""
    with SessionGate(get_provider(ctx)) as gate:
        state = gate.resolve_session()

    if state.identity is None:
        console.print("[yellow]Not signed in[/yellow]")
        console.print("\nSign in with: [cyan]epoch login[/cyan]")
        return

    content = f"[bold]{state.identity.label}[/bold]\n\n[dim]User ID:[/dim] {state.identity.id}"
    console.print(Panel(content, title="Signed In", border_style="green"))


@cli.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_entries(ctx: click.Context, as_json: bool) -> None:
    """List your logged activities, newest first.

    Example:
        epoch list
        epoch list --json
    """
    workspace = get_workspace(ctx)

    try:
        entries = workspace.load_entries()
    except BackendError as e:
        fail(f"Could not load entries: {e}")

    if as_json:
        print(json.dumps([entry.to_dict() for entry in entries], indent=2))
        return

    if not entries:
        console.print("[yellow]No entries found[/yellow]")
        return

    table = Table(title=f"Logged Activities ({len(entries)})")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Date", style="cyan")
    table.add_column("Project", style="blue")
    table.add_column("Activity", style="bold")
    table.add_column("Time", style="magenta")
    table.add_column("Hours", justify="right")
    table.add_column("Category", style="green")

    for entry in entries:
        table.add_row(
            str(entry.id),
            entry.date,
            entry.project,
            entry.activity,
            f"{entry.time_in} - {entry.time_out}",
            f"{entry.hours_worked:g}",
            entry.billable.value,
        )

    console.print(table)


@cli.command()
@click.option("-d", "--date", "entry_date", default="", help="Date worked (YYYY-MM-DD)")
@click.option("-a", "--activity", default="", help="Work / activity done")
@click.option("-p", "--project", default="", help="Project")
@click.option("--time-in", default="", help="Time in (HH:MM)")
@click.option("--time-out", default="", help="Time out (HH:MM)")
@click.option(
    "-b",
    "--billable",
    type=click.Choice([c.value for c in BillableCategory]),
    default=BillableCategory.BILLABLE.value,
    show_default=True,
    help="Category",
)
@click.pass_context
def add(
    ctx: click.Context,
    entry_date: str,
    activity: str,
    project: str,
    time_in: str,
    time_out: str,
    billable: str,
) -> None:
    """Log an activity.

    Example:
        epoch add -d 2024-06-10 -a "Site visit" -p Outreach --time-in 09:00 --time-out 17:30
    """
    form = EntryForm(
        date=entry_date,
        activity=activity,
        project=project,
        time_in=time_in,
        time_out=time_out,
        billable=BillableCategory(billable),
    )

    # Validate before touching the session so an incomplete form never reaches the store
    try:
        form.validate()
    except FormValidationError as e:
        detail = f" (missing: {', '.join(e.missing)})" if e.missing else ""
        fail(f"{e}{detail}")

    workspace = get_workspace(ctx)

    try:
        entry = workspace.create_entry(form)
    except FormValidationError as e:
        fail(str(e))
    except BackendError as e:
        fail(f"Could not add entry: {e}")

    console.print(f"[green]✓[/green] Logged activity #{entry.id}: {entry.activity}")
    console.print(f"  Project: {entry.project}")
    console.print(f"  Date: {entry.date}  {entry.time_in} - {entry.time_out}")
    console.print(f"  Hours: {entry.hours_worked:g} ({entry.billable.value})")


@cli.command()
@click.argument("entry_id", type=int)
@click.pass_context
def delete(ctx: click.Context, entry_id: int) -> None:
    """Delete a logged activity by ID.

    Example:
        epoch delete 42
    """
    workspace = get_workspace(ctx)

    try:
        workspace.delete_entry(entry_id)
    except BackendError as e:
        fail(f"Could not delete entry: {e}")

    console.print(f"[green]✓[/green] Deleted entry #{entry_id}")


@cli.command()
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False),
    help="Directory for the report (default: from config)",
)
@click.option("--date", "report_date", help="Report date (YYYY-MM-DD), defaults to today")
@click.pass_context
def export(ctx: click.Context, output_dir: Optional[str], report_date: Optional[str]) -> None:
    """Export your entries as the weekly Excel report.

    Example:
        epoch export
        epoch export -o ~/Reports
    """
    config: ConfigManager = ctx.obj["config"]

    today: Optional[date] = None
    if report_date:
        try:
            today = date.fromisoformat(report_date)
        except ValueError:
            fail("Invalid date format for --date. Use YYYY-MM-DD")

    workspace = get_workspace(ctx)

    try:
        workspace.load_entries()
    except BackendError as e:
        fail(f"Could not load entries: {e}")

    report = workspace.export_report(today=today)
    path = report.save(Path(output_dir or config.get("report.output_dir", ".")))

    console.print(f"[green]✓[/green] Exported {len(workspace.entries)} entries to {path}")


cli.add_command(api)


if __name__ == "__main__":
    cli(obj={})
