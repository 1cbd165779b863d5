"""Command-line interface for the hall pass station."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

import typer

from .clock import TICK_INTERVAL
from .controller import SessionController
from .db import BlobStore
from .errors import HallPassError
from .ledger import export_filename, format_duration
from .paths import get_db_path
from .reporting import StatusPrinter, status_text
from .server_runner import run_dashboard

app = typer.Typer(help="Single-occupant digital hall pass.")

DB_OPTION = typer.Option(
    None,
    "--db",
    path_type=Path,
    help="Location of the hall pass SQLite database.",
)
TOKEN_OPTION = typer.Option(
    None,
    "--token",
    "-t",
    help="Decoded location QR payload.",
)


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@contextmanager
def _controller(db_path: Optional[Path]) -> Iterator[SessionController]:
    with BlobStore(db_path or get_db_path()) as store:
        try:
            yield SessionController(store)
        except HallPassError as exc:
            typer.secho(exc.message, fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc


@app.command()
def status(
    db_path: Optional[Path] = DB_OPTION,
    watch: bool = typer.Option(
        False, "--watch", "-w", help="Keep refreshing the elapsed time until interrupted."
    ),
) -> None:
    """Show whether the pass is available or in use."""
    with _controller(db_path) as controller:
        StatusPrinter(controller).print_status()
        if not watch:
            return
        try:
            watch_status(controller, threading.Event())
        except KeyboardInterrupt:
            typer.echo()


def watch_status(controller: SessionController, stop_event: threading.Event) -> None:
    """Redraw the status line every tick until ``stop_event`` is set.

    State is re-read from the store each tick so passes started or ended by
    another station process show up.
    """
    while not stop_event.wait(TICK_INTERVAL.total_seconds()):
        controller.reload()
        typer.echo(f"\r{status_text(controller)}   ", nl=False)


@app.command()
def start(
    identifier: str = typer.Argument(..., help="Scanned or typed ID."),
    token: Optional[str] = TOKEN_OPTION,
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Start a pass for IDENTIFIER."""
    with _controller(db_path) as controller:
        session = controller.start(identifier, token)
        typer.secho(f"Pass started for {session.name} (ID {session.id}).", fg=typer.colors.GREEN)


@app.command()
def end(
    identifier: str = typer.Argument(..., help="The same ID used to start the pass."),
    token: Optional[str] = TOKEN_OPTION,
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """End the active pass."""
    with _controller(db_path) as controller:
        entry = controller.end(identifier, token)
        typer.secho(
            f"Pass ended for {entry.name} (ID {entry.id}) after {format_duration(entry.duration_ms)}.",
            fg=typer.colors.GREEN,
        )


@app.command()
def logs(
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Show at most N rows."),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Print the usage log, newest first."""
    with _controller(db_path) as controller:
        StatusPrinter(controller).print_usage_log(limit=limit)


@app.command("delete-log")
def delete_log(
    index: int = typer.Argument(..., min=0, help="Row number shown by the logs command."),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Delete one usage log row."""
    with _controller(db_path) as controller:
        try:
            removed = controller.delete_log_entry(index)
        except IndexError as exc:
            typer.secho(str(exc), fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        typer.echo(f"Deleted log entry for {removed.name} (ID {removed.id}).")


@app.command("export-logs")
def export_logs(
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", path_type=Path, help="Destination CSV file."
    ),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Write the usage log as CSV."""
    target = output or Path(export_filename(datetime.now().date()))
    with _controller(db_path) as controller:
        target.write_text(controller.export_logs(), encoding="utf-8")
    typer.echo(f"Wrote {target}")


@app.command("import-roster")
def import_roster(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV with id,name columns."),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Replace the roster with the contents of SOURCE."""
    text = source.read_text(encoding="utf-8-sig")
    with _controller(db_path) as controller:
        count = controller.import_roster(text)
    typer.echo(f"Imported {count} roster entries.")


@app.command("export-roster")
def export_roster(
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", path_type=Path, help="Destination CSV file (stdout if omitted)."
    ),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Write the roster (or an empty template) as CSV."""
    with _controller(db_path) as controller:
        body = controller.export_roster()
    if output is None:
        typer.echo(body, nl=False)
        return
    output.write_text(body, encoding="utf-8")
    typer.echo(f"Wrote {output}")


@app.command("clear-roster")
def clear_roster(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Remove every roster entry."""
    if not yes:
        typer.confirm("Clear the roster?", abort=True)
    with _controller(db_path) as controller:
        controller.clear_roster()
    typer.echo("Roster cleared.")


@app.command()
def settings(
    location_name: Optional[str] = typer.Option(
        None, "--location-name", help="Name shown on the status screen and in logs."
    ),
    require_token: Optional[bool] = typer.Option(
        None,
        "--require-token/--no-require-token",
        help="Require the posted location QR to start and end a pass.",
    ),
    allow_manual: Optional[bool] = typer.Option(
        None,
        "--allow-manual-id/--no-allow-manual-id",
        help="Show manual ID entry in the web UI.",
    ),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Show or update station settings."""
    changes = {
        "location_name": location_name,
        "require_location_token": require_token,
        "allow_manual_identifier": allow_manual,
    }
    with _controller(db_path) as controller:
        if any(value is not None for value in changes.values()):
            current = controller.update_settings(**changes)
        else:
            current = controller.settings
    typer.echo(f"Location name:        {current.location_name}")
    typer.echo(f"Require location QR:  {'yes' if current.require_location_token else 'no'}")
    typer.echo(f"Allow manual ID:      {'yes' if current.allow_manual_identifier else 'no'}")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the dashboard."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the dashboard."
    ),
    db_path: Optional[Path] = DB_OPTION,
    open_browser: bool = typer.Option(
        True,
        "--open-browser/--no-open-browser",
        help="Automatically launch the dashboard in your default browser.",
    ),
) -> None:
    """Start the local station dashboard."""
    run_dashboard(
        host=host,
        port=port,
        db_path=db_path or get_db_path(),
        open_browser=open_browser,
    )
