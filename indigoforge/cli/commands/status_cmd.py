"""``indigoforge status``: show the persisted build status for a location."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from indigoforge.config import config
from indigoforge.core.status_store import SQLiteBuildStatusStore
from indigoforge.monitor.renderer import BuildRenderer

console = Console()


def status_cmd(
    location: str = typer.Option(
        None,
        "--location",
        "-L",
        help="Location id (defaults to the most recently built location).",
    ),
    history: bool = typer.Option(
        False,
        "--history",
        "-H",
        help="List previous runs for the location.",
    ),
    logs: int = typer.Option(10, "--logs", help="Number of trailing log lines to show."),
    status_db: Path = typer.Option(
        None, "--status-db", help="Status database (defaults to config)."
    ),
) -> None:
    """Show the latest build status (and optionally the run history)."""
    db_path = Path(status_db or config.status_db_path)
    if not db_path.exists():
        console.print(f"[bold red]Status database not found:[/bold red] {db_path}")
        console.print("[dim]Run a build first with: indigoforge build[/dim]")
        raise typer.Exit(code=1)

    store = SQLiteBuildStatusStore(db_path)
    if location is None:
        locations = store.locations()
        if not locations:
            console.print("[dim]No builds recorded.[/dim]")
            raise typer.Exit(code=1)
        location = locations[0]

    status = store.load(location)
    if status is None:
        console.print(f"[bold red]No build recorded for location:[/bold red] {location}")
        raise typer.Exit(code=1)

    renderer = BuildRenderer(console=console)
    renderer.print_status(status, show_logs=logs)
    if history:
        console.print(renderer.render_history(store.history(location)))
