"""Main Typer application: imports and registers all CLI commands.

Entry point: ``indigoforge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from indigoforge.cli.commands.authorize import authorize_cmd
from indigoforge.cli.commands.build import build_cmd
from indigoforge.cli.commands.dry_run import dry_run_cmd
from indigoforge.cli.commands.status_cmd import status_cmd
from indigoforge.config import config

app = typer.Typer(
    name="indigoforge",
    help="Indigoforge: idempotent, rate-limited blueprint provisioning.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None, "--log-level", help="Logging level (defaults to INDIGOFORGE_LOG_LEVEL)."
    ),
) -> None:
    """Configure logging for every subcommand."""
    logging.basicConfig(
        level=(log_level or config.log_level).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=config.debug)],
        force=True,
    )


# Register subcommands
app.command(name="dry-run", help="Preview the provisioning calls for a blueprint.")(dry_run_cmd)
app.command(name="build", help="Execute a blueprint build.")(build_cmd)
app.command(name="status", help="Show the last build status for a location.")(status_cmd)
app.command(name="authorize", help="Store credentials for a location.")(authorize_cmd)


@app.command(name="hash", help="Print the plan hash of a blueprint.")
def hash_cmd(
    blueprint_path: Path = typer.Argument(..., exists=True, dir_okay=False),
) -> None:
    """Print the plan hash (resource-affecting content only)."""
    from indigoforge.cli.commands.dry_run import load_blueprint_or_exit
    from indigoforge.core.hasher import compute_plan_hash

    blueprint = load_blueprint_or_exit(blueprint_path, Console(stderr=True))
    typer.echo(compute_plan_hash(blueprint))


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
