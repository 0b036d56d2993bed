"""``indigoforge build BLUEPRINT``: deploy a blueprint to a location.

Streams progress lines as steps complete and prints the final status.
Exits with code 1 on missing credentials, invalid blueprints, failed
or cancelled builds.
"""

from __future__ import annotations

import signal
import threading
from pathlib import Path

import typer
from rich.console import Console
from rich.text import Text

from indigoforge.cli.commands.dry_run import load_blueprint_or_exit
from indigoforge.config import IndigoConfig, config
from indigoforge.core.activity_log import ActivityLog
from indigoforge.core.build_runner import BuildRunner
from indigoforge.core.compiler import BlueprintValidationError
from indigoforge.core.credentials import JsonCredentialStore
from indigoforge.core.errors import (
    BuildCancelledError,
    BuildFailedError,
    BuildPreconditionError,
)
from indigoforge.core.rate_limiter import TokenBucket
from indigoforge.core.status_store import SQLiteBuildStatusStore
from indigoforge.monitor.renderer import BuildRenderer
from indigoforge.providers.provisioning_client import HttpProvisioningClient

console = Console()


def make_runner(cfg: IndigoConfig, client: HttpProvisioningClient) -> BuildRunner:
    """Wire a BuildRunner from runtime configuration."""
    return BuildRunner(
        client,
        SQLiteBuildStatusStore(cfg.status_db_path),
        JsonCredentialStore(cfg.credentials_path),
        rate_limiter=TokenBucket(
            capacity=cfg.rate_limit_capacity,
            refill_per_second=cfg.rate_limit_refill_per_second,
            poll_interval=cfg.rate_limit_poll_interval_seconds,
        ),
        activity_log=ActivityLog(capacity=cfg.activity_log_capacity),
        resume=cfg.resume_builds,
    )


def build_cmd(
    blueprint_path: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="Path to the blueprint JSON file.",
    ),
    location: str = typer.Option(
        None,
        "--location",
        "-L",
        help="Target location id (defaults to the stored location).",
    ),
) -> None:
    """Execute a blueprint build against the provisioning API."""
    if location is None:
        location = JsonCredentialStore(config.credentials_path).default_location()
        if location is None:
            console.print("[bold red]No location given and no credentials stored.[/bold red]")
            console.print("[dim]Store credentials first with: indigoforge authorize[/dim]")
            raise typer.Exit(code=1)

    blueprint = load_blueprint_or_exit(blueprint_path, console)
    renderer = BuildRenderer(console=console)
    cancel = threading.Event()
    # Ctrl+C cancels between steps
    previous_handler = signal.signal(signal.SIGINT, lambda *_: cancel.set())

    with HttpProvisioningClient(
        base_url=config.api_base_url,
        api_version=config.api_version,
        timeout_seconds=config.request_timeout_seconds,
    ) as client:
        runner = make_runner(config, client)
        try:
            status = runner.execute_build(
                blueprint,
                location,
                on_log=lambda line: console.print(Text.assemble((">>> ", "cyan"), line)),
                cancel=cancel,
            )
        except BuildPreconditionError as exc:
            console.print(f"[bold red]Precondition failed:[/bold red] {exc}")
            raise typer.Exit(code=1)
        except BlueprintValidationError as exc:
            console.print("[bold red]Blueprint is invalid:[/bold red]")
            for issue in exc.issues:
                console.print(f"  - {issue}")
            raise typer.Exit(code=1)
        except BuildFailedError as exc:
            renderer.print_status(exc.status)
            raise typer.Exit(code=1)
        except BuildCancelledError as exc:
            console.print(f"[bold magenta]Build cancelled:[/bold magenta] {exc}")
            raise typer.Exit(code=1)
        finally:
            signal.signal(signal.SIGINT, previous_handler)

    renderer.print_status(status)
