"""``indigoforge authorize``: store credentials for a location.

The OAuth code exchange happens outside this tool; this command records
the resulting tokens where ``build`` will look for them.
"""

from __future__ import annotations

import time
from pathlib import Path

import typer
from rich.console import Console

from indigoforge.config import config
from indigoforge.core.credentials import JsonCredentialStore
from indigoforge.models.credentials import LocationCredentials

console = Console()

DEFAULT_SCOPES = ["contacts.write", "opportunities.write", "customFields.write"]


def authorize_cmd(
    location: str = typer.Option(..., "--location", "-L", help="Location (tenant) id."),
    access_token: str = typer.Option(
        ..., "--access-token", envvar="INDIGOFORGE_ACCESS_TOKEN", help="Bearer access token."
    ),
    refresh_token: str = typer.Option("", "--refresh-token", help="Refresh token."),
    expires_in: int = typer.Option(
        3600, "--expires-in", help="Access token lifetime in seconds."
    ),
    scope: list[str] = typer.Option(
        None, "--scope", help="Granted scope (repeatable)."
    ),
    credentials_path: Path = typer.Option(
        None, "--credentials", help="Credential file (defaults to config)."
    ),
) -> None:
    """Store location credentials for subsequent builds."""
    store = JsonCredentialStore(credentials_path or config.credentials_path)
    credentials = LocationCredentials(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=int(time.time() * 1000) + expires_in * 1000,
        location_id=location,
        scopes=scope or DEFAULT_SCOPES,
    )
    store.save(credentials)
    console.print(f"[bold green]Credentials stored[/bold green] for location [cyan]{location}[/cyan]")
