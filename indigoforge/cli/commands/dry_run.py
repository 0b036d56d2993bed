"""``indigoforge dry-run BLUEPRINT``: preview the calls a build would make."""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.text import Text

from indigoforge.core.compiler import (
    BlueprintValidationError,
    compile_dry_run,
    format_step_preview,
)
from indigoforge.core.hasher import compute_plan_hash
from indigoforge.models.blueprint import Blueprint, load_blueprint
from indigoforge.monitor.renderer import BuildRenderer

console = Console()


def load_blueprint_or_exit(path: Path, out: Console) -> Blueprint:
    """Load a blueprint file, printing every problem and exiting 1 if it is unreadable."""
    try:
        return load_blueprint(path)
    except ValidationError as exc:
        issues = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
    except ValueError as exc:
        issues = [f"not valid JSON: {exc}"]
    out.print("[bold red]Blueprint could not be read:[/bold red]")
    for issue in issues:
        out.print(f"  - {issue}", markup=False)
    raise typer.Exit(code=1)


def dry_run_cmd(
    blueprint_path: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="Path to the blueprint JSON file.",
    ),
    location: str = typer.Option(
        ...,
        "--location",
        "-L",
        help="Target location (tenant) id.",
    ),
    table: bool = typer.Option(
        False,
        "--table",
        "-t",
        help="Render the plan as a table instead of preview lines.",
    ),
) -> None:
    """Compile a blueprint and show every provisioning call, without executing."""
    blueprint = load_blueprint_or_exit(blueprint_path, console)
    try:
        steps = compile_dry_run(blueprint, location)
    except BlueprintValidationError as exc:
        console.print("[bold red]Blueprint is invalid:[/bold red]")
        for issue in exc.issues:
            console.print(f"  - {issue}")
        raise typer.Exit(code=1)

    target = blueprint.meta.target_business or "(unnamed business)"
    console.print(f"[bold]Target:[/bold] {target}")
    console.print(f"[bold]Location:[/bold] {location}")
    console.print(f"[bold]Plan hash:[/bold] {compute_plan_hash(blueprint)}")
    if table:
        BuildRenderer(console=console).print_plan(steps)
    else:
        for step in steps:
            console.print(Text(format_step_preview(step)))
    console.print(f"[dim]{len(steps)} steps. Nothing was executed.[/dim]")
