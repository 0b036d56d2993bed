"""Rich terminal renderer for build plans and build statuses.

Color scheme
------------
- green     : SUCCESS
- red       : FAILED
- yellow    : EXECUTING
- magenta   : CANCELLED
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from indigoforge.core.hasher import resource_key_suffix
from indigoforge.models.build import BuildState, BuildStatus, BuildStep


_STATE_STYLES: dict[BuildState, str] = {
    BuildState.SUCCESS: "bold green",
    BuildState.FAILED: "bold red",
    BuildState.EXECUTING: "bold yellow",
    BuildState.CANCELLED: "bold magenta",
}

_BORDER_STYLES: dict[BuildState, str] = {
    BuildState.SUCCESS: "green",
    BuildState.FAILED: "red",
    BuildState.EXECUTING: "yellow",
    BuildState.CANCELLED: "magenta",
}


class BuildRenderer:
    """Renders compiled plans and build statuses as Rich output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    def render_plan(self, steps: list[BuildStep], *, title: str = "Dry Run") -> Table:
        """Build a table with one row per compiled step."""
        table = Table(
            title=title,
            show_header=True,
            header_style="bold cyan",
            expand=True,
        )
        table.add_column("#", style="dim", width=5, justify="right")
        table.add_column("Method", width=7)
        table.add_column("Endpoint", min_width=30)
        table.add_column("Resource", min_width=20)
        table.add_column("Key", style="dim")

        for step in steps:
            table.add_row(
                str(step.step_number),
                step.method,
                step.endpoint,
                step.description,
                f"…{resource_key_suffix(step.idempotency_key)}",
            )
        return table

    def print_plan(self, steps: list[BuildStep], *, title: str = "Dry Run") -> None:
        self.console.print(self.render_plan(steps, title=title))

    # ------------------------------------------------------------------
    # Statuses
    # ------------------------------------------------------------------

    def render_status(self, status: BuildStatus, *, show_logs: int = 10) -> Panel:
        """Render a BuildStatus as a Panel with a deployed-resources table."""
        style = _STATE_STYLES.get(status.status, "")
        summary_parts = [
            f"[bold]Run:[/bold] {status.run_id}",
            f"[bold]Location:[/bold] {status.tenant_id}",
            f"[bold]Plan:[/bold] {status.plan_hash}",
            f"[bold]Status:[/bold] [{style}]{status.status.value}[/{style}]",
            f"[bold]Resources:[/bold] {len(status.deployed_resource_ids)}",
        ]
        renderables: list = [Text.from_markup("  |  ".join(summary_parts))]

        if status.error:
            renderables.append(Text.assemble(("Error: ", "bold red"), status.error))

        if status.deployed_resource_ids:
            table = Table(show_header=True, header_style="bold cyan", expand=True)
            table.add_column("Resource Key")
            table.add_column("Resource ID", style="green")
            for key, resource_id in status.deployed_resource_ids.items():
                table.add_row(resource_key_suffix(key), resource_id)
            renderables.extend([Text(""), table])

        if show_logs and status.logs:
            renderables.append(Text(""))
            for line in status.logs[-show_logs:]:
                renderables.append(Text(line, style="dim"))

        return Panel(
            Group(*renderables),
            title="[bold]Indigoforge Build Status[/bold]",
            subtitle=f"Last run: {status.last_run_at.strftime('%Y-%m-%d %H:%M:%S UTC')}",
            border_style=_BORDER_STYLES.get(status.status, "blue"),
            padding=(1, 2),
        )

    def print_status(self, status: BuildStatus, *, show_logs: int = 10) -> None:
        self.console.print(self.render_status(status, show_logs=show_logs))

    def render_history(self, statuses: list[BuildStatus]) -> Table:
        table = Table(title="Build History", show_header=True, header_style="bold cyan")
        table.add_column("Run")
        table.add_column("Plan")
        table.add_column("Status", justify="center")
        table.add_column("Resources", justify="right")
        table.add_column("Started")
        for status in statuses:
            style = _STATE_STYLES.get(status.status, "")
            table.add_row(
                status.run_id,
                status.plan_hash,
                f"[{style}]{status.status.value}[/{style}]",
                str(len(status.deployed_resource_ids)),
                status.last_run_at.strftime("%Y-%m-%d %H:%M:%S"),
            )
        return table
