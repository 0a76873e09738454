"""History command for viewing past repair runs.

This module provides the `psmodfix history` command.
"""

import json
from datetime import datetime
from typing import Annotated

import typer
from rich.table import Table

from psmodfix.core.history import RunHistory
from psmodfix.models.history import RunRecord
from psmodfix.utils.formatting import console, print_info

app = typer.Typer(
    name="history",
    help="View history of repair runs.",
    invoke_without_command=True,
)

_LEVEL_STYLES = {
    "success": "success",
    "warning": "warning",
    "failed": "error",
}


@app.callback(invoke_without_command=True)
def history(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            help="Maximum number of runs to show.",
        ),
    ] = 20,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show past repair runs, newest first.

    Examples:
        psmodfix history            # Show last 20 runs
        psmodfix history -n 5       # Show last 5 runs
        psmodfix history --json     # JSON output for scripting
    """
    if ctx.invoked_subcommand is not None:
        return

    entries = RunHistory().get_history(limit=limit)
    if not entries:
        print_info("No repair runs recorded yet.")
        return

    if json_output:
        typer.echo(json.dumps([entry.to_dict() for entry in entries], indent=2))
    else:
        _print_table(entries)


def _print_table(entries: list[RunRecord]) -> None:
    """Print runs as a Rich table.

    Args:
        entries: Run records to display.
    """
    table = Table(
        title="Repair History",
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("ID", style="dim")
    table.add_column("Timestamp", style="info")
    table.add_column("Result")
    table.add_column("Removed")
    table.add_column("Installed")
    table.add_column("Passes", justify="right")
    table.add_column("Residual", justify="right")

    for entry in entries:
        style = _LEVEL_STYLES.get(entry.level, "text")
        installed = ", ".join(
            name if ok else f"[error]{name}[/error]" for name, ok in entry.installed.items()
        )
        table.add_row(
            entry.id[:8],
            _format_timestamp(entry.timestamp),
            f"[{style}]{entry.level}[/{style}]",
            ", ".join(entry.removed) or "-",
            installed or "-",
            str(entry.iterations_run),
            str(len(entry.residual_items)),
        )

    console.print(table)


def _format_timestamp(iso_timestamp: str) -> str:
    """Format an ISO 8601 timestamp as YYYY-MM-DD HH:MM."""
    dt = datetime.fromisoformat(iso_timestamp.replace("Z", "+00:00"))
    return dt.strftime("%Y-%m-%d %H:%M")
