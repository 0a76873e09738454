"""Status command implementation.

Shows installed vs latest available versions of the tracked modules and
offers to run a repair when updates exist. Meant to be called from the
PowerShell profile, so it works offline and never fails the shell.
"""

import json
from typing import Annotated

import typer

from psmodfix.cli.commands import repair as repair_command
from psmodfix.cli.types import get_client, load_settings_or_exit
from psmodfix.client.base import PackageManagerUnavailableError
from psmodfix.core.status import StatusReporter, updates_available
from psmodfix.models.module import PackageStatus
from psmodfix.utils.formatting import (
    console,
    create_status_table,
    format_status_row,
    print_success,
    print_warning,
)

# Exit code of `status --silent` when at least one update is available
UPDATES_AVAILABLE_EXIT_CODE = 3

app = typer.Typer(
    help="Show installed and available module versions.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def status(
    ctx: typer.Context,
    modules: Annotated[
        list[str] | None,
        typer.Option(
            "--module",
            "-m",
            help="Module to check (repeatable). Defaults to the configured families.",
        ),
    ] = None,
    silent: Annotated[
        bool,
        typer.Option(
            "--silent",
            help="Print nothing; exit with code 3 if updates are available.",
        ),
    ] = False,
    no_prompt: Annotated[
        bool,
        typer.Option(
            "--no-prompt",
            help="Don't offer to run a repair when updates are available.",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show whether tracked modules are installed and up to date.

    Examples:
        psmodfix status                          # Table plus repair offer
        psmodfix status --no-prompt              # Table only (profile use)
        psmodfix status -m Microsoft.Graph --json
        psmodfix status --silent                 # Exit code only
    """
    if ctx.invoked_subcommand is not None:
        return

    settings = load_settings_or_exit()
    client = get_client(settings)
    if not client.is_available():
        if not silent:
            print_warning(f"PowerShell executable '{settings.pwsh}' was not found.")
        return

    try:
        statuses = StatusReporter(client).get_status(modules or settings.tracked_modules())
    except PackageManagerUnavailableError as e:
        if not silent:
            print_warning(str(e))
        return

    outdated = updates_available(statuses)
    if silent:
        if outdated:
            raise typer.Exit(code=UPDATES_AVAILABLE_EXIT_CODE)
        return

    if json_output:
        typer.echo(json.dumps([s.to_dict() for s in statuses], indent=2))
        return

    _print_table(statuses)

    if not outdated:
        if all(s.installed for s in statuses):
            print_success("All tracked modules are up to date.")
        return

    names = ", ".join(s.name for s in outdated)
    print_warning(f"Updates available for: {names}")
    if no_prompt:
        console.print("[muted]Run 'psmodfix repair' to reinstall.[/muted]")
        return

    if typer.confirm("Run a repair now?", default=False):
        if settings.require_elevation:
            # The elevated process goes straight to the repair menus
            repair_command.require_elevation(["repair"])
        plan = repair_command.prompt_plan(settings.module_families())
        repair_command.execute_plan(plan, client, settings)


def _print_table(statuses: list[PackageStatus]) -> None:
    table = create_status_table()
    for s in statuses:
        table.add_row(*format_status_row(s))
    console.print(table)
