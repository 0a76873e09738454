"""Repair command implementation.

Uninstalls the selected module families until nothing is left, sweeps
their folders, reinstalls them and validates the result. All choices are
made through numbered menus.
"""

import sys

import typer

from psmodfix.cli.display import (
    create_install_table,
    create_menu_table,
    print_reconciliation_report,
    print_run_summary,
    print_validation_report,
)
from psmodfix.cli.types import get_client, load_settings_or_exit
from psmodfix.client.base import PackageManagerClient, PackageManagerUnavailableError
from psmodfix.core.config import Settings
from psmodfix.core.elevation import (
    InsufficientPrivilegeError,
    ensure_elevated,
    relaunch_elevated,
)
from psmodfix.core.progress import ElapsedTicker, StatusChannel
from psmodfix.core.repair import RepairPlan, record_run, run_repair
from psmodfix.models.selection import (
    InstallScope,
    MenuOption,
    ModuleFamily,
    PackageSelection,
    build_family_menu,
)
from psmodfix.utils.formatting import console, print_error, print_info, print_warning

app = typer.Typer(
    help="Clean reinstall of module families.",
    invoke_without_command=True,
)

_SCOPE_OPTIONS: dict[int, InstallScope] = {
    1: InstallScope.ALL_USERS,
    2: InstallScope.CURRENT_USER,
}


@app.callback(invoke_without_command=True)
def repair(ctx: typer.Context) -> None:
    """Uninstall, clean up and reinstall module families.

    Asks which families to remove, which to reinstall and the install
    scope, then runs the whole cycle. Requires administrator rights.
    """
    if ctx.invoked_subcommand is not None:
        return

    settings = load_settings_or_exit()
    if settings.require_elevation:
        require_elevation(sys.argv[1:])

    client = get_client(settings)
    if not client.is_available():
        print_error(f"PowerShell executable '{settings.pwsh}' was not found.")
        raise typer.Exit(code=1)

    plan = prompt_plan(settings.module_families())
    execute_plan(plan, client, settings)


def require_elevation(argv: list[str]) -> None:
    """Ensure administrator rights, relaunching elevated if needed.

    Args:
        argv: Command line the elevated process runs (without the program).

    Raises:
        typer.Exit: With code 0 when the elevated relaunch took over,
            code 1 when elevation could not be obtained.
    """
    try:
        ensure_elevated()
    except InsufficientPrivilegeError as e:
        print_warning(f"{e}. Relaunching elevated...")
        if relaunch_elevated(argv):
            raise typer.Exit(code=0) from e
        print_error("Could not obtain administrator rights.")
        raise typer.Exit(code=1) from e


def prompt_menu(title: str, options: list[MenuOption], default: int) -> MenuOption:
    """Show a numbered menu and read the operator's choice.

    Invalid numbers are rejected and the question is asked again.
    """
    console.print(create_menu_table(title, options, default))
    by_number = {option.number: option for option in options}
    while True:
        choice = typer.prompt("Select", default=default, type=int)
        if choice in by_number:
            return by_number[choice]
        print_warning(f"{choice} is not one of the listed options.")


def prompt_scope() -> InstallScope:
    """Ask for the installation scope (default: all users)."""
    console.print("\n[bold_header]Install scope[/bold_header]")
    console.print("  [info]1[/info] AllUsers [muted](default)[/muted]")
    console.print("  [info]2[/info] CurrentUser")
    while True:
        choice = typer.prompt("Select", default=1, type=int)
        if choice in _SCOPE_OPTIONS:
            return _SCOPE_OPTIONS[choice]
        print_warning(f"{choice} is not one of the listed options.")


def _default_install_number(options: list[MenuOption], removed: tuple[ModuleFamily, ...]) -> int:
    """Pick the install entry matching the removed families, else skip."""
    for option in options:
        if option.families and option.families == removed:
            return option.number
    return 0


def prompt_plan(families: tuple[ModuleFamily, ...]) -> RepairPlan:
    """Ask the three menu questions and build the repair plan."""
    remove_options = build_family_menu(families)
    removed = prompt_menu("Which module families should be uninstalled?", remove_options, 1)

    install_options = build_family_menu(families, include_skip=True)
    installed = prompt_menu(
        "Which module families should be installed?",
        install_options,
        _default_install_number(install_options, removed.families),
    )

    scope = prompt_scope() if installed.families else InstallScope.ALL_USERS
    return RepairPlan(
        remove=PackageSelection(families=removed.families, scope=scope),
        install=PackageSelection(families=installed.families, scope=scope),
    )


def execute_plan(plan: RepairPlan, client: PackageManagerClient, settings: Settings) -> None:
    """Run a repair plan with live progress and print all reports.

    Raises:
        typer.Exit: With code 1 if the package manager became unavailable.
    """
    channel = StatusChannel()
    try:
        with console.status("Starting...") as status:
            with ElapsedTicker(channel, render=status.update):
                result = run_repair(plan, client, settings, channel=channel)
    except PackageManagerUnavailableError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if result.reconciliation is not None:
        print_reconciliation_report(result.reconciliation)
    if result.install is not None:
        console.print(create_install_table(result.install))
    if result.validation is not None:
        print_validation_report(result.validation)

    print_run_summary(result.summary)

    if record_run(plan, result):
        print_info("Run recorded to history.")
