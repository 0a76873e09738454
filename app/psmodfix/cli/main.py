"""Main CLI application entry point.

Defines the Typer application, global options and logging setup.
"""

import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from psmodfix import __version__
from psmodfix.cli.commands import config, history, profile, repair, status
from psmodfix.core.elevation import PAUSE_ON_EXIT_FLAG
from psmodfix.utils.formatting import err_console

app = typer.Typer(
    name="psmodfix",
    help="Clean reinstall of PowerShell SDK module families.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"psmodfix version {__version__}")
        raise typer.Exit()


def wait_for_enter() -> None:
    """Keep the console open until the operator presses Enter."""
    typer.prompt("\nPress Enter to close", default="", show_default=False)


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Route log records to stderr through Rich.

    Args:
        verbose: Log at DEBUG level.
        quiet: Log errors only. Wins over verbose.
    """
    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    if quiet:
        level = logging.ERROR
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
    pause_on_exit: Annotated[
        bool,
        typer.Option(
            PAUSE_ON_EXIT_FLAG,
            hidden=True,
            help="Wait for Enter before exiting (elevated Windows console).",
        ),
    ] = False,
) -> None:
    """psmodfix - Clean reinstall of PowerShell SDK module families.

    Removes every installed version of a module family, including files
    left behind outside the package manager, then reinstalls it and checks
    that stable and preview channels are on the same version.
    """
    configure_logging(verbose, quiet)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    if pause_on_exit:
        ctx.call_on_close(wait_for_enter)


# Register commands
app.add_typer(repair.app, name="repair")
app.add_typer(status.app, name="status")
app.add_typer(profile.app, name="profile")
app.add_typer(config.app, name="config")
app.add_typer(history.app, name="history")


if __name__ == "__main__":
    app()
