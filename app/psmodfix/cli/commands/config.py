"""Config command implementation.

Shows the effective settings and writes a default configuration file.
"""

from typing import Annotated

import tomli_w
import typer

from psmodfix.cli.types import load_settings_or_exit
from psmodfix.core.config import ConfigError, Settings, save_settings
from psmodfix.core.paths import get_config_path
from psmodfix.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="View and initialize psmodfix settings.",
    no_args_is_help=True,
)


@app.command()
def show() -> None:
    """Print the effective settings as TOML."""
    settings = load_settings_or_exit()
    config_path = get_config_path()
    if not config_path.exists():
        print_info(f"No config at {config_path}, showing defaults.")
    console.print(tomli_w.dumps(settings.model_dump(mode="json")), markup=False, highlight=False)


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite an existing config file.",
        ),
    ] = False,
) -> None:
    """Write a config file with default settings."""
    config_path = get_config_path()
    if config_path.exists() and not force:
        print_error(f"Config already exists at {config_path}. Use --force to overwrite.")
        raise typer.Exit(code=1)

    try:
        saved = save_settings(Settings(), config_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Config written to {saved}")


@app.command()
def path() -> None:
    """Print the config file path."""
    typer.echo(str(get_config_path()))
