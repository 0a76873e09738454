"""Profile command implementation.

Adds or removes the startup status check in the PowerShell profile.
"""

from pathlib import Path
from typing import Annotated

import typer

from psmodfix.core.paths import get_profile_path
from psmodfix.core.profile import (
    ProfileError,
    has_status_block,
    install_status_block,
    remove_status_block,
)
from psmodfix.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Manage the status check in the PowerShell profile.",
    no_args_is_help=True,
)

ProfileOption = Annotated[
    Path | None,
    typer.Option(
        "--path",
        "-p",
        help="Profile file (default: current user's PowerShell profile).",
    ),
]


@app.command()
def install(path: ProfileOption = None) -> None:
    """Run 'psmodfix status' whenever a PowerShell session starts."""
    profile = path or get_profile_path()
    try:
        added = install_status_block(profile)
    except ProfileError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if added:
        print_success(f"Status check added to {profile}")
    else:
        print_info(f"Status check already present in {profile}")


@app.command()
def remove(path: ProfileOption = None) -> None:
    """Remove the status check from the profile."""
    profile = path or get_profile_path()
    try:
        removed = remove_status_block(profile)
    except ProfileError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if removed:
        print_success(f"Removed {removed} line(s) from {profile}")
    else:
        print_info(f"No status check found in {profile}")


@app.command()
def show(path: ProfileOption = None) -> None:
    """Show the profile path and whether the status check is installed."""
    profile = path or get_profile_path()
    try:
        present = has_status_block(profile)
    except ProfileError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    console.print(f"Profile: {profile}")
    if present:
        console.print("Status check: [success]installed[/success]")
    else:
        console.print("Status check: [muted]not installed[/muted]")
