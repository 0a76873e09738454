"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from psmodfix.core.theme import get_theme

if TYPE_CHECKING:
    from psmodfix.models.module import PackageStatus


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def create_status_table(title: str = "Module Status") -> Table:
    """Create a pre-configured table for displaying module status.

    Args:
        title: Table title.

    Returns:
        Rich Table configured for status display.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("", width=2, justify="center")
    table.add_column("Module", no_wrap=True)
    table.add_column("Installed", style="muted")
    table.add_column("Available", style="muted")
    table.add_column("Status")
    return table


def format_status_row(status: PackageStatus) -> tuple[str, str, str, str, str]:
    """Format a module status as a table row with proper styling.

    Args:
        status: The status to format.

    Returns:
        Tuple of (icon, name, installed, available, status) with Rich markup.
    """
    installed = str(status.installed_version) if status.installed_version else "-"
    available = str(status.available_version) if status.available_version else "-"

    if not status.installed:
        return (
            "[missing]○[/]",
            f"[missing]{status.name}[/]",
            "-",
            "-",
            "[missing]not installed[/]",
        )
    if status.update_available:
        return (
            "[outdated]▲[/]",  # Up triangle
            f"[outdated]{status.name}[/]",
            installed,
            available,
            "[outdated]update available[/]",
        )
    state = "[current]current[/]" if status.available_version else "[muted]unknown[/]"
    return ("[current]●[/]", f"[module.name]{status.name}[/]", installed, available, state)


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
