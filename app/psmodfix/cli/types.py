"""Shared helpers for CLI commands.

This module provides the settings and client factories used across
multiple CLI command modules.
"""

import typer

from psmodfix.client.base import PackageManagerClient
from psmodfix.client.powershell import PowerShellGetClient
from psmodfix.core.config import ConfigError, Settings, load_settings
from psmodfix.utils.formatting import print_error


def load_settings_or_exit() -> Settings:
    """Load settings, exiting with an error message if they are invalid.

    Raises:
        typer.Exit: If the configuration file is invalid.
    """
    try:
        return load_settings()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def get_client(settings: Settings) -> PackageManagerClient:
    """Create the package manager client described by the settings."""
    return PowerShellGetClient(
        executable=settings.pwsh,
        repository=settings.repository,
        timeout=settings.command_timeout_seconds,
        install_timeout=settings.install_timeout_seconds,
    )
