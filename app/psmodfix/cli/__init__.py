"""CLI package for psmodfix.

This package contains the Typer application and all subcommands.
"""

from psmodfix.cli.main import app

__all__ = ["app"]
