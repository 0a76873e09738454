"""CLI commands for psmodfix.

This package contains all subcommand implementations.
"""

from psmodfix.cli.commands import config, history, profile, repair, status

__all__ = ["config", "history", "profile", "repair", "status"]
