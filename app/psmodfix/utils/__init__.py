"""Utility modules for psmodfix.

This module exports commonly used utility functions.
"""

from psmodfix.utils.formatting import (
    console,
    create_status_table,
    err_console,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from psmodfix.utils.shell import CommandResult, command_exists, run_command

__all__ = [
    "CommandResult",
    "command_exists",
    "console",
    "create_status_table",
    "err_console",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
]
