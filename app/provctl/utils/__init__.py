"""Utility modules for provctl.

This module exports commonly used utility functions.
"""

from provctl.utils.formatting import (
    configure_logging,
    console,
    create_table,
    err_console,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from provctl.utils.shell import CommandResult, command_exists, run_command

__all__ = [
    "CommandResult",
    "command_exists",
    "configure_logging",
    "console",
    "create_table",
    "err_console",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
]
