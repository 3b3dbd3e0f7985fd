"""CLI commands for provctl.

This package contains all subcommand implementations.
"""

from provctl.cli.commands import apply, facts, history, init, plan

__all__ = ["apply", "facts", "history", "init", "plan"]
