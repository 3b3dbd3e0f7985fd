"""Rich console formatting utilities.

Provides the shared consoles, the color theme and message helpers used
by every CLI command.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.theme import Theme

# Style names used in markup across the CLI
THEME = Theme(
    {
        "text": "#ffffff",
        "muted": "#b2bec3",
        "header": "bold #69B9A1",
        "border": "#29526d",
        "success": "#03b971",
        "warning": "#f5b332",
        "error": "#f53263",
        "info": "#0ec1c8",
        "applied": "#03b971",
        "skipped": "#b2bec3",
        "failed": "bold #f53263",
        "action": "#c1ff62",
        "satisfied": "#226666",
    }
)

# Shared console instances
console = Console(theme=THEME)
err_console = Console(theme=THEME, stderr=True)


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure the root logger to write through Rich on stderr.

    Args:
        verbose: Log at DEBUG level.
        quiet: Only log errors. Ignored when verbose is set.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def create_table(title: str | None = None) -> Table:
    """Create a table with the CLI's header and border styles."""
    return Table(
        title=title,
        show_header=True,
        header_style="header",
        border_style="border",
    )


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
