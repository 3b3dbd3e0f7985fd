"""History command for viewing past runs.

This module provides the `provctl history` command for viewing the
recorded results of previous apply runs.
"""

import json
from typing import Annotated

import typer

from provctl.cli.display import create_history_table
from provctl.core.state import StateManager
from provctl.utils.formatting import console, print_info


def history_command(
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            min=1,
            help="Maximum number of runs to show.",
        ),
    ] = 20,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show recorded apply runs, newest first.

    Examples:
        provctl history             # Show last 20 runs
        provctl history -n 5
        provctl history --json      # JSON output for scripting
    """
    runs = StateManager().get_history(limit=limit)

    if json_output:
        typer.echo(json.dumps([run.to_dict() for run in runs], indent=2))
        return

    if not runs:
        print_info("No runs recorded yet.")
        return
    console.print(create_history_table(runs))
