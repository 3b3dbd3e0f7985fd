"""Facts command implementation.

Shows the host facts a manifest depends on.
"""

import json
from pathlib import Path
from typing import Annotated

import typer

from provctl.cli.common import get_config, load_manifest_or_exit, resolve_manifest_path
from provctl.cli.display import create_facts_table
from provctl.core.collector import create_collector
from provctl.core.planner import fact_targets
from provctl.utils.formatting import console, print_warning


def facts_command(
    ctx: typer.Context,
    manifest: Annotated[
        Path | None,
        typer.Option(
            "--manifest",
            "-m",
            help="Manifest whose facts to collect.",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output facts as JSON.",
        ),
    ] = False,
) -> None:
    """Show observed host facts.

    Queries the package database, service manager and filesystem for
    every resource in the manifest. Read-only.

    Examples:
        provctl facts
        provctl facts --json
    """
    config = get_config(ctx)
    desired = load_manifest_or_exit(resolve_manifest_path(manifest, config))

    facts = create_collector(desired, timeout=config.timeout).collect(fact_targets(desired))

    if json_output:
        typer.echo(json.dumps([facts[key].to_dict() for key in sorted(facts)], indent=2))
        return

    console.print(create_facts_table(facts))
    unknown = sum(1 for fact in facts.values() if fact.is_unknown)
    if unknown:
        print_warning(f"{unknown} fact(s) could not be observed and will trigger actions.")
