"""Plan command implementation.

Shows the actions needed to bring the host in line with the manifest,
without changing anything.
"""

import json
from pathlib import Path
from typing import Annotated

import typer

from provctl.cli.common import get_config, load_manifest_or_exit, resolve_manifest_path
from provctl.cli.display import print_plan
from provctl.core.collector import create_collector
from provctl.core.errors import PlanError
from provctl.core.planner import build_plan, fact_targets
from provctl.core.reporter import ExitCode
from provctl.utils.formatting import print_error


def plan_command(
    ctx: typer.Context,
    manifest: Annotated[
        Path | None,
        typer.Option(
            "--manifest",
            "-m",
            help="Manifest file to plan against.",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output the plan as JSON.",
        ),
    ] = False,
) -> None:
    """Show what apply would change.

    Collects facts about the host, compares them with the manifest and
    prints the ordered list of actions. The host is not modified.

    Examples:
        provctl plan
        provctl plan -m ./manifest.toml --json
    """
    config = get_config(ctx)
    manifest_path = resolve_manifest_path(manifest, config)
    desired = load_manifest_or_exit(manifest_path)

    facts = create_collector(desired, timeout=config.timeout).collect(fact_targets(desired))
    try:
        plan = build_plan(desired, facts)
    except PlanError as e:
        print_error(f"Cannot build plan: {e}")
        raise typer.Exit(code=ExitCode.PLAN_FAILED) from e

    if json_output:
        typer.echo(json.dumps(plan.to_dict(), indent=2))
        return
    print_plan(plan)
