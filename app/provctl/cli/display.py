"""Shared Rich display functions for plans, facts and run results.

Provides reusable table builders and summary printers used by the
plan, apply, facts and history commands.
"""

from collections.abc import Mapping
from datetime import datetime

from rich.table import Table

from provctl.core.planner import Plan
from provctl.core.reporter import Summary
from provctl.models.action import ActionType
from provctl.models.fact import Fact, FactKey, FactStatus
from provctl.models.result import OutcomeStatus, RunResult
from provctl.utils.formatting import console, create_table, print_success

_ACTION_LABELS: dict[ActionType, str] = {
    ActionType.INSTALL_PACKAGE: "+install",
    ActionType.COPY_FILE: "~copy",
    ActionType.START_SERVICE: ">start",
    ActionType.STOP_SERVICE: "-stop",
    ActionType.RESTART_SERVICE: "*restart",
    ActionType.RUN_COMMAND: "$run",
}

_STATUS_LABELS: dict[OutcomeStatus, str] = {
    OutcomeStatus.APPLIED: "[applied]OK[/]",
    OutcomeStatus.SKIPPED: "[skipped]SKIP[/]",
    OutcomeStatus.FAILED: "[failed]FAIL[/]",
}

_FACT_STYLES: dict[FactStatus, str] = {
    FactStatus.PRESENT: "success",
    FactStatus.ABSENT: "warning",
    FactStatus.UNKNOWN: "error",
}


def create_plan_table(plan: Plan, dry_run: bool = False) -> Table:
    """Create a table listing the plan's actions in execution order.

    Args:
        plan: Plan to display.
        dry_run: Whether this is a dry-run (changes table title).

    Returns:
        Rich Table with Step, Action, Target, Reason and After columns.
    """
    table = create_table("Planned Actions (Dry Run)" if dry_run else "Planned Actions")
    table.add_column("#", justify="right", style="muted")
    table.add_column("Action", no_wrap=True)
    table.add_column("Target", no_wrap=True)
    table.add_column("Reason", style="muted")
    table.add_column("After", style="muted")

    for index, action in enumerate(plan.actions, start=1):
        table.add_row(
            str(index),
            f"[action]{_ACTION_LABELS[action.action_type]}[/]",
            action.target,
            action.reason or "",
            ", ".join(sorted(action.depends_on)),
        )
    return table


def print_plan(plan: Plan, dry_run: bool = False) -> None:
    """Print a plan, or a success message when nothing needs doing."""
    if plan.is_empty:
        print_success(f"Host matches the manifest ({len(plan.satisfied)} resource(s) satisfied).")
        return
    console.print(create_plan_table(plan, dry_run))
    console.print(
        f"\nSummary: [action]{len(plan.actions)} action(s)[/], "
        f"[satisfied]{len(plan.satisfied)} satisfied[/]"
    )


def create_results_table(result: RunResult) -> Table:
    """Create a table with one row per action outcome and satisfied resource."""
    table = create_table("Results")
    table.add_column("Status", width=6, justify="center")
    table.add_column("Resource", no_wrap=True)
    table.add_column("Message")
    table.add_column("Tries", justify="right", style="muted")

    for outcome in result.outcomes:
        message = outcome.reason or ""
        if outcome.error_kind is not None:
            message = f"[error]{outcome.error_kind.value}[/] {message}"
        table.add_row(
            _STATUS_LABELS[outcome.status],
            outcome.action.id,
            message,
            str(outcome.attempts) if outcome.attempts else "",
        )
    for rid, reason in result.satisfied:
        table.add_row(_STATUS_LABELS[OutcomeStatus.SKIPPED], rid, f"[satisfied]{reason}[/]", "")
    return table


def print_summary(summary: Summary, dry_run: bool = False) -> None:
    """Print the one-line run summary."""
    prefix = "[DRY-RUN] " if dry_run else ""
    console.print(
        f"\n{prefix}[applied]{summary.applied} applied[/], "
        f"[skipped]{summary.skipped} skipped[/], "
        f"[failed]{summary.failed} failed[/] "
        f"[muted]in {summary.duration:.1f}s (exit {int(summary.exit_code)})[/]"
    )


def create_facts_table(facts: Mapping[FactKey, Fact]) -> Table:
    """Create a table listing observed facts in key order."""
    table = create_table("Host Facts")
    table.add_column("Fact", no_wrap=True)
    table.add_column("Status", width=8)
    table.add_column("Value", style="muted", overflow="ellipsis")
    table.add_column("Mode", style="muted")

    for key in sorted(facts):
        fact = facts[key]
        style = _FACT_STYLES[fact.status]
        value = fact.error if fact.is_unknown else fact.value
        table.add_row(
            str(key),
            f"[{style}]{fact.status.value}[/]",
            value or "",
            f"{fact.mode:04o}" if fact.mode is not None else "",
        )
    return table


def create_history_table(runs: list[RunResult]) -> Table:
    """Create a table with one row per recorded run, newest first."""
    table = create_table("Run History")
    table.add_column("Run", style="muted")
    table.add_column("Started")
    table.add_column("Applied", justify="right", style="applied")
    table.add_column("Skipped", justify="right", style="skipped")
    table.add_column("Failed", justify="right", style="failed")
    table.add_column("Duration", justify="right", style="muted")
    table.add_column("Flags", style="warning")

    for run in runs:
        flags = [
            name
            for name, enabled in (
                ("dry-run", run.dry_run),
                ("continue", run.continue_on_error),
                ("cancelled", run.cancelled),
            )
            if enabled
        ]
        table.add_row(
            run.run_id,
            format_timestamp(run.started_at),
            str(len(run.applied)),
            str(run.skipped_count),
            str(len(run.failed)),
            f"{run.duration:.1f}s",
            ", ".join(flags),
        )
    return table


def format_timestamp(iso_timestamp: str) -> str:
    """Format an ISO 8601 timestamp as ``YYYY-MM-DD HH:MM``."""
    dt = datetime.fromisoformat(iso_timestamp.replace("Z", "+00:00"))
    return dt.strftime("%Y-%m-%d %H:%M")
