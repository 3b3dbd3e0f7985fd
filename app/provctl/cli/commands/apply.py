"""Apply command implementation.

Converges the host to the manifest: collects facts, builds the plan and
executes it under the host lock.
"""

import contextlib
import json
import logging
import signal
import threading
import time
from collections.abc import Iterator
from pathlib import Path
from typing import Annotated

import typer

from provctl.cli.common import get_config, load_manifest_or_exit, resolve_manifest_path
from provctl.cli.display import create_results_table, print_plan, print_summary
from provctl.core.collector import create_collector
from provctl.core.config import ProvctlConfig
from provctl.core.errors import LockError, PlanError
from provctl.core.executor import ActionExecutor, ExecutionOptions, create_operators
from provctl.core.lock import RunLock
from provctl.core.planner import build_plan, fact_targets
from provctl.core.reporter import ExitCode, Summary, report
from provctl.core.state import StateManager, write_run_log
from provctl.models.result import RunResult
from provctl.utils.formatting import console, print_error, print_info, print_warning

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def cancel_on_signals(event: threading.Event) -> Iterator[None]:
    """Set ``event`` on SIGINT or SIGTERM while the block runs.

    Previous handlers are restored on exit. Outside the main thread no
    handlers can be installed and the block runs unchanged.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, _frame: object) -> None:
        logger.warning("Received %s, finishing the current action", signal.Signals(signum).name)
        event.set()

    previous = {sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _record(
    result: RunResult,
    summary: Summary,
    config: ProvctlConfig,
    log_file: Path | None,
) -> None:
    """Persist the run to history and the optional log file.

    Failures here only produce warnings.
    """
    if config.record_history:
        try:
            StateManager().record_run(result)
        except OSError as e:
            logger.warning("Failed to record run history: %s", str(e))
            print_warning(f"Could not record run history: {e}")

    if log_file is not None:
        try:
            write_run_log(result, summary.to_dict(), log_file)
        except OSError as e:
            print_warning(f"Could not write run log {log_file}: {e}")


def apply_command(
    ctx: typer.Context,
    manifest: Annotated[
        Path | None,
        typer.Option(
            "--manifest",
            "-m",
            help="Manifest file to apply.",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be done without making changes.",
        ),
    ] = False,
    continue_on_error: Annotated[
        bool,
        typer.Option(
            "--continue-on-error",
            help="Keep going after a failed action, skipping only its dependents.",
        ),
    ] = False,
    timeout: Annotated[
        float | None,
        typer.Option(
            "--timeout",
            min=1,
            help="Timeout in seconds for each blocking operation.",
        ),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            help="Write the full run result as JSON to this file.",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output the run result as JSON.",
        ),
    ] = False,
) -> None:
    """Apply the manifest to this host.

    Installs missing packages, copies changed files, runs guarded
    commands and starts, stops or restarts services, in dependency
    order. Runs non-interactively; use --dry-run to preview.

    Exit codes: 0 success, 1 failure, 2 invalid manifest or plan,
    3 partial failure with --continue-on-error, 4 host locked,
    130 cancelled.

    Examples:
        provctl apply --dry-run
        provctl apply --continue-on-error --log-file run.json
    """
    config = get_config(ctx)
    desired = load_manifest_or_exit(resolve_manifest_path(manifest, config))

    options = ExecutionOptions(
        dry_run=dry_run,
        continue_on_error=continue_on_error or config.continue_on_error,
        timeout=timeout or config.timeout,
        max_attempts=config.max_attempts,
        retry_delay=config.retry_delay,
    )
    cancel_event = threading.Event()

    try:
        with RunLock(), cancel_on_signals(cancel_event):
            # Reported duration covers collection and planning too
            started = time.monotonic()
            facts = create_collector(desired, timeout=options.timeout).collect(
                fact_targets(desired)
            )
            plan = build_plan(desired, facts)
            if not json_output:
                print_plan(plan, dry_run=dry_run)
                if not plan.is_empty:
                    console.print("\n[bold]Executing actions...[/bold]\n")

            executor = ActionExecutor(
                create_operators(refresh_index=config.refresh_index),
                options,
                cancel_event=cancel_event,
            )
            result = executor.execute(plan, started=started)
    except LockError as e:
        print_error(str(e))
        raise typer.Exit(code=ExitCode.LOCKED) from e
    except PlanError as e:
        print_error(f"Cannot build plan: {e}")
        raise typer.Exit(code=ExitCode.PLAN_FAILED) from e

    summary = report(result)
    _record(result, summary, config, log_file or config.log_file)

    if json_output:
        typer.echo(json.dumps({"summary": summary.to_dict(), "run": result.to_dict()}, indent=2))
    else:
        if result.total:
            console.print(create_results_table(result))
        print_summary(summary, dry_run=dry_run)
        if dry_run:
            print_info("Dry-run mode: no changes were made.")
        if result.cancelled:
            print_warning("Run cancelled by operator.")

    if summary.exit_code != ExitCode.OK:
        raise typer.Exit(code=summary.exit_code)
