"""Run reporting.

Turns a RunResult into a summary and the process exit code.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from provctl.models.result import ActionOutcome, RunResult


class ExitCode(IntEnum):
    """Process exit codes.

    Attributes:
        OK: No action failed.
        EXECUTION_FAILED: An action failed and the run stopped.
        PLAN_FAILED: The plan could not be built (invalid manifest,
            cycle, missing source).
        PARTIAL_FAILURE: Some actions failed under continue-on-error.
        LOCKED: Another run holds the host lock.
        CANCELLED: The operator interrupted the run.
    """

    OK = 0
    EXECUTION_FAILED = 1
    PLAN_FAILED = 2
    PARTIAL_FAILURE = 3
    LOCKED = 4
    CANCELLED = 130


@dataclass(frozen=True, slots=True)
class Summary:
    """Summary of a run.

    Attributes:
        applied: Number of applied actions.
        skipped: Number of skipped actions and satisfied resources.
        failed: Number of failed actions.
        total: Number of resources covered by the run.
        duration: Total elapsed seconds.
        exit_code: Exit code for the run.
        lines: One human-readable line per action outcome, in plan order,
            then one per satisfied resource.
    """

    applied: int
    skipped: int
    failed: int
    total: int
    duration: float
    exit_code: ExitCode
    lines: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "applied": self.applied,
            "skipped": self.skipped,
            "failed": self.failed,
            "total": self.total,
            "duration": round(self.duration, 3),
            "exit_code": int(self.exit_code),
            "lines": list(self.lines),
        }


def exit_code_for(result: RunResult) -> ExitCode:
    """Map a run result to the process exit code.

    Failures take precedence over cancellation.
    """
    if result.failed:
        return ExitCode.PARTIAL_FAILURE if result.continue_on_error else ExitCode.EXECUTION_FAILED
    if result.cancelled:
        return ExitCode.CANCELLED
    return ExitCode.OK


def format_outcome(outcome: ActionOutcome) -> str:
    """Render one outcome as a single line."""
    line = f"[{outcome.status.value}] {outcome.action.id}"
    if outcome.error_kind is not None:
        line += f" ({outcome.error_kind.value})"
    if outcome.reason:
        line += f": {outcome.reason}"
    if outcome.attempts > 1:
        line += f" after {outcome.attempts} attempts"
    return line


def report(result: RunResult) -> Summary:
    """Summarize a run.

    Satisfied resources count as skipped. Their lines follow the action
    outcomes.

    Args:
        result: Result from the executor.

    Returns:
        Summary with counts, duration, exit code and outcome lines.
    """
    lines = [format_outcome(o) for o in result.outcomes]
    lines.extend(f"[skipped] {rid}: {reason}" for rid, reason in result.satisfied)
    return Summary(
        applied=len(result.applied),
        skipped=result.skipped_count,
        failed=len(result.failed),
        total=result.total,
        duration=result.duration,
        exit_code=exit_code_for(result),
        lines=tuple(lines),
    )
