"""Action execution.

Provides the ActionExecutor, which runs a plan's actions one at a time
through operators and records an outcome for every action, and the
factory for the standard operator set.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from provctl.core.errors import ExecutionError
from provctl.models.result import (
    REASON_ABORTED,
    REASON_CANCELLED,
    ActionOutcome,
    ErrorKind,
    OutcomeStatus,
    RunResult,
    new_run_id,
    utc_timestamp,
)

if TYPE_CHECKING:
    from provctl.core.planner import Plan
    from provctl.models.action import Action, ActionType
    from provctl.operators.base import Operator

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ExecutionOptions:
    """Options controlling a run.

    Attributes:
        dry_run: Report what would be done without calling any operator.
        continue_on_error: Keep going after a failure, skipping only the
            actions that depend on a failed one.
        timeout: Timeout in seconds passed to every blocking operation.
        max_attempts: Attempts for network actions failing with
            NETWORK_UNAVAILABLE.
        retry_delay: Seconds to wait between attempts.
    """

    dry_run: bool = False
    continue_on_error: bool = False
    timeout: float | None = 600.0
    max_attempts: int = 3
    retry_delay: float = 5.0

    def __post_init__(self) -> None:
        """Validate option values after initialization."""
        if self.max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)
        if self.retry_delay < 0:
            msg = "retry_delay cannot be negative"
            raise ValueError(msg)
        if self.timeout is not None and self.timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)


class ActionExecutor:
    """Runs plan actions strictly in order.

    Failures are contained per action. By default the first failure
    aborts the run and every remaining action is skipped. With
    ``continue_on_error`` the run goes on, but an action whose
    dependency failed (directly or through a skipped action) is skipped
    instead of being run on top of a broken prerequisite.

    The cancel event is checked between actions only; an action that has
    started always completes.
    """

    def __init__(
        self,
        operators: Iterable[Operator],
        options: ExecutionOptions | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: threading.Event | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the executor.

        Args:
            operators: Operators to dispatch to, by the action types they handle.
            options: Run options; defaults to ExecutionOptions().
            sleep: Function used to wait between retries.
            cancel_event: Event that requests cancellation when set.
            clock: Monotonic clock used for durations.
        """
        self._operators: dict[ActionType, Operator] = {}
        for operator in operators:
            for action_type in operator.handles:
                self._operators[action_type] = operator
        self._options = options or ExecutionOptions()
        self._sleep = sleep
        self._cancel_event = cancel_event or threading.Event()
        self._clock = clock
        self._availability: dict[int, bool] = {}

    @property
    def options(self) -> ExecutionOptions:
        return self._options

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel_event

    def execute(self, plan: Plan, *, started: float | None = None) -> RunResult:
        """Execute every action of a plan.

        Args:
            plan: Plan to execute.
            started: Clock reading when the run began, e.g. before fact
                collection. Defaults to the start of execution.

        Returns:
            RunResult with one outcome per action, in plan order, and the
            plan's satisfied resources.
        """
        run_id = new_run_id()
        started_at = utc_timestamp()
        start = self._clock() if started is None else started
        logger.info(
            "Run %s: executing %d action(s)%s",
            run_id,
            len(plan.actions),
            " (dry-run)" if self._options.dry_run else "",
        )

        outcomes: list[ActionOutcome] = []
        broken: set[str] = set()
        stop_reason: str | None = None
        cancelled = False

        for action in plan.actions:
            if stop_reason is None and self._cancel_event.is_set():
                logger.warning("Run %s cancelled before %s", run_id, action.id)
                stop_reason = REASON_CANCELLED
                cancelled = True

            if stop_reason is not None:
                outcomes.append(_skipped(action, stop_reason))
                continue

            failed_deps = sorted(action.depends_on & broken)
            if failed_deps:
                logger.warning("Skipping %s: dependency %s failed", action.id, failed_deps[0])
                outcomes.append(_skipped(action, f"dependency failed: {failed_deps[0]}"))
                broken.add(action.id)
                continue

            outcome = self._execute_action(action)
            outcomes.append(outcome)
            if outcome.failed:
                broken.add(action.id)
                if not self._options.continue_on_error:
                    stop_reason = REASON_ABORTED

        result = RunResult(
            run_id=run_id,
            started_at=started_at,
            outcomes=tuple(outcomes),
            satisfied=plan.satisfied,
            duration=self._clock() - start,
            dry_run=self._options.dry_run,
            continue_on_error=self._options.continue_on_error,
            cancelled=cancelled,
        )
        logger.info(
            "Run %s finished: %d applied, %d skipped, %d failed",
            run_id,
            len(result.applied),
            result.skipped_count,
            len(result.failed),
        )
        return result

    def _execute_action(self, action: Action) -> ActionOutcome:
        start = self._clock()
        if self._options.dry_run:
            return ActionOutcome(
                action=action,
                status=OutcomeStatus.APPLIED,
                reason=f"dry-run: would {action.describe()}",
                duration=self._clock() - start,
            )

        operator = self._operators.get(action.action_type)
        if operator is None:
            reason = f"no operator handles {action.action_type.value}"
            return self._failed(action, ErrorKind.UNKNOWN, reason, 0, start)
        if not self._is_available(operator):
            return self._failed(
                action,
                ErrorKind.UNKNOWN,
                f"{type(operator).__name__} is not available on this host",
                0,
                start,
            )

        attempt = 0
        while True:
            attempt += 1
            try:
                message = operator.apply(action, timeout=self._options.timeout)
            except ExecutionError as e:
                if action.network and e.retryable and attempt < self._options.max_attempts:
                    logger.warning(
                        "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                        action.id,
                        attempt,
                        self._options.max_attempts,
                        e,
                        self._options.retry_delay,
                    )
                    self._sleep(self._options.retry_delay)
                    continue
                return self._failed(action, e.kind, str(e), attempt, start)
            except Exception as e:
                logger.exception("Unexpected error while executing %s", action.id)
                reason = f"unexpected error: {type(e).__name__}: {e}"
                return self._failed(action, ErrorKind.UNKNOWN, reason, attempt, start)

            logger.info("%s: %s", action.id, message)
            return ActionOutcome(
                action=action,
                status=OutcomeStatus.APPLIED,
                reason=message,
                attempts=attempt,
                duration=self._clock() - start,
            )

    def _failed(
        self,
        action: Action,
        kind: ErrorKind,
        reason: str,
        attempts: int,
        start: float,
    ) -> ActionOutcome:
        logger.error("%s failed (%s): %s", action.id, kind.value, reason)
        return ActionOutcome(
            action=action,
            status=OutcomeStatus.FAILED,
            reason=reason,
            error_kind=kind,
            attempts=attempts,
            duration=self._clock() - start,
        )

    def _is_available(self, operator: Operator) -> bool:
        key = id(operator)
        if key not in self._availability:
            self._availability[key] = operator.is_available()
        return self._availability[key]


def _skipped(action: Action, reason: str) -> ActionOutcome:
    return ActionOutcome(action=action, status=OutcomeStatus.SKIPPED, reason=reason)


def create_operators(refresh_index: bool = True) -> list[Operator]:
    """Create the standard operator set.

    Args:
        refresh_index: Whether the APT operator refreshes the package index
            before its first install.

    Returns:
        Operators for packages, files, services and commands.
    """
    from provctl.operators import AptOperator, CommandOperator, FileOperator, SystemdOperator

    return [
        AptOperator(refresh_index=refresh_index),
        FileOperator(),
        SystemdOperator(),
        CommandOperator(),
    ]
