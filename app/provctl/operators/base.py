"""Abstract base class for action operators.

This module defines the Operator interface that every executor backend
must implement, plus the failure classification shared by all of them.
"""

import errno
import logging
import subprocess
from abc import ABC, abstractmethod

from provctl.core.errors import ExecutionError
from provctl.models.action import Action, ActionType
from provctl.models.result import ErrorKind
from provctl.utils.shell import CommandResult, run_command

logger = logging.getLogger(__name__)

# stderr fragments that identify a failure kind
_PERMISSION_MARKERS = ("EACCES", "Permission denied", "are you root")
_NETWORK_MARKERS = (
    "Temporary failure resolving",
    "Could not resolve",
    "Failed to fetch",
    "Network is unreachable",
)


def classify_failure(output: str) -> ErrorKind:
    """Classify a failed command from its error output.

    Args:
        output: stderr (or combined output) of the failed command.

    Returns:
        PERMISSION_DENIED or NETWORK_UNAVAILABLE when a known marker is
        present, UNKNOWN otherwise.
    """
    if any(marker in output for marker in _PERMISSION_MARKERS):
        return ErrorKind.PERMISSION_DENIED
    if any(marker in output for marker in _NETWORK_MARKERS):
        return ErrorKind.NETWORK_UNAVAILABLE
    return ErrorKind.UNKNOWN


def classify_os_error(error: OSError) -> ErrorKind:
    """Classify an OSError raised while changing the host."""
    if isinstance(error, PermissionError) or error.errno == errno.EACCES:
        return ErrorKind.PERMISSION_DENIED
    if error.errno in (errno.ENETUNREACH, errno.EHOSTUNREACH):
        return ErrorKind.NETWORK_UNAVAILABLE
    return ErrorKind.UNKNOWN


class Operator(ABC):
    """Abstract base class for all operators.

    Operators make exactly one kind of change to the host. Every
    ``apply`` is idempotent: applying an action whose change is already
    in place succeeds without doing harm.

    Example:
        >>> operator = SystemdOperator()
        >>> if operator.is_available():
        ...     operator.apply(create_service_action(ActionType.START_SERVICE, "nginx"), timeout=30)
        'started nginx'
    """

    @property
    @abstractmethod
    def handles(self) -> frozenset[ActionType]:
        """Return the action types this operator executes."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the underlying tool is available on the system.

        Returns:
            True if the operator can be used, False otherwise.
        """

    @abstractmethod
    def apply(self, action: Action, *, timeout: float | None) -> str:
        """Execute a single action.

        Args:
            action: Action to execute.
            timeout: Maximum time in seconds for each blocking call.

        Returns:
            Short human-readable description of what was done.

        Raises:
            ExecutionError: If the change could not be made.
            ValueError: If the action type is not handled by this operator.
        """

    def _check_action(self, action: Action) -> None:
        if action.action_type not in self.handles:
            msg = f"{type(self).__name__} cannot execute {action.action_type.value} actions"
            raise ValueError(msg)

    def _run(
        self,
        args: list[str],
        *,
        timeout: float | None,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """Run a command that changes the host.

        Args:
            args: Command and arguments.
            timeout: Maximum time in seconds.
            env: Additional environment variables.

        Returns:
            Result of the successful command.

        Raises:
            ExecutionError: If the command cannot be started, times out or
                exits non-zero. The exit code and stderr are kept verbatim.
        """
        command = " ".join(args)
        logger.info("Running: %s", command)
        try:
            result = run_command(args, timeout=timeout, env=env, new_session=True)
        except subprocess.TimeoutExpired as e:
            msg = f"{command} timed out after {timeout}s"
            raise ExecutionError(ErrorKind.TIMEOUT, msg) from e
        except OSError as e:
            msg = f"{command} could not be started: {e}"
            raise ExecutionError(classify_os_error(e), msg) from e

        if not result.success:
            stderr = result.stderr
            detail = stderr.strip() or result.stdout.strip() or "no output"
            msg = f"{command} exited {result.returncode}: {detail}"
            raise ExecutionError(
                classify_failure(stderr or result.stdout),
                msg,
                exit_code=result.returncode,
                stderr=stderr,
            )
        return result
