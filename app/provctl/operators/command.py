"""Command operator implementation.

Runs guarded bootstrap commands such as adding signing keys, PPAs or
installing tools from tarballs.
"""

import logging
import subprocess
from pathlib import Path

from provctl.core.errors import ExecutionError
from provctl.models.action import Action, ActionType
from provctl.models.result import ErrorKind
from provctl.operators.base import Operator, classify_os_error
from provctl.utils.shell import run_command

logger = logging.getLogger(__name__)


class CommandOperator(Operator):
    """Operator for guarded commands.

    The ``creates`` and ``unless`` guards are checked again right before
    the command runs, so re-applying a command that has already done its
    work is a no-op.
    """

    @property
    def handles(self) -> frozenset[ActionType]:
        return frozenset({ActionType.RUN_COMMAND})

    def is_available(self) -> bool:
        """Commands carry their own executables."""
        return True

    def apply(self, action: Action, *, timeout: float | None) -> str:
        """Run the command unless its guard says it is done.

        Raises:
            ExecutionError: If the guard or the command fails to run, or the
                command exits non-zero.
        """
        self._check_action(action)

        if action.creates is not None and self._created(action.creates, action.target):
            logger.info("Skipping %s: %s exists", action.target, action.creates)
            return f"{action.target} already done ({action.creates} exists)"

        if action.unless and self._guard_passes(action, timeout):
            logger.info("Skipping %s: guard passed", action.target)
            return f"{action.target} already done (guard passed)"

        self._run(list(action.command), timeout=timeout)
        return f"ran {action.target}"

    @staticmethod
    def _created(path: Path, target: str) -> bool:
        """Check whether the ``creates`` path exists."""
        try:
            path.stat()
        except (FileNotFoundError, NotADirectoryError):
            return False
        except OSError as e:
            msg = f"Cannot check {path} for {target}: {e}"
            raise ExecutionError(classify_os_error(e), msg) from e
        return True

    @staticmethod
    def _guard_passes(action: Action, timeout: float | None) -> bool:
        try:
            result = run_command(list(action.unless), timeout=timeout, new_session=True)
        except subprocess.TimeoutExpired as e:
            msg = f"Guard for {action.target} timed out after {timeout}s"
            raise ExecutionError(ErrorKind.TIMEOUT, msg) from e
        except OSError as e:
            msg = f"Guard for {action.target} could not be run: {e}"
            raise ExecutionError(ErrorKind.UNKNOWN, msg) from e
        return result.success
