"""Guard command scanner implementation.

Runs the read-only ``unless`` guard of a manifest command. A guard that
exits 0 means the command's work is already done.
"""

import logging
import subprocess
from collections.abc import Mapping

from provctl.core.errors import CollectionError
from provctl.models.fact import Fact, FactKind
from provctl.scanners.base import Scanner
from provctl.utils.shell import run_command

logger = logging.getLogger(__name__)


class CheckScanner(Scanner):
    """Scanner for guard commands.

    Guards must not change the host. They are run with a timeout and
    their exit status is reported as PRESENT (exit 0) or ABSENT.

    Attributes:
        checks: Guard argument vectors keyed by check name.
    """

    def __init__(self, checks: Mapping[str, list[str]], timeout: float | None = 60.0) -> None:
        """Initialize the scanner.

        Args:
            checks: Guard commands keyed by the manifest command name.
            timeout: Maximum time in seconds for each guard.
        """
        self._checks = dict(checks)
        self._timeout = timeout

    @property
    def kind(self) -> FactKind:
        """Return CHECK as the fact kind."""
        return FactKind.CHECK

    @property
    def checks(self) -> dict[str, list[str]]:
        return dict(self._checks)

    def is_available(self) -> bool:
        """Guards are plain commands; availability is checked per guard."""
        return True

    def observe(self, name: str) -> Fact:
        """Run a single guard.

        Args:
            name: Name of the manifest command the guard belongs to.

        Returns:
            PRESENT fact if the guard succeeded, ABSENT otherwise.

        Raises:
            CollectionError: If no guard is registered or it cannot be run.
        """
        key = self.key(name)
        guard = self._checks.get(name)
        if not guard:
            msg = f"No guard command registered for '{name}'"
            raise CollectionError(msg)

        try:
            result = run_command(guard, timeout=self._timeout)
        except subprocess.TimeoutExpired as e:
            msg = f"Guard for '{name}' timed out after {self._timeout}s"
            raise CollectionError(msg) from e
        except OSError as e:
            msg = f"Guard for '{name}' could not be run: {e}"
            raise CollectionError(msg) from e

        logger.debug("Guard %s exited %d", name, result.returncode)
        if result.success:
            return Fact.present(key, value="satisfied")
        return Fact.absent(key)
