"""systemd service scanner implementation.

Reports whether a unit is loaded and running using ``systemctl show``.
"""

import logging
import subprocess

from provctl.core.errors import CollectionError
from provctl.models.fact import Fact, FactKind
from provctl.scanners.base import Scanner
from provctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

# ActiveState values that count as running
_RUNNING_STATES = frozenset({"active", "reloading", "activating"})


class SystemdScanner(Scanner):
    """Scanner for systemd units.

    A unit whose LoadState is ``not-found`` is reported ABSENT; any other
    loaded unit is PRESENT with value ``running`` or ``stopped``.
    """

    def __init__(self, timeout: float | None = 30.0) -> None:
        """Initialize the scanner.

        Args:
            timeout: Maximum time in seconds for each systemctl call.
        """
        self._timeout = timeout

    @property
    def kind(self) -> FactKind:
        """Return SERVICE as the fact kind."""
        return FactKind.SERVICE

    def is_available(self) -> bool:
        """Check if systemctl is available."""
        return command_exists("systemctl")

    def observe(self, name: str) -> Fact:
        """Look up a single service.

        Args:
            name: Unit name, with or without the ``.service`` suffix.

        Returns:
            PRESENT fact with ``running``/``stopped``, or ABSENT.

        Raises:
            CollectionError: If systemctl fails or its output is unusable.
        """
        key = self.key(name)
        try:
            result = run_command(
                ["systemctl", "show", "--property=LoadState", "--property=ActiveState", name],
                timeout=self._timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            msg = f"systemctl show failed for {name}: {e}"
            raise CollectionError(msg) from e

        if not result.success:
            msg = f"systemctl show failed for {name}: {result.stderr.strip() or 'unknown error'}"
            raise CollectionError(msg)

        properties = self._parse_properties(result.stdout)
        load_state = properties.get("LoadState")
        active_state = properties.get("ActiveState")
        if load_state is None or active_state is None:
            msg = f"systemctl show returned incomplete output for {name}"
            raise CollectionError(msg)

        if load_state == "not-found":
            return Fact.absent(key)

        running = active_state in _RUNNING_STATES
        logger.debug("Service %s: LoadState=%s ActiveState=%s", name, load_state, active_state)
        return Fact.present(key, value="running" if running else "stopped")

    @staticmethod
    def _parse_properties(output: str) -> dict[str, str]:
        """Parse ``Key=Value`` lines from systemctl show."""
        properties: dict[str, str] = {}
        for line in output.splitlines():
            prop, sep, value = line.partition("=")
            if sep:
                properties[prop.strip()] = value.strip()
        return properties
