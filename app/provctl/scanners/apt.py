"""APT package scanner implementation.

Reports whether a package is installed and at which version using
dpkg-query.
"""

import logging
import subprocess

from provctl.core.errors import CollectionError
from provctl.models.fact import Fact, FactKey, FactKind
from provctl.scanners.base import Scanner
from provctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)


class AptScanner(Scanner):
    """Scanner for APT/dpkg packages.

    Uses ``dpkg-query -W`` with a status/version format string. Packages
    dpkg knows about but that are not fully installed (removed with
    config files left behind, half-configured) count as absent.
    """

    # dpkg-query format string: Status, Version
    _DPKG_FORMAT = "${Status}\\t${Version}"

    _INSTALLED_STATUS = "install ok installed"

    def __init__(self, timeout: float | None = 60.0) -> None:
        """Initialize the scanner.

        Args:
            timeout: Maximum time in seconds for each dpkg-query call.
        """
        self._timeout = timeout

    @property
    def kind(self) -> FactKind:
        """Return PACKAGE as the fact kind."""
        return FactKind.PACKAGE

    def is_available(self) -> bool:
        """Check if dpkg-query is available."""
        return command_exists("dpkg-query")

    def observe(self, name: str) -> Fact:
        """Look up a single package.

        Args:
            name: Package name.

        Returns:
            PRESENT fact with the installed version, or ABSENT.

        Raises:
            CollectionError: If dpkg-query fails for another reason.
        """
        key = self.key(name)
        try:
            result = run_command(
                ["dpkg-query", "-W", "-f", self._DPKG_FORMAT, name],
                timeout=self._timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            msg = f"dpkg-query failed for {name}: {e}"
            raise CollectionError(msg) from e

        if not result.success:
            # dpkg-query exits 1 with "no packages found matching" for unknown packages
            if "no packages found" in result.stderr.lower():
                return Fact.absent(key)
            msg = f"dpkg-query failed for {name}: {result.stderr.strip() or 'unknown error'}"
            raise CollectionError(msg)

        return self._parse_status_line(key, result.stdout)

    def _parse_status_line(self, key: FactKey, output: str) -> Fact:
        """Parse ``<status>\\t<version>`` output of dpkg-query.

        Args:
            key: Fact key for the package.
            output: Raw dpkg-query output.

        Returns:
            PRESENT fact when the package is fully installed, ABSENT otherwise.
        """
        status, _, version = output.strip().partition("\t")
        if status.strip() != self._INSTALLED_STATUS:
            logger.debug("Package %s has dpkg status %r", key.name, status)
            return Fact.absent(key)
        version = version.strip()
        if not version:
            msg = f"dpkg-query reported no version for installed package {key.name}"
            raise CollectionError(msg)
        return Fact.present(key, value=version)
