"""APT package operator implementation.

Installs packages using apt-get.
"""

import logging

from provctl.models.action import Action, ActionType
from provctl.operators.base import Operator
from provctl.utils.shell import command_exists

logger = logging.getLogger(__name__)

# Keeps dpkg from prompting for configuration choices
_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class AptOperator(Operator):
    """Operator for APT/dpkg packages.

    Refreshes the package index once per run before the first install,
    then installs each package with ``apt-get install -y``. Installing a
    package that is already at its candidate version is a no-op.

    Attributes:
        refresh_index: Whether to run ``apt-get update`` before the first
            install of the run.
    """

    def __init__(self, refresh_index: bool = True) -> None:
        """Initialize the operator.

        Args:
            refresh_index: Run ``apt-get update`` before the first install.
        """
        self._refresh_index = refresh_index
        self._index_refreshed = False

    @property
    def handles(self) -> frozenset[ActionType]:
        return frozenset({ActionType.INSTALL_PACKAGE})

    @property
    def refresh_index(self) -> bool:
        return self._refresh_index

    def is_available(self) -> bool:
        """Check if apt-get is available."""
        return command_exists("apt-get")

    def apply(self, action: Action, *, timeout: float | None) -> str:
        """Install a package.

        Args:
            action: INSTALL_PACKAGE action.
            timeout: Maximum time in seconds for each apt-get call.

        Returns:
            Description of the install.

        Raises:
            ExecutionError: If the index refresh or the install fails.
        """
        self._check_action(action)

        if self._refresh_index and not self._index_refreshed:
            self._run(["apt-get", "update", "-q"], timeout=timeout, env=_APT_ENV)
            # Only a successful refresh counts; a retried install tries again
            self._index_refreshed = True

        self._run(
            ["apt-get", "install", "-y", "-q", action.target],
            timeout=timeout,
            env=_APT_ENV,
        )
        logger.debug("Installed package %s", action.target)
        return f"installed {action.target}"
