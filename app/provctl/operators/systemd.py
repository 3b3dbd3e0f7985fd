"""systemd service operator implementation.

Starts, stops and restarts units with systemctl.
"""

from provctl.models.action import Action, ActionType
from provctl.operators.base import Operator
from provctl.utils.shell import command_exists

_VERBS: dict[ActionType, tuple[str, str]] = {
    ActionType.START_SERVICE: ("start", "started"),
    ActionType.STOP_SERVICE: ("stop", "stopped"),
    ActionType.RESTART_SERVICE: ("restart", "restarted"),
}


class SystemdOperator(Operator):
    """Operator for systemd units.

    ``systemctl start`` on a running unit and ``systemctl stop`` on a
    stopped one both succeed, so every action is idempotent.
    """

    @property
    def handles(self) -> frozenset[ActionType]:
        return frozenset(_VERBS)

    def is_available(self) -> bool:
        """Check if systemctl is available."""
        return command_exists("systemctl")

    def apply(self, action: Action, *, timeout: float | None) -> str:
        """Change a unit's running state.

        Raises:
            ExecutionError: If systemctl fails.
        """
        self._check_action(action)
        verb, past = _VERBS[action.action_type]
        self._run(["systemctl", verb, action.target], timeout=timeout)
        return f"{past} {action.target}"
