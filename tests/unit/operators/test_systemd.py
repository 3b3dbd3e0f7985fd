"""Unit tests for SystemdOperator."""

from unittest.mock import patch

import pytest
from provctl.core.errors import ExecutionError
from provctl.models.action import ActionType, create_service_action
from provctl.models.result import ErrorKind
from provctl.operators.systemd import SystemdOperator
from provctl.utils.shell import CommandResult


class TestSystemdOperator:
    """Tests for SystemdOperator class."""

    @pytest.fixture
    def operator(self) -> SystemdOperator:
        return SystemdOperator()

    def test_handles_service_actions(self, operator: SystemdOperator) -> None:
        """Operator executes start, stop and restart."""
        assert operator.handles == frozenset(
            {ActionType.START_SERVICE, ActionType.STOP_SERVICE, ActionType.RESTART_SERVICE}
        )

    @pytest.mark.parametrize(
        ("action_type", "verb", "message"),
        [
            (ActionType.START_SERVICE, "start", "started nginx"),
            (ActionType.STOP_SERVICE, "stop", "stopped nginx"),
            (ActionType.RESTART_SERVICE, "restart", "restarted nginx"),
        ],
    )
    def test_systemctl_verbs(
        self,
        operator: SystemdOperator,
        action_type: ActionType,
        verb: str,
        message: str,
    ) -> None:
        """Each action maps to one systemctl verb."""
        with patch("provctl.operators.base.run_command") as mock_run:
            mock_run.return_value = CommandResult(stdout="", stderr="", returncode=0)

            result = operator.apply(create_service_action(action_type, "nginx"), timeout=30.0)

        assert result == message
        mock_run.assert_called_once_with(
            ["systemctl", verb, "nginx"], timeout=30.0, env=None, new_session=True
        )

    def test_permission_denied(self, operator: SystemdOperator) -> None:
        """Polkit refusals are classified as permission errors."""
        with patch("provctl.operators.base.run_command") as mock_run:
            mock_run.return_value = CommandResult(
                stdout="",
                stderr="Failed to start nginx.service: Access denied\nPermission denied",
                returncode=4,
            )

            with pytest.raises(ExecutionError) as exc_info:
                operator.apply(
                    create_service_action(ActionType.START_SERVICE, "nginx"), timeout=None
                )

        assert exc_info.value.kind == ErrorKind.PERMISSION_DENIED
