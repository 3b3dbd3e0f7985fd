"""Unit tests for the operator base class and failure classification."""

import errno
import subprocess
from unittest.mock import patch

import pytest
from provctl.core.errors import ExecutionError
from provctl.models.action import Action, ActionType, create_install_action
from provctl.models.result import ErrorKind
from provctl.operators.base import Operator, classify_failure, classify_os_error
from provctl.utils.shell import CommandResult


class EchoOperator(Operator):
    """Minimal operator for exercising the base helpers."""

    @property
    def handles(self) -> frozenset[ActionType]:
        return frozenset({ActionType.RUN_COMMAND})

    def is_available(self) -> bool:
        return True

    def apply(self, action: Action, *, timeout: float | None) -> str:
        self._check_action(action)
        return self._run(list(action.command), timeout=timeout).stdout


class TestClassifyFailure:
    """Tests for classify_failure function."""

    @pytest.mark.parametrize(
        ("output", "expected"),
        [
            (
                "E: Could not open lock file /var/lib/dpkg/lock-frontend - open "
                "(13: Permission denied)\nE: are you root?",
                ErrorKind.PERMISSION_DENIED,
            ),
            (
                "W: Failed to fetch http://archive.ubuntu.com/ubuntu/dists/jammy/InRelease "
                "Temporary failure resolving 'archive.ubuntu.com'",
                ErrorKind.NETWORK_UNAVAILABLE,
            ),
            ("curl: (6) Could not resolve host: getcomposer.org", ErrorKind.NETWORK_UNAVAILABLE),
            ("E: Unable to locate package nginx-extras-foo", ErrorKind.UNKNOWN),
            ("", ErrorKind.UNKNOWN),
        ],
    )
    def test_markers(self, output: str, expected: ErrorKind) -> None:
        """Known stderr fragments pick the failure kind."""
        assert classify_failure(output) == expected


class TestClassifyOsError:
    """Tests for classify_os_error function."""

    def test_permission_error(self) -> None:
        assert classify_os_error(PermissionError(errno.EACCES, "denied")) == (
            ErrorKind.PERMISSION_DENIED
        )

    def test_network_unreachable(self) -> None:
        error = OSError(errno.ENETUNREACH, "Network is unreachable")

        assert classify_os_error(error) == ErrorKind.NETWORK_UNAVAILABLE

    def test_other(self) -> None:
        assert classify_os_error(OSError(errno.ENOSPC, "No space left")) == ErrorKind.UNKNOWN


class TestOperatorRun:
    """Tests for Operator._run."""

    @pytest.fixture
    def operator(self) -> EchoOperator:
        return EchoOperator()

    @pytest.fixture
    def action(self) -> Action:
        return Action(action_type=ActionType.RUN_COMMAND, target="echo", command=("echo", "hi"))

    def test_success(self, operator: EchoOperator, action: Action) -> None:
        """Successful commands return their result."""
        with patch("provctl.operators.base.run_command") as mock_run:
            mock_run.return_value = CommandResult(stdout="hi\n", stderr="", returncode=0)

            assert operator.apply(action, timeout=3.0) == "hi\n"

        mock_run.assert_called_once_with(["echo", "hi"], timeout=3.0, env=None, new_session=True)

    def test_non_zero_exit(self, operator: EchoOperator, action: Action) -> None:
        """Non-zero exits keep the exit code and stderr verbatim."""
        with patch("provctl.operators.base.run_command") as mock_run:
            mock_run.return_value = CommandResult(stdout="", stderr="E: boom\n", returncode=100)

            with pytest.raises(ExecutionError) as exc_info:
                operator.apply(action, timeout=None)

        error = exc_info.value
        assert error.kind == ErrorKind.UNKNOWN
        assert error.exit_code == 100
        assert error.stderr == "E: boom\n"
        assert str(error) == "echo hi exited 100: E: boom"

    def test_timeout(self, operator: EchoOperator, action: Action) -> None:
        """A timeout is classified as TIMEOUT."""
        with (
            patch(
                "provctl.operators.base.run_command",
                side_effect=subprocess.TimeoutExpired("echo", 3.0),
            ),
            pytest.raises(ExecutionError, match="timed out after 3.0s") as exc_info,
        ):
            operator.apply(action, timeout=3.0)

        assert exc_info.value.kind == ErrorKind.TIMEOUT

    def test_missing_executable(self, operator: EchoOperator, action: Action) -> None:
        """A command that cannot be started is an execution error."""
        with (
            patch("provctl.operators.base.run_command", side_effect=FileNotFoundError("echo")),
            pytest.raises(ExecutionError, match="could not be started"),
        ):
            operator.apply(action, timeout=3.0)

    def test_wrong_action_type(self, operator: EchoOperator) -> None:
        """Operators reject action types they do not handle."""
        with pytest.raises(ValueError, match="cannot execute install_package"):
            operator.apply(create_install_action("nginx"), timeout=None)
