"""Unit tests for SystemdScanner."""

import subprocess
from unittest.mock import patch

import pytest
from provctl.core.errors import CollectionError
from provctl.models.fact import FactKind
from provctl.scanners.systemd import SystemdScanner
from provctl.utils.shell import CommandResult


def _show(load: str, active: str) -> CommandResult:
    return CommandResult(
        stdout=f"LoadState={load}\nActiveState={active}\n", stderr="", returncode=0
    )


class TestSystemdScanner:
    """Tests for SystemdScanner class."""

    @pytest.fixture
    def scanner(self) -> SystemdScanner:
        return SystemdScanner()

    def test_kind_is_service(self, scanner: SystemdScanner) -> None:
        """Scanner produces service facts."""
        assert scanner.kind == FactKind.SERVICE

    @pytest.mark.parametrize(
        ("active", "expected"),
        [
            ("active", "running"),
            ("reloading", "running"),
            ("activating", "running"),
            ("inactive", "stopped"),
            ("failed", "stopped"),
        ],
    )
    def test_loaded_unit(self, scanner: SystemdScanner, active: str, expected: str) -> None:
        """Loaded units are PRESENT, running or stopped."""
        with patch("provctl.scanners.systemd.run_command", return_value=_show("loaded", active)):
            fact = scanner.observe("nginx")

        assert fact.is_present
        assert fact.value == expected

    def test_not_found_is_absent(self, scanner: SystemdScanner) -> None:
        """A unit systemd does not know about is ABSENT."""
        with patch(
            "provctl.scanners.systemd.run_command", return_value=_show("not-found", "inactive")
        ):
            assert scanner.observe("mysql").is_absent

    def test_incomplete_output(self, scanner: SystemdScanner) -> None:
        """Output without both properties cannot be interpreted."""
        result = CommandResult(stdout="LoadState=loaded\n", stderr="", returncode=0)
        with (
            patch("provctl.scanners.systemd.run_command", return_value=result),
            pytest.raises(CollectionError, match="incomplete"),
        ):
            scanner.observe("nginx")

    def test_systemctl_failure(self, scanner: SystemdScanner) -> None:
        """A failing systemctl is a collection error, not absence."""
        result = CommandResult(
            stdout="", stderr="System has not been booted with systemd", returncode=1
        )
        with (
            patch("provctl.scanners.systemd.run_command", return_value=result),
            pytest.raises(CollectionError, match="not been booted"),
        ):
            scanner.observe("nginx")

    def test_timeout(self, scanner: SystemdScanner) -> None:
        """A hung systemctl is a collection error."""
        with (
            patch(
                "provctl.scanners.systemd.run_command",
                side_effect=subprocess.TimeoutExpired("systemctl", 30),
            ),
            pytest.raises(CollectionError),
        ):
            scanner.observe("nginx")
