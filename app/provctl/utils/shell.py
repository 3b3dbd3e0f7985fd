"""Shell execution utilities.

Provides subprocess execution with captured output for scanners and
operators.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0


def run_command(
    args: list[str],
    *,
    timeout: float | None = 60.0,
    env: dict[str, str] | None = None,
    new_session: bool = False,
) -> CommandResult:
    """Execute a command and return the result.

    Args:
        args: Command and arguments to execute.
        timeout: Maximum time in seconds to wait for command.
        env: Additional environment variables (merged with current env).
        new_session: Start the command in its own session, so signals sent
            to the terminal's process group (Ctrl-C) do not reach it.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        subprocess.TimeoutExpired: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
    """
    full_env = {**os.environ, **env} if env else None
    result = subprocess.run(
        args,
        capture_output=True,
        text=True,
        timeout=timeout,
        env=full_env,
        start_new_session=new_session,
    )
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
    )


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH.

    Args:
        name: Command name to check.

    Returns:
        True if command exists, False otherwise.
    """
    return shutil.which(name) is not None
