"""Exception hierarchy for provctl.

Collection and plan errors abort a run before anything is changed.
Execution errors are raised by operators and contained per action by
the executor.
"""

from provctl.models.result import ErrorKind


class ProvctlError(Exception):
    """Base exception for all provctl errors."""


class ConfigError(ProvctlError):
    """Raised when the user configuration cannot be loaded."""


class CollectionError(ProvctlError):
    """Raised by scanners when a fact query fails.

    The collector turns this into an UNKNOWN fact; it never aborts a run.
    """


class PlanError(ProvctlError):
    """Base exception for errors raised while building a plan."""


class InvalidSpecError(PlanError):
    """Raised when a manifest entry is malformed or cannot be satisfied."""


class CyclicDependencyError(PlanError):
    """Raised when manifest dependencies form a cycle.

    Attributes:
        members: Resource ids forming the cycle, in dependency order.
    """

    def __init__(self, members: list[str] | tuple[str, ...]) -> None:
        self.members = tuple(members)
        chain = " -> ".join([*self.members, self.members[0]]) if self.members else ""
        super().__init__(f"Cyclic dependency: {chain}")


class LockError(ProvctlError):
    """Raised when another run holds the host lock."""


class ExecutionError(ProvctlError):
    """Raised by operators when an action fails.

    Attributes:
        kind: Failure classification.
        exit_code: Exit code of the underlying tool, if any.
        stderr: Error output of the underlying tool, verbatim.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        exit_code: int | None = None,
        stderr: str | None = None,
    ) -> None:
        self.kind = kind
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """Only network failures are worth retrying."""
        return self.kind == ErrorKind.NETWORK_UNAVAILABLE
