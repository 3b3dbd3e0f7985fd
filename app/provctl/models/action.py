"""Action models for converging host state.

This module defines the unit of change produced by the Plan Builder and
consumed by the Action Executor.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class ActionType(str, Enum):
    """Type of provisioning action.

    Attributes:
        INSTALL_PACKAGE: Install (or upgrade) an OS package.
        COPY_FILE: Copy a file (or directory tree) into place and set its mode.
        START_SERVICE: Start a stopped service.
        STOP_SERVICE: Stop a running service.
        RESTART_SERVICE: Restart a service, e.g. after its config changed.
        RUN_COMMAND: Run a guarded bootstrap command.
    """

    INSTALL_PACKAGE = "install_package"
    COPY_FILE = "copy_file"
    START_SERVICE = "start_service"
    STOP_SERVICE = "stop_service"
    RESTART_SERVICE = "restart_service"
    RUN_COMMAND = "run_command"


# Resource kind prefix used in action ids.
_ID_PREFIX: dict[ActionType, str] = {
    ActionType.INSTALL_PACKAGE: "package",
    ActionType.COPY_FILE: "file",
    ActionType.START_SERVICE: "service",
    ActionType.STOP_SERVICE: "service",
    ActionType.RESTART_SERVICE: "service",
    ActionType.RUN_COMMAND: "command",
}


@dataclass(frozen=True, slots=True)
class Action:
    """A single change to be made to the host.

    This is an immutable data structure carrying only what is needed to
    execute the change and to describe it in a plan or report.

    Attributes:
        action_type: What kind of change this is.
        target: Package name, destination path, unit name or command name.
        reason: Why the Plan Builder decided this action is needed.
        depends_on: Ids of actions that must run before this one.
        network: Whether the action needs network access (retried on
            network failures).
        version: Minimum version for package installs.
        source: Source file for copies.
        mode: Destination mode for copies.
        recursive: Whether a copy covers a whole directory tree.
        delete: Whether a tree copy removes files missing from the source.
        command: Argument vector for commands.
        creates: Guard path for commands.
        unless: Guard command for commands.
    """

    action_type: ActionType
    target: str
    reason: str | None = None
    depends_on: frozenset[str] = field(default_factory=frozenset)
    network: bool = False
    version: str | None = None
    source: Path | None = None
    mode: int | None = None
    recursive: bool = False
    delete: bool = False
    command: tuple[str, ...] = ()
    creates: Path | None = None
    unless: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate action data after initialization."""
        if not self.target:
            msg = "Action target cannot be empty"
            raise ValueError(msg)
        if self.action_type == ActionType.COPY_FILE and self.source is None:
            msg = "Copy action requires a source"
            raise ValueError(msg)
        if self.action_type == ActionType.RUN_COMMAND and not self.command:
            msg = "Command action requires a command"
            raise ValueError(msg)

    @property
    def id(self) -> str:
        """Id of the resource this action converges, e.g. ``package:nginx``."""
        return f"{_ID_PREFIX[self.action_type]}:{self.target}"

    def describe(self) -> str:
        """Return a one-line human-readable description."""
        if self.action_type == ActionType.INSTALL_PACKAGE:
            suffix = f" (>= {self.version})" if self.version else ""
            return f"install package {self.target}{suffix}"
        if self.action_type == ActionType.COPY_FILE:
            mode = f" mode {self.mode:04o}" if self.mode is not None else ""
            if self.recursive:
                extra = ", removing extra files" if self.delete else ""
                return f"copy tree {self.source}/ -> {self.target}{mode}{extra}"
            return f"copy {self.source} -> {self.target}{mode}"
        if self.action_type == ActionType.RUN_COMMAND:
            return f"run {self.target}: {' '.join(self.command)}"
        # START/STOP/RESTART_SERVICE
        verb = self.action_type.value.removesuffix("_service")
        return f"{verb} service {self.target}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Only parameters that are set are included.
        """
        result: dict[str, Any] = {
            "id": self.id,
            "type": self.action_type.value,
            "target": self.target,
            "depends_on": sorted(self.depends_on),
        }
        if self.reason is not None:
            result["reason"] = self.reason
        if self.network:
            result["network"] = True
        if self.version is not None:
            result["version"] = self.version
        if self.source is not None:
            result["source"] = str(self.source)
        if self.mode is not None:
            result["mode"] = f"{self.mode:04o}"
        if self.recursive:
            result["recursive"] = True
        if self.delete:
            result["delete"] = True
        if self.command:
            result["command"] = list(self.command)
        if self.creates is not None:
            result["creates"] = str(self.creates)
        if self.unless:
            result["unless"] = list(self.unless)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Action":
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If the action type is invalid.
        """
        return cls(
            action_type=ActionType(data["type"]),
            target=data["target"],
            reason=data.get("reason"),
            depends_on=frozenset(data.get("depends_on", [])),
            network=data.get("network", False),
            version=data.get("version"),
            source=Path(data["source"]) if "source" in data else None,
            mode=int(data["mode"], 8) if "mode" in data else None,
            recursive=data.get("recursive", False),
            delete=data.get("delete", False),
            command=tuple(data.get("command", [])),
            creates=Path(data["creates"]) if "creates" in data else None,
            unless=tuple(data.get("unless", [])),
        )


def create_install_action(
    package: str,
    *,
    version: str | None = None,
    reason: str | None = None,
    depends_on: frozenset[str] = frozenset(),
) -> Action:
    """Create a package install action.

    Package installs always need the network.
    """
    return Action(
        action_type=ActionType.INSTALL_PACKAGE,
        target=package,
        version=version,
        reason=reason,
        depends_on=depends_on,
        network=True,
    )


def create_copy_action(
    source: Path,
    dest: Path,
    *,
    mode: int | None = None,
    recursive: bool = False,
    delete: bool = False,
    reason: str | None = None,
    depends_on: frozenset[str] = frozenset(),
) -> Action:
    """Create a file or directory tree copy action."""
    return Action(
        action_type=ActionType.COPY_FILE,
        target=str(dest),
        source=source,
        mode=mode,
        recursive=recursive,
        delete=delete,
        reason=reason,
        depends_on=depends_on,
    )


def create_service_action(
    action_type: ActionType,
    service: str,
    *,
    reason: str | None = None,
    depends_on: frozenset[str] = frozenset(),
) -> Action:
    """Create a start, stop or restart action for a service.

    Raises:
        ValueError: If action_type is not a service action type.
    """
    if _ID_PREFIX[action_type] != "service":
        msg = f"{action_type.value} is not a service action"
        raise ValueError(msg)
    return Action(
        action_type=action_type,
        target=service,
        reason=reason,
        depends_on=depends_on,
    )


def create_command_action(
    name: str,
    command: list[str] | tuple[str, ...],
    *,
    creates: Path | None = None,
    unless: list[str] | tuple[str, ...] | None = None,
    network: bool = False,
    reason: str | None = None,
    depends_on: frozenset[str] = frozenset(),
) -> Action:
    """Create a guarded command action."""
    return Action(
        action_type=ActionType.RUN_COMMAND,
        target=name,
        command=tuple(command),
        creates=creates,
        unless=tuple(unless or ()),
        network=network,
        reason=reason,
        depends_on=depends_on,
    )
