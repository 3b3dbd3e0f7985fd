"""Fact models for observed host state.

This module defines the data structures the Fact Collector produces: a
typed key identifying a resource on the host and the point-in-time
observation made for it.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum


class FactKind(str, Enum):
    """Kind of host resource a fact describes.

    Attributes:
        PACKAGE: An OS package tracked by the package database.
        SERVICE: A unit managed by the service manager.
        FILE: A path on the filesystem.
        TREE: A directory tree, compared file by file.
        CHECK: The outcome of a read-only guard command.
    """

    PACKAGE = "package"
    SERVICE = "service"
    FILE = "file"
    TREE = "tree"
    CHECK = "check"


class FactStatus(str, Enum):
    """Observed status of a resource.

    ``UNKNOWN`` means the query itself failed. It is distinct from
    ``ABSENT`` and must never be treated as "nothing to do".
    """

    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True, order=True)
class FactKey:
    """Identifier of a single fact, rendered as ``<kind>:<name>``.

    Attributes:
        kind: Kind of resource.
        name: Package name, unit name, absolute path or check name.
    """

    kind: FactKind
    name: str

    def __post_init__(self) -> None:
        """Validate key data after initialization."""
        if not self.name:
            msg = "Fact name cannot be empty"
            raise ValueError(msg)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.name}"

    @classmethod
    def package(cls, name: str) -> "FactKey":
        return cls(FactKind.PACKAGE, name)

    @classmethod
    def service(cls, name: str) -> "FactKey":
        return cls(FactKind.SERVICE, name)

    @classmethod
    def file(cls, path: str) -> "FactKey":
        return cls(FactKind.FILE, path)

    @classmethod
    def tree(cls, path: str) -> "FactKey":
        return cls(FactKind.TREE, path)

    @classmethod
    def check(cls, name: str) -> "FactKey":
        return cls(FactKind.CHECK, name)


@dataclass(frozen=True, slots=True, order=True)
class TreeEntry:
    """A regular file inside an observed directory tree.

    Attributes:
        path: Path relative to the tree root, with ``/`` separators.
        digest: SHA-256 hex digest of the content.
        mode: Permission bits.
    """

    path: str
    digest: str
    mode: int


@dataclass(frozen=True, slots=True)
class Fact:
    """Observed value of a resource at collection time.

    Attributes:
        key: Which resource was observed.
        status: Present, absent, or unknown.
        value: Package version, ``running``/``stopped`` for services,
            SHA-256 digest (or ``directory``) for files, a digest over
            all entries for trees.
        mode: Permission bits for files and trees, None otherwise.
        error: Query error message when status is UNKNOWN.
        entries: Files below a tree, sorted by path.
    """

    key: FactKey
    status: FactStatus
    value: str | None = None
    mode: int | None = None
    error: str | None = None
    entries: tuple[TreeEntry, ...] = ()

    @property
    def is_present(self) -> bool:
        """Check if the resource exists on the host."""
        return self.status == FactStatus.PRESENT

    @property
    def is_absent(self) -> bool:
        """Check if the resource is known not to exist."""
        return self.status == FactStatus.ABSENT

    @property
    def is_unknown(self) -> bool:
        """Check if the resource could not be observed."""
        return self.status == FactStatus.UNKNOWN

    @classmethod
    def present(
        cls,
        key: FactKey,
        value: str | None = None,
        mode: int | None = None,
        entries: tuple[TreeEntry, ...] = (),
    ) -> "Fact":
        return cls(key=key, status=FactStatus.PRESENT, value=value, mode=mode, entries=entries)

    @classmethod
    def absent(cls, key: FactKey) -> "Fact":
        return cls(key=key, status=FactStatus.ABSENT)

    @classmethod
    def unknown(cls, key: FactKey, error: str) -> "Fact":
        return cls(key=key, status=FactStatus.UNKNOWN, error=error)

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, object] = {"key": str(self.key), "status": self.status.value}
        if self.value is not None:
            result["value"] = self.value
        if self.mode is not None:
            result["mode"] = f"{self.mode:04o}"
        if self.error is not None:
            result["error"] = self.error
        if self.key.kind == FactKind.TREE and self.is_present:
            result["files"] = len(self.entries)
        return result


def tree_changes(
    source: Iterable[TreeEntry],
    dest: Iterable[TreeEntry],
    mode: int | None,
    *,
    delete: bool = False,
) -> tuple[list[str], list[str]]:
    """Compare a source tree with its copy.

    Args:
        source: Entries of the source tree.
        dest: Entries of the destination tree.
        mode: Mode every copied file must have; None to ignore modes.
        delete: Whether files missing from the source are to be removed.

    Returns:
        Sorted relative paths to copy, and sorted relative paths to remove
        (always empty unless ``delete`` is set).
    """
    current = {entry.path: entry for entry in dest}
    wanted: set[str] = set()
    to_copy: list[str] = []
    for entry in source:
        wanted.add(entry.path)
        existing = current.get(entry.path)
        if (
            existing is None
            or existing.digest != entry.digest
            or (mode is not None and existing.mode != mode)
        ):
            to_copy.append(entry.path)
    to_remove = sorted(path for path in current if path not in wanted) if delete else []
    return sorted(to_copy), to_remove
