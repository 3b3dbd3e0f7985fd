"""Abstract base class for fact scanners.

This module defines the Scanner interface that every source of host
facts (package database, service manager, filesystem, guard commands)
must implement.
"""

from abc import ABC, abstractmethod

from provctl.models.fact import Fact, FactKey, FactKind


class Scanner(ABC):
    """Abstract base class for all fact scanners.

    Scanners are read-only: they query the host and report what they see
    without changing anything.

    Example:
        >>> scanner = AptScanner()
        >>> if scanner.is_available():
        ...     fact = scanner.observe("nginx")
        ...     print(fact.status, fact.value)
    """

    @property
    @abstractmethod
    def kind(self) -> FactKind:
        """Return the kind of fact this scanner produces."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the underlying tool is available on the system.

        Returns:
            True if the scanner can be used, False otherwise.
        """

    @abstractmethod
    def observe(self, name: str) -> Fact:
        """Observe a single resource.

        Args:
            name: Package name, unit name, path or check name.

        Returns:
            Fact describing the resource, PRESENT or ABSENT.

        Raises:
            CollectionError: If the query itself fails.
        """

    def key(self, name: str) -> FactKey:
        """Build the fact key for a resource handled by this scanner."""
        return FactKey(self.kind, name)
