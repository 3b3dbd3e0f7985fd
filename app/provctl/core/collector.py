"""Fact collection.

This module provides the FactCollector, which queries the host through
scanners and returns an immutable snapshot of the facts a plan needs.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from provctl.core.errors import CollectionError
from provctl.models.fact import Fact, FactKey, FactKind

if TYPE_CHECKING:
    from provctl.models.manifest import Manifest
    from provctl.scanners.base import Scanner

logger = logging.getLogger(__name__)


class FactCollector:
    """Collects facts about the host without changing it.

    Each fact kind is served by one scanner. A failed query never aborts
    collection: it yields an UNKNOWN fact carrying the error, which the
    Plan Builder treats as "needs an action".

    Example:
        >>> collector = FactCollector([AptScanner(), SystemdScanner(), FileScanner()])
        >>> facts = collector.collect({FactKey.package("nginx")})
        >>> facts[FactKey.package("nginx")].status
        <FactStatus.ABSENT: 'absent'>
    """

    def __init__(self, scanners: Iterable[Scanner]) -> None:
        """Initialize the collector.

        Args:
            scanners: Scanners to query; the last one registered for a kind wins.
        """
        self._scanners: dict[FactKind, Scanner] = {s.kind: s for s in scanners}
        self._availability: dict[FactKind, bool] = {}

    def collect(self, targets: Iterable[FactKey]) -> Mapping[FactKey, Fact]:
        """Observe every target.

        Targets are queried in sorted order so repeated runs issue the same
        sequence of queries.

        Args:
            targets: Fact keys to observe.

        Returns:
            Read-only mapping with one Fact per target.
        """
        facts: dict[FactKey, Fact] = {}
        for key in sorted(set(targets)):
            facts[key] = self._collect_one(key)

        unknown = sum(1 for fact in facts.values() if fact.is_unknown)
        logger.debug("Collected %d fact(s), %d unknown", len(facts), unknown)
        return MappingProxyType(facts)

    def _collect_one(self, key: FactKey) -> Fact:
        scanner = self._scanners.get(key.kind)
        if scanner is None:
            return self._unknown(key, f"no scanner registered for {key.kind.value} facts")

        if not self._is_available(scanner):
            return self._unknown(key, f"{key.kind.value} scanner is not available on this host")

        try:
            fact = scanner.observe(key.name)
        except CollectionError as e:
            return self._unknown(key, str(e))

        if fact.key != key:
            msg = f"Scanner returned fact for {fact.key} when asked for {key}"
            raise RuntimeError(msg)
        return fact

    def _is_available(self, scanner: Scanner) -> bool:
        if scanner.kind not in self._availability:
            self._availability[scanner.kind] = scanner.is_available()
        return self._availability[scanner.kind]

    @staticmethod
    def _unknown(key: FactKey, error: str) -> Fact:
        logger.warning("Could not observe %s: %s", key, error)
        return Fact.unknown(key, error)


def create_collector(manifest: Manifest, timeout: float | None = 60.0) -> FactCollector:
    """Create a collector with the standard scanners for a manifest.

    Args:
        manifest: Manifest whose command guards the check scanner needs.
        timeout: Timeout in seconds for each query.

    Returns:
        FactCollector with APT, systemd, file, tree and guard scanners.
    """
    from provctl.scanners import (
        AptScanner,
        CheckScanner,
        FileScanner,
        SystemdScanner,
        TreeScanner,
    )

    checks = {command.name: list(command.unless) for command in manifest.commands if command.unless}
    return FactCollector(
        [
            AptScanner(timeout=timeout),
            SystemdScanner(timeout=timeout),
            FileScanner(),
            TreeScanner(),
            CheckScanner(checks, timeout=timeout),
        ]
    )
