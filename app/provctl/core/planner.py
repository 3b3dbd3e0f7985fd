"""Plan building.

This module provides the PlanBuilder, which compares the manifest with
the collected facts and produces an ordered, dependency-respecting list
of actions. Building a plan never touches the host.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from provctl.core.errors import CyclicDependencyError, InvalidSpecError
from provctl.core.versions import parse_version, version_satisfies
from provctl.models.action import (
    Action,
    ActionType,
    create_command_action,
    create_copy_action,
    create_install_action,
    create_service_action,
)
from provctl.models.fact import Fact, FactKey, tree_changes
from provctl.models.manifest import CommandSpec, FileSpec, PackageSpec, ServiceSpec
from provctl.scanners.files import DIRECTORY_VALUE

if TYPE_CHECKING:
    from provctl.models.manifest import Manifest, ResourceSpec

logger = logging.getLogger(__name__)

SATISFIED = "satisfied"


def fact_targets(manifest: Manifest) -> set[FactKey]:
    """List every fact a manifest needs to be planned.

    Args:
        manifest: Desired state.

    Returns:
        Keys for each package and service, each file's source and
        destination (as trees for recursive copies), each command's
        ``creates`` path and ``unless`` guard.
    """
    targets: set[FactKey] = set()
    for package in manifest.packages:
        targets.add(FactKey.package(package.name))
    for file_spec in manifest.files:
        if file_spec.recursive:
            targets.add(FactKey.tree(str(file_spec.source)))
            targets.add(FactKey.tree(str(file_spec.dest)))
        else:
            targets.add(FactKey.file(str(file_spec.source)))
            targets.add(FactKey.file(str(file_spec.dest)))
    for command in manifest.commands:
        if command.creates is not None:
            targets.add(FactKey.file(str(command.creates)))
        if command.unless:
            targets.add(FactKey.check(command.name))
    for service in manifest.services:
        targets.add(FactKey.service(service.name))
    return targets


@dataclass(frozen=True, slots=True)
class Plan:
    """Ordered actions needed to converge the host.

    Attributes:
        actions: Actions in execution order.
        satisfied: ``(resource id, reason)`` for every entry that needs
            nothing, in plan order.
    """

    actions: tuple[Action, ...] = ()
    satisfied: tuple[tuple[str, str], ...] = ()

    def __len__(self) -> int:
        return len(self.actions)

    @property
    def is_empty(self) -> bool:
        """Check if the host already matches the manifest."""
        return not self.actions

    @property
    def action_ids(self) -> tuple[str, ...]:
        return tuple(action.id for action in self.actions)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "summary": {"actions": len(self.actions), "satisfied": len(self.satisfied)},
            "actions": [action.to_dict() for action in self.actions],
            "satisfied": [{"id": rid, "reason": reason} for rid, reason in self.satisfied],
        }


class PlanBuilder:
    """Builds a Plan from a manifest and a fact snapshot.

    Planning is a pure function of its inputs: the same manifest and
    facts always produce the same plan. Resources are visited in a
    topological order of the whole manifest graph, with ties broken by
    declaration order (packages, files, commands, services), so cycles
    are reported even when every resource is already satisfied.

    Besides explicit ``dependsOn`` entries, a file linked to a service
    must be converged before that service, and a service waits for the
    package of the same name when one is declared.
    """

    def build(self, manifest: Manifest, facts: Mapping[FactKey, Fact]) -> Plan:
        """Build the plan.

        Args:
            manifest: Desired state.
            facts: Observed state from the Fact Collector.

        Returns:
            Plan with ordered actions and satisfied entries.

        Raises:
            CyclicDependencyError: If dependencies form a cycle.
            InvalidSpecError: If an entry cannot be satisfied, e.g. a file
                whose source does not exist.
        """
        specs = {spec.resource_id: spec for spec in manifest.resources()}
        graph = dependency_graph(manifest)
        order = topological_order(list(specs), graph)

        decided: dict[str, Action] = {}
        satisfied: list[tuple[str, str]] = []
        # Action ids each resource passes on to its dependents
        nearest: dict[str, frozenset[str]] = {}

        for rid in order:
            inherited: set[str] = set()
            for prereq in graph[rid]:
                if prereq in decided:
                    inherited.add(prereq)
                else:
                    inherited.update(nearest[prereq])
            depends_on = frozenset(inherited)

            action, reason = self._decide(specs[rid], manifest, facts, decided, depends_on)
            if action is None:
                satisfied.append((rid, reason))
                nearest[rid] = depends_on
                logger.debug("%s: %s", rid, reason)
            else:
                decided[rid] = action
                nearest[rid] = frozenset({rid})
                logger.debug("%s: %s (%s)", rid, action.action_type.value, reason)

        plan = Plan(
            actions=tuple(decided[rid] for rid in order if rid in decided),
            satisfied=tuple(satisfied),
        )
        logger.info("Plan has %d action(s), %d satisfied", len(plan.actions), len(satisfied))
        return plan

    def _decide(
        self,
        spec: ResourceSpec,
        manifest: Manifest,
        facts: Mapping[FactKey, Fact],
        decided: Mapping[str, Action],
        depends_on: frozenset[str],
    ) -> tuple[Action | None, str]:
        if isinstance(spec, PackageSpec):
            return self._plan_package(spec, facts, depends_on)
        if isinstance(spec, FileSpec):
            return self._plan_file(spec, facts, depends_on)
        if isinstance(spec, CommandSpec):
            return self._plan_command(spec, facts, depends_on)
        return self._plan_service(spec, manifest, facts, decided, depends_on)

    def _plan_package(
        self,
        spec: PackageSpec,
        facts: Mapping[FactKey, Fact],
        depends_on: frozenset[str],
    ) -> tuple[Action | None, str]:
        if spec.min_version is not None:
            try:
                parse_version(spec.min_version)
            except ValueError as e:
                msg = f"{spec.resource_id}: invalid minVersion: {e}"
                raise InvalidSpecError(msg) from e

        fact = _lookup(facts, FactKey.package(spec.name))
        reason: str | None = None
        if fact.is_unknown:
            reason = f"state unknown: {fact.error}"
        elif fact.is_absent:
            reason = "not installed"
        elif spec.min_version is not None:
            installed = fact.value or ""
            try:
                if not version_satisfies(installed, spec.min_version):
                    reason = f"installed {installed} < {spec.min_version}"
            except ValueError:
                reason = f"installed version '{installed}' cannot be compared"

        if reason is None:
            return None, SATISFIED
        action = create_install_action(
            spec.name, version=spec.min_version, reason=reason, depends_on=depends_on
        )
        return action, reason

    def _plan_file(
        self,
        spec: FileSpec,
        facts: Mapping[FactKey, Fact],
        depends_on: frozenset[str],
    ) -> tuple[Action | None, str]:
        if spec.recursive:
            return self._plan_tree(spec, facts, depends_on)

        source = _lookup(facts, FactKey.file(str(spec.source)))
        if source.is_absent:
            msg = f"{spec.resource_id}: source file {spec.source} does not exist"
            raise InvalidSpecError(msg)
        if source.is_unknown:
            msg = f"{spec.resource_id}: cannot read source file {spec.source}: {source.error}"
            raise InvalidSpecError(msg)
        if source.value == DIRECTORY_VALUE:
            msg = (
                f"{spec.resource_id}: source {spec.source} is a directory; "
                "set recursive = true to copy it"
            )
            raise InvalidSpecError(msg)

        dest = _lookup(facts, FactKey.file(str(spec.dest)))
        reason: str | None = None
        if dest.is_unknown:
            reason = f"state unknown: {dest.error}"
        elif dest.is_absent:
            reason = "destination missing"
        elif dest.value != source.value:
            reason = "content differs"
        elif dest.mode != spec.mode:
            current = f"{dest.mode:04o}" if dest.mode is not None else "unknown"
            reason = f"mode {current} != {spec.mode:04o}"

        if reason is None:
            return None, SATISFIED
        action = create_copy_action(
            spec.source, spec.dest, mode=spec.mode, reason=reason, depends_on=depends_on
        )
        return action, reason

    def _plan_tree(
        self,
        spec: FileSpec,
        facts: Mapping[FactKey, Fact],
        depends_on: frozenset[str],
    ) -> tuple[Action | None, str]:
        source = _lookup(facts, FactKey.tree(str(spec.source)))
        if source.is_absent:
            msg = f"{spec.resource_id}: source directory {spec.source} does not exist"
            raise InvalidSpecError(msg)
        if source.is_unknown:
            msg = (
                f"{spec.resource_id}: cannot read source directory {spec.source}: "
                f"{source.error}"
            )
            raise InvalidSpecError(msg)

        dest = _lookup(facts, FactKey.tree(str(spec.dest)))
        reason: str | None = None
        if dest.is_unknown:
            reason = f"state unknown: {dest.error}"
        elif dest.is_absent:
            reason = "destination missing"
        else:
            to_copy, to_remove = tree_changes(
                source.entries, dest.entries, spec.mode, delete=spec.delete
            )
            parts: list[str] = []
            if to_copy:
                parts.append(f"{len(to_copy)} file(s) differ: {_preview(to_copy)}")
            if to_remove:
                parts.append(f"{len(to_remove)} extra file(s): {_preview(to_remove)}")
            reason = "; ".join(parts) or None

        if reason is None:
            return None, SATISFIED
        action = create_copy_action(
            spec.source,
            spec.dest,
            mode=spec.mode,
            recursive=True,
            delete=spec.delete,
            reason=reason,
            depends_on=depends_on,
        )
        return action, reason

    def _plan_command(
        self,
        spec: CommandSpec,
        facts: Mapping[FactKey, Fact],
        depends_on: frozenset[str],
    ) -> tuple[Action | None, str]:
        unknown: list[str] = []
        if spec.creates is not None:
            created = _lookup(facts, FactKey.file(str(spec.creates)))
            if created.is_present:
                return None, f"{SATISFIED}: {spec.creates} exists"
            if created.is_unknown:
                unknown.append(f"{spec.creates}: {created.error}")
        if spec.unless:
            check = _lookup(facts, FactKey.check(spec.name))
            if check.is_present:
                return None, f"{SATISFIED}: guard passed"
            if check.is_unknown:
                unknown.append(f"guard: {check.error}")

        reason = f"state unknown: {'; '.join(unknown)}" if unknown else "guard not satisfied"
        action = create_command_action(
            spec.name,
            spec.command,
            creates=spec.creates,
            unless=spec.unless,
            network=spec.network,
            reason=reason,
            depends_on=depends_on,
        )
        return action, reason

    def _plan_service(
        self,
        spec: ServiceSpec,
        manifest: Manifest,
        facts: Mapping[FactKey, Fact],
        decided: Mapping[str, Action],
        depends_on: frozenset[str],
    ) -> tuple[Action | None, str]:
        fact = _lookup(facts, FactKey.service(spec.name))
        action_type: ActionType | None = None
        reason = SATISFIED

        if spec.running:
            changed = [
                f.resource_id
                for f in manifest.files
                if f.service == spec.name and f.resource_id in decided
            ]
            if fact.is_unknown:
                action_type, reason = ActionType.RESTART_SERVICE, f"state unknown: {fact.error}"
            elif fact.is_absent or fact.value != "running":
                action_type = ActionType.START_SERVICE
                reason = "not installed yet" if fact.is_absent else "stopped"
            elif changed:
                action_type = ActionType.RESTART_SERVICE
                reason = f"configuration changed: {', '.join(changed)}"
        elif fact.is_unknown:
            action_type, reason = ActionType.STOP_SERVICE, f"state unknown: {fact.error}"
        elif fact.is_present and fact.value == "running":
            action_type, reason = ActionType.STOP_SERVICE, "running"

        if action_type is None:
            return None, reason
        action = create_service_action(
            action_type, spec.name, reason=reason, depends_on=depends_on
        )
        return action, reason


def _lookup(facts: Mapping[FactKey, Fact], key: FactKey) -> Fact:
    """Return the fact for key, treating a missing observation as unknown."""
    fact = facts.get(key)
    if fact is None:
        return Fact.unknown(key, "not collected")
    return fact


def _preview(paths: list[str], limit: int = 3) -> str:
    """Join the first few paths, marking the rest with an ellipsis."""
    shown = ", ".join(paths[:limit])
    return f"{shown}, ..." if len(paths) > limit else shown


def dependency_graph(manifest: Manifest) -> dict[str, list[str]]:
    """Map each resource id to the ids it must be converged after.

    Prerequisites are listed in declaration order without duplicates.

    Args:
        manifest: Desired state.

    Returns:
        Adjacency list keyed by resource id.
    """
    graph: dict[str, list[str]] = {spec.resource_id: [] for spec in manifest.resources()}

    def add_edge(rid: str, prereq: str) -> None:
        if prereq not in graph[rid]:
            graph[rid].append(prereq)

    package_ids = {package.name: package.resource_id for package in manifest.packages}
    service_ids = {service.name: service.resource_id for service in manifest.services}

    for spec in manifest.resources():
        for dep in spec.depends_on:
            add_edge(spec.resource_id, dep)

    for file_spec in manifest.files:
        if file_spec.service is not None:
            add_edge(service_ids[file_spec.service], file_spec.resource_id)

    for service in manifest.services:
        if service.name in package_ids:
            add_edge(service.resource_id, package_ids[service.name])

    position = {rid: index for index, rid in enumerate(graph)}
    return {rid: sorted(prereqs, key=position.__getitem__) for rid, prereqs in graph.items()}


def topological_order(ids: list[str], graph: Mapping[str, list[str]]) -> list[str]:
    """Sort resource ids so every prerequisite comes first.

    Uses Kahn's algorithm with a priority queue keyed on the position in
    ``ids``, so ties always resolve to declaration order.

    Args:
        ids: Resource ids in declaration order.
        graph: Prerequisites per resource id.

    Returns:
        Resource ids in dependency order.

    Raises:
        CyclicDependencyError: If the graph contains a cycle.
    """
    position = {rid: index for index, rid in enumerate(ids)}
    remaining = {rid: len(graph[rid]) for rid in ids}
    dependents: dict[str, list[str]] = {rid: [] for rid in ids}
    for rid in ids:
        for prereq in graph[rid]:
            dependents[prereq].append(rid)

    ready = [position[rid] for rid in ids if remaining[rid] == 0]
    heapq.heapify(ready)
    order: list[str] = []
    while ready:
        rid = ids[heapq.heappop(ready)]
        order.append(rid)
        for dependent in dependents[rid]:
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                heapq.heappush(ready, position[dependent])

    if len(order) != len(ids):
        raise CyclicDependencyError(_find_cycle(ids, graph, set(order)))
    return order


def _find_cycle(ids: list[str], graph: Mapping[str, list[str]], done: set[str]) -> list[str]:
    """Extract one cycle from the nodes Kahn's algorithm could not order.

    Every unordered node still has an unordered prerequisite, so walking
    prerequisites from any of them must revisit a node.
    """
    start = next(rid for rid in ids if rid not in done)
    path: list[str] = []
    seen: dict[str, int] = {}
    node = start
    while node not in seen:
        seen[node] = len(path)
        path.append(node)
        node = next(prereq for prereq in graph[node] if prereq not in done)
    return path[seen[node] :]


def build_plan(manifest: Manifest, facts: Mapping[FactKey, Fact]) -> Plan:
    """Build a plan with the default PlanBuilder."""
    return PlanBuilder().build(manifest, facts)
