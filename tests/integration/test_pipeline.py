"""Integration tests for the provisioning pipeline.

Runs collect, plan and execute against a simulated host: packages and
services live in memory, files are real files under tmp_path.
"""

from pathlib import Path

import pytest
from provctl.core.collector import FactCollector
from provctl.core.executor import ActionExecutor, ExecutionOptions
from provctl.core.planner import Plan, build_plan, fact_targets
from provctl.core.reporter import ExitCode, report
from provctl.models.action import Action, ActionType
from provctl.models.fact import Fact, FactKind
from provctl.models.manifest import FileSpec, Manifest, PackageSpec, ServiceSpec
from provctl.models.result import OutcomeStatus, RunResult
from provctl.operators import FileOperator
from provctl.operators.base import Operator
from provctl.scanners import FileScanner, TreeScanner
from provctl.scanners.base import Scanner


class SimulatedHost:
    """In-memory package database and service manager."""

    def __init__(self) -> None:
        self.packages: dict[str, str] = {}
        self.services: dict[str, bool] = {}
        self.restarts: list[str] = []


class HostPackageScanner(Scanner):
    def __init__(self, host: SimulatedHost) -> None:
        self.host = host

    @property
    def kind(self) -> FactKind:
        return FactKind.PACKAGE

    def is_available(self) -> bool:
        return True

    def observe(self, name: str) -> Fact:
        if name in self.host.packages:
            return Fact.present(self.key(name), self.host.packages[name])
        return Fact.absent(self.key(name))


class HostServiceScanner(Scanner):
    def __init__(self, host: SimulatedHost) -> None:
        self.host = host

    @property
    def kind(self) -> FactKind:
        return FactKind.SERVICE

    def is_available(self) -> bool:
        return True

    def observe(self, name: str) -> Fact:
        # A unit exists once its package is installed
        if name not in self.host.packages:
            return Fact.absent(self.key(name))
        running = self.host.services.get(name, False)
        return Fact.present(self.key(name), "running" if running else "stopped")


class HostOperator(Operator):
    def __init__(self, host: SimulatedHost) -> None:
        self.host = host

    @property
    def handles(self) -> frozenset[ActionType]:
        return frozenset(
            {
                ActionType.INSTALL_PACKAGE,
                ActionType.START_SERVICE,
                ActionType.STOP_SERVICE,
                ActionType.RESTART_SERVICE,
            }
        )

    def is_available(self) -> bool:
        return True

    def apply(self, action: Action, *, timeout: float | None) -> str:
        if action.action_type == ActionType.INSTALL_PACKAGE:
            self.host.packages[action.target] = action.version or "1.0"
        elif action.action_type == ActionType.STOP_SERVICE:
            self.host.services[action.target] = False
        else:
            if action.action_type == ActionType.RESTART_SERVICE:
                self.host.restarts.append(action.target)
            self.host.services[action.target] = True
        return action.describe()


@pytest.fixture
def host() -> SimulatedHost:
    return SimulatedHost()


@pytest.fixture
def manifest(nginx_conf: Path, tmp_path: Path) -> Manifest:
    return Manifest(
        packages=[PackageSpec(name="nginx", min_version="1.18.0")],
        files=[
            FileSpec(
                source=nginx_conf,
                dest=tmp_path / "etc" / "nginx" / "nginx.conf",
                service="nginx",
                depends_on=["package:nginx"],
            )
        ],
        services=[ServiceSpec(name="nginx")],
    )


def _plan(manifest: Manifest, host: SimulatedHost) -> Plan:
    collector = FactCollector(
        [HostPackageScanner(host), HostServiceScanner(host), FileScanner(), TreeScanner()]
    )
    return build_plan(manifest, collector.collect(fact_targets(manifest)))


def _apply(manifest: Manifest, host: SimulatedHost, dry_run: bool = False) -> RunResult:
    executor = ActionExecutor(
        [HostOperator(host), FileOperator()], ExecutionOptions(dry_run=dry_run)
    )
    return executor.execute(_plan(manifest, host))


class TestPipeline:
    """End-to-end convergence of a simulated host."""

    def test_bare_host_converges(self, manifest: Manifest, host: SimulatedHost) -> None:
        """nginx is installed, configured and started in dependency order."""
        result = _apply(manifest, host)

        assert [o.action.id for o in result.outcomes] == [
            "package:nginx",
            f"file:{manifest.files[0].dest}",
            "service:nginx",
        ]
        assert result.statuses == (OutcomeStatus.APPLIED,) * 3
        assert report(result).exit_code == ExitCode.OK
        assert host.services == {"nginx": True}
        assert manifest.files[0].dest.read_text() == "worker_processes auto;\n"

    def test_second_run_is_empty(self, manifest: Manifest, host: SimulatedHost) -> None:
        """Applying twice leaves nothing to do the second time."""
        _apply(manifest, host)

        assert _plan(manifest, host).is_empty
        result = _apply(manifest, host)
        assert result.outcomes == ()
        assert len(result.satisfied) == 3

        summary = report(result)
        assert (summary.applied, summary.skipped, summary.total) == (0, 3, 3)
        assert summary.exit_code == ExitCode.OK

    def test_dry_run_does_not_mutate(self, manifest: Manifest, host: SimulatedHost) -> None:
        """A dry-run reports the plan and leaves the host as it was."""
        before = _plan(manifest, host)

        result = _apply(manifest, host, dry_run=True)

        assert host.packages == {}
        assert not manifest.files[0].dest.exists()
        assert [o.action.id for o in result.outcomes] == list(before.action_ids)
        assert _plan(manifest, host) == before

    def test_config_change_restarts_service(
        self, manifest: Manifest, host: SimulatedHost, nginx_conf: Path
    ) -> None:
        """Changing a linked file restarts its running service."""
        _apply(manifest, host)
        nginx_conf.write_text("worker_processes 4;\n")

        result = _apply(manifest, host)

        assert [o.action.action_type for o in result.outcomes] == [
            ActionType.COPY_FILE,
            ActionType.RESTART_SERVICE,
        ]
        assert host.restarts == ["nginx"]

    def test_outdated_package_upgraded(self, manifest: Manifest, host: SimulatedHost) -> None:
        """An installed package below minVersion is reinstalled."""
        _apply(manifest, host)
        host.packages["nginx"] = "1.14.2-2"

        plan = _plan(manifest, host)

        assert plan.action_ids == ("package:nginx",)
        assert plan.actions[0].reason == "installed 1.14.2-2 < 1.18.0"


class TestTreePipeline:
    """Recursive copies of a site configuration directory."""

    @pytest.fixture
    def sites(self, tmp_path: Path) -> Path:
        root = tmp_path / "nginx-config" / "sites"
        root.mkdir(parents=True)
        (root / "default.conf").write_text("server { listen 80; }\n")
        (root / "local.conf").write_text("server { listen 8080; }\n")
        return root

    @pytest.fixture
    def tree_manifest(self, sites: Path, tmp_path: Path) -> Manifest:
        return Manifest(
            packages=[PackageSpec(name="nginx")],
            files=[
                FileSpec(
                    source=sites,
                    dest=tmp_path / "etc" / "nginx" / "custom-sites",
                    recursive=True,
                    delete=True,
                    service="nginx",
                )
            ],
            services=[ServiceSpec(name="nginx")],
        )

    def test_tree_converges_and_restarts_on_change(
        self, tree_manifest: Manifest, host: SimulatedHost, sites: Path
    ) -> None:
        """The tree is copied, then a changed or removed file restarts nginx."""
        dest = tree_manifest.files[0].dest

        _apply(tree_manifest, host)

        assert sorted(p.name for p in dest.iterdir()) == ["default.conf", "local.conf"]
        assert _plan(tree_manifest, host).is_empty

        (sites / "local.conf").unlink()
        plan = _plan(tree_manifest, host)
        assert plan.actions[0].reason == "1 extra file(s): local.conf"

        result = _apply(tree_manifest, host)

        assert result.success
        assert not (dest / "local.conf").exists()
        assert host.restarts == ["nginx"]
        assert _plan(tree_manifest, host).is_empty
