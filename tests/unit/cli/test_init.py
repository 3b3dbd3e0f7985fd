"""Unit tests for init command.

Tests for the CLI init command that writes a starter manifest.
"""

from pathlib import Path

from provctl.cli.commands.init import STARTER_PACKAGES, starter_manifest
from provctl.cli.main import app
from provctl.core.manifest import load_manifest
from provctl.core.planner import dependency_graph, topological_order
from typer.testing import CliRunner

runner = CliRunner()


class TestStarterManifest:
    """Tests for the starter manifest."""

    def test_valid_and_acyclic(self) -> None:
        """The starter manifest validates and orders cleanly."""
        manifest = starter_manifest("devbox")
        ids = [spec.resource_id for spec in manifest.resources()]

        order = topological_order(ids, dependency_graph(manifest))

        assert manifest.meta.name == "devbox"
        assert len(manifest.packages) == len(STARTER_PACKAGES)
        assert order.index("command:nginx-server-cert") < order.index("service:nginx")
        assert order.index("package:php-cli") < order.index("command:composer")

    def test_commands_are_guarded(self) -> None:
        """Every starter command has a creates guard."""
        assert all(command.creates is not None for command in starter_manifest().commands)


class TestInitCommand:
    """Tests for the init command."""

    def test_writes_default_path(self, xdg_dirs: dict[str, Path]) -> None:
        """init writes to the XDG manifest path by default."""
        result = runner.invoke(app, ["init"])

        path = xdg_dirs["config"] / "manifest.toml"
        assert result.exit_code == 0
        assert "Manifest written" in result.stdout
        assert load_manifest(path).packages[0].name == "nginx"

    def test_writes_given_path(self, tmp_path: Path) -> None:
        """A path argument chooses the output file."""
        path = tmp_path / "out" / "manifest.toml"

        result = runner.invoke(app, ["init", str(path)])

        assert result.exit_code == 0
        assert len(load_manifest(path).services) == 5

    def test_refuses_to_overwrite(self, tmp_path: Path) -> None:
        """An existing manifest is kept without --force."""
        path = tmp_path / "manifest.toml"
        path.write_text("# mine\n")

        result = runner.invoke(app, ["init", str(path)])

        assert result.exit_code == 1
        assert path.read_text() == "# mine\n"

    def test_force_overwrites(self, tmp_path: Path) -> None:
        """--force replaces an existing manifest."""
        path = tmp_path / "manifest.toml"
        path.write_text("# mine\n")

        result = runner.invoke(app, ["init", str(path), "--force"])

        assert result.exit_code == 0
        assert load_manifest(path).meta.description == "Web development stack"
