"""Unit tests for manifest models.

Tests for the Pydantic models describing desired host state.
"""

from pathlib import Path

import pytest
from provctl.core.manifest import ManifestError, load_manifest
from provctl.models.manifest import (
    CommandSpec,
    FileSpec,
    Manifest,
    PackageSpec,
    ServiceSpec,
)
from pydantic import ValidationError


class TestPackageSpec:
    """Tests for PackageSpec model."""

    def test_accepts_camel_case_min_version(self) -> None:
        """minVersion is accepted as an alias."""
        spec = PackageSpec.model_validate({"name": "nginx", "minVersion": "1.18"})

        assert spec.min_version == "1.18"
        assert spec.resource_id == "package:nginx"

    def test_rejects_unknown_keys(self) -> None:
        """Unknown keys are rejected."""
        with pytest.raises(ValidationError):
            PackageSpec.model_validate({"name": "nginx", "version": "1"})


class TestFileSpec:
    """Tests for FileSpec model."""

    def test_mode_accepts_octal_string(self) -> None:
        """Octal strings are parsed as file modes."""
        spec = FileSpec.model_validate({"source": "/a", "dest": "/b", "mode": "0755"})

        assert spec.mode == 0o755

    def test_mode_accepts_octal_integer(self) -> None:
        """A TOML octal integer such as 0o600 is used as is."""
        spec = FileSpec.model_validate({"source": "/a", "dest": "/b", "mode": 0o600})

        assert spec.mode == 0o600

    @pytest.mark.parametrize("mode", [644, 755, 1000])
    def test_decimal_mode_rejected(self, mode: int) -> None:
        """A decimal integer written like an octal mode is rejected."""
        with pytest.raises(ValidationError, match="integers are read as decimal"):
            FileSpec.model_validate({"source": "/a", "dest": "/b", "mode": mode})

    def test_special_bits_need_string(self) -> None:
        """Setuid and friends are given as an octal string."""
        spec = FileSpec.model_validate({"source": "/a", "dest": "/b", "mode": "4755"})

        assert spec.mode == 0o4755

    def test_decimal_mode_rejected_from_toml(self, tmp_path: Path) -> None:
        """A bare 644 in the manifest file does not become mode 0o1204."""
        path = tmp_path / "manifest.toml"
        path.write_text('[[files]]\nsource = "a"\ndest = "/etc/a"\nmode = 644\n')

        with pytest.raises(ManifestError, match='"0644"'):
            load_manifest(path)

    def test_mode_defaults_to_0644(self) -> None:
        """Files default to mode 0644."""
        assert FileSpec(source=Path("/a"), dest=Path("/b")).mode == 0o644

    def test_invalid_mode_rejected(self) -> None:
        """Non-octal mode strings are rejected."""
        with pytest.raises(ValidationError, match="octal"):
            FileSpec.model_validate({"source": "/a", "dest": "/b", "mode": "rwx"})

    def test_recursive_copy(self) -> None:
        """recursive and delete describe a directory sync."""
        spec = FileSpec.model_validate(
            {"source": "/srv/bin", "dest": "/opt/bin", "recursive": True, "delete": True}
        )

        assert spec.recursive
        assert spec.delete

    def test_delete_requires_recursive(self) -> None:
        """delete on a single file is rejected."""
        with pytest.raises(ValidationError, match="requires 'recursive'"):
            FileSpec.model_validate({"source": "/a", "dest": "/b", "delete": True})

    def test_relative_dest_rejected(self) -> None:
        """Destinations must be absolute."""
        with pytest.raises(ValidationError, match="absolute"):
            FileSpec.model_validate({"source": "/a", "dest": "etc/b"})

    def test_relative_source_resolved_against_context(self, tmp_path: Path) -> None:
        """Relative sources resolve against the base_dir context."""
        spec = FileSpec.model_validate(
            {"source": "files/nginx.conf", "dest": "/etc/nginx/nginx.conf"},
            context={"base_dir": tmp_path},
        )

        assert spec.source == tmp_path / "files" / "nginx.conf"

    def test_service_aliases(self) -> None:
        """dependsOnService links the file to a service."""
        spec = FileSpec.model_validate(
            {"source": "/a", "dest": "/b", "dependsOnService": "nginx"}
        )

        assert spec.service == "nginx"
        assert spec.resource_id == "file:/b"


class TestCommandSpec:
    """Tests for CommandSpec model."""

    def test_string_command_split_with_shell_rules(self) -> None:
        """String commands are split like a shell would."""
        spec = CommandSpec.model_validate(
            {"name": "x", "command": "sh -c 'echo hi'", "creates": "/tmp/x"}
        )

        assert spec.command == ["sh", "-c", "echo hi"]

    def test_guard_required(self) -> None:
        """A command without creates or unless is rejected."""
        with pytest.raises(ValidationError, match="idempotence guard"):
            CommandSpec.model_validate({"name": "x", "command": ["true"]})

    def test_unless_guard_accepted(self) -> None:
        """unless alone is a valid guard."""
        spec = CommandSpec.model_validate(
            {"name": "key", "command": ["apt-key", "add"], "unless": "apt-key list"}
        )

        assert spec.unless == ["apt-key", "list"]
        assert spec.resource_id == "command:key"


class TestManifest:
    """Tests for Manifest model."""

    def test_resources_in_declaration_order(self) -> None:
        """resources() lists packages, files, commands, then services."""
        manifest = Manifest(
            services=[ServiceSpec(name="nginx")],
            packages=[PackageSpec(name="nginx")],
            commands=[CommandSpec(name="c", command=["true"], creates=Path("/c"))],
            files=[FileSpec(source=Path("/a"), dest=Path("/b"))],
        )

        assert [spec.resource_id for spec in manifest.resources()] == [
            "package:nginx",
            "file:/b",
            "command:c",
            "service:nginx",
        ]

    def test_duplicate_entries_rejected(self) -> None:
        """Two entries with the same id are rejected."""
        with pytest.raises(ValidationError, match="Duplicate"):
            Manifest(packages=[PackageSpec(name="git"), PackageSpec(name="git")])

    def test_undeclared_dependency_rejected(self) -> None:
        """Dependencies must name declared entries."""
        with pytest.raises(ValidationError, match="undeclared resource"):
            Manifest(services=[ServiceSpec(name="nginx", depends_on=["package:nginx"])])

    def test_self_dependency_rejected(self) -> None:
        """An entry cannot depend on itself."""
        with pytest.raises(ValidationError, match="itself"):
            Manifest(packages=[PackageSpec(name="git", depends_on=["package:git"])])

    def test_file_service_must_be_declared(self) -> None:
        """A file linked to an undeclared service is rejected."""
        with pytest.raises(ValidationError, match="undeclared service"):
            Manifest(files=[FileSpec(source=Path("/a"), dest=Path("/b"), service="nginx")])

    def test_unknown_section_rejected(self) -> None:
        """Unknown top-level sections are rejected."""
        with pytest.raises(ValidationError):
            Manifest.model_validate({"users": []})
