"""Manifest file I/O operations.

This module provides functions for loading and saving manifest files
in TOML format with proper validation using Pydantic models.
"""

import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

import tomli_w
from pydantic import ValidationError

from provctl.core.errors import InvalidSpecError, ProvctlError
from provctl.core.paths import get_manifest_path
from provctl.models.manifest import (
    CommandSpec,
    FileSpec,
    Manifest,
    PackageSpec,
    ServiceSpec,
)


class ManifestError(ProvctlError):
    """Base exception for manifest-related errors."""


class ManifestNotFoundError(ManifestError):
    """Raised when manifest file is not found."""


class ManifestParseError(ManifestError):
    """Raised when manifest file cannot be parsed."""


class ManifestValidationError(ManifestError, InvalidSpecError):
    """Raised when manifest content is invalid."""


def load_manifest(path: Path | None = None) -> Manifest:
    """Load and validate a manifest from a TOML file.

    Relative file sources are resolved against the manifest's directory.

    Args:
        path: Path to the manifest file. If None, uses default manifest path.

    Returns:
        Validated Manifest object.

    Raises:
        ManifestNotFoundError: If the manifest file doesn't exist.
        ManifestParseError: If the TOML syntax is invalid.
        ManifestValidationError: If the content doesn't match the schema.
    """
    manifest_path = path or get_manifest_path()

    if not manifest_path.exists():
        raise ManifestNotFoundError(f"Manifest not found: {manifest_path}")

    try:
        with open(manifest_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ManifestParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ManifestError(f"Failed to read manifest: {e}") from e

    try:
        return Manifest.model_validate(
            data,
            context={"base_dir": manifest_path.resolve().parent},
        )
    except ValidationError as e:
        raise ManifestValidationError(f"Invalid manifest content: {e}") from e


def save_manifest(manifest: Manifest, path: Path | None = None) -> Path:
    """Save a manifest to a TOML file.

    The file is written atomically by first writing to a temporary file
    in the same directory and then using os.replace() for atomic rename.

    Args:
        manifest: The Manifest object to save.
        path: Path to save the manifest. If None, uses default manifest path.

    Returns:
        Path where the manifest was saved.

    Raises:
        ManifestError: If the file cannot be written.
    """
    manifest_path = path or get_manifest_path()
    manifest_path.parent.mkdir(parents=True, exist_ok=True)

    data = manifest_to_dict(manifest)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=manifest_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(manifest_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ManifestError(f"Failed to write manifest: {e}") from e

    return manifest_path


def manifest_exists(path: Path | None = None) -> bool:
    """Check if a manifest file exists.

    Args:
        path: Path to check. If None, uses default manifest path.
    """
    manifest_path = path or get_manifest_path()
    return manifest_path.exists()


def manifest_to_dict(manifest: Manifest) -> dict[str, Any]:
    """Convert a Manifest to a dictionary suitable for TOML serialization.

    Optional fields are only written when set, and keys use the camelCase
    spelling of the manifest schema.

    Args:
        manifest: The Manifest object to convert.

    Returns:
        Dictionary ready for TOML serialization.
    """
    meta: dict[str, Any] = {"version": manifest.meta.version}
    if manifest.meta.name:
        meta["name"] = manifest.meta.name
    if manifest.meta.description:
        meta["description"] = manifest.meta.description

    data: dict[str, Any] = {"meta": meta}
    if manifest.packages:
        data["packages"] = [_package_to_dict(p) for p in manifest.packages]
    if manifest.files:
        data["files"] = [_file_to_dict(f) for f in manifest.files]
    if manifest.commands:
        data["commands"] = [_command_to_dict(c) for c in manifest.commands]
    if manifest.services:
        data["services"] = [_service_to_dict(s) for s in manifest.services]
    return data


def _package_to_dict(spec: PackageSpec) -> dict[str, Any]:
    result: dict[str, Any] = {"name": spec.name}
    if spec.min_version:
        result["minVersion"] = spec.min_version
    if spec.depends_on:
        result["dependsOn"] = list(spec.depends_on)
    return result


def _file_to_dict(spec: FileSpec) -> dict[str, Any]:
    result: dict[str, Any] = {
        "source": str(spec.source),
        "dest": str(spec.dest),
        "mode": f"{spec.mode:04o}",
    }
    if spec.recursive:
        result["recursive"] = True
    if spec.delete:
        result["delete"] = True
    if spec.service:
        result["dependsOnService"] = spec.service
    if spec.depends_on:
        result["dependsOn"] = list(spec.depends_on)
    return result


def _command_to_dict(spec: CommandSpec) -> dict[str, Any]:
    result: dict[str, Any] = {"name": spec.name, "command": list(spec.command)}
    if spec.creates is not None:
        result["creates"] = str(spec.creates)
    if spec.unless:
        result["unless"] = list(spec.unless)
    if spec.network:
        result["network"] = True
    if spec.depends_on:
        result["dependsOn"] = list(spec.depends_on)
    return result


def _service_to_dict(spec: ServiceSpec) -> dict[str, Any]:
    result: dict[str, Any] = {"name": spec.name, "running": spec.running}
    if spec.depends_on:
        result["dependsOn"] = list(spec.depends_on)
    return result
