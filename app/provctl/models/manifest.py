"""Manifest models for declarative host state.

This module defines the Pydantic models representing the manifest.toml
structure that describes the desired state of a host: packages, files,
bootstrap commands and services.
"""

import shlex
from pathlib import Path
from typing import Annotated, Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from provctl.models.fact import FactKey


def _depends_on_field() -> Any:
    return Field(
        default_factory=list,
        validation_alias=AliasChoices("depends_on", "dependsOn"),
        description="Resource ids this entry must be converged after",
    )


class ManifestMeta(BaseModel):
    """Metadata section of the manifest.

    Attributes:
        version: Manifest schema version.
        name: Optional name of the environment being provisioned.
        description: Optional free-form description.
    """

    model_config = ConfigDict(extra="forbid")

    version: Annotated[str, Field(description="Manifest schema version")] = "1.0"
    name: Annotated[str | None, Field(description="Environment name")] = None
    description: Annotated[str | None, Field(description="Environment description")] = None


class PackageSpec(BaseModel):
    """An OS package that must be installed.

    Attributes:
        name: Package name as known to the package manager.
        min_version: Lowest acceptable installed version, if any.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    name: Annotated[str, Field(min_length=1, description="Package name")]
    min_version: Annotated[
        str | None,
        Field(
            validation_alias=AliasChoices("min_version", "minVersion"),
            description="Minimum acceptable version",
        ),
    ] = None
    depends_on: Annotated[list[str], _depends_on_field()]

    @property
    def resource_id(self) -> str:
        return str(FactKey.package(self.name))


class FileSpec(BaseModel):
    """A file copied from the manifest tree onto the host.

    Relative ``source`` paths are resolved against the directory of the
    manifest file when the manifest is loaded from disk. With
    ``recursive`` the source is a directory whose files are copied below
    ``dest``; only files whose content or mode differ are copied.

    Attributes:
        source: File (or directory, with ``recursive``) to copy.
        dest: Absolute destination path on the host.
        mode: Permission bits for the destination, e.g. ``0o644``. For a
            recursive copy every file gets this mode.
        recursive: Copy a whole directory tree.
        delete: Remove files below ``dest`` that are not in the source.
            Only valid with ``recursive``.
        service: Service that consumes this file; it is converged (and
            restarted when the file changes) after the copy.
        depends_on: Additional resource ids to converge first.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    source: Annotated[Path, Field(description="Source file or directory")]
    dest: Annotated[Path, Field(description="Absolute destination path")]
    mode: Annotated[int, Field(ge=0, le=0o7777, description="Destination mode")] = 0o644
    recursive: Annotated[bool, Field(description="Copy a directory tree")] = False
    delete: Annotated[bool, Field(description="Remove files not in the source")] = False
    service: Annotated[
        str | None,
        Field(
            validation_alias=AliasChoices("service", "dependsOnService", "depends_on_service"),
            description="Service that depends on this file",
        ),
    ] = None
    depends_on: Annotated[list[str], _depends_on_field()]

    @field_validator("source", mode="after")
    @classmethod
    def resolve_source(cls, value: Path, info: ValidationInfo) -> Path:
        """Resolve relative sources against the manifest directory."""
        base_dir = (info.context or {}).get("base_dir")
        if base_dir is not None and not value.is_absolute():
            return Path(base_dir) / value
        return value

    @field_validator("dest", mode="after")
    @classmethod
    def validate_dest(cls, value: Path) -> Path:
        """Require an absolute destination."""
        if not value.is_absolute():
            msg = f"File destination must be an absolute path: {value}"
            raise ValueError(msg)
        return value

    @field_validator("mode", mode="before")
    @classmethod
    def parse_mode(cls, value: object) -> object:
        """Accept octal strings such as ``"0644"`` or ``"755"``.

        Integers are taken as already-converted permission bits and must
        not exceed ``0o777``; a bare ``644`` in TOML is a decimal number
        and is rejected rather than read as ``0o1204``. Setuid, setgid and
        sticky bits need the string form, e.g. ``"4755"``.
        """
        if isinstance(value, str):
            try:
                return int(value, 8)
            except ValueError:
                msg = f"Invalid file mode '{value}': expected an octal string"
                raise ValueError(msg) from None
        if isinstance(value, int) and not isinstance(value, bool) and value > 0o777:
            msg = (
                f"Invalid file mode {value}: integers are read as decimal, "
                f'use an octal string such as "{value:04d}" instead'
            )
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def validate_delete(self) -> "FileSpec":
        """Only recursive copies can remove files."""
        if self.delete and not self.recursive:
            msg = f"{self.resource_id}: 'delete' requires 'recursive'"
            raise ValueError(msg)
        return self

    @property
    def resource_id(self) -> str:
        return str(FactKey.file(str(self.dest)))


class CommandSpec(BaseModel):
    """A one-shot bootstrap command guarded by an idempotence check.

    At least one guard is required: ``creates`` (a path that exists once
    the command has run) or ``unless`` (a read-only command that exits 0
    when the command is not needed).

    Attributes:
        name: Unique name of the step.
        command: Argument vector (a string is split with shell rules).
        creates: Path whose presence means the step is done.
        unless: Guard command whose success means the step is done.
        network: Whether the command needs network access.
        depends_on: Resource ids to converge first.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    name: Annotated[str, Field(min_length=1, description="Step name")]
    command: Annotated[list[str], Field(min_length=1, description="Command to run")]
    creates: Annotated[Path | None, Field(description="Path created by the command")] = None
    unless: Annotated[list[str] | None, Field(description="Guard command")] = None
    network: Annotated[bool, Field(description="Command needs the network")] = False
    depends_on: Annotated[list[str], _depends_on_field()]

    @field_validator("command", "unless", mode="before")
    @classmethod
    def split_command(cls, value: object) -> object:
        """Split string commands with shell quoting rules."""
        if isinstance(value, str):
            return shlex.split(value)
        return value

    @model_validator(mode="after")
    def validate_guard(self) -> "CommandSpec":
        """Require an idempotence guard."""
        if self.creates is None and not self.unless:
            msg = f"Command '{self.name}' needs an idempotence guard ('creates' or 'unless')"
            raise ValueError(msg)
        return self

    @property
    def resource_id(self) -> str:
        return f"command:{self.name}"


class ServiceSpec(BaseModel):
    """A service whose running state is managed.

    Attributes:
        name: Unit name, e.g. ``nginx`` or ``php7.0-fpm``.
        running: Whether the service should be running.
        depends_on: Resource ids to converge first.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    name: Annotated[str, Field(min_length=1, description="Service name")]
    running: Annotated[bool, Field(description="Desired running state")] = True
    depends_on: Annotated[list[str], _depends_on_field()]

    @property
    def resource_id(self) -> str:
        return str(FactKey.service(self.name))


ResourceSpec = PackageSpec | FileSpec | CommandSpec | ServiceSpec


class Manifest(BaseModel):
    """Complete manifest representing desired host state.

    Attributes:
        meta: Metadata section.
        packages: Packages to install.
        files: Files to copy into place.
        commands: Guarded bootstrap commands.
        services: Services to start or stop.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    meta: Annotated[ManifestMeta, Field(default_factory=ManifestMeta)]
    packages: Annotated[list[PackageSpec], Field(default_factory=list)]
    files: Annotated[list[FileSpec], Field(default_factory=list)]
    commands: Annotated[list[CommandSpec], Field(default_factory=list)]
    services: Annotated[list[ServiceSpec], Field(default_factory=list)]

    @model_validator(mode="after")
    def validate_references(self) -> "Manifest":
        """Validate resource ids are unique and every reference resolves."""
        seen: set[str] = set()
        duplicates: list[str] = []
        for spec in self.resources():
            if spec.resource_id in seen:
                duplicates.append(spec.resource_id)
            seen.add(spec.resource_id)
        if duplicates:
            msg = f"Duplicate manifest entries: {', '.join(sorted(set(duplicates)))}"
            raise ValueError(msg)

        for spec in self.resources():
            for dep in spec.depends_on:
                if dep not in seen:
                    msg = f"{spec.resource_id} depends on undeclared resource '{dep}'"
                    raise ValueError(msg)
                if dep == spec.resource_id:
                    msg = f"{spec.resource_id} cannot depend on itself"
                    raise ValueError(msg)

        service_names = {service.name for service in self.services}
        for file_spec in self.files:
            if file_spec.service is not None and file_spec.service not in service_names:
                msg = (
                    f"{file_spec.resource_id} is linked to undeclared service "
                    f"'{file_spec.service}'"
                )
                raise ValueError(msg)
        return self

    def resources(self) -> list[ResourceSpec]:
        """Return every entry in declaration order.

        Packages come first, then files, commands and services.
        """
        return [*self.packages, *self.files, *self.commands, *self.services]
