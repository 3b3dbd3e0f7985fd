"""Shared helpers for CLI commands.

Loads the user configuration and the manifest for a command, turning
their errors into messages and the plan-failure exit code.
"""

from pathlib import Path

import typer

from provctl.core.config import ProvctlConfig, load_config
from provctl.core.errors import ConfigError
from provctl.core.manifest import ManifestError, ManifestNotFoundError, load_manifest
from provctl.core.paths import get_manifest_path
from provctl.core.reporter import ExitCode
from provctl.models.manifest import Manifest
from provctl.utils.formatting import print_error, print_info


def get_config(ctx: typer.Context) -> ProvctlConfig:
    """Return the user configuration, loading it once per invocation.

    Raises:
        typer.Exit: With the plan-failure code if the config is invalid.
    """
    ctx.ensure_object(dict)
    config = ctx.obj.get("config")
    if config is None:
        try:
            config = load_config(ctx.obj.get("config_path"))
        except ConfigError as e:
            print_error(str(e))
            raise typer.Exit(code=ExitCode.PLAN_FAILED) from e
        ctx.obj["config"] = config
    return config


def resolve_manifest_path(option: Path | None, config: ProvctlConfig) -> Path:
    """Pick the manifest path: command option, then config, then default."""
    return option or config.manifest or get_manifest_path()


def load_manifest_or_exit(path: Path) -> Manifest:
    """Load a manifest, exiting with the plan-failure code on any error.

    Raises:
        typer.Exit: If the manifest is missing, unparsable or invalid.
    """
    try:
        return load_manifest(path)
    except ManifestNotFoundError as e:
        print_error(f"Manifest not found: {path}")
        print_info("Run 'provctl init' to create a starter manifest.")
        raise typer.Exit(code=ExitCode.PLAN_FAILED) from e
    except ManifestError as e:
        print_error(f"Failed to load manifest: {e}")
        raise typer.Exit(code=ExitCode.PLAN_FAILED) from e
