"""User configuration for provctl.

Configuration is stored in ~/.config/provctl/config.toml. Every key is
optional; command-line flags take precedence over the file.

Example:
    manifest = "/srv/provision/manifest.toml"
    timeout = 900
    max_attempts = 3
    retry_delay = 5.0
    continue_on_error = false
"""

import tomllib
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from provctl.core.errors import ConfigError
from provctl.core.paths import get_config_path


class ProvctlConfig(BaseModel):
    """Defaults applied to every run.

    Attributes:
        manifest: Manifest used when no --manifest option is given.
        timeout: Timeout in seconds for each blocking operation.
        max_attempts: Attempts for network-dependent actions.
        retry_delay: Fixed delay in seconds between attempts.
        continue_on_error: Keep going after a failed action.
        refresh_index: Run ``apt-get update`` before the first install.
        record_history: Append each apply to the run history.
        log_file: Write each apply's full result to this path.
    """

    model_config = ConfigDict(extra="forbid")

    manifest: Annotated[Path | None, Field(description="Default manifest path")] = None
    timeout: Annotated[
        float,
        Field(gt=0, description="Timeout in seconds for blocking operations"),
    ] = 600.0
    max_attempts: Annotated[
        int,
        Field(ge=1, le=10, description="Attempts for network-dependent actions"),
    ] = 3
    retry_delay: Annotated[
        float,
        Field(ge=0, description="Delay in seconds between attempts"),
    ] = 5.0
    continue_on_error: Annotated[bool, Field(description="Continue after failures")] = False
    refresh_index: Annotated[bool, Field(description="Refresh the package index")] = True
    record_history: Annotated[bool, Field(description="Record runs to history")] = True
    log_file: Annotated[Path | None, Field(description="Run log path")] = None


def load_config(path: Path | None = None) -> ProvctlConfig:
    """Load the user configuration.

    A missing file is not an error: defaults are returned.

    Args:
        path: Path to the config file. If None, uses the default path.

    Returns:
        Validated ProvctlConfig.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        return ProvctlConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config {config_path}: {e}") from e

    try:
        return ProvctlConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config content in {config_path}: {e}") from e
