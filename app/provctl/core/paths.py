"""XDG-compliant path management for provctl.

This module provides standardized paths following the XDG Base Directory
Specification for configuration and state storage.

Defaults:
- Config: ~/.config/provctl/
- State: ~/.local/state/provctl/
- Run lock: /run/lock/provctl-<hostname>.lock
"""

import os
import socket
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "provctl"

# System-wide lock directory, shared by all users
LOCK_DIR = Path("/run/lock")


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/provctl/ (or XDG_CONFIG_HOME/provctl/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    State data includes the run history, and the host lock file when
    the system lock directory is not writable.

    Returns:
        Path to ~/.local/state/provctl/ (or XDG_STATE_HOME/provctl/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_manifest_path() -> Path:
    """Get the default manifest file path.

    Returns:
        Path to ~/.config/provctl/manifest.toml.
    """
    return get_config_dir() / "manifest.toml"


def get_config_path() -> Path:
    """Get the user configuration file path.

    Returns:
        Path to ~/.config/provctl/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_history_path() -> Path:
    """Get the run history file path.

    Returns:
        Path to ~/.local/state/provctl/history.jsonl.
    """
    return get_state_dir() / "history.jsonl"


def get_lock_path(hostname: str | None = None) -> Path:
    """Get the run lock file path for a host.

    The lock is shared by every user on the machine. When the system lock
    directory is not writable, the lock falls back to the state directory.

    Args:
        hostname: Host the lock is keyed to. Defaults to this machine.

    Returns:
        Path to /run/lock/provctl-<hostname>.lock, or
        ~/.local/state/provctl/<hostname>.lock as the fallback.
    """
    host = hostname or socket.gethostname()
    if os.access(LOCK_DIR, os.W_OK):
        return LOCK_DIR / f"{APP_NAME}-{host}.lock"
    return get_state_dir() / f"{host}.lock"
