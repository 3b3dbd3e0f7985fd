"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from collections.abc import Callable
from pathlib import Path

import pytest
from provctl.models.fact import Fact, FactKey


@pytest.fixture(autouse=True)
def xdg_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, Path]:
    """Point XDG config and state directories and the lock directory into tmp_path."""
    config_home = tmp_path / "xdg-config"
    state_home = tmp_path / "xdg-state"
    lock_dir = tmp_path / "run-lock"
    lock_dir.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setenv("XDG_STATE_HOME", str(state_home))
    monkeypatch.setattr("provctl.core.paths.LOCK_DIR", lock_dir)
    return {"config": config_home / "provctl", "state": state_home / "provctl", "lock": lock_dir}


@pytest.fixture
def make_facts() -> Callable[..., dict[FactKey, Fact]]:
    """Build a fact mapping from Fact objects."""

    def _make(*facts: Fact) -> dict[FactKey, Fact]:
        return {fact.key: fact for fact in facts}

    return _make


@pytest.fixture
def nginx_conf(tmp_path: Path) -> Path:
    """A source nginx configuration file."""
    path = tmp_path / "files" / "nginx.conf"
    path.parent.mkdir(parents=True)
    path.write_text("worker_processes auto;\n")
    return path


@pytest.fixture
def manifest_toml() -> str:
    """A manifest exercising every entry type."""
    return """\
[meta]
version = "1.0"
name = "devbox"

[[packages]]
name = "nginx"
minVersion = "1.18.0"

[[packages]]
name = "curl"

[[files]]
source = "files/nginx.conf"
dest = "/etc/nginx/nginx.conf"
mode = "0644"
dependsOnService = "nginx"
dependsOn = ["package:nginx"]

[[commands]]
name = "composer"
command = "sh -c 'curl -fsSL https://getcomposer.org/installer | php'"
creates = "/usr/bin/composer"
network = true
dependsOn = ["package:curl"]

[[services]]
name = "nginx"
running = true
"""
