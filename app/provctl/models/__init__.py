"""Data models for provctl.

This module exports the core data structures used throughout the application.
"""

from provctl.models.action import (
    Action,
    ActionType,
    create_command_action,
    create_copy_action,
    create_install_action,
    create_service_action,
)
from provctl.models.fact import Fact, FactKey, FactKind, FactStatus
from provctl.models.manifest import (
    CommandSpec,
    FileSpec,
    Manifest,
    ManifestMeta,
    PackageSpec,
    ServiceSpec,
)
from provctl.models.result import ActionOutcome, ErrorKind, OutcomeStatus, RunResult

__all__ = [
    "Action",
    "ActionOutcome",
    "ActionType",
    "CommandSpec",
    "ErrorKind",
    "Fact",
    "FactKey",
    "FactKind",
    "FactStatus",
    "FileSpec",
    "Manifest",
    "ManifestMeta",
    "OutcomeStatus",
    "PackageSpec",
    "RunResult",
    "ServiceSpec",
    "create_command_action",
    "create_copy_action",
    "create_install_action",
    "create_service_action",
]
