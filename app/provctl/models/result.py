"""Run result models.

This module defines the per-action outcomes recorded by the Action
Executor and the aggregate RunResult, the only entity that outlives a
provisioning run (it is written to history and optionally to a log file).
"""

import json
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from provctl.models.action import Action


class OutcomeStatus(str, Enum):
    """Outcome of a single action.

    Attributes:
        APPLIED: The action ran (or would have run, in dry-run mode).
        SKIPPED: The action did not run; the outcome reason says why.
        FAILED: The action ran and failed.
    """

    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


class ErrorKind(str, Enum):
    """Classification of an execution failure.

    Attributes:
        NETWORK_UNAVAILABLE: A download or remote lookup failed.
        TIMEOUT: The operation exceeded its timeout.
        PERMISSION_DENIED: The run lacks the privileges for the change.
        UNKNOWN: Any other failure; the tool's output is kept verbatim.
    """

    NETWORK_UNAVAILABLE = "network_unavailable"
    TIMEOUT = "timeout"
    PERMISSION_DENIED = "permission_denied"
    UNKNOWN = "unknown"


# Skip reasons used by the executor.
REASON_ABORTED = "aborted by prior failure"
REASON_CANCELLED = "cancelled by operator"


@dataclass(frozen=True, slots=True)
class ActionOutcome:
    """Outcome of executing one action.

    Attributes:
        action: The action this outcome belongs to.
        status: Applied, skipped or failed.
        reason: Human-readable message; always set for skipped and failed.
        error_kind: Failure classification for failed outcomes.
        attempts: How many times the action was attempted.
        duration: Seconds spent on the action.
    """

    action: Action
    status: OutcomeStatus
    reason: str | None = None
    error_kind: ErrorKind | None = None
    attempts: int = 0
    duration: float = 0.0

    def __post_init__(self) -> None:
        """Validate outcome data after initialization."""
        if self.status != OutcomeStatus.APPLIED and not self.reason:
            msg = f"A {self.status.value} outcome needs a reason"
            raise ValueError(msg)
        if self.status == OutcomeStatus.FAILED and self.error_kind is None:
            msg = "A failed outcome needs an error kind"
            raise ValueError(msg)

    @property
    def applied(self) -> bool:
        return self.status == OutcomeStatus.APPLIED

    @property
    def skipped(self) -> bool:
        return self.status == OutcomeStatus.SKIPPED

    @property
    def failed(self) -> bool:
        return self.status == OutcomeStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        result: dict[str, Any] = {
            "action": self.action.to_dict(),
            "status": self.status.value,
            "attempts": self.attempts,
            "duration": round(self.duration, 3),
        }
        if self.reason is not None:
            result["reason"] = self.reason
        if self.error_kind is not None:
            result["error_kind"] = self.error_kind.value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActionOutcome":
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If status or error kind is invalid.
        """
        error_kind = data.get("error_kind")
        return cls(
            action=Action.from_dict(data["action"]),
            status=OutcomeStatus(data["status"]),
            reason=data.get("reason"),
            error_kind=ErrorKind(error_kind) if error_kind else None,
            attempts=data.get("attempts", 0),
            duration=data.get("duration", 0.0),
        )


@dataclass(frozen=True, slots=True)
class RunResult:
    """Aggregate result of one provisioning run.

    Attributes:
        run_id: Unique identifier (12-character hex string from UUID).
        started_at: ISO 8601 timestamp (UTC) when execution started.
        outcomes: One outcome per planned action, in plan order.
        satisfied: ``(resource id, reason)`` for every resource that needed
            nothing; each counts as skipped.
        duration: Total elapsed seconds.
        dry_run: Whether the run was a dry-run.
        continue_on_error: Whether the run continued past failures.
        cancelled: Whether the operator interrupted the run.
    """

    run_id: str
    started_at: str
    outcomes: tuple[ActionOutcome, ...]
    satisfied: tuple[tuple[str, str], ...] = ()
    duration: float = 0.0
    dry_run: bool = False
    continue_on_error: bool = False
    cancelled: bool = False

    @property
    def applied(self) -> tuple[ActionOutcome, ...]:
        return tuple(o for o in self.outcomes if o.applied)

    @property
    def skipped(self) -> tuple[ActionOutcome, ...]:
        return tuple(o for o in self.outcomes if o.skipped)

    @property
    def failed(self) -> tuple[ActionOutcome, ...]:
        return tuple(o for o in self.outcomes if o.failed)

    @property
    def skipped_count(self) -> int:
        """Skipped actions plus satisfied resources."""
        return len(self.skipped) + len(self.satisfied)

    @property
    def total(self) -> int:
        """Number of resources the run covered."""
        return len(self.outcomes) + len(self.satisfied)

    @property
    def success(self) -> bool:
        """True when no action failed and the run was not cancelled."""
        return not self.failed and not self.cancelled

    @property
    def statuses(self) -> tuple[OutcomeStatus, ...]:
        """Outcome statuses in plan order."""
        return tuple(o.status for o in self.outcomes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "run_id": self.run_id,
            "started_at": self.started_at,
            "duration": round(self.duration, 3),
            "dry_run": self.dry_run,
            "continue_on_error": self.continue_on_error,
            "cancelled": self.cancelled,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "satisfied": [{"id": rid, "reason": reason} for rid, reason in self.satisfied],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunResult":
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If outcome data is invalid.
        """
        return cls(
            run_id=data["run_id"],
            started_at=data["started_at"],
            outcomes=tuple(ActionOutcome.from_dict(o) for o in data["outcomes"]),
            satisfied=tuple((s["id"], s["reason"]) for s in data.get("satisfied", [])),
            duration=data.get("duration", 0.0),
            dry_run=data.get("dry_run", False),
            continue_on_error=data.get("continue_on_error", False),
            cancelled=data.get("cancelled", False),
        )

    def to_json_line(self) -> str:
        """Serialize to a single JSON line (no trailing newline)."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json_line(cls, line: str) -> "RunResult":
        """Deserialize from a JSON line.

        Raises:
            json.JSONDecodeError: If line is not valid JSON.
            KeyError: If required fields are missing.
            ValueError: If data is invalid.
        """
        return cls.from_dict(json.loads(line.strip()))


def new_run_id() -> str:
    """Generate a run identifier."""
    return uuid.uuid4().hex[:12]


def utc_timestamp() -> str:
    """Return the current time as an ISO 8601 UTC timestamp."""
    return datetime.now(UTC).isoformat()
