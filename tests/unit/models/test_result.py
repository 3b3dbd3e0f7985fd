"""Unit tests for run result models."""

import json

import pytest
from provctl.models.action import create_install_action
from provctl.models.result import (
    REASON_ABORTED,
    ActionOutcome,
    ErrorKind,
    OutcomeStatus,
    RunResult,
    new_run_id,
)


def _outcome(
    status: OutcomeStatus,
    reason: str | None = None,
    error_kind: ErrorKind | None = None,
    attempts: int = 0,
    duration: float = 0.0,
) -> ActionOutcome:
    return ActionOutcome(
        action=create_install_action("nginx"),
        status=status,
        reason=reason,
        error_kind=error_kind,
        attempts=attempts,
        duration=duration,
    )


class TestActionOutcome:
    """Tests for ActionOutcome dataclass."""

    def test_skipped_needs_reason(self) -> None:
        """Skipped outcomes must say why."""
        with pytest.raises(ValueError, match="needs a reason"):
            _outcome(OutcomeStatus.SKIPPED)

    def test_failed_needs_error_kind(self) -> None:
        """Failed outcomes must be classified."""
        with pytest.raises(ValueError, match="error kind"):
            _outcome(OutcomeStatus.FAILED, reason="boom")

    def test_applied_without_reason(self) -> None:
        """Applied outcomes need no reason."""
        outcome = _outcome(OutcomeStatus.APPLIED, attempts=1)

        assert outcome.applied
        assert not outcome.failed


class TestRunResult:
    """Tests for RunResult dataclass."""

    @pytest.fixture
    def result(self) -> RunResult:
        return RunResult(
            run_id=new_run_id(),
            started_at="2026-10-18T10:00:00+00:00",
            outcomes=(
                _outcome(OutcomeStatus.APPLIED, attempts=1, duration=1.5),
                _outcome(
                    OutcomeStatus.FAILED,
                    reason="apt-get install -y -q nginx exited 100: E: broken",
                    error_kind=ErrorKind.UNKNOWN,
                    attempts=1,
                ),
                _outcome(OutcomeStatus.SKIPPED, reason=REASON_ABORTED),
            ),
            satisfied=(("package:git", "satisfied"),),
            duration=2.0,
        )

    def test_views(self, result: RunResult) -> None:
        """applied/skipped/failed filter outcomes."""
        assert len(result.applied) == 1
        assert len(result.failed) == 1
        assert len(result.skipped) == 1
        assert result.statuses == (
            OutcomeStatus.APPLIED,
            OutcomeStatus.FAILED,
            OutcomeStatus.SKIPPED,
        )

    def test_satisfied_counts(self, result: RunResult) -> None:
        """Satisfied resources count as skipped and towards the total."""
        assert result.skipped_count == 2
        assert result.total == 4

    def test_from_dict_without_satisfied(self, result: RunResult) -> None:
        """Runs recorded without satisfied entries still load."""
        data = result.to_dict()
        del data["satisfied"]

        assert RunResult.from_dict(data).satisfied == ()

    def test_success_false_with_failures(self, result: RunResult) -> None:
        """A run with a failed action is not successful."""
        assert result.success is False

    def test_cancelled_run_is_not_success(self) -> None:
        """A cancelled run is not successful even without failures."""
        run = RunResult(run_id="abc", started_at="t", outcomes=(), cancelled=True)

        assert run.success is False

    def test_json_line_round_trip(self, result: RunResult) -> None:
        """A run survives a trip through a JSON line."""
        line = result.to_json_line()

        assert "\n" not in line
        assert RunResult.from_json_line(line) == result

    def test_to_dict_is_json_serializable(self, result: RunResult) -> None:
        """to_dict produces plain JSON types."""
        data = json.loads(json.dumps(result.to_dict()))

        assert data["outcomes"][1]["error_kind"] == "unknown"
        assert data["outcomes"][2]["reason"] == REASON_ABORTED

    def test_new_run_id_format(self) -> None:
        """Run ids are 12 hex characters."""
        run_id = new_run_id()

        assert len(run_id) == 12
        int(run_id, 16)
