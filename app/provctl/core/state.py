"""Run history persistence.

This module provides the StateManager class for appending and reading
run results in a JSONL file, and a helper writing a single run log.
"""

import json
import logging
from pathlib import Path
from typing import Any

from provctl.core.paths import get_state_dir
from provctl.models.result import RunResult

logger = logging.getLogger(__name__)


class StateManager:
    """Manages the run history in a JSONL file.

    Storage location: ~/.local/state/provctl/history.jsonl

    Each line is one RunResult. Only ``apply`` runs are recorded; the
    file is append-only.

    Attributes:
        state_dir: Directory containing the history file.
    """

    HISTORY_FILENAME = "history.jsonl"

    def __init__(self, state_dir: Path | None = None) -> None:
        """Initialize StateManager.

        Args:
            state_dir: Optional override for state directory.
                      Default: ~/.local/state/provctl
        """
        self._state_dir = state_dir if state_dir is not None else get_state_dir()

    @property
    def state_dir(self) -> Path:
        return self._state_dir

    @property
    def history_path(self) -> Path:
        """Path to the history.jsonl file."""
        return self._state_dir / self.HISTORY_FILENAME

    def record_run(self, result: RunResult) -> None:
        """Append a run to the history file.

        Args:
            result: Result of the run to record.

        Raises:
            OSError: If the directory or file cannot be written.
        """
        self._state_dir.mkdir(parents=True, exist_ok=True)
        with self.history_path.open(mode="a", encoding="utf-8") as f:
            f.write(result.to_json_line() + "\n")
            f.flush()
        logger.debug("Recorded run %s to %s", result.run_id, self.history_path)

    def get_history(self, limit: int | None = None) -> list[RunResult]:
        """Read recorded runs, newest first.

        Corrupt lines are skipped with a warning.

        Args:
            limit: Maximum number of runs to return. If None, returns all.

        Returns:
            List of RunResult, newest first. Empty if no history exists.
        """
        if not self.history_path.exists():
            return []

        runs: list[RunResult] = []
        with self.history_path.open(encoding="utf-8") as f:
            for line_num, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    runs.append(RunResult.from_json_line(line))
                except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                    logger.warning("Skipping corrupt history line %d: %s", line_num, str(e))

        runs.reverse()
        if limit is not None:
            return runs[:limit]
        return runs


def write_run_log(result: RunResult, summary: dict[str, Any], path: Path) -> Path:
    """Write a run and its summary as indented JSON.

    Args:
        result: Result of the run.
        summary: Machine-readable summary from the reporter.
        path: Destination file; parent directories are created.

    Returns:
        The path written.

    Raises:
        OSError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"summary": summary, "run": result.to_dict()}
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return path
