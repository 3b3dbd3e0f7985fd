"""File operator implementation.

Copies files and directory trees into place atomically and sets their mode.
"""

import contextlib
import logging
import os
import shutil
import tempfile
from pathlib import Path

from provctl.core.errors import ExecutionError
from provctl.models.action import Action, ActionType
from provctl.models.fact import tree_changes
from provctl.operators.base import Operator, classify_os_error
from provctl.scanners.files import walk_tree

logger = logging.getLogger(__name__)


class FileOperator(Operator):
    """Operator for file copies.

    The new content is written to a temporary file in the destination
    directory, given its mode and then renamed over the destination with
    ``os.replace``. Until the rename the destination keeps its previous
    content and mode, so a failed copy leaves it untouched. Missing parent
    directories are created.

    Recursive copies compare the two trees again at apply time and copy
    only the files whose content or mode differ, each one atomically.
    With ``delete`` files below the destination that are missing from the
    source are removed; directories are left in place.
    """

    @property
    def handles(self) -> frozenset[ActionType]:
        return frozenset({ActionType.COPY_FILE})

    def is_available(self) -> bool:
        """The filesystem is always available."""
        return True

    def apply(self, action: Action, *, timeout: float | None) -> str:
        """Copy the action's source onto its target path.

        Args:
            action: COPY_FILE action.
            timeout: Unused; local copies do not block on external tools.

        Returns:
            Description of the copy.

        Raises:
            ExecutionError: If the copy fails. For a single file the
                destination is unchanged; for a tree, files copied before
                the failure keep their new content.
        """
        self._check_action(action)
        if action.source is None:
            msg = f"Copy action for {action.target} has no source"
            raise ValueError(msg)

        dest = Path(action.target)
        try:
            if action.recursive:
                copied, removed = self._sync_tree(action.source, dest, action.mode, action.delete)
            else:
                self._copy(action.source, dest, action.mode)
        except OSError as e:
            msg = f"Cannot copy {action.source} to {dest}: {e}"
            raise ExecutionError(classify_os_error(e), msg) from e

        if action.recursive:
            logger.info(
                "Synced %s/ -> %s: %d copied, %d removed", action.source, dest, copied, removed
            )
            return f"synced {action.source}/ -> {dest}: {copied} copied, {removed} removed"
        logger.info("Copied %s -> %s", action.source, dest)
        return f"copied {action.source} -> {dest}"

    def _sync_tree(
        self, source: Path, dest: Path, mode: int | None, delete: bool
    ) -> tuple[int, int]:
        source_entries = list(walk_tree(source))
        dest_entries = list(walk_tree(dest)) if dest.is_dir() else []
        to_copy, to_remove = tree_changes(source_entries, dest_entries, mode, delete=delete)

        dest.mkdir(parents=True, exist_ok=True)
        for rel in to_copy:
            self._copy(source / rel, dest / rel, mode)
            logger.debug("Copied %s", dest / rel)
        for rel in to_remove:
            (dest / rel).unlink()
            logger.debug("Removed %s", dest / rel)
        return len(to_copy), len(to_remove)

    @staticmethod
    def _copy(source: Path, dest: Path, mode: int | None) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=dest.parent,
            prefix=f".{dest.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_path = Path(tmp.name)
            try:
                with source.open("rb") as src:
                    shutil.copyfileobj(src, tmp)
                tmp.flush()
                os.fsync(tmp.fileno())
            except OSError:
                tmp.close()
                tmp_path.unlink(missing_ok=True)
                raise

        try:
            if mode is not None:
                tmp_path.chmod(mode)
            os.replace(tmp_path, dest)
        except OSError:
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            raise
