"""Host-level run lock.

Prevents two ``apply`` runs from changing the same host at once, whichever
user starts them.
"""

import fcntl
import logging
import os
from pathlib import Path
from types import TracebackType

from provctl.core.errors import LockError
from provctl.core.paths import get_lock_path

logger = logging.getLogger(__name__)


class RunLock:
    """Exclusive, non-blocking lock on a per-host lock file.

    Uses ``fcntl.flock`` so the lock is released by the kernel even if the
    process dies. The holder's PID is written into the file for
    diagnostics when the file is writable.

    Example:
        >>> with RunLock():
        ...     executor.execute(plan)
    """

    def __init__(self, path: Path | None = None) -> None:
        """Initialize the lock.

        Args:
            path: Lock file path. Defaults to the host lock in the system
                lock directory.
        """
        self._path = path if path is not None else get_lock_path()
        self._fd: int | None = None
        self._writable = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            LockError: If another process holds the lock or the lock file
                cannot be opened.
        """
        if self._fd is not None:
            msg = f"Lock {self._path} is already held by this process"
            raise LockError(msg)

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, writable = self._open()
        except OSError as e:
            msg = f"Cannot open lock file {self._path}: {e}"
            raise LockError(msg) from e

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            holder = self._read_holder(fd)
            os.close(fd)
            msg = f"Another provctl run holds {self._path}"
            if holder:
                msg += f" (pid {holder})"
            raise LockError(msg) from e
        except OSError as e:
            os.close(fd)
            msg = f"Cannot lock {self._path}: {e}"
            raise LockError(msg) from e

        if writable:
            os.ftruncate(fd, 0)
            os.write(fd, f"{os.getpid()}\n".encode())
        self._fd = fd
        self._writable = writable
        logger.debug("Acquired run lock %s", self._path)

    def release(self) -> None:
        """Release the lock if held."""
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            if self._writable:
                os.ftruncate(fd, 0)
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        logger.debug("Released run lock %s", self._path)

    def _open(self) -> tuple[int, bool]:
        try:
            return os.open(self._path, os.O_RDWR | os.O_CREAT, 0o644), True
        except PermissionError:
            # Created by another user; flock works on a read-only descriptor
            logger.debug("Lock file %s is not writable, opening read-only", self._path)
            return os.open(self._path, os.O_RDONLY), False

    @staticmethod
    def _read_holder(fd: int) -> str:
        try:
            return os.pread(fd, 32, 0).decode(errors="replace").strip()
        except OSError:
            return ""

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
