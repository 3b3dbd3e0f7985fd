"""Filesystem scanner implementation.

Reports whether a path exists, its SHA-256 digest and its permission bits,
and lists directory trees file by file.
"""

import hashlib
import os
import stat
from collections.abc import Iterator
from pathlib import Path

from provctl.core.errors import CollectionError
from provctl.models.fact import Fact, FactKind, TreeEntry
from provctl.scanners.base import Scanner

# Value reported for directories instead of a digest
DIRECTORY_VALUE = "directory"

_CHUNK_SIZE = 64 * 1024


def file_digest(path: Path) -> str:
    """Compute the SHA-256 hex digest of a file, reading it in chunks.

    Raises:
        OSError: If the file cannot be read.
    """
    digest = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class FileScanner(Scanner):
    """Scanner for filesystem paths.

    Symlinks are followed, matching what a copy onto the path would
    replace. Dangling symlinks count as absent.
    """

    @property
    def kind(self) -> FactKind:
        """Return FILE as the fact kind."""
        return FactKind.FILE

    def is_available(self) -> bool:
        """The filesystem is always available."""
        return True

    def observe(self, name: str) -> Fact:
        """Observe a single path.

        Args:
            name: Absolute path.

        Returns:
            PRESENT fact with digest and mode, or ABSENT.

        Raises:
            CollectionError: If the path exists but cannot be read.
        """
        key = self.key(name)
        path = Path(name)
        try:
            st = path.stat()
        except FileNotFoundError:
            return Fact.absent(key)
        except OSError as e:
            msg = f"Cannot stat {name}: {e}"
            raise CollectionError(msg) from e

        mode = stat.S_IMODE(st.st_mode)
        if stat.S_ISDIR(st.st_mode):
            return Fact.present(key, value=DIRECTORY_VALUE, mode=mode)

        try:
            digest = file_digest(path)
        except OSError as e:
            msg = f"Cannot read {name}: {e}"
            raise CollectionError(msg) from e
        return Fact.present(key, value=digest, mode=mode)


def _raise(error: OSError) -> None:
    raise error


def walk_tree(root: Path) -> Iterator[TreeEntry]:
    """Yield an entry for every regular file below a directory.

    Symlinks to files are followed, dangling symlinks and special files
    are ignored. Directories are not listed.

    Raises:
        OSError: If the tree or one of its files cannot be read.
    """
    for dirpath, _dirnames, filenames in os.walk(root, onerror=_raise):
        for filename in filenames:
            path = Path(dirpath, filename)
            try:
                st = path.stat()
            except FileNotFoundError:
                continue
            if not stat.S_ISREG(st.st_mode):
                continue
            yield TreeEntry(
                path=path.relative_to(root).as_posix(),
                digest=file_digest(path),
                mode=stat.S_IMODE(st.st_mode),
            )


class TreeScanner(Scanner):
    """Scanner for directory trees copied recursively.

    Lists every file below the directory with its digest and mode, so a
    copy can be limited to what changed.
    """

    @property
    def kind(self) -> FactKind:
        return FactKind.TREE

    def is_available(self) -> bool:
        return True

    def observe(self, name: str) -> Fact:
        """Observe a directory tree.

        Args:
            name: Absolute path of the tree root.

        Returns:
            PRESENT fact with the sorted entries, or ABSENT.

        Raises:
            CollectionError: If the path is not a directory or a file
                below it cannot be read.
        """
        key = self.key(name)
        root = Path(name)
        try:
            st = root.stat()
        except FileNotFoundError:
            return Fact.absent(key)
        except OSError as e:
            msg = f"Cannot stat {name}: {e}"
            raise CollectionError(msg) from e
        if not stat.S_ISDIR(st.st_mode):
            msg = f"{name} is not a directory"
            raise CollectionError(msg)

        try:
            entries = tuple(sorted(walk_tree(root)))
        except OSError as e:
            msg = f"Cannot read {name}: {e}"
            raise CollectionError(msg) from e

        digest = hashlib.sha256()
        for entry in entries:
            digest.update(f"{entry.path}\0{entry.digest}\n".encode())
        return Fact.present(
            key, value=digest.hexdigest(), mode=stat.S_IMODE(st.st_mode), entries=entries
        )
