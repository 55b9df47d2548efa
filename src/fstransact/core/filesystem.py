"""Transactional filesystem facade.

``TransactionalFilesystem`` offers a filesystem-utility surface (copy,
mkdir, remove, rename, mirror, links, touch, permissions, file I/O). With no
transaction active every call hits the disk directly. Between ``begin()``
and the outermost ``commit()`` the same calls are staged in an overlay and
only replayed on commit; ``rollback()`` leaves the disk untouched.
"""

import os
import sys
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from fstransact.core.config import (
    resolve_base_dir,
    resolve_journal_dir,
    resolve_namespace,
)
from fstransact.core.constants import DEFAULT_DIR_MODE, DEFAULT_UMASK
from fstransact.core.registry import NamespaceRegistry
from fstransact.core.transaction import TransactionManager, TransactionState
from fstransact.fs.backend import FilesystemBackend
from fstransact.fs.commit import CommitReport
from fstransact.fs.direct import DirectBackend
from fstransact.fs.os_ops import OSPrimitives
from fstransact.fs.paths import PathLike, PathTranslator

Paths = PathLike | Iterable[PathLike]


class TransactionalFilesystem:
    """Filesystem utility whose mutations can be grouped into transactions.

    Example:
        >>> fs = TransactionalFilesystem("/srv/data")
        >>> with fs.transaction():
        ...     fs.dump_file("/srv/data/a.txt", "hello")
        ...     fs.rename("/srv/data/a.txt", "/srv/data/b.txt")
    """

    def __init__(
        self,
        base_dir: PathLike | None = None,
        namespace: str | None = None,
        registry: NamespaceRegistry | None = None,
        os_ops: OSPrimitives | None = None,
        logger: Any = None,
        journal_dir: PathLike | None = None,
    ) -> None:
        """Initialize the facade.

        Args:
            base_dir: Directory transactions are bound to (defaults to
                FSTRANSACT_BASE_DIR, then the filesystem root above cwd)
            namespace: Namespace identifier (defaults to FSTRANSACT_NAMESPACE,
                then "vfs-transact")
            registry: Namespace registry (defaults to the process registry)
            os_ops: OS primitives shared by both backends
            logger: Optional structlog logger instance
            journal_dir: Directory for commit journals (defaults to
                FSTRANSACT_JOURNAL_DIR; unset disables journaling)
        """
        self.base_dir = resolve_base_dir(base_dir)
        self.namespace = resolve_namespace(namespace)
        os_ops = os_ops or OSPrimitives()

        self._manager = TransactionManager(
            self.base_dir,
            self.namespace,
            registry=registry,
            os_ops=os_ops,
            logger=logger,
            journal_dir=resolve_journal_dir(journal_dir),
        )
        self._translator = PathTranslator(
            self.base_dir, self.namespace, self._manager.in_transaction
        )
        self._direct = DirectBackend(os_ops)

    # ------------------------------------------------------------------
    # Transaction lifecycle
    # ------------------------------------------------------------------

    def begin(self) -> bool:
        return self._manager.begin()

    def commit(self) -> bool:
        return self._manager.commit()

    def rollback(self) -> bool:
        return self._manager.rollback()

    def in_transaction(self) -> bool:
        return self._manager.in_transaction()

    @property
    def state(self) -> TransactionState:
        return self._manager.state

    @property
    def depth(self) -> int:
        return self._manager.depth

    @property
    def last_report(self) -> CommitReport | None:
        """Report of the most recent successful commit."""
        return self._manager.last_report

    @contextmanager
    def transaction(self) -> Iterator["TransactionalFilesystem"]:
        """Stage the calls made inside the block; commit on clean exit."""
        with self._manager.transaction():
            yield self

    def close(self) -> None:
        """Discard any active transaction, whatever its depth."""
        self._manager.close()

    def __enter__(self) -> "TransactionalFilesystem":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Path handling
    # ------------------------------------------------------------------

    def _backend(self) -> FilesystemBackend:
        overlay = self._manager.overlay
        if overlay is not None:
            return overlay
        return self._direct

    def _path(self, path: PathLike) -> str:
        return self._translator.resolve(path)

    def _paths(self, paths: Paths) -> list[str]:
        return self._translator.resolve_all(paths)

    def to_uri(self, path: PathLike) -> str:
        """Render a path below the base directory as a virtual URI."""
        return self._translator.to_uri(self._translator.to_key(path))

    def _link_origin(self, origin: PathLike) -> str:
        # Link targets are stored as given; only virtual URIs are mapped back.
        text = str(origin).replace("\\", "/")
        if text.startswith(self._translator.to_uri("")):
            return self._translator.to_real(self._translator.to_key(text))
        return text

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def exists(self, files: Paths) -> bool:
        """Check whether every given path exists."""
        backend = self._backend()
        return all(backend.exists(path) for path in self._paths(files))

    def read_file(self, filename: PathLike) -> bytes:
        """Read a file's content, including staged changes.

        Raises:
            NotFound: If the file does not exist
            NotReadable: If the path is a directory or cannot be read
        """
        return self._backend().read_file(self._path(filename))

    def read_text(self, filename: PathLike, encoding: str = "utf-8") -> str:
        return self.read_file(filename).decode(encoding)

    def list_dir(self, directory: PathLike) -> list[str]:
        return self._backend().list_dir(self._path(directory))

    def readlink(self, path: PathLike, canonicalize: bool = False) -> str | None:
        """Return a symlink's target.

        With canonicalize the fully resolved absolute path is returned (None
        if it does not exist); otherwise None when path is not a symlink.
        """
        return self._backend().readlink(self._path(path), canonicalize)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def dump_file(self, filename: PathLike, content: str | bytes) -> None:
        """Write content to a file, replacing it and creating parents."""
        self._backend().write_file(self._path(filename), _to_bytes(content))

    def append_to_file(self, filename: PathLike, content: str | bytes) -> None:
        self._backend().write_file(
            self._path(filename), _to_bytes(content), append=True
        )

    def mkdir(self, dirs: Paths, mode: int = DEFAULT_DIR_MODE) -> None:
        backend = self._backend()
        for path in self._paths(dirs):
            backend.mkdir(path, mode)

    def remove(self, files: Paths) -> None:
        """Remove files, symlinks or directory trees; missing paths are skipped."""
        backend = self._backend()
        for path in self._paths(files):
            backend.remove(path)

    def rename(
        self, origin: PathLike, target: PathLike, overwrite: bool = False
    ) -> None:
        """Rename a file or directory.

        Raises:
            TargetExists: If target exists and overwrite is False
            SourceMissing: If origin does not exist
        """
        self._backend().rename(self._path(origin), self._path(target), overwrite)

    def copy(
        self,
        origin_file: PathLike,
        target_file: PathLike,
        overwrite_newer_files: bool = False,
    ) -> None:
        """Copy a file.

        The target is only replaced when it is missing, older than the
        origin, or overwrite_newer_files is set.
        """
        self._backend().copy(
            self._path(origin_file), self._path(target_file), overwrite_newer_files
        )

    def mirror(
        self,
        origin_dir: PathLike,
        target_dir: PathLike,
        override: bool = False,
        delete: bool = False,
    ) -> None:
        self._backend().mirror(
            self._path(origin_dir), self._path(target_dir), override, delete
        )

    def symlink(
        self, origin_dir: PathLike, target_dir: PathLike, copy_on_windows: bool = False
    ) -> None:
        """Create a symlink at target_dir pointing at origin_dir."""
        backend = self._backend()
        if copy_on_windows and os.name == "nt":
            origin, target = self._path(origin_dir), self._path(target_dir)
            if backend.is_directory(origin):
                backend.mirror(origin, target)
            else:
                backend.copy(origin, target)
            return

        backend.symlink(self._link_origin(origin_dir), self._path(target_dir))

    def hardlink(self, origin_file: PathLike, target_files: Paths) -> None:
        self._backend().hardlink(self._path(origin_file), self._paths(target_files))

    def touch(
        self, files: Paths, time: float | None = None, atime: float | None = None
    ) -> None:
        backend = self._backend()
        for path in self._paths(files):
            backend.touch(path, time, atime)

    def chmod(
        self,
        files: Paths,
        mode: int,
        umask: int = DEFAULT_UMASK,
        recursive: bool = False,
    ) -> None:
        backend = self._backend()
        for path in self._paths(files):
            backend.chmod(path, mode & ~umask, recursive)

    def chown(self, files: Paths, user: str | int, recursive: bool = False) -> None:
        backend = self._backend()
        for path in self._paths(files):
            backend.chown(path, user, recursive)

    def chgrp(self, files: Paths, group: str | int, recursive: bool = False) -> None:
        backend = self._backend()
        for path in self._paths(files):
            backend.chgrp(path, group, recursive)

    def __del__(self) -> None:
        if sys.is_finalizing():
            return
        manager = getattr(self, "_manager", None)
        if manager is not None:
            manager.close()


def _to_bytes(content: str | bytes) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    return bytes(content)

