"""Backend protocol shared by the overlay store and the direct backend.

The facade routes every call to one of two backends with the same method
surface: the overlay store (transaction active, virtual keys) or the direct
backend (no transaction, real paths). Tree-level operations built from the
per-path primitives live in TreeMixin so both backends behave alike.
"""

from collections.abc import Iterator, Sequence
from typing import Protocol

from fstransact.core.errors import NotFound
from fstransact.fs.os_ops import NodeKind
from fstransact.fs.paths import key_join


class FilesystemBackend(Protocol):
    def kind(self, path: str) -> NodeKind | None: ...
    def exists(self, path: str) -> bool: ...
    def is_directory(self, path: str) -> bool: ...
    def read_file(self, path: str) -> bytes: ...
    def write_file(self, path: str, data: bytes, append: bool = False) -> None: ...
    def mkdir(self, path: str, mode: int = ...) -> None: ...
    def remove(self, path: str) -> None: ...
    def rename(self, src: str, dst: str, overwrite: bool = False) -> None: ...
    def copy(self, src: str, dst: str, overwrite_newer: bool = False) -> None: ...
    def mirror(
        self, src: str, dst: str, override: bool = False, delete: bool = False
    ) -> None: ...
    def symlink(self, target: str, link: str) -> None: ...
    def hardlink(self, src: str, links: Sequence[str]) -> None: ...
    def touch(
        self, path: str, mtime: float | None = None, atime: float | None = None
    ) -> None: ...
    def chmod(self, path: str, mode: int, recursive: bool = False) -> None: ...
    def chown(self, path: str, user: str | int, recursive: bool = False) -> None: ...
    def chgrp(
        self, path: str, group: str | int, recursive: bool = False
    ) -> None: ...
    def readlink(self, path: str, canonicalize: bool = False) -> str | None: ...
    def list_dir(self, path: str) -> list[str]: ...


class TreeMixin:
    """Recursive walk and mirror on top of per-path backend primitives."""

    def _join(self, parent: str, relative: str) -> str:
        return key_join(parent, relative)

    def _display(self, path: str) -> str:
        return path

    def walk(self, path: str) -> Iterator[tuple[str, NodeKind | None]]:
        """Yield (relative path, kind) for every descendant, parents first."""
        backend: FilesystemBackend = self  # type: ignore[assignment]
        pending = [""]
        while pending:
            relative = pending.pop(0)
            current = self._join(path, relative) if relative else path
            for name in backend.list_dir(current):
                child = key_join(relative, name)
                kind = backend.kind(self._join(path, child))
                yield child, kind
                if kind == "directory":
                    pending.append(child)

    def mirror(
        self, src: str, dst: str, override: bool = False, delete: bool = False
    ) -> None:
        """Recreate the src tree below dst.

        Args:
            src: Origin directory
            dst: Target directory (created if missing)
            override: Copy files even when the target is newer
            delete: Remove target entries that do not exist in the origin
        """
        backend: FilesystemBackend = self  # type: ignore[assignment]
        if not backend.is_directory(src):
            raise NotFound(self._display(src))

        # Snapshot first so mirroring into a subdirectory of src terminates.
        entries = list(self.walk(src))

        if delete and backend.is_directory(dst):
            wanted = {relative for relative, _ in entries}
            for relative, _ in reversed(list(self.walk(dst))):
                if relative not in wanted:
                    backend.remove(self._join(dst, relative))

        backend.mkdir(dst)
        for relative, kind in entries:
            origin = self._join(src, relative)
            target = self._join(dst, relative)
            if kind == "directory":
                backend.mkdir(target)
            elif kind == "symlink":
                backend.symlink(backend.readlink(origin) or "", target)
            else:
                backend.copy(origin, target, overwrite_newer=override)
