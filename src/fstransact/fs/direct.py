"""Direct backend: the backend surface applied straight to the real disk.

Used whenever no transaction is active. Paths are real paths; every call
takes effect immediately.
"""

import errno
import os
from collections.abc import Callable, Sequence
from typing import Any

from fstransact.core.constants import DEFAULT_DIR_MODE
from fstransact.core.errors import (
    FilesystemOSError,
    NotFound,
    NotReadable,
    SourceMissing,
    TargetExists,
)
from fstransact.fs.backend import TreeMixin
from fstransact.fs.os_ops import NodeKind, OSPrimitives, os_error
from fstransact.fs.paths import is_below, normalize_path


class DirectBackend(TreeMixin):
    """Backend that delegates to the OS primitives without staging."""

    def __init__(self, os_ops: OSPrimitives | None = None) -> None:
        self._os = os_ops or OSPrimitives()

    def _join(self, parent: str, relative: str) -> str:
        return os.path.join(parent, relative)

    def _ensure_parent(self, path: str) -> None:
        parent = os.path.dirname(path)
        if parent and not os.path.isdir(parent):
            if self._os.exists(parent):
                raise os_error(parent, errno.ENOTDIR)
            self._os.mkdir(parent)

    def kind(self, path: str) -> NodeKind | None:
        return self._os.kind(path)

    def exists(self, path: str) -> bool:
        return self._os.exists(path)

    def is_directory(self, path: str) -> bool:
        return os.path.isdir(path)

    def read_file(self, path: str) -> bytes:
        """Read a file's content.

        Raises:
            NotFound: If the path (or a symlink's target) does not exist
            NotReadable: If the path is a directory or the read fails
        """
        if not os.path.exists(path):
            raise NotFound(path)
        if os.path.isdir(path):
            raise NotReadable(path, "is a directory")
        try:
            return self._os.read(path)
        except FilesystemOSError as e:
            if e.cause.errno == errno.ENOENT:
                raise NotFound(path) from e
            raise NotReadable(path, str(e.cause)) from e

    def list_dir(self, path: str) -> list[str]:
        if not os.path.isdir(path):
            raise NotFound(path)
        return self._os.listdir(path)

    def readlink(self, path: str, canonicalize: bool = False) -> str | None:
        if not canonicalize:
            if self._os.kind(path) != "symlink":
                return None
            return self._os.readlink(path)
        if not self._os.exists(path):
            return None
        return normalize_path(os.path.realpath(path))

    def write_file(self, path: str, data: bytes, append: bool = False) -> None:
        if os.path.isdir(path):
            raise os_error(path, errno.EISDIR)
        self._ensure_parent(path)
        self._os.write(path, data, append=append)

    def mkdir(self, path: str, mode: int = DEFAULT_DIR_MODE) -> None:
        if os.path.isdir(path):
            return
        if self._os.exists(path):
            raise os_error(path, errno.EEXIST)
        self._os.mkdir(path, mode)

    def remove(self, path: str) -> None:
        self._os.remove(path)

    def rename(self, src: str, dst: str, overwrite: bool = False) -> None:
        """Move src to dst.

        Raises:
            TargetExists: If dst exists and overwrite is False
            SourceMissing: If src does not exist
            FilesystemOSError: If dst lies inside src or the move fails
        """
        dst_exists = self._os.exists(dst)
        if dst_exists and not overwrite:
            raise TargetExists(dst)
        if not self._os.exists(src):
            raise SourceMissing(src)

        src_norm, dst_norm = normalize_path(src), normalize_path(dst)
        if src_norm == dst_norm:
            return
        if is_below(dst_norm, src_norm) or is_below(src_norm, dst_norm):
            raise os_error(src, errno.EINVAL)

        self._ensure_parent(dst)
        if dst_exists:
            self._os.remove(dst)
        self._os.rename(src, dst)

    def copy(self, src: str, dst: str, overwrite_newer: bool = False) -> None:
        """Copy a file unless the target is at least as new as the origin."""
        if not os.path.exists(src):
            raise NotFound(src)
        if os.path.isdir(src):
            raise NotReadable(src, "is a directory")
        if os.path.isdir(dst):
            raise os_error(dst, errno.EISDIR)

        if not overwrite_newer and os.path.exists(dst):
            if self._os.mtime(src) <= self._os.mtime(dst):
                return

        self._ensure_parent(dst)
        self._os.copy(src, dst)

    def symlink(self, target: str, link: str) -> None:
        kind = self._os.kind(link)
        if kind == "symlink":
            if self._os.readlink(link) == target:
                return
            self._os.remove(link)
        elif kind is not None:
            raise os_error(link, errno.EEXIST)

        self._ensure_parent(link)
        self._os.symlink(target, link)

    def hardlink(self, src: str, links: Sequence[str]) -> None:
        if not os.path.exists(src):
            raise NotFound(src)
        if os.path.isdir(src):
            raise os_error(src, errno.EISDIR)

        for link in links:
            if self._os.exists(link) and self._os.same_file(src, link):
                continue
            self._ensure_parent(link)
            self._os.remove(link)
            self._os.hardlink(src, link)

    def touch(
        self, path: str, mtime: float | None = None, atime: float | None = None
    ) -> None:
        parent = os.path.dirname(path)
        if parent and not os.path.isdir(parent):
            raise NotFound(parent)
        self._os.touch(path, mtime, atime)

    def chmod(self, path: str, mode: int, recursive: bool = False) -> None:
        self._change_metadata(path, recursive, self._os.chmod, mode)

    def chown(self, path: str, user: str | int, recursive: bool = False) -> None:
        self._change_metadata(path, recursive, self._os.chown, user)

    def chgrp(self, path: str, group: str | int, recursive: bool = False) -> None:
        self._change_metadata(path, recursive, self._os.chgrp, group)

    def _change_metadata(
        self,
        path: str,
        recursive: bool,
        change: Callable[[str, Any], None],
        value: int | str,
    ) -> None:
        kind = self._os.kind(path)
        if kind is None:
            raise NotFound(path)
        if recursive and kind == "directory":
            for name in self._os.listdir(path):
                self._change_metadata(os.path.join(path, name), True, change, value)
        change(path, value)
