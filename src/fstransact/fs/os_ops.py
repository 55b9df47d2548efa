"""Operating-system filesystem primitives.

Every method maps to one real filesystem call. Failures are re-raised as
FilesystemOSError so callers only deal with the fstransact error taxonomy.
"""

import errno
import os
import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Literal

from fstransact.core.constants import DEFAULT_DIR_MODE
from fstransact.core.errors import FilesystemOSError
from fstransact.utils.debug import debug

NodeKind = Literal["file", "directory", "symlink"]


def os_error(path: str, code: int) -> FilesystemOSError:
    """Build a FilesystemOSError for an errno raised without an OS call."""
    return FilesystemOSError(path, OSError(code, os.strerror(code)))


@contextmanager
def wrap_os_errors(path: str) -> Iterator[None]:
    """Re-raise OSError from the wrapped block as FilesystemOSError."""
    try:
        yield
    except FilesystemOSError:
        raise
    except OSError as e:
        raise FilesystemOSError(path, e) from e


class OSPrimitives:
    """Thin, fallible wrapper over the real filesystem."""

    def kind(self, path: str) -> NodeKind | None:
        """Return what lives at path, without following a final symlink."""
        if os.path.islink(path):
            return "symlink"
        if os.path.isdir(path):
            return "directory"
        if os.path.exists(path):
            return "file"
        return None

    def exists(self, path: str) -> bool:
        return os.path.lexists(path)

    def read(self, path: str) -> bytes:
        with wrap_os_errors(path):
            with open(path, "rb") as fh:
                return fh.read()

    def write(self, path: str, data: bytes, append: bool = False) -> None:
        with wrap_os_errors(path):
            with open(path, "ab" if append else "wb") as fh:
                fh.write(data)
        debug(f"{'Appended' if append else 'Wrote'} {len(data)} bytes: {path}")

    def mkdir(self, path: str, mode: int = DEFAULT_DIR_MODE) -> None:
        with wrap_os_errors(path):
            os.makedirs(path, mode=mode, exist_ok=True)
        debug(f"Created directory: {path}")

    def remove(self, path: str) -> None:
        """Remove a file, symlink or whole directory tree; missing is a no-op."""
        with wrap_os_errors(path):
            if os.path.islink(path) or os.path.isfile(path):
                os.unlink(path)
            elif os.path.isdir(path):
                shutil.rmtree(path)
            else:
                return
        debug(f"Removed: {path}")

    def rename(self, src: str, dst: str) -> None:
        with wrap_os_errors(src):
            os.rename(src, dst)
        debug(f"Renamed: {src} -> {dst}")

    def copy(self, src: str, dst: str) -> None:
        """Copy file content, permission bits and timestamps."""
        with wrap_os_errors(src):
            shutil.copy2(src, dst)
        debug(f"Copied: {src} -> {dst}")

    def symlink(self, target: str, link: str) -> None:
        with wrap_os_errors(link):
            os.symlink(target, link)
        debug(f"Symlinked: {link} -> {target}")

    def hardlink(self, src: str, link: str) -> None:
        with wrap_os_errors(link):
            os.link(src, link)
        debug(f"Hardlinked: {link} -> {src}")

    def chmod(self, path: str, mode: int) -> None:
        with wrap_os_errors(path):
            os.chmod(path, mode)

    def chown(self, path: str, user: str | int) -> None:
        with wrap_os_errors(path):
            try:
                shutil.chown(path, user=user)
            except LookupError as e:
                raise OSError(errno.EINVAL, str(e)) from e

    def chgrp(self, path: str, group: str | int) -> None:
        with wrap_os_errors(path):
            try:
                shutil.chown(path, group=group)
            except LookupError as e:
                raise OSError(errno.EINVAL, str(e)) from e

    def touch(
        self, path: str, mtime: float | None = None, atime: float | None = None
    ) -> None:
        """Create path if missing, then set its timestamps.

        Without mtime both timestamps become the current time; without atime
        the access time follows mtime.
        """
        with wrap_os_errors(path):
            if not os.path.lexists(path):
                open(path, "ab").close()
            if mtime is None:
                os.utime(path)
            else:
                os.utime(path, (atime if atime is not None else mtime, mtime))

    def listdir(self, path: str) -> list[str]:
        with wrap_os_errors(path):
            return sorted(os.listdir(path))

    def readlink(self, path: str) -> str:
        with wrap_os_errors(path):
            return os.readlink(path)

    def mtime(self, path: str) -> float:
        with wrap_os_errors(path):
            return os.stat(path).st_mtime

    def mode(self, path: str) -> int:
        with wrap_os_errors(path):
            return os.stat(path).st_mode & 0o7777

    def same_file(self, first: str, second: str) -> bool:
        """Check whether two existing paths share an inode."""
        try:
            return os.path.samefile(first, second)
        except OSError:
            return False
