"""Path utilities and the path translator.

This module normalizes caller-supplied paths and maps them to virtual keys
relative to a transaction's base directory (and back).
"""

import os
import posixpath
import unicodedata
from collections.abc import Callable, Iterable
from pathlib import Path

from fstransact.core.constants import URI_SEPARATOR
from fstransact.core.errors import PathOutsideBase

PathLike = str | Path


def normalize_path(path: PathLike, root: PathLike | None = None) -> str:
    """Normalize a path for consistent handling.

    Symlinks are not resolved: a path naming a link must keep naming the
    link, not its target.

    Args:
        path: Path to normalize
        root: Optional root directory for relative paths (defaults to cwd)

    Returns:
        Normalized absolute path with forward slashes
    """
    text = str(path).replace("\\", "/")

    if not os.path.isabs(text):
        base = str(root) if root is not None else os.getcwd()
        text = os.path.join(base, text)

    text = os.path.normpath(text).replace("\\", "/")

    # Normalize Unicode (NFC on macOS, NFD handling)
    if os.name == "posix":
        text = unicodedata.normalize("NFC", text)

    return text


def discover_root_dir(start: PathLike | None = None) -> str:
    """Return the filesystem root above ``start`` (defaults to cwd).

    On POSIX systems this is always ``/``; on Windows it is the drive the
    process runs on.
    """
    current = normalize_path(start if start is not None else os.getcwd())
    while posixpath.dirname(current) != current:
        current = posixpath.dirname(current)
    return current


def is_below(path: str, base_dir: str) -> bool:
    """Check whether a normalized path equals or descends from base_dir."""
    if path == base_dir:
        return True
    prefix = base_dir if base_dir.endswith("/") else base_dir + "/"
    return path.startswith(prefix)


def key_parent(key: str) -> str:
    """Return the parent of a virtual key ('' for top-level keys)."""
    return posixpath.dirname(key)


def key_join(key: str, name: str) -> str:
    """Join a virtual key and a child name."""
    return f"{key}/{name}" if key else name


def keys_overlap(first: str, second: str) -> bool:
    """Check whether two virtual keys are equal or one contains the other."""
    if first == second or first == "" or second == "":
        return True
    return first.startswith(second + "/") or second.startswith(first + "/")


def is_descendant(key: str, ancestor: str) -> bool:
    """Check whether key lies strictly below ancestor."""
    if ancestor == "":
        return key != ""
    return key.startswith(ancestor + "/")


class PathTranslator:
    """Maps real paths to virtual keys below a base directory, and back.

    Translation only happens while a transaction is active; otherwise paths
    pass through unchanged (apart from separator normalization) so callers
    talk to the operating system directly.
    """

    def __init__(
        self,
        base_dir: str,
        namespace: str,
        is_active: Callable[[], bool],
    ) -> None:
        """Initialize translator.

        Args:
            base_dir: Absolute, normalized base directory
            namespace: Namespace identifier used for virtual URIs
            is_active: Callable reporting whether a transaction is active
        """
        self.base_dir = base_dir
        self.namespace = namespace
        self._is_active = is_active
        self._prefix = f"{namespace}{URI_SEPARATOR}"

    def resolve(self, path: PathLike) -> str:
        """Resolve a caller path.

        Returns a virtual key while a transaction is active, else the path
        itself. Virtual URIs produced by ``to_uri`` are accepted and
        stripped, so resolving twice yields the same key.

        Raises:
            PathOutsideBase: If a transaction is active and the path is not
                below the base directory
        """
        text = str(path).replace("\\", "/")

        if text.startswith(self._prefix):
            key = self.to_key(text)
            return key if self._is_active() else self.to_real(key)

        if not self._is_active():
            return text

        return self.to_key(text)

    def to_key(self, path: PathLike) -> str:
        """Map a real path or virtual URI to its virtual key.

        Raises:
            PathOutsideBase: If the path is not below the base directory
        """
        text = str(path).replace("\\", "/")

        if text.startswith(self._prefix):
            # A rooted normpath cannot climb above the base.
            return posixpath.normpath("/" + text[len(self._prefix) :]).strip("/")

        absolute = normalize_path(text)
        if not is_below(absolute, self.base_dir):
            raise PathOutsideBase(absolute, self.base_dir)

        return absolute[len(self.base_dir) :].strip("/")

    def resolve_all(self, paths: PathLike | Iterable[PathLike]) -> list[str]:
        """Resolve a single path or a collection of paths, keeping order."""
        if isinstance(paths, (str, Path)):
            return [self.resolve(paths)]
        return [self.resolve(path) for path in paths]

    def to_real(self, key: str) -> str:
        """Map a virtual key back to its real absolute path."""
        if not key:
            return self.base_dir
        return posixpath.join(self.base_dir, key)

    def to_uri(self, key: str) -> str:
        """Render a virtual key in its namespaced URI form."""
        return f"{self._prefix}{key}"
