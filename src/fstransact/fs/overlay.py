"""In-memory overlay filesystem staged on top of a real base directory.

Every query is answered by one rule: if the overlay holds a node for the
key, that node decides (a tombstone hides the path, whatever is on disk);
otherwise the nearest staged ancestor decides where on disk to look, and
without one the key's own real path is consulted.

Mutations change the node mapping and append intents to the operation log
that the commit executor replays. Nothing here writes to disk.
"""

import errno
import posixpath
import time
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import ClassVar

from fstransact.core.constants import DEFAULT_DIR_MODE, MAX_SYMLINK_HOPS
from fstransact.core.errors import (
    FilesystemOSError,
    NotFound,
    NotReadable,
    PathOutsideBase,
    SourceMissing,
    TargetExists,
)
from fstransact.fs.backend import TreeMixin
from fstransact.fs.operations import (
    ChangeGroup,
    ChangeMode,
    ChangeOwner,
    CreateHardlink,
    CreateSymlink,
    MakeDirectory,
    Operation,
    RemovePath,
    RenamePath,
    Touch,
    WriteFile,
)
from fstransact.fs.os_ops import NodeKind, OSPrimitives, os_error
from fstransact.fs.paths import (
    is_below,
    is_descendant,
    key_join,
    key_parent,
    normalize_path,
)
from fstransact.utils.debug import debug


@dataclass
class Metadata:
    """Staged metadata. ``None`` means "unchanged from disk"."""

    mode: int | None = None
    owner: str | int | None = None
    group: str | int | None = None
    mtime: float | None = None
    atime: float | None = None


@dataclass
class FileNode:
    """A staged file.

    Attributes:
        content: Staged bytes, or None to read lazily from ``source``
        source: Real path backing an unmodified (moved or re-tagged) file
    """

    content: bytes | None = None
    source: str | None = None
    metadata: Metadata = field(default_factory=Metadata)
    kind: ClassVar[NodeKind] = "file"


@dataclass
class DirectoryNode:
    """A staged directory.

    Attributes:
        source: Real directory whose entries show through, or None for a
            directory created (or recreated) in this transaction
    """

    source: str | None = None
    metadata: Metadata = field(default_factory=Metadata)
    kind: ClassVar[NodeKind] = "directory"


@dataclass
class SymlinkNode:
    target: str
    metadata: Metadata = field(default_factory=Metadata)
    kind: ClassVar[NodeKind] = "symlink"


class Tombstone:
    """Marks a path deleted in this transaction."""

    kind: ClassVar[None] = None

    def __repr__(self) -> str:
        return "TOMBSTONE"


TOMBSTONE = Tombstone()

OverlayNode = FileNode | DirectoryNode | SymlinkNode | Tombstone
LiveNode = FileNode | DirectoryNode | SymlinkNode


class OverlayStore(TreeMixin):
    """Staged view of a base directory: node mapping plus operation log."""

    def __init__(self, base_dir: str, os_ops: OSPrimitives | None = None) -> None:
        """Initialize an empty overlay.

        Args:
            base_dir: Absolute, normalized base directory
            os_ops: OS primitives used for read-through
        """
        self.base_dir = base_dir
        self._os = os_ops or OSPrimitives()
        self._nodes: dict[str, OverlayNode] = {}
        self._operations: list[Operation] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def operations(self) -> tuple[Operation, ...]:
        return tuple(self._operations)

    def node(self, key: str) -> OverlayNode | None:
        """Return the staged node for key, if any."""
        return self._nodes.get(key)

    def staged_keys(self) -> list[str]:
        return sorted(self._nodes)

    def discard(self) -> None:
        """Drop every staged node and intent."""
        self._nodes.clear()
        self._operations.clear()

    def __len__(self) -> int:
        return len(self._nodes)

    def to_real(self, key: str) -> str:
        if not key:
            return self.base_dir
        return posixpath.join(self.base_dir, key)

    def _display(self, path: str) -> str:
        return self.to_real(path)

    # ------------------------------------------------------------------
    # Combined view
    # ------------------------------------------------------------------

    def _locate(self, key: str) -> OverlayNode | str | None:
        """Answer where the state of key lives.

        Returns the staged node, a real path to consult, or None when a
        staged ancestor hides the key.
        """
        entry = self._nodes.get(key)
        if entry is not None:
            return entry

        ancestor, rest = key, []
        while ancestor:
            ancestor, name = posixpath.split(ancestor)
            rest.insert(0, name)
            entry = self._nodes.get(ancestor)
            if entry is None:
                continue
            if isinstance(entry, DirectoryNode) and entry.source is not None:
                return posixpath.join(entry.source, *rest)
            return None

        return self.to_real(key)

    def kind(self, key: str) -> NodeKind | None:
        """Return the node kind at key (symlinks are not followed)."""
        location = self._locate(self._canonical(key))
        if location is None:
            return None
        if isinstance(location, str):
            return self._os.kind(location)
        return location.kind

    def exists(self, key: str) -> bool:
        return self.kind(key) is not None

    def is_directory(self, key: str) -> bool:
        """Check for a directory, following symlinks."""
        return self.kind(self._follow(key)) == "directory"

    def _follow(self, key: str) -> str:
        """Resolve symlinks in every component of key, the last one included."""
        pending = key.split("/") if key else []
        resolved = ""
        hops = 0
        while pending:
            resolved = key_join(resolved, pending.pop(0))
            target = self._link_target(resolved)
            if target is None:
                continue
            hops += 1
            if hops > MAX_SYMLINK_HOPS:
                raise os_error(self.to_real(key), errno.ELOOP)
            link_dir = posixpath.dirname(self.to_real(resolved))
            absolute = normalize_path(target, root=link_dir)
            if not is_below(absolute, self.base_dir):
                raise PathOutsideBase(absolute, self.base_dir)
            relative = absolute[len(self.base_dir) :].strip("/")
            pending = (relative.split("/") if relative else []) + pending
            resolved = ""
        return resolved

    def _canonical(self, key: str) -> str:
        """Resolve symlinks in the parent components of key."""
        if "/" not in key:
            return key
        parent, name = posixpath.split(key)
        return key_join(self._follow(parent), name)

    def _link_target(self, key: str) -> str | None:
        location = self._locate(key)
        if isinstance(location, SymlinkNode):
            return location.target
        if isinstance(location, str) and self._os.kind(location) == "symlink":
            return self._os.readlink(location)
        return None

    def _materialize(self, key: str) -> LiveNode:
        """Return the node describing key, building one from disk if needed."""
        location = self._locate(key)
        if location is None or isinstance(location, Tombstone):
            raise NotFound(self.to_real(key))
        if not isinstance(location, str):
            return location

        kind = self._os.kind(location)
        if kind == "directory":
            return DirectoryNode(source=location)
        if kind == "symlink":
            return SymlinkNode(target=self._os.readlink(location))
        if kind == "file":
            return FileNode(source=location)
        raise NotFound(self.to_real(key))

    def _stage(self, key: str) -> LiveNode:
        node = self._materialize(key)
        self._nodes[key] = node
        return node

    def _mtime(self, key: str) -> float:
        location = self._locate(key)
        if isinstance(location, str):
            return self._os.mtime(location)
        if isinstance(location, (FileNode, DirectoryNode, SymlinkNode)):
            if location.metadata.mtime is not None:
                return location.metadata.mtime
            source = getattr(location, "source", None)
            if source is not None:
                return self._os.mtime(source)
        return time.time()

    def _mode(self, key: str) -> int | None:
        location = self._locate(key)
        if isinstance(location, str):
            return self._os.mode(location)
        if isinstance(location, FileNode):
            if location.metadata.mode is not None:
                return location.metadata.mode
            if location.source is not None:
                return self._os.mode(location.source)
        return None

    def read_file(self, key: str) -> bytes:
        """Read file content through the overlay.

        Raises:
            NotFound: If the key does not exist or was deleted
            NotReadable: If the key is a directory or the read fails
        """
        key = self._follow(key)
        location = self._locate(key)
        if location is None or isinstance(location, Tombstone):
            raise NotFound(self.to_real(key))
        if isinstance(location, DirectoryNode):
            raise NotReadable(self.to_real(key), "is a directory")
        if isinstance(location, FileNode):
            if location.content is not None:
                return location.content
            return self._read_real(key, location.source or self.to_real(key))
        if isinstance(location, SymlinkNode):
            raise os_error(self.to_real(key), errno.ELOOP)
        return self._read_real(key, location)

    def _read_real(self, key: str, path: str) -> bytes:
        kind = self._os.kind(path)
        if kind is None:
            raise NotFound(self.to_real(key))
        if kind == "directory":
            raise NotReadable(self.to_real(key), "is a directory")
        try:
            return self._os.read(path)
        except FilesystemOSError as e:
            if e.cause.errno == errno.ENOENT:
                raise NotFound(self.to_real(key)) from e
            raise NotReadable(self.to_real(key), str(e.cause)) from e

    def list_dir(self, key: str) -> list[str]:
        """List entry names of a directory in the combined view."""
        key = self._follow(key)
        location = self._locate(key)
        names: set[str] = set()

        if isinstance(location, str):
            if self._os.kind(location) != "directory":
                raise NotFound(self.to_real(key))
            names.update(self._os.listdir(location))
        elif isinstance(location, DirectoryNode):
            source = location.source
            if source is not None and self._os.kind(source) == "directory":
                names.update(self._os.listdir(source))
        else:
            raise NotFound(self.to_real(key))

        for staged_key, node in self._nodes.items():
            if not staged_key or key_parent(staged_key) != key:
                continue
            name = posixpath.basename(staged_key)
            if isinstance(node, Tombstone):
                names.discard(name)
            else:
                names.add(name)

        return sorted(names)

    def readlink(self, key: str, canonicalize: bool = False) -> str | None:
        """Return a symlink's target, or its fully resolved real path."""
        key = self._canonical(key)
        if not canonicalize:
            return self._link_target(key)
        if not self.exists(key):
            return None
        return self.to_real(self._follow(key))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _log(self, operation: Operation) -> None:
        self._operations.append(operation)
        debug(f"Staged {operation.describe()}")

    def _ensure_directory(self, key: str, mode: int = DEFAULT_DIR_MODE) -> None:
        """Stage every missing directory on the way to key.

        The whole chain is validated before anything is staged.
        """
        parts = key.split("/") if key else []
        prefixes = [""] + ["/".join(parts[: i + 1]) for i in range(len(parts))]

        missing: list[str] = []
        for prefix in prefixes:
            if missing:
                missing.append(prefix)
                continue
            kind = self.kind(prefix)
            if kind is None:
                missing.append(prefix)
            elif kind == "directory" or (
                kind == "symlink" and self.is_directory(prefix)
            ):
                continue
            else:
                raise os_error(self.to_real(prefix), errno.ENOTDIR)

        now = time.time()
        for prefix in missing:
            self._nodes[prefix] = DirectoryNode(metadata=Metadata(mode=mode, mtime=now))
            self._log(MakeDirectory(prefix, mode))

    def mkdir(self, key: str, mode: int = DEFAULT_DIR_MODE) -> None:
        """Create a directory and its missing parents; existing dirs are kept."""
        key = self._canonical(key)
        kind = self.kind(key)
        if kind == "directory" or (kind == "symlink" and self.is_directory(key)):
            return
        if kind is not None:
            raise os_error(self.to_real(key), errno.EEXIST)
        self._ensure_directory(key, mode)

    def write_file(self, key: str, data: bytes, append: bool = False) -> None:
        """Stage new content for a file, creating missing parents."""
        key = self._follow(key)
        kind = self.kind(key)
        if kind == "directory":
            raise os_error(self.to_real(key), errno.EISDIR)

        self._ensure_directory(key_parent(key))

        previous = self._nodes.get(key)
        metadata = previous.metadata if isinstance(previous, FileNode) else Metadata()
        content = data
        if append and kind is not None:
            content = self.read_file(key) + data

        now = time.time()
        self._nodes[key] = FileNode(
            content=content, metadata=replace(metadata, mtime=now, atime=now)
        )
        self._log(WriteFile(key, data, append=append))

    def remove(self, key: str) -> None:
        """Delete a file, link or directory subtree; missing keys are ignored."""
        key = self._canonical(key)
        if self.kind(key) is None:
            debug(f"Remove of missing path ignored: {key}")
            return

        for staged_key in [k for k in self._nodes if is_descendant(k, key)]:
            del self._nodes[staged_key]
        self._nodes[key] = TOMBSTONE
        self._log(RemovePath(key))

    def rename(self, src: str, dst: str, overwrite: bool = False) -> None:
        """Move a file, link or directory subtree from src to dst.

        Raises:
            TargetExists: If dst exists and overwrite is False
            SourceMissing: If src does not exist
            FilesystemOSError: If dst lies inside src or src inside dst
        """
        src, dst = self._canonical(src), self._canonical(dst)
        dst_kind = self.kind(dst)
        if dst_kind is not None and not overwrite:
            raise TargetExists(self.to_real(dst))
        if self.kind(src) is None:
            raise SourceMissing(self.to_real(src))
        if src == dst:
            return
        if is_descendant(dst, src) or is_descendant(src, dst):
            raise os_error(self.to_real(src), errno.EINVAL)

        node = self._materialize(src)
        self._ensure_directory(key_parent(dst))
        if dst_kind is not None:
            self.remove(dst)

        for staged_key in [k for k in self._nodes if is_descendant(k, src)]:
            self._nodes[dst + staged_key[len(src) :]] = self._nodes.pop(staged_key)
        self._nodes[dst] = node
        self._nodes[src] = TOMBSTONE
        self._log(RenamePath(src, dst))

    def copy(self, src: str, dst: str, overwrite_newer: bool = False) -> None:
        """Copy a file unless the target is at least as new as the origin."""
        dst = self._canonical(dst)
        origin = self._follow(src)
        origin_kind = self.kind(origin)
        if origin_kind is None:
            raise NotFound(self.to_real(src))
        if origin_kind == "directory":
            raise NotReadable(self.to_real(src), "is a directory")

        target_kind = self.kind(dst)
        if target_kind == "directory":
            raise os_error(self.to_real(dst), errno.EISDIR)
        if not overwrite_newer and target_kind is not None:
            if self._mtime(origin) <= self._mtime(self._follow(dst)):
                debug(f"Copy skipped, target is up to date: {dst}")
                return

        origin_mtime = self._mtime(origin)
        origin_mode = self._mode(origin)
        self.write_file(dst, self.read_file(origin))
        self.touch(dst, mtime=origin_mtime)
        if origin_mode is not None:
            self.chmod(dst, origin_mode)

    def symlink(self, target: str, link: str) -> None:
        """Stage a symlink at link pointing at target (a real path)."""
        link = self._canonical(link)
        kind = self.kind(link)
        if kind == "symlink":
            if self._link_target(link) == target:
                return
            self.remove(link)
        elif kind is not None:
            raise os_error(self.to_real(link), errno.EEXIST)

        self._ensure_directory(key_parent(link))

        self._nodes[link] = SymlinkNode(
            target=target, metadata=Metadata(mtime=time.time())
        )
        self._log(CreateSymlink(link, target))

    def hardlink(self, src: str, links: Sequence[str]) -> None:
        """Stage hardlinks to src. Content is shared by value until commit."""
        src = self._canonical(src)
        origin_kind = self.kind(self._follow(src))
        if origin_kind is None:
            raise NotFound(self.to_real(src))
        if origin_kind == "directory":
            raise os_error(self.to_real(src), errno.EISDIR)

        resolved_src = self._follow(src)
        content = self.read_file(src)
        for link in links:
            link = self._canonical(link)
            if self._follow(link) == resolved_src:
                continue
            if self.exists(link):
                source_location = self._locate(src)
                link_location = self._locate(link)
                if (
                    isinstance(source_location, str)
                    and isinstance(link_location, str)
                    and self._os.same_file(source_location, link_location)
                ):
                    continue
            self._ensure_directory(key_parent(link))
            self.remove(link)
            self._nodes[link] = FileNode(
                content=content, metadata=Metadata(mtime=time.time())
            )
            self._log(CreateHardlink(link, source=src))

    def touch(
        self, key: str, mtime: float | None = None, atime: float | None = None
    ) -> None:
        """Create an empty file if missing, then set its timestamps."""
        key = self._canonical(key)
        if self.kind(key) is None:
            if not self.is_directory(key_parent(key)):
                raise NotFound(self.to_real(key_parent(key)))
            node: LiveNode = FileNode(content=b"")
            self._nodes[key] = node
        else:
            node = self._stage(key)

        node.metadata.mtime = mtime if mtime is not None else time.time()
        node.metadata.atime = atime if atime is not None else node.metadata.mtime
        self._log(Touch(key, mtime, atime))

    def chmod(self, key: str, mode: int, recursive: bool = False) -> None:
        self._change_metadata(key, recursive, "mode", mode, ChangeMode)

    def chown(self, key: str, user: str | int, recursive: bool = False) -> None:
        self._change_metadata(key, recursive, "owner", user, ChangeOwner)

    def chgrp(self, key: str, group: str | int, recursive: bool = False) -> None:
        self._change_metadata(key, recursive, "group", group, ChangeGroup)

    def _change_metadata(
        self,
        key: str,
        recursive: bool,
        attribute: str,
        value: int | str,
        operation: type[ChangeMode] | type[ChangeOwner] | type[ChangeGroup],
    ) -> None:
        key = self._canonical(key)
        kind = self.kind(key)
        if kind is None:
            raise NotFound(self.to_real(key))

        # Children first, then the path itself.
        if recursive and kind == "directory":
            for name in self.list_dir(key):
                self._change_metadata(
                    key_join(key, name), True, attribute, value, operation
                )

        node = self._stage(key)
        setattr(node.metadata, attribute, value)
        self._log(operation(key, value))  # type: ignore[arg-type]
