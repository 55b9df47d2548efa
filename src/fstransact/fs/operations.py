"""Pending operation log records.

The overlay store appends one record per staged intent, in the order a real
filesystem needs them. At commit the executor replays each record with a
single OSPrimitives call against the real path of its virtual key.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, ClassVar

from fstransact.core.constants import DEFAULT_DIR_MODE
from fstransact.fs.os_ops import OSPrimitives

KeyToReal = Callable[[str], str]


@dataclass(frozen=True)
class Operation(ABC):
    key: str
    name: ClassVar[str] = "operation"

    def touched(self) -> tuple[str, ...]:
        """Virtual keys whose state this operation reads or changes."""
        return (self.key,)

    @abstractmethod
    def apply(self, os_ops: OSPrimitives, to_real: KeyToReal) -> None: ...

    def describe(self) -> str:
        return f"[{self.name.upper()}] {self.key or '.'}"

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.name, "key": self.key}


@dataclass(frozen=True)
class WriteFile(Operation):
    data: bytes = field(default=b"", repr=False)
    append: bool = False
    name: ClassVar[str] = "write"

    def apply(self, os_ops: OSPrimitives, to_real: KeyToReal) -> None:
        os_ops.write(to_real(self.key), self.data, append=self.append)

    def describe(self) -> str:
        verb = "APPEND" if self.append else "WRITE"
        return f"[{verb}] {self.key} ({len(self.data)} bytes)"

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": self.name,
            "key": self.key,
            "size": len(self.data),
            "append": self.append,
        }


@dataclass(frozen=True)
class MakeDirectory(Operation):
    mode: int = DEFAULT_DIR_MODE
    name: ClassVar[str] = "mkdir"

    def apply(self, os_ops: OSPrimitives, to_real: KeyToReal) -> None:
        os_ops.mkdir(to_real(self.key), self.mode)


@dataclass(frozen=True)
class RemovePath(Operation):
    name: ClassVar[str] = "remove"

    def apply(self, os_ops: OSPrimitives, to_real: KeyToReal) -> None:
        os_ops.remove(to_real(self.key))


@dataclass(frozen=True)
class RenamePath(Operation):
    target: str = ""
    name: ClassVar[str] = "rename"

    def touched(self) -> tuple[str, ...]:
        return (self.key, self.target)

    def apply(self, os_ops: OSPrimitives, to_real: KeyToReal) -> None:
        os_ops.rename(to_real(self.key), to_real(self.target))

    def describe(self) -> str:
        return f"[RENAME] {self.key} -> {self.target}"

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.name, "key": self.key, "target": self.target}


@dataclass(frozen=True)
class CreateSymlink(Operation):
    """Create a symlink at ``key`` pointing at ``target`` (a real path)."""

    target: str = ""
    name: ClassVar[str] = "symlink"

    def apply(self, os_ops: OSPrimitives, to_real: KeyToReal) -> None:
        os_ops.symlink(self.target, to_real(self.key))

    def describe(self) -> str:
        return f"[SYMLINK] {self.key} -> {self.target}"

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.name, "key": self.key, "target": self.target}


@dataclass(frozen=True)
class CreateHardlink(Operation):
    """Create a hardlink at ``key`` to the file at virtual key ``source``."""

    source: str = ""
    name: ClassVar[str] = "hardlink"

    def touched(self) -> tuple[str, ...]:
        return (self.key, self.source)

    def apply(self, os_ops: OSPrimitives, to_real: KeyToReal) -> None:
        os_ops.hardlink(to_real(self.source), to_real(self.key))

    def describe(self) -> str:
        return f"[HARDLINK] {self.key} => {self.source}"

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.name, "key": self.key, "source": self.source}


@dataclass(frozen=True)
class Touch(Operation):
    mtime: float | None = None
    atime: float | None = None
    name: ClassVar[str] = "touch"

    def apply(self, os_ops: OSPrimitives, to_real: KeyToReal) -> None:
        os_ops.touch(to_real(self.key), self.mtime, self.atime)

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": self.name,
            "key": self.key,
            "mtime": self.mtime,
            "atime": self.atime,
        }


@dataclass(frozen=True)
class ChangeMode(Operation):
    mode: int = 0
    name: ClassVar[str] = "chmod"

    def apply(self, os_ops: OSPrimitives, to_real: KeyToReal) -> None:
        os_ops.chmod(to_real(self.key), self.mode)

    def describe(self) -> str:
        return f"[CHMOD] {self.key or '.'} {self.mode:o}"

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.name, "key": self.key, "mode": oct(self.mode)}


@dataclass(frozen=True)
class ChangeOwner(Operation):
    user: str | int = ""
    name: ClassVar[str] = "chown"

    def apply(self, os_ops: OSPrimitives, to_real: KeyToReal) -> None:
        os_ops.chown(to_real(self.key), self.user)

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.name, "key": self.key, "user": self.user}


@dataclass(frozen=True)
class ChangeGroup(Operation):
    group: str | int = ""
    name: ClassVar[str] = "chgrp"

    def apply(self, os_ops: OSPrimitives, to_real: KeyToReal) -> None:
        os_ops.chgrp(to_real(self.key), self.group)

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.name, "key": self.key, "group": self.group}


#: Operations a later full write or removal of the same path makes redundant
CONTENT_OPERATIONS: tuple[type[Operation], ...] = (WriteFile, Touch)

#: Operations only a later removal of the path (or an ancestor) makes redundant
REMOVABLE_OPERATIONS: tuple[type[Operation], ...] = (
    WriteFile,
    Touch,
    MakeDirectory,
    ChangeMode,
    ChangeOwner,
    ChangeGroup,
    CreateSymlink,
)
