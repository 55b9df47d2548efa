"""Pydantic schemas for batch plans.

A batch plan lists filesystem operations that are applied inside a single
transaction:
- BatchPlan: base directory, namespace and the ordered operations
- One model per operation, discriminated by its ``op`` field

All schemas use Pydantic v2 for validation and serialization.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Annotated, Literal

from pydantic import BaseModel, Field, field_validator

if TYPE_CHECKING:  # pragma: no cover - typing only
    from fstransact.core.filesystem import TransactionalFilesystem

Resolve = Callable[[str], str]


def _parse_mode(value: object) -> object:
    """Accept permission modes as ints or octal strings ("755", "0o755")."""
    if isinstance(value, str):
        text = value.strip().lower().removeprefix("0o")
        try:
            value = int(text, 8)
        except ValueError as e:
            raise ValueError(f"invalid octal mode: {value!r}") from e
    if isinstance(value, int) and not 0 <= value <= 0o7777:
        raise ValueError(f"mode out of range: {oct(value)}")
    return value


def _as_list(value: object) -> object:
    if isinstance(value, str):
        return [value]
    return value


class BatchOperation(BaseModel, ABC):
    """Base class for batch operations."""

    model_config = {"extra": "forbid"}

    def describe(self) -> str:
        return self.op  # type: ignore[attr-defined, no-any-return]

    @abstractmethod
    def apply(self, fs: "TransactionalFilesystem", resolve: Resolve) -> None: ...


class MultiPathOperation(BatchOperation):
    paths: list[str] = Field(min_length=1)

    @field_validator("paths", mode="before")
    @classmethod
    def wrap_single_path(cls, value: object) -> object:
        return _as_list(value)

    def describe(self) -> str:
        return f"{super().describe()} {', '.join(self.paths)}"


class DumpFileOperation(BatchOperation):
    op: Literal["dump_file"] = "dump_file"
    path: str
    content: str = ""

    def describe(self) -> str:
        return f"dump_file {self.path}"

    def apply(self, fs: "TransactionalFilesystem", resolve: Resolve) -> None:
        fs.dump_file(resolve(self.path), self.content)


class AppendToFileOperation(BatchOperation):
    op: Literal["append_to_file"] = "append_to_file"
    path: str
    content: str

    def describe(self) -> str:
        return f"append_to_file {self.path}"

    def apply(self, fs: "TransactionalFilesystem", resolve: Resolve) -> None:
        fs.append_to_file(resolve(self.path), self.content)


class MkdirOperation(MultiPathOperation):
    op: Literal["mkdir"] = "mkdir"
    mode: int = 0o777

    @field_validator("mode", mode="before")
    @classmethod
    def validate_mode(cls, value: object) -> object:
        return _parse_mode(value)

    def apply(self, fs: "TransactionalFilesystem", resolve: Resolve) -> None:
        fs.mkdir([resolve(path) for path in self.paths], self.mode)


class RemoveOperation(MultiPathOperation):
    op: Literal["remove"] = "remove"

    def apply(self, fs: "TransactionalFilesystem", resolve: Resolve) -> None:
        fs.remove([resolve(path) for path in self.paths])


class RenameOperation(BatchOperation):
    op: Literal["rename"] = "rename"
    origin: str
    target: str
    overwrite: bool = False

    def describe(self) -> str:
        return f"rename {self.origin} -> {self.target}"

    def apply(self, fs: "TransactionalFilesystem", resolve: Resolve) -> None:
        fs.rename(resolve(self.origin), resolve(self.target), self.overwrite)


class CopyOperation(BatchOperation):
    op: Literal["copy"] = "copy"
    origin: str
    target: str
    overwrite_newer_files: bool = False

    def describe(self) -> str:
        return f"copy {self.origin} -> {self.target}"

    def apply(self, fs: "TransactionalFilesystem", resolve: Resolve) -> None:
        fs.copy(resolve(self.origin), resolve(self.target), self.overwrite_newer_files)


class MirrorOperation(BatchOperation):
    op: Literal["mirror"] = "mirror"
    origin: str
    target: str
    override: bool = False
    delete: bool = False

    def describe(self) -> str:
        return f"mirror {self.origin} -> {self.target}"

    def apply(self, fs: "TransactionalFilesystem", resolve: Resolve) -> None:
        fs.mirror(
            resolve(self.origin), resolve(self.target), self.override, self.delete
        )


class SymlinkOperation(BatchOperation):
    """Create ``target`` as a symlink to ``origin``.

    The origin is stored as written, so relative origins stay relative to
    the link's directory.
    """

    op: Literal["symlink"] = "symlink"
    origin: str
    target: str

    def describe(self) -> str:
        return f"symlink {self.target} -> {self.origin}"

    def apply(self, fs: "TransactionalFilesystem", resolve: Resolve) -> None:
        fs.symlink(self.origin, resolve(self.target))


class HardlinkOperation(BatchOperation):
    op: Literal["hardlink"] = "hardlink"
    origin: str
    targets: list[str] = Field(min_length=1)

    @field_validator("targets", mode="before")
    @classmethod
    def wrap_single_target(cls, value: object) -> object:
        return _as_list(value)

    def describe(self) -> str:
        return f"hardlink {', '.join(self.targets)} -> {self.origin}"

    def apply(self, fs: "TransactionalFilesystem", resolve: Resolve) -> None:
        fs.hardlink(resolve(self.origin), [resolve(path) for path in self.targets])


class TouchOperation(MultiPathOperation):
    op: Literal["touch"] = "touch"
    time: float | None = None
    atime: float | None = None

    def apply(self, fs: "TransactionalFilesystem", resolve: Resolve) -> None:
        fs.touch([resolve(path) for path in self.paths], self.time, self.atime)


class ChmodOperation(MultiPathOperation):
    op: Literal["chmod"] = "chmod"
    mode: int
    umask: int = 0o000
    recursive: bool = False

    @field_validator("mode", "umask", mode="before")
    @classmethod
    def validate_mode(cls, value: object) -> object:
        return _parse_mode(value)

    def apply(self, fs: "TransactionalFilesystem", resolve: Resolve) -> None:
        fs.chmod(
            [resolve(path) for path in self.paths],
            self.mode,
            self.umask,
            self.recursive,
        )


class ChownOperation(MultiPathOperation):
    op: Literal["chown"] = "chown"
    user: str | int
    recursive: bool = False

    def apply(self, fs: "TransactionalFilesystem", resolve: Resolve) -> None:
        fs.chown([resolve(path) for path in self.paths], self.user, self.recursive)


class ChgrpOperation(MultiPathOperation):
    op: Literal["chgrp"] = "chgrp"
    group: str | int
    recursive: bool = False

    def apply(self, fs: "TransactionalFilesystem", resolve: Resolve) -> None:
        fs.chgrp([resolve(path) for path in self.paths], self.group, self.recursive)


PlanOperation = Annotated[
    DumpFileOperation
    | AppendToFileOperation
    | MkdirOperation
    | RemoveOperation
    | RenameOperation
    | CopyOperation
    | MirrorOperation
    | SymlinkOperation
    | HardlinkOperation
    | TouchOperation
    | ChmodOperation
    | ChownOperation
    | ChgrpOperation,
    Field(discriminator="op"),
]


class BatchPlan(BaseModel):
    """Ordered filesystem operations applied as one transaction.

    Attributes:
        base_dir: Directory the transaction is bound to; relative operation
            paths are resolved against it
        namespace: Optional namespace identifier for the transaction
        operations: Operations in application order
    """

    base_dir: str | None = None
    namespace: str | None = None
    operations: list[PlanOperation] = Field(default_factory=list)
