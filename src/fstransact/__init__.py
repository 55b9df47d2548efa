"""Transactional operations over the real filesystem.

Mutations made between ``begin()`` and the outermost ``commit()`` are staged
in an in-memory overlay and replayed on commit; ``rollback()`` discards them
without touching the disk.
"""

from fstransact.core.errors import (
    CommitFailed,
    FilesystemOSError,
    FsTransactError,
    NamespaceConflict,
    NotFound,
    NotReadable,
    PathOutsideBase,
    SourceMissing,
    TargetExists,
    TransactionAborted,
)
from fstransact.core.filesystem import TransactionalFilesystem
from fstransact.core.registry import NamespaceRegistry, default_registry
from fstransact.core.transaction import TransactionManager, TransactionState

__version__ = "0.1.0"

__all__ = [
    "CommitFailed",
    "FilesystemOSError",
    "FsTransactError",
    "NamespaceConflict",
    "NamespaceRegistry",
    "NotFound",
    "NotReadable",
    "PathOutsideBase",
    "SourceMissing",
    "TargetExists",
    "TransactionAborted",
    "TransactionManager",
    "TransactionState",
    "TransactionalFilesystem",
    "default_registry",
]
