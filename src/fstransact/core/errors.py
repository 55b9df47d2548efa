"""Custom exceptions for fstransact.

This module defines the typed exceptions raised by the path translator,
the overlay store, the transaction manager and the commit executor.
"""

from typing import Any


class FsTransactError(Exception):
    """Base exception for all fstransact errors.

    All custom exceptions inherit from this base class to allow for broad
    exception handling when needed.
    """

    pass


class PathOutsideBase(FsTransactError, ValueError):
    """Raised when a path used inside a transaction is not below the base dir.

    Attributes:
        path: The offending path (normalized)
        base_dir: The base directory of the transaction
    """

    def __init__(self, path: str, base_dir: str) -> None:
        self.path = path
        self.base_dir = base_dir
        super().__init__(
            f"Cannot access path '{path}' in a transaction: "
            f"not below base directory '{base_dir}'"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "path_outside_base",
            "path": self.path,
            "base_dir": self.base_dir,
        }

    def __repr__(self) -> str:
        return f"PathOutsideBase(path={self.path!r}, base_dir={self.base_dir!r})"


class NotFound(FsTransactError, OSError):
    """Raised when a path does not exist in the combined view.

    Attributes:
        path: Path or virtual key that was not found
    """

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Path '{path}' does not exist")

    def to_dict(self) -> dict[str, Any]:
        return {"error": "not_found", "path": self.path}

    def __repr__(self) -> str:
        return f"NotFound(path={self.path!r})"


class NotReadable(FsTransactError, OSError):
    """Raised when a path exists but its content cannot be read.

    Attributes:
        path: Path or virtual key that could not be read
        reason: Human-readable reason
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Could not read '{path}': {reason}")

    def to_dict(self) -> dict[str, Any]:
        return {"error": "not_readable", "path": self.path, "reason": self.reason}

    def __repr__(self) -> str:
        return f"NotReadable(path={self.path!r}, reason={self.reason!r})"


class TargetExists(FsTransactError):
    """Raised when a rename target exists and overwrite was not requested."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Cannot rename because the target '{path}' already exists")

    def to_dict(self) -> dict[str, Any]:
        return {"error": "target_exists", "path": self.path}

    def __repr__(self) -> str:
        return f"TargetExists(path={self.path!r})"


class SourceMissing(FsTransactError):
    """Raised when a rename source does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Cannot rename '{path}': source does not exist")

    def to_dict(self) -> dict[str, Any]:
        return {"error": "source_missing", "path": self.path}

    def __repr__(self) -> str:
        return f"SourceMissing(path={self.path!r})"


class NamespaceConflict(FsTransactError):
    """Raised when a namespace is registered while it is already active.

    Attributes:
        namespace: The namespace identifier
        base_dir: Base directory the active registration is bound to
    """

    def __init__(self, namespace: str, base_dir: str | None = None) -> None:
        self.namespace = namespace
        self.base_dir = base_dir

        message = f"Namespace '{namespace}' is already active"
        if base_dir is not None:
            message += f" (bound to '{base_dir}')"

        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error": "namespace_conflict",
            "namespace": self.namespace,
        }

        if self.base_dir is not None:
            result["base_dir"] = self.base_dir

        return result

    def __repr__(self) -> str:
        return (
            f"NamespaceConflict(namespace={self.namespace!r}, "
            f"base_dir={self.base_dir!r})"
        )


class FilesystemOSError(FsTransactError, OSError):
    """Opaque wrapper around an operating-system level failure.

    Attributes:
        path: Path the failing call operated on
        cause: The original OSError
    """

    def __init__(self, path: str, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(cause.errno, f"{cause.strerror or cause}: '{path}'")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "os_error",
            "path": self.path,
            "errno": self.cause.errno,
            "reason": str(self.cause),
        }

    def __repr__(self) -> str:
        return f"FilesystemOSError(path={self.path!r}, errno={self.cause.errno})"


class CommitFailed(FsTransactError):
    """Raised when replaying staged operations onto the real filesystem fails.

    Replay halts at the failing step. Steps before it stay applied.

    Attributes:
        step: Zero-based index of the failing step in the replay plan
        operation: Description of the failing operation
        cause: The wrapped OS failure
    """

    def __init__(self, step: int, operation: str, cause: FilesystemOSError) -> None:
        self.step = step
        self.operation = operation
        self.cause = cause
        super().__init__(f"Commit failed at step {step} ({operation}): {cause}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "commit_failed",
            "step": self.step,
            "operation": self.operation,
            "cause": self.cause.to_dict(),
        }

    def __repr__(self) -> str:
        return (
            f"CommitFailed(step={self.step}, operation={self.operation!r}, "
            f"cause={self.cause!r})"
        )


class TransactionAborted(FsTransactError):
    """Raised by the outermost commit of a transaction armed for rollback.

    A nested ``transaction()`` scope that exits with an exception arms the
    whole transaction for rollback; committing it afterwards discards the
    staged changes and raises this error.
    """

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace
        super().__init__(
            f"Transaction '{namespace}' was marked rollback-only by a nested scope"
        )

    def to_dict(self) -> dict[str, Any]:
        return {"error": "transaction_aborted", "namespace": self.namespace}

    def __repr__(self) -> str:
        return f"TransactionAborted(namespace={self.namespace!r})"
