"""Commit executor: replays an overlay's operation log onto the real disk.

The log is causally ordered when staged (parents before children, removal
before recreation, overwritten targets removed before a rename lands). The
executor drops steps a later step makes redundant, then replays the rest
one OS call at a time. The first failure halts replay; steps already
applied are not undone.
"""

import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

from fstransact.core.errors import CommitFailed, FilesystemOSError
from fstransact.fs.manifest import CommitJournal
from fstransact.fs.operations import (
    CONTENT_OPERATIONS,
    REMOVABLE_OPERATIONS,
    Operation,
    RemovePath,
    WriteFile,
)
from fstransact.fs.os_ops import OSPrimitives
from fstransact.fs.paths import is_descendant, keys_overlap


@dataclass
class CommitReport:
    """Summary report of a commit replay."""

    report_id: str
    total_steps: int
    applied_count: int
    skipped_count: int
    journal_path: Path | None = None


def _supersedes(later: Operation, earlier: Operation) -> bool:
    if isinstance(later, RemovePath):
        return later.key == earlier.key or is_descendant(earlier.key, later.key)
    if isinstance(later, WriteFile) and not later.append:
        return isinstance(earlier, CONTENT_OPERATIONS) and later.key == earlier.key
    return False


def compact_operations(operations: Sequence[Operation]) -> list[bool]:
    """Flag which steps must be replayed.

    A step is dropped when the next kept step touching an overlapping path
    makes it redundant: a full rewrite of the same file, or a removal of the
    path or one of its ancestors.

    Returns:
        One flag per operation, False for steps that can be skipped
    """
    keep = [True] * len(operations)

    for index in range(len(operations) - 1, -1, -1):
        operation = operations[index]
        if not isinstance(operation, REMOVABLE_OPERATIONS):
            continue

        for later_index in range(index + 1, len(operations)):
            if not keep[later_index]:
                continue
            later = operations[later_index]
            if not any(keys_overlap(operation.key, key) for key in later.touched()):
                continue
            if _supersedes(later, operation):
                keep[index] = False
            break

    return keep


class CommitExecutor:
    """Replays staged operations onto the real filesystem."""

    def __init__(
        self,
        os_ops: OSPrimitives | None = None,
        logger: Any = None,
        journal_dir: Path | None = None,
        compact: bool = True,
    ) -> None:
        """Initialize commit executor.

        Args:
            os_ops: OS primitives the replay steps call
            logger: Optional structlog logger instance
            journal_dir: Directory for commit journals (None disables them)
            compact: Whether redundant steps are skipped
        """
        self._os = os_ops or OSPrimitives()
        self._logger = logger or structlog.get_logger()
        self._journal_dir = journal_dir
        self._compact = compact

    def execute(
        self,
        operations: Sequence[Operation],
        to_real: Callable[[str], str],
        *,
        namespace: str = "",
        base_dir: str = "",
    ) -> CommitReport:
        """Replay operations in order.

        Args:
            operations: The overlay's operation log
            to_real: Maps a virtual key to its real path
            namespace: Namespace of the committed transaction (for logging)
            base_dir: Base directory of the transaction (for logging)

        Returns:
            CommitReport with replay counts

        Raises:
            CommitFailed: On the first failing step
        """
        report_id = str(uuid.uuid4())
        bound_logger = self._logger.bind(
            report_id=report_id,
            namespace=namespace,
            base_dir=base_dir,
        )

        keep = (
            compact_operations(operations)
            if self._compact
            else [True] * len(operations)
        )
        journal = (
            CommitJournal(
                report_id=report_id,
                journal_dir=self._journal_dir,
                namespace=namespace,
                base_dir=base_dir,
                total_steps=len(operations),
            )
            if self._journal_dir is not None
            else None
        )

        applied_count = 0
        skipped_count = 0
        try:
            for index, operation in enumerate(operations):
                if not keep[index]:
                    skipped_count += 1
                    self._record(journal, index, operation, "skipped")
                    bound_logger.debug(
                        "commit.step",
                        step=index,
                        operation=operation.describe(),
                        status="skipped",
                    )
                    continue

                try:
                    operation.apply(self._os, to_real)
                except FilesystemOSError as e:
                    self._record(journal, index, operation, "failed", reason=str(e))
                    bound_logger.error(
                        "commit.failed",
                        step=index,
                        operation=operation.describe(),
                        reason=str(e),
                        applied_count=applied_count,
                    )
                    raise CommitFailed(index, operation.describe(), e) from e

                applied_count += 1
                self._record(journal, index, operation, "applied")
                bound_logger.debug(
                    "commit.step",
                    step=index,
                    operation=operation.describe(),
                    status="applied",
                )
        finally:
            if journal is not None:
                journal.close()

        bound_logger.info(
            "commit.summary",
            total_steps=len(operations),
            applied_count=applied_count,
            skipped_count=skipped_count,
            journal_path=str(journal.path) if journal is not None else None,
        )

        return CommitReport(
            report_id=report_id,
            total_steps=len(operations),
            applied_count=applied_count,
            skipped_count=skipped_count,
            journal_path=journal.path if journal is not None else None,
        )

    @staticmethod
    def _record(
        journal: CommitJournal | None,
        index: int,
        operation: Operation,
        status: str,
        reason: str | None = None,
    ) -> None:
        if journal is None:
            return
        entry = {
            "ts": datetime.now(UTC).isoformat(),
            "step": index,
            **operation.to_dict(),
            "status": status,
        }
        if reason is not None:
            entry["reason"] = reason
        journal.append(entry)
