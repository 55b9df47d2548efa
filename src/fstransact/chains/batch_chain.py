"""Batch chain for applying a plan of filesystem operations transactionally.

This module provides the BatchChain class that stages every operation of a
BatchPlan inside one transaction and commits it (or rolls it back), with
structured logging and Rich console output.
"""

import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import structlog
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

from fstransact.core.config import resolve_base_dir
from fstransact.core.errors import FsTransactError
from fstransact.core.filesystem import TransactionalFilesystem
from fstransact.core.registry import NamespaceRegistry
from fstransact.core.schemas import BatchPlan
from fstransact.fs.commit import CommitReport
from fstransact.fs.paths import normalize_path

BatchStatus = Literal["committed", "rolled_back", "failed"]


@dataclass
class BatchOptions:
    """Options for batch runs.

    Attributes:
        base_dir: Overrides the plan's base directory
        namespace: Overrides the plan's namespace
        journal_dir: Directory for the commit journal (None disables it)
        dry_run: Stage every operation, then roll back instead of committing
    """

    base_dir: str | None = None
    namespace: str | None = None
    journal_dir: Path | None = None
    dry_run: bool = False


@dataclass
class BatchReport:
    """Summary report of a batch run."""

    batch_id: str
    status: BatchStatus
    base_dir: str
    total_operations: int
    staged_count: int
    failed_index: int | None = None
    failed_operation: str | None = None
    error: dict[str, Any] | None = None
    commit: CommitReport | None = None

    def to_dict(self) -> dict[str, Any]:
        commit = None
        if self.commit is not None:
            commit = {
                "report_id": self.commit.report_id,
                "total_steps": self.commit.total_steps,
                "applied_count": self.commit.applied_count,
                "skipped_count": self.commit.skipped_count,
                "journal_path": str(self.commit.journal_path)
                if self.commit.journal_path
                else None,
            }
        return {
            "batch_id": self.batch_id,
            "status": self.status,
            "base_dir": self.base_dir,
            "total_operations": self.total_operations,
            "staged_count": self.staged_count,
            "failed_index": self.failed_index,
            "failed_operation": self.failed_operation,
            "error": self.error,
            "commit": commit,
        }


class BatchChain:
    """Applies batch plans inside a single transaction."""

    def __init__(
        self,
        logger: Any = None,
        ui: Console | None = None,
        registry: NamespaceRegistry | None = None,
    ) -> None:
        """Initialize batch chain.

        Args:
            logger: Optional structlog logger instance
            ui: Optional Rich console for output
            registry: Namespace registry for the transactions this chain opens
        """
        self._logger = logger or structlog.get_logger()
        self._ui = ui or Console()
        self._registry = registry

    def run(self, plan: BatchPlan, opts: BatchOptions | None = None) -> BatchReport:
        """Stage and commit every operation in the plan.

        The first failing operation rolls the whole batch back. With
        ``dry_run`` nothing is committed even when every operation stages.

        Args:
            plan: The batch plan to apply
            opts: Overrides and run mode

        Returns:
            BatchReport with the outcome
        """
        opts = opts or BatchOptions()
        base_dir = resolve_base_dir(opts.base_dir or plan.base_dir)
        batch_id = str(uuid.uuid4())
        total = len(plan.operations)

        bound_logger = self._logger.bind(
            batch_id=batch_id,
            base_dir=base_dir,
            dry_run=opts.dry_run,
        )

        fs = TransactionalFilesystem(
            base_dir,
            namespace=opts.namespace or plan.namespace,
            registry=self._registry,
            logger=self._logger,
            journal_dir=opts.journal_dir,
        )

        def resolve(path: str) -> str:
            if os.path.isabs(path):
                return path
            return normalize_path(path, root=base_dir)

        report = BatchReport(
            batch_id=batch_id,
            status="failed",
            base_dir=base_dir,
            total_operations=total,
            staged_count=0,
        )

        try:
            fs.begin()
            with self._create_progress() as progress:
                task = progress.add_task("Staging", total=total)
                for index, operation in enumerate(plan.operations):
                    try:
                        operation.apply(fs, resolve)
                    except FsTransactError as e:
                        report.failed_index = index
                        report.failed_operation = operation.describe()
                        report.error = _error_dict(e)
                        self._ui.print(
                            f"❌ [red]FAILED[/red] {operation.describe()} ({e})"
                        )
                        fs.rollback()
                        break
                    report.staged_count += 1
                    progress.advance(task)

            if report.failed_index is None:
                if opts.dry_run:
                    fs.rollback()
                    report.status = "rolled_back"
                    self._ui.print(
                        f"🔍 [blue]DRY RUN[/blue] {report.staged_count} operation(s) "
                        "staged, nothing written"
                    )
                else:
                    self._commit(fs, report)
        finally:
            fs.close()

        bound_logger.info(
            "batch.summary",
            status=report.status,
            total_operations=total,
            staged_count=report.staged_count,
            failed_index=report.failed_index,
            report_id=report.commit.report_id if report.commit else None,
        )

        return report

    def _commit(self, fs: TransactionalFilesystem, report: BatchReport) -> None:
        try:
            fs.commit()
        except FsTransactError as e:
            report.error = _error_dict(e)
            self._ui.print(f"❌ [red]COMMIT FAILED[/red] {e}")
            return

        report.status = "committed"
        report.commit = fs.last_report
        self._ui.print(
            f"✅ [green]COMMITTED[/green] {report.staged_count} operation(s)"
        )

    def _create_progress(self) -> Progress:
        """Create Rich progress display."""
        return Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=self._ui,
            transient=False,
        )


def _error_dict(error: FsTransactError) -> dict[str, Any]:
    to_dict = getattr(error, "to_dict", None)
    if to_dict is not None:
        return to_dict()  # type: ignore[no-any-return]
    return {"error": type(error).__name__, "message": str(error)}
