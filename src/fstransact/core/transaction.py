"""Transaction lifecycle: a reentrant begin/commit/rollback state machine.

The manager owns one OverlayStore per top-level transaction. Nested
``begin()`` calls only increment a depth counter; the outermost ``commit()``
hands the overlay's log to the commit executor. ``rollback()`` only acts on
the outermost scope. A nested scope that wants the whole transaction undone
arms it for rollback instead (see ``transaction()``).
"""

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any

import structlog

from fstransact.core.errors import TransactionAborted
from fstransact.core.registry import NamespaceRegistry, default_registry
from fstransact.fs.commit import CommitExecutor, CommitReport
from fstransact.fs.os_ops import OSPrimitives
from fstransact.fs.overlay import OverlayStore


class TransactionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class TransactionManager:
    """Reentrant transaction counter bound to one namespace and base dir."""

    def __init__(
        self,
        base_dir: str,
        namespace: str,
        registry: NamespaceRegistry | None = None,
        os_ops: OSPrimitives | None = None,
        executor: CommitExecutor | None = None,
        logger: Any = None,
        journal_dir: Path | None = None,
    ) -> None:
        """Initialize transaction manager.

        Args:
            base_dir: Absolute, normalized base directory
            namespace: Namespace identifier registered while active
            registry: Namespace registry (defaults to the process registry)
            os_ops: OS primitives for overlay read-through and replay
            executor: Commit executor (built from os_ops when omitted)
            logger: Optional structlog logger instance
            journal_dir: Directory for commit journals (None disables them)
        """
        self.base_dir = base_dir
        self.namespace = namespace
        self._registry = registry or default_registry()
        self._os = os_ops or OSPrimitives()
        logger = logger or structlog.get_logger()
        self._executor = executor or CommitExecutor(
            os_ops=self._os, logger=logger, journal_dir=journal_dir
        )
        self._logger = logger.bind(namespace=namespace, base_dir=base_dir)
        self._depth = 0
        self._overlay: OverlayStore | None = None
        self._rollback_only = False
        self.last_report: CommitReport | None = None

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def state(self) -> TransactionState:
        return TransactionState.ACTIVE if self._depth else TransactionState.IDLE

    @property
    def overlay(self) -> OverlayStore | None:
        """The active overlay, or None while idle."""
        return self._overlay

    @property
    def rollback_only(self) -> bool:
        return self._rollback_only

    def in_transaction(self) -> bool:
        return self._depth > 0

    def begin(self) -> bool:
        """Open a transaction scope.

        The first scope registers the namespace and allocates the overlay.

        Raises:
            NamespaceConflict: If the namespace is already active elsewhere
        """
        if self._depth == 0:
            self._registry.register(self.namespace, self.base_dir)
            self._overlay = OverlayStore(self.base_dir, self._os)
            self._rollback_only = False
            self._logger.info("transaction.begin")

        self._depth += 1
        return True

    def commit(self) -> bool:
        """Close a scope; the outermost one replays staged changes.

        Returns:
            False when no transaction is active, True otherwise

        Raises:
            TransactionAborted: If a nested scope armed the transaction for
                rollback (nothing is written)
            CommitFailed: If replay fails; the transaction is closed anyway
        """
        if self._depth == 0:
            return False

        self._depth -= 1
        if self._depth > 0:
            return True

        overlay = self._overlay
        assert overlay is not None
        self.last_report = None
        try:
            if self._rollback_only:
                self._logger.info(
                    "transaction.rollback",
                    reason="rollback_only",
                    discarded_steps=len(overlay.operations),
                )
                raise TransactionAborted(self.namespace)

            report = self._executor.execute(
                overlay.operations,
                overlay.to_real,
                namespace=self.namespace,
                base_dir=self.base_dir,
            )
        finally:
            self._teardown()

        self.last_report = report
        self._logger.info(
            "transaction.commit",
            report_id=report.report_id,
            applied_count=report.applied_count,
            skipped_count=report.skipped_count,
        )
        return True

    def rollback(self) -> bool:
        """Discard staged changes, only from the outermost scope.

        Returns:
            True if the transaction was discarded. False at any other depth:
            a nested rollback neither discards nor closes its scope.
        """
        if self._depth != 1:
            return False

        self._discard(reason="rollback")
        return True

    def close(self) -> None:
        """Force a rollback of an active transaction at any depth."""
        if self._depth > 0:
            self._discard(reason="close")

    @contextmanager
    def transaction(self) -> Iterator["TransactionManager"]:
        """Run a block inside a transaction scope.

        A clean exit commits the scope. An exception in the outermost scope
        rolls back; in a nested scope it closes the scope and arms the whole
        transaction for rollback before re-raising.
        """
        self.begin()
        try:
            yield self
        except BaseException:
            if self._depth > 1:
                self._depth -= 1
                self._rollback_only = True
            else:
                self.rollback()
            raise
        else:
            self.commit()

    def _discard(self, reason: str) -> None:
        discarded = len(self._overlay.operations) if self._overlay else 0
        self._teardown()
        self._logger.info(
            "transaction.rollback", reason=reason, discarded_steps=discarded
        )

    def _teardown(self) -> None:
        if self._overlay is not None:
            self._overlay.discard()
        self._overlay = None
        self._depth = 0
        self._rollback_only = False
        self._registry.unregister(self.namespace)

    def __del__(self) -> None:
        if getattr(self, "_depth", 0) > 0 and not sys.is_finalizing():
            self.close()
