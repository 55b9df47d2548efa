"""Commit journal writer for replayed filesystem operations.

This module writes an audit record of each commit in JSONL format: one
header line describing the transaction, then one line per replay step.
The journal is informational; it is never read back for recovery.
"""

import json
import os
import platform
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from fstransact.core.constants import JOURNAL_SCHEMA_VERSION
from fstransact.utils.debug import debug


class CommitJournal:
    """Writes commit journals in JSONL format.

    Each journal file contains:
    - Header line with metadata (type: "header")
    - One JSON object per replay step (applied, skipped or failed)
    """

    def __init__(
        self,
        report_id: str,
        journal_dir: Path,
        namespace: str,
        base_dir: str,
        total_steps: int = 0,
    ) -> None:
        """Initialize commit journal.

        Args:
            report_id: Unique identifier for this commit
            journal_dir: Directory the journal file is written to
            namespace: Namespace of the committed transaction
            base_dir: Base directory of the committed transaction
            total_steps: Number of steps in the replay plan
        """
        self.report_id = report_id
        self.journal_dir = journal_dir.expanduser().resolve()
        self.namespace = namespace
        self.base_dir = base_dir
        self.total_steps = total_steps
        self._journal_path: Path | None = None
        self._journal_file: Any = None
        self._header_written = False

        self._ensure_journal_directory()

    @property
    def path(self) -> Path | None:
        return self._journal_path

    def _ensure_journal_directory(self) -> None:
        """Ensure journal directory exists and is writable."""
        try:
            self.journal_dir.mkdir(parents=True, exist_ok=True)

            # Test write access
            test_file = self.journal_dir / f".test_{uuid.uuid4().hex}"
            test_file.write_text("test")
            test_file.unlink()

        except OSError as e:
            raise OSError(
                f"Cannot create journal directory {self.journal_dir}: {e}. "
                "Ensure the directory is writable or choose a different one."
            ) from e

        self._journal_path = self.journal_dir / f"{self.report_id}.jsonl"
        debug(f"Commit journal will be written to: {self._journal_path}")

    def write_header(self) -> None:
        """Write journal header with transaction metadata."""
        if self._header_written:
            return

        header = {
            "type": "header",
            "schema_version": JOURNAL_SCHEMA_VERSION,
            "report_id": self.report_id,
            "namespace": self.namespace,
            "base_dir": self.base_dir,
            "total_steps": self.total_steps,
            "generated_at": datetime.now(UTC).isoformat(),
            "system": {"os": platform.system()},
        }

        self._write_line(header)
        self._header_written = True

    def append(self, entry: dict[str, Any]) -> None:
        """Append a step entry to the journal.

        Args:
            entry: Step data to append
        """
        if not self._header_written:
            self.write_header()

        self._write_line(entry)
        debug(
            f"Journal entry: step {entry.get('step', '?')} "
            f"{entry.get('op', 'unknown')} - {entry.get('status', 'unknown')}"
        )

    def _write_line(self, data: dict[str, Any]) -> None:
        """Write a JSON line to the journal file."""
        if self._journal_file is None:
            if self._journal_path is None:
                raise RuntimeError("Journal path not set")
            self._journal_file = open(self._journal_path, "w", encoding="utf-8")

        json_line = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
        self._journal_file.write(json_line + "\n")
        self._journal_file.flush()
        os.fsync(self._journal_file.fileno())

    def close(self) -> None:
        """Close the journal file, writing the header if nothing else was."""
        if not self._header_written:
            self.write_header()
        if self._journal_file is not None:
            self._journal_file.close()
            self._journal_file = None
        debug(f"Closed journal file: {self._journal_path}")

    def __enter__(self) -> "CommitJournal":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
