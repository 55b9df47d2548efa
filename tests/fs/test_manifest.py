"""Tests for the commit journal writer."""

import json
import os
import uuid
from pathlib import Path

import pytest

from fstransact.fs.manifest import CommitJournal


def make_journal(journal_dir: Path, report_id: str | None = None) -> CommitJournal:
    return CommitJournal(
        report_id=report_id or str(uuid.uuid4()),
        journal_dir=journal_dir,
        namespace="vfs-transact",
        base_dir="/srv/data",
        total_steps=2,
    )


class TestCommitJournal:
    """Test commit journal writer functionality."""

    def test_creates_journal_directory(self, tmp_path: Path) -> None:
        """Test that the journal directory is created if it doesn't exist."""
        journal_dir = tmp_path / "journals" / "nested"

        journal = make_journal(journal_dir)

        assert journal_dir.is_dir()
        assert journal.path == journal_dir.resolve() / f"{journal.report_id}.jsonl"
        # The write probe is removed again; nothing is written yet.
        assert list(journal_dir.iterdir()) == []

    def test_writes_header_correctly(self, tmp_path: Path) -> None:
        """Test that the journal header is written with correct format."""
        report_id = str(uuid.uuid4())
        journal = make_journal(tmp_path, report_id)

        journal.write_header()
        journal.write_header()
        journal.close()

        lines = (tmp_path / f"{report_id}.jsonl").read_text().splitlines()
        assert len(lines) == 1
        header = json.loads(lines[0])
        assert header["type"] == "header"
        assert header["schema_version"] == "1.0"
        assert header["report_id"] == report_id
        assert header["namespace"] == "vfs-transact"
        assert header["base_dir"] == "/srv/data"
        assert header["total_steps"] == 2

    def test_appends_entries_after_header(self, tmp_path: Path) -> None:
        """Test the header is written before the first entry."""
        with make_journal(tmp_path) as journal:
            journal.append({"step": 0, "op": "write", "status": "applied"})
            journal.append({"step": 1, "op": "remove", "status": "skipped"})

        assert journal.path is not None
        lines = [json.loads(line) for line in journal.path.read_text().splitlines()]
        assert [line.get("type") for line in lines] == ["header", None, None]
        assert [line.get("status") for line in lines[1:]] == ["applied", "skipped"]

    def test_close_without_entries_writes_header(self, tmp_path: Path) -> None:
        journal = make_journal(tmp_path)
        journal.close()

        assert journal.path is not None
        assert json.loads(journal.path.read_text())["type"] == "header"

    @pytest.mark.skipif(
        hasattr(os, "geteuid") and os.geteuid() == 0,
        reason="root ignores directory permissions",
    )
    def test_unwritable_directory(self, tmp_path: Path) -> None:
        """Test failure when the journal directory cannot be written."""
        journal_dir = tmp_path / "locked"
        journal_dir.mkdir()
        journal_dir.chmod(0o555)

        try:
            with pytest.raises(OSError, match="Cannot create journal directory"):
                make_journal(journal_dir)
        finally:
            journal_dir.chmod(0o755)
