"""Staging and replay layer for transactional filesystem operations.

This module provides the overlay store that stages changes in memory, the
direct backend used outside transactions, and the commit executor that
replays staged operations onto the real filesystem.
"""

from fstransact.fs.commit import CommitExecutor, CommitReport, compact_operations
from fstransact.fs.direct import DirectBackend
from fstransact.fs.manifest import CommitJournal
from fstransact.fs.overlay import OverlayStore
from fstransact.fs.paths import PathTranslator, normalize_path

__all__ = [
    "CommitExecutor",
    "CommitJournal",
    "CommitReport",
    "DirectBackend",
    "OverlayStore",
    "PathTranslator",
    "compact_operations",
    "normalize_path",
]
