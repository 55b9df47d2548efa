"""Helpers for resolving runtime configuration.

Explicit arguments always win; environment variables are consulted next;
built-in defaults come last.
"""

from __future__ import annotations

import os
from pathlib import Path

from fstransact.core.constants import (
    DEFAULT_NAMESPACE,
    ENV_BASE_DIR,
    ENV_JOURNAL_DIR,
    ENV_NAMESPACE,
)
from fstransact.fs.paths import discover_root_dir, normalize_path

__all__ = ["resolve_base_dir", "resolve_journal_dir", "resolve_namespace"]


def resolve_base_dir(base_dir: str | Path | None = None) -> str:
    """Resolve the base directory transactions are bound to.

    Args:
        base_dir: Optional explicit base directory.

    Returns:
        Absolute, normalized base directory. Defaults to the filesystem root
        above the current working directory.
    """

    chosen: str | Path | None = base_dir
    env_dir = os.getenv(ENV_BASE_DIR)
    if chosen is None and env_dir:
        chosen = env_dir
    if chosen is None:
        chosen = discover_root_dir()

    return normalize_path(chosen)


def resolve_namespace(namespace: str | None = None) -> str:
    """Resolve the namespace identifier a transaction registers under."""

    if namespace:
        return namespace
    return os.getenv(ENV_NAMESPACE) or DEFAULT_NAMESPACE


def resolve_journal_dir(journal_dir: str | Path | None = None) -> Path | None:
    """Resolve the directory commit journals are written to.

    Returns:
        The journal directory, or None when journaling is disabled.
    """

    chosen: str | Path | None = journal_dir
    env_dir = os.getenv(ENV_JOURNAL_DIR)
    if chosen is None and env_dir:
        chosen = env_dir
    if chosen is None:
        return None

    return Path(chosen).expanduser()
