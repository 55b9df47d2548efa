"""Pytest configuration and fixtures for fstransact tests."""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
import structlog

from fstransact.core.filesystem import TransactionalFilesystem
from fstransact.core.registry import NamespaceRegistry


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep configuration env vars and structlog setup from leaking."""
    for name in (
        "FSTRANSACT_BASE_DIR",
        "FSTRANSACT_NAMESPACE",
        "FSTRANSACT_JOURNAL_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    structlog.reset_defaults()


@pytest.fixture
def layout(tmp_path: Path) -> Path:
    """Create the standard test tree.

    file0.txt            "file0"
    dir1/file1.txt       "file1"
    dir1/dir2/file2.txt  "file2"
    dir3/
    """
    (tmp_path / "file0.txt").write_text("file0")
    (tmp_path / "dir1" / "dir2").mkdir(parents=True)
    (tmp_path / "dir1" / "file1.txt").write_text("file1")
    (tmp_path / "dir1" / "dir2" / "file2.txt").write_text("file2")
    (tmp_path / "dir3").mkdir()
    return tmp_path


@pytest.fixture
def registry() -> NamespaceRegistry:
    return NamespaceRegistry()


@pytest.fixture
def fs(layout: Path, registry: NamespaceRegistry) -> Iterator[TransactionalFilesystem]:
    """Facade bound to the test tree with its own namespace registry."""
    filesystem = TransactionalFilesystem(layout, registry=registry)
    yield filesystem
    filesystem.close()


def _snapshot(root: Path) -> dict[str, bytes | None]:
    tree: dict[str, bytes | None] = {}
    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root).as_posix()
        if path.is_symlink():
            tree[relative] = b"-> " + str(path.readlink()).encode()
        elif path.is_dir():
            tree[relative] = None
        else:
            tree[relative] = path.read_bytes()
    return tree


@pytest.fixture
def snapshot() -> Callable[[Path], dict[str, bytes | None]]:
    """Map every path below a root to its content (None for directories)."""
    return _snapshot
