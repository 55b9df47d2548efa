"""Smoke tests to verify package structure and imports."""

from pathlib import Path


def test_imports_package() -> None:
    """Test that the top-level package exposes the facade."""
    import fstransact

    assert fstransact.TransactionalFilesystem is not None
    assert fstransact.__version__


def test_imports_fs() -> None:
    """Test that fs package can be imported."""
    import fstransact.fs  # noqa: F401


def test_imports_chains() -> None:
    """Test that the batch chain module can be imported."""
    import fstransact.chains.batch_chain  # noqa: F401


def test_imports_cli() -> None:
    """Test that cli package can be imported."""
    import fstransact.cli  # noqa: F401


def test_imports_utils() -> None:
    """Test that utils package can be imported."""
    import fstransact.utils  # noqa: F401


def test_layout_fixture(layout: Path) -> None:
    """Test that the standard tree fixture is available."""
    assert (layout / "file0.txt").read_text() == "file0"
    assert (layout / "dir1" / "dir2" / "file2.txt").read_text() == "file2"
    assert (layout / "dir3").is_dir()
