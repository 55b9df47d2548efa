"""Tests for path normalization and the path translator."""

from pathlib import Path

import pytest

from fstransact.core.errors import PathOutsideBase
from fstransact.fs.paths import (
    PathTranslator,
    discover_root_dir,
    is_below,
    is_descendant,
    key_join,
    key_parent,
    keys_overlap,
    normalize_path,
)


def make_translator(base_dir: str = "/srv/data", active: bool = True) -> PathTranslator:
    return PathTranslator(base_dir, "ns", lambda: active)


class TestNormalizePath:
    """Test normalize_path function."""

    def test_collapses_dot_segments(self) -> None:
        """Test that '.' and '..' components are resolved lexically."""
        assert normalize_path("/srv/./data/../data/a") == "/srv/data/a"

    def test_relative_path_uses_root(self) -> None:
        """Test relative paths are anchored at the given root."""
        assert normalize_path("a/../b", root="/base") == "/base/b"

    def test_relative_path_defaults_to_cwd(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test relative paths default to the working directory."""
        monkeypatch.chdir(tmp_path)
        assert normalize_path("x.txt") == f"{tmp_path.as_posix()}/x.txt"

    def test_backslashes_become_forward_slashes(self) -> None:
        """Test Windows separators are normalized."""
        assert normalize_path("/srv\\data\\a") == "/srv/data/a"

    def test_symlinks_are_not_resolved(self, tmp_path: Path) -> None:
        """Test a path naming a symlink keeps naming the link."""
        (tmp_path / "real").mkdir()
        (tmp_path / "link").symlink_to(tmp_path / "real")

        assert normalize_path(tmp_path / "link") == f"{tmp_path.as_posix()}/link"

    def test_accepts_path_objects(self) -> None:
        assert normalize_path(Path("/srv/data")) == "/srv/data"


class TestKeyHelpers:
    """Test helpers for virtual keys."""

    def test_is_below(self) -> None:
        """Test base-directory containment is component-wise."""
        assert is_below("/srv/data", "/srv/data")
        assert is_below("/srv/data/a", "/srv/data")
        assert not is_below("/srv/database", "/srv/data")
        assert is_below("/anything", "/")

    def test_key_parent_and_join(self) -> None:
        assert key_parent("a/b/c") == "a/b"
        assert key_parent("a") == ""
        assert key_join("", "a") == "a"
        assert key_join("a/b", "c") == "a/b/c"

    def test_keys_overlap(self) -> None:
        """Test overlap covers equality and ancestry in both directions."""
        assert keys_overlap("a/b", "a/b")
        assert keys_overlap("a", "a/b")
        assert keys_overlap("a/b/c", "a")
        assert keys_overlap("", "a/b")
        assert not keys_overlap("a/b", "a/bc")
        assert not keys_overlap("a", "b")

    def test_is_descendant_is_strict(self) -> None:
        assert is_descendant("a/b", "a")
        assert not is_descendant("a", "a")
        assert not is_descendant("ab", "a")
        assert is_descendant("a", "")
        assert not is_descendant("", "")

    def test_discover_root_dir(self, tmp_path: Path) -> None:
        """Test the filesystem root above a directory is found."""
        assert discover_root_dir(tmp_path) == "/"


class TestPathTranslator:
    """Test PathTranslator class."""

    def test_to_key_strips_base_dir(self) -> None:
        translator = make_translator()

        assert translator.to_key("/srv/data/a/b.txt") == "a/b.txt"
        assert translator.to_key("/srv/data") == ""
        assert translator.to_key("/srv/data/a/../b") == "b"

    def test_to_key_rejects_paths_outside_base(self) -> None:
        """Test paths escaping the base directory raise PathOutsideBase."""
        translator = make_translator()

        with pytest.raises(PathOutsideBase) as exc_info:
            translator.to_key("/srv/database/a")

        assert exc_info.value.path == "/srv/database/a"
        assert exc_info.value.base_dir == "/srv/data"

        with pytest.raises(PathOutsideBase):
            translator.to_key("/srv/data/../other")

    def test_to_key_accepts_virtual_uris(self) -> None:
        """Test a URI cannot climb above the base directory."""
        translator = make_translator()

        assert translator.to_key("ns://a/b") == "a/b"
        assert translator.to_key("ns://a/../b") == "b"
        assert translator.to_key("ns://../../etc") == "etc"
        assert translator.to_key("ns://") == ""

    def test_resolve_is_idempotent(self) -> None:
        """Test resolving a URI of a resolved key yields the same key."""
        translator = make_translator()

        key = translator.resolve("/srv/data/dir/file.txt")

        assert key == "dir/file.txt"
        assert translator.resolve(translator.to_uri(key)) == key

    def test_resolve_passes_through_when_inactive(self) -> None:
        """Test no translation happens outside a transaction."""
        translator = make_translator(active=False)

        assert translator.resolve("/elsewhere/file") == "/elsewhere/file"
        assert translator.resolve("ns://a/b") == "/srv/data/a/b"

    def test_resolve_all_keeps_order(self) -> None:
        translator = make_translator()

        assert translator.resolve_all("/srv/data/x") == ["x"]
        assert translator.resolve_all(
            ["/srv/data/b", Path("/srv/data/a"), "ns://c"]
        ) == ["b", "a", "c"]

    def test_to_real_and_to_uri(self) -> None:
        translator = make_translator()

        assert translator.to_real("") == "/srv/data"
        assert translator.to_real("a/b") == "/srv/data/a/b"
        assert translator.to_uri("a/b") == "ns://a/b"

    def test_root_base_dir(self) -> None:
        """Test a base directory of '/' accepts every absolute path."""
        translator = make_translator(base_dir="/")

        assert translator.to_key("/etc/hosts") == "etc/hosts"
        assert translator.to_real("etc/hosts") == "/etc/hosts"
