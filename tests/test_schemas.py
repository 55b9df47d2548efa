"""Tests for the Pydantic batch plan schemas."""

import pytest
from pydantic import ValidationError


def test_batch_plan_parses_every_operation() -> None:
    """Test that each op name selects its operation model."""
    from fstransact.core.schemas import (
        AppendToFileOperation,
        BatchPlan,
        ChgrpOperation,
        ChmodOperation,
        ChownOperation,
        CopyOperation,
        DumpFileOperation,
        HardlinkOperation,
        MirrorOperation,
        MkdirOperation,
        RemoveOperation,
        RenameOperation,
        SymlinkOperation,
        TouchOperation,
    )

    plan = BatchPlan.model_validate(
        {
            "base_dir": "/srv/data",
            "operations": [
                {"op": "dump_file", "path": "a.txt", "content": "hi"},
                {"op": "append_to_file", "path": "a.txt", "content": "!"},
                {"op": "mkdir", "paths": ["d1", "d2"]},
                {"op": "remove", "paths": "old"},
                {"op": "rename", "origin": "a.txt", "target": "b.txt"},
                {"op": "copy", "origin": "b.txt", "target": "c.txt"},
                {"op": "mirror", "origin": "d1", "target": "d3", "delete": True},
                {"op": "symlink", "origin": "d1", "target": "link"},
                {"op": "hardlink", "origin": "b.txt", "targets": "h.txt"},
                {"op": "touch", "paths": ["t"], "time": 1000},
                {"op": "chmod", "paths": ["d1"], "mode": "750", "recursive": True},
                {"op": "chown", "paths": ["d1"], "user": "www-data"},
                {"op": "chgrp", "paths": ["d1"], "group": 33},
            ],
        }
    )

    assert [type(op) for op in plan.operations] == [
        DumpFileOperation,
        AppendToFileOperation,
        MkdirOperation,
        RemoveOperation,
        RenameOperation,
        CopyOperation,
        MirrorOperation,
        SymlinkOperation,
        HardlinkOperation,
        TouchOperation,
        ChmodOperation,
        ChownOperation,
        ChgrpOperation,
    ]
    assert plan.namespace is None


def test_single_paths_are_wrapped() -> None:
    """Test that a bare string is accepted where a list of paths is expected."""
    from fstransact.core.schemas import HardlinkOperation, RemoveOperation

    assert RemoveOperation(paths="old").paths == ["old"]  # type: ignore[arg-type]
    hardlink = HardlinkOperation(origin="a", targets="b")  # type: ignore[arg-type]
    assert hardlink.targets == ["b"]


def test_mode_parsing() -> None:
    """Test that modes accept ints and octal strings."""
    from fstransact.core.schemas import ChmodOperation, MkdirOperation

    assert ChmodOperation(paths=["a"], mode="0o755").mode == 0o755
    assert ChmodOperation(paths=["a"], mode=0o640, umask="022").umask == 0o022
    assert MkdirOperation(paths=["a"]).mode == 0o777

    with pytest.raises(ValidationError):
        ChmodOperation(paths=["a"], mode="rwx")
    with pytest.raises(ValidationError):
        ChmodOperation(paths=["a"], mode=0o17777)


def test_invalid_plans_are_rejected() -> None:
    """Test unknown ops, extra fields and empty path lists fail validation."""
    from fstransact.core.schemas import BatchPlan

    invalid_operations = [
        {"op": "format_disk", "paths": ["/"]},
        {"op": "remove", "paths": ["a"], "force": True},
        {"op": "remove", "paths": []},
        {"op": "rename", "origin": "a"},
    ]

    for operation in invalid_operations:
        with pytest.raises(ValidationError):
            BatchPlan.model_validate({"operations": [operation]})


def test_describe() -> None:
    from fstransact.core.schemas import MkdirOperation, RenameOperation

    assert MkdirOperation(paths=["a", "b"]).describe() == "mkdir a, b"
    assert RenameOperation(origin="a", target="b").describe() == "rename a -> b"


def test_plan_round_trips_through_json() -> None:
    """Test that a plan dumped to JSON validates back to the same plan."""
    from fstransact.core.schemas import BatchPlan

    plan = BatchPlan.model_validate(
        {"operations": [{"op": "touch", "paths": ["a"], "time": 5.0}]}
    )

    assert BatchPlan.model_validate_json(plan.model_dump_json()) == plan


def test_operation_bases_are_abstract() -> None:
    """Test that only concrete operations can be instantiated."""
    from fstransact.core.schemas import BatchOperation, MultiPathOperation

    with pytest.raises(TypeError):
        BatchOperation()
    with pytest.raises(TypeError):
        MultiPathOperation(paths=["a"])
