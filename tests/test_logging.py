"""Tests for the structlog configuration helper."""

import json

import pytest
import structlog

from fstransact.utils.logging import configure_logging


def test_events_go_to_stderr_as_json(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging("INFO", json_format=True)

    structlog.get_logger().info("batch.summary", status="committed")

    captured = capsys.readouterr()
    assert captured.out == ""
    event = json.loads(captured.err.strip())
    assert event["event"] == "batch.summary"
    assert event["status"] == "committed"
    assert event["level"] == "info"
    assert "timestamp" in event


def test_level_filters_debug_events(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging("INFO")

    structlog.get_logger().debug("commit.step", step=0)
    structlog.get_logger().warning("kept")

    captured = capsys.readouterr()
    assert "commit.step" not in captured.err
    assert "kept" in captured.err
