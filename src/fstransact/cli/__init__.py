"""CLI entrypoints for fstransact."""

from fstransact.cli.apply import app as apply_app

__all__ = ["apply_app"]
