"""Utility helpers for fstransact."""
