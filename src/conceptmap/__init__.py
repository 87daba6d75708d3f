"""Incremental, per-user concept graphs built from uploaded documents."""

__version__ = "0.1.0"
