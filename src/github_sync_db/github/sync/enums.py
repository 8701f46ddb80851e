"""Enums for sync operations."""

from enum import Enum


class SyncStrategy(str, Enum):
    """How per-repository fetch work is executed during a sync run."""

    SEQUENTIAL = "sequential"
    """Fetch and write each repository in turn on the calling event loop."""

    WORKER_POOL = "worker_pool"
    """Fetch repositories in parallel on a worker pool, then write in order."""


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    TEXT = "text"
    """Human-readable text output."""

    JSON = "json"
    """Machine-readable JSON output."""
