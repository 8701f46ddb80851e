"""GitHub Sync DB - GitHub organization activity synced into a queryable store."""

__version__ = "0.1.0"
