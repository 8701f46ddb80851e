"""GitHub API access and sync module.

This module provides:
- GitHubClient: Async GitHub REST transport with 403 cooldown-and-retry
- Pagination: Link-header paging (fetch_all_pages, iter_pages)
- GitHubFetcher: Organization, repository, commit, PR, issue and event listings
- Normalizers: Raw GitHub JSON to persisted records
- OAuth: Authorize URL and code-for-token exchange
- Sync: SyncOrchestrator, UpsertWriter, WorkerPool
"""

from .checkpoint import checkpoint
from .client import GitHubClient
from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubFetchError,
    GitHubNotFoundError,
    OAuthExchangeError,
)
from .fetchers import GitHubFetcher, RepoBundle
from .oauth import OAuthToken, build_authorize_url, exchange_code_for_token
from .pagination import fetch_all_pages, iter_pages, parse_next_link
from .sync import (
    OutputFormat,
    SyncOrchestrator,
    SyncStats,
    SyncStrategy,
    UpsertWriter,
    WorkerPool,
)

__all__ = [
    # Client
    "GitHubClient",
    "checkpoint",
    # Exceptions
    "GitHubAuthenticationError",
    "GitHubClientError",
    "GitHubFetchError",
    "GitHubNotFoundError",
    "OAuthExchangeError",
    # Fetching
    "GitHubFetcher",
    "RepoBundle",
    "fetch_all_pages",
    "iter_pages",
    "parse_next_link",
    # OAuth
    "OAuthToken",
    "build_authorize_url",
    "exchange_code_for_token",
    # Sync
    "OutputFormat",
    "SyncOrchestrator",
    "SyncStats",
    "SyncStrategy",
    "UpsertWriter",
    "WorkerPool",
]
