"""Typed fetch operations for the GitHub resources a sync run ingests."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from github_sync_db.config import get_settings
from github_sync_db.logging import get_logger

from .checkpoint import checkpoint
from .client import GitHubClient
from .exceptions import GitHubClientError
from .pagination import fetch_all_pages

logger = get_logger(__name__)

RawItem = dict[str, Any]


@dataclass
class RepoBundle:
    """Everything fetched for one repository in a single job.

    Plain lists and dicts only, so a bundle can cross a process boundary.
    """

    commits: list[RawItem] = field(default_factory=list)
    pull_requests: list[RawItem] = field(default_factory=list)
    issues: list[RawItem] = field(default_factory=list)
    issue_events: dict[int, list[RawItem]] = field(default_factory=dict)
    """Events keyed by issue number; [] when fetching that issue's events failed."""


class GitHubFetcher:
    """Resource-specific listings built on the transport and paginator.

    Every method propagates ``GitHubClientError`` for non-rate-limit failures;
    deciding whether a failure is fatal is left to the caller.

    Usage:
        async with GitHubClient(token) as client:
            fetcher = GitHubFetcher(client)
            for org in await fetcher.list_organizations():
                repos = await fetcher.list_org_repos(org["login"])
    """

    def __init__(self, client: GitHubClient, *, per_page: int | None = None) -> None:
        self._client = client
        self._per_page = per_page or get_settings().github.per_page

    @property
    def client(self) -> GitHubClient:
        return self._client

    # -------------------------------------------------------------------------
    # Organization Scope
    # -------------------------------------------------------------------------
    async def list_organizations(self) -> list[RawItem]:
        """Organizations the authenticated user belongs to."""
        return await fetch_all_pages(self._client, "/user/orgs", per_page=self._per_page)

    async def list_org_repos(self, org: str) -> list[RawItem]:
        """Repositories of an organization."""
        return await fetch_all_pages(
            self._client, f"/orgs/{org}/repos", per_page=self._per_page
        )

    async def list_org_members(self, org: str) -> list[RawItem]:
        """Members of an organization."""
        return await fetch_all_pages(
            self._client, f"/orgs/{org}/members", per_page=self._per_page
        )

    # -------------------------------------------------------------------------
    # Repository Scope
    # -------------------------------------------------------------------------
    async def list_repo_commits(self, owner: str, repo: str) -> list[RawItem]:
        """Commits of a repository's default branch.

        Walks explicit page numbers instead of Link headers and stops as soon
        as a page comes back shorter than the page size.
        """
        commits: list[RawItem] = []
        page = 1
        while True:
            batch = await self._client.get_json(
                f"/repos/{owner}/{repo}/commits",
                params={"per_page": self._per_page, "page": page},
            )
            batch = batch or []
            commits.extend(batch)
            await checkpoint()
            if len(batch) < self._per_page:
                return commits
            page += 1

    async def list_repo_pulls(self, owner: str, repo: str) -> list[RawItem]:
        """Pull requests in any state."""
        return await fetch_all_pages(
            self._client,
            f"/repos/{owner}/{repo}/pulls",
            {"state": "all"},
            per_page=self._per_page,
        )

    async def list_repo_issues(self, owner: str, repo: str) -> list[RawItem]:
        """Issues in any state.

        GitHub lists pull requests on this endpoint too; they are kept.
        """
        return await fetch_all_pages(
            self._client,
            f"/repos/{owner}/{repo}/issues",
            {"state": "all"},
            per_page=self._per_page,
        )

    async def list_issue_events(self, owner: str, repo: str, number: int) -> list[RawItem]:
        """Timeline events of one issue."""
        return await fetch_all_pages(
            self._client,
            f"/repos/{owner}/{repo}/issues/{number}/events",
            per_page=self._per_page,
        )

    # -------------------------------------------------------------------------
    # Bundles
    # -------------------------------------------------------------------------
    async def fetch_repo_bundle(self, owner: str, repo: str) -> RepoBundle:
        """Fetch commits, PRs, issues and every issue's events for one repository.

        Commits, PRs and issues are fetched concurrently; a failure in any of
        them fails the bundle. Events are fetched issue by issue, and a failure
        for one issue yields an empty list for that issue only.
        """
        commits, pull_requests, issues = await asyncio.gather(
            self.list_repo_commits(owner, repo),
            self.list_repo_pulls(owner, repo),
            self.list_repo_issues(owner, repo),
        )

        bundle = RepoBundle(commits=commits, pull_requests=pull_requests, issues=issues)
        for issue in issues:
            number = issue.get("number")
            if number is None:
                continue
            try:
                bundle.issue_events[number] = await self.list_issue_events(owner, repo, number)
            except GitHubClientError as e:
                logger.warning(
                    "Failed to fetch events for {owner}/{repo}#{number}: {error}",
                    owner=owner,
                    repo=repo,
                    number=number,
                    error=e,
                )
                bundle.issue_events[number] = []
        return bundle
