"""Per-repository fetch job executed on the worker pool."""

from dataclasses import dataclass

from github_sync_db.github.client import GitHubClient
from github_sync_db.github.fetchers import GitHubFetcher, RepoBundle


@dataclass(frozen=True)
class RepoJobPayload:
    """Everything a worker needs to fetch one repository on its own."""

    access_token: str
    owner: str
    repo: str
    per_page: int = 100
    cooldown_seconds: float = 60.0


async def fetch_repo_job(payload: RepoJobPayload) -> RepoBundle:
    """Fetch commits, PRs, issues and issue events for one repository.

    Builds its own client so the job shares nothing with the submitting
    process.
    """
    async with GitHubClient(
        payload.access_token, cooldown_seconds=payload.cooldown_seconds
    ) as client:
        fetcher = GitHubFetcher(client, per_page=payload.per_page)
        return await fetcher.fetch_repo_bundle(payload.owner, payload.repo)
