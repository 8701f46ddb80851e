"""Full sync of one integration: organizations down to issue events.

Walks the GitHub hierarchy for the integration's token and persists every
level through natural-key upserts:

    organizations -> repositories -> commits, pull requests, issues
                                     -> issue events
                  -> members

Every stage (fetch + normalize + write for one kind in one parent scope)
is isolated: a failure is logged, recorded on ``SyncStats.failures`` and
contributes nothing, and the run moves on to the next stage.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_db.config import Settings, get_settings
from github_sync_db.db.entities import EntityKind
from github_sync_db.db.repositories import EntityRepository, IntegrationRepository
from github_sync_db.exceptions import IntegrationNotFoundError
from github_sync_db.github.checkpoint import checkpoint
from github_sync_db.github.client import GitHubClient
from github_sync_db.github.fetchers import GitHubFetcher, RawItem, RepoBundle
from github_sync_db.github.normalize import (
    normalize_many,
    to_commit_record,
    to_issue_changelog_record,
    to_issue_record,
    to_organization_record,
    to_pull_request_record,
    to_repository_record,
    to_user_record,
)
from github_sync_db.logging import bind_integration, bind_org, bind_repo
from github_sync_db.schemas.records import RecordBase

from .enums import SyncStrategy
from .repo_job import RepoJobPayload, fetch_repo_job
from .results import SyncStats
from .worker_pool import WorkerPool
from .writer import UpsertWriter

if TYPE_CHECKING:
    from loguru import Logger

T = TypeVar("T")

ClientFactory = Callable[[str], GitHubClient]


@dataclass(frozen=True)
class _OrgRef:
    id: int
    login: str


@dataclass(frozen=True)
class _RepoRef:
    id: int
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass
class _RunContext:
    """State shared by every stage of one run."""

    integration_id: int
    access_token: str
    fetcher: GitHubFetcher
    stats: SyncStats
    log: Logger
    pool: WorkerPool[RepoJobPayload, RepoBundle] | None = None


async def _ready(items: list[RawItem]) -> list[RawItem]:
    """Serve prefetched items through the same path as a live fetch."""
    return items


async def _bundle_events(bundle: RepoBundle, number: int) -> list[RawItem]:
    return bundle.issue_events.get(number, [])


class SyncOrchestrator:
    """Runs a full sync for one integration.

    Usage:
        async with get_session() as session:
            orchestrator = SyncOrchestrator(session)
            stats = await orchestrator.run_sync(integration_id)
            print(stats.to_dict())

    With ``SyncStrategy.WORKER_POOL`` the per-repository fetches of an
    organization run in parallel on a ``WorkerPool``; writes still happen
    on this session, one repository after another.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        client_factory: ClientFactory = GitHubClient,
        strategy: SyncStrategy | str | None = None,
        worker_pool: WorkerPool[RepoJobPayload, RepoBundle] | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            session: Session used for every read and write of the run
            client_factory: Builds the GitHub transport from an access token
            strategy: Per-repository strategy (default: settings.sync.strategy)
            worker_pool: Pool for WORKER_POOL runs; one is created per run
                         (and shut down afterwards) when omitted
            settings: Settings override (default: get_settings())
        """
        self._session = session
        self._settings = settings or get_settings()
        self._client_factory = client_factory
        self._strategy = SyncStrategy(strategy or self._settings.sync.strategy)
        self._worker_pool = worker_pool
        self._integrations = IntegrationRepository(session)
        self._writer = UpsertWriter(session)

    @property
    def strategy(self) -> SyncStrategy:
        return self._strategy

    # -------------------------------------------------------------------------
    # Entry Point
    # -------------------------------------------------------------------------
    async def run_sync(self, integration_id: int) -> SyncStats:
        """Sync everything reachable from an integration's token.

        Args:
            integration_id: Integration to sync

        Returns:
            SyncStats with per-kind written counts and stage failures

        Raises:
            IntegrationNotFoundError: If the integration does not exist
            GitHubAuthenticationError: If the integration has no access token
        """
        integration = await self._integrations.get_by_id(integration_id)
        if integration is None:
            raise IntegrationNotFoundError(integration_id)

        access_token = integration.access_token
        log = bind_integration(integration_id)
        stats = SyncStats(integration_id=integration_id)

        log.info("Starting sync (strategy={strategy})", strategy=self._strategy.value)

        async with self._client_factory(access_token) as client:
            ctx = _RunContext(
                integration_id=integration_id,
                access_token=access_token,
                fetcher=GitHubFetcher(client, per_page=self._settings.github.per_page),
                stats=stats,
                log=log,
            )
            if self._strategy is SyncStrategy.WORKER_POOL:
                await self._run_with_pool(ctx)
            else:
                await self._sync_organizations(ctx)

        await self._finalize(integration_id, stats)

        log.info(
            "Sync complete: orgs={orgs}, repos={repos}, commits={commits}, "
            "pull_requests={prs}, issues={issues}, issue_events={events}, "
            "users={users}, failures={failures} ({duration:.1f}s)",
            orgs=stats.organizations,
            repos=stats.repositories,
            commits=stats.commits,
            prs=stats.pull_requests,
            issues=stats.issues,
            events=stats.issue_changelogs,
            users=stats.users,
            failures=len(stats.failures),
            duration=stats.duration_seconds,
        )
        return stats

    async def _run_with_pool(self, ctx: _RunContext) -> None:
        if self._worker_pool is not None:
            ctx.pool = self._worker_pool
            await self._sync_organizations(ctx)
            return

        sync_config = self._settings.sync
        async with WorkerPool(
            fetch_repo_job,
            size=sync_config.effective_pool_size,
            mode=sync_config.worker_mode,
        ) as pool:
            ctx.pool = pool
            await self._sync_organizations(ctx)

    async def _finalize(self, integration_id: int, stats: SyncStats) -> None:
        """Stamp last_synced_at, even when some stages failed."""
        # Reload: a rolled-back stage expires every instance in the session
        integration = await self._integrations.get_by_id(integration_id)
        if integration is None:
            raise IntegrationNotFoundError(integration_id)
        stats.complete()
        self._integrations.mark_synced(integration, stats.completed_at)
        await self._session.commit()

    # -------------------------------------------------------------------------
    # Stage Isolation
    # -------------------------------------------------------------------------
    async def _stage(
        self,
        ctx: _RunContext,
        stage: str,
        scope: str,
        work: Callable[[], Awaitable[T]],
        default: T,
    ) -> T:
        """Run one stage, turning any failure into a recorded zero contribution."""
        try:
            return await work()
        except Exception as e:
            ctx.log.exception(
                "Stage {stage} failed for {scope}: {error}",
                stage=stage,
                scope=scope,
                error=e,
            )
            ctx.stats.record_failure(stage, scope, e)
            return default

    async def _sync_kind(
        self,
        ctx: _RunContext,
        kind: EntityKind,
        scope: str,
        fetch: Callable[[], Awaitable[list[RawItem]]],
        normalizer: Callable[..., RecordBase],
        **context: Any,
    ) -> list[RecordBase]:
        """Fetch, normalize and bulk-write one kind in one scope.

        Returns:
            The records written, or [] when the stage failed
        """

        async def work() -> list[RecordBase]:
            raw = await fetch()
            records = normalize_many(raw, normalizer, integration_id=ctx.integration_id, **context)
            written = await self._writer.write(kind, records, scope)
            ctx.stats.add(kind, written)
            return records

        records = await self._stage(ctx, kind.collection, scope, work, [])
        await checkpoint()
        return records

    # -------------------------------------------------------------------------
    # Organization Scope
    # -------------------------------------------------------------------------
    async def _sync_organizations(self, ctx: _RunContext) -> None:
        raw_orgs = await self._stage(
            ctx, "organizations", "user", ctx.fetcher.list_organizations, []
        )
        records = normalize_many(
            raw_orgs, to_organization_record, integration_id=ctx.integration_id
        )
        ctx.log.info("Found {count} organizations", count=len(records))

        for record in records:
            scope = record.login or str(record.github_id)
            written = await self._stage(
                ctx,
                "organization",
                scope,
                lambda: self._writer.write_one(EntityKind.ORGANIZATIONS, record, scope),
                None,
            )
            if written is not None:
                ctx.stats.add(EntityKind.ORGANIZATIONS, 1)
            await checkpoint()

        orgs = EntityRepository(self._session, EntityKind.ORGANIZATIONS)
        for record in records:
            org = await orgs.find_one(github_id=record.github_id)
            if org is None:
                ctx.log.warning(
                    "Organization {github_id} not stored, skipping",
                    github_id=record.github_id,
                )
                continue
            ref = _OrgRef(id=org.id, login=org.login or str(org.github_id))
            await self._sync_organization(ctx, ref)

    async def _sync_organization(self, ctx: _RunContext, org: _OrgRef) -> None:
        log = bind_org(ctx.integration_id, org.login)
        log.info("Syncing organization")

        repos = await self._sync_repositories(ctx, org)
        log.info("Stored {count} repositories", count=len(repos))
        if ctx.pool is not None:
            await self._sync_repos_on_pool(ctx, ctx.pool, repos)
        else:
            for repo in repos:
                await self._sync_repository(ctx, repo)

        await self._sync_kind(
            ctx,
            EntityKind.USERS,
            org.login,
            lambda: ctx.fetcher.list_org_members(org.login),
            to_user_record,
            organization_id=org.id,
        )
        log.debug("Organization synced")

    async def _sync_repositories(self, ctx: _RunContext, org: _OrgRef) -> list[_RepoRef]:
        """Fetch and upsert an organization's repositories one at a time."""
        raw_repos = await self._stage(
            ctx,
            "repositories",
            org.login,
            lambda: ctx.fetcher.list_org_repos(org.login),
            [],
        )
        records = normalize_many(
            raw_repos,
            to_repository_record,
            integration_id=ctx.integration_id,
            organization_id=org.id,
        )

        repos: list[_RepoRef] = []
        for record in records:
            owner = (record.owner.login if record.owner else None) or org.login
            name = record.name or str(record.github_id)
            scope = f"{owner}/{name}"
            repo = await self._stage(
                ctx,
                "repository",
                scope,
                lambda: self._writer.write_one(EntityKind.REPOSITORIES, record, scope),
                None,
            )
            if repo is not None:
                ctx.stats.add(EntityKind.REPOSITORIES, 1)
                repos.append(_RepoRef(id=repo.id, owner=owner, name=name))
            await checkpoint()
        return repos

    # -------------------------------------------------------------------------
    # Repository Scope
    # -------------------------------------------------------------------------
    async def _sync_repository(
        self,
        ctx: _RunContext,
        repo: _RepoRef,
        bundle: RepoBundle | None = None,
    ) -> None:
        """Write commits, PRs, issues and issue events for one repository.

        Data comes from ``bundle`` when the worker pool already fetched it,
        otherwise it is fetched live, one kind after another.
        """
        fetcher = ctx.fetcher
        log = bind_repo(ctx.integration_id, repo.owner, repo.name)
        log.debug("Syncing repository")

        fetch_commits: Callable[[], Awaitable[list[RawItem]]]
        fetch_pulls: Callable[[], Awaitable[list[RawItem]]]
        fetch_issues: Callable[[], Awaitable[list[RawItem]]]
        fetch_events: Callable[[int], Awaitable[list[RawItem]]]

        if bundle is None:
            fetch_commits = partial(fetcher.list_repo_commits, repo.owner, repo.name)
            fetch_pulls = partial(fetcher.list_repo_pulls, repo.owner, repo.name)
            fetch_issues = partial(fetcher.list_repo_issues, repo.owner, repo.name)
            fetch_events = partial(fetcher.list_issue_events, repo.owner, repo.name)
        else:
            fetch_commits = partial(_ready, bundle.commits)
            fetch_pulls = partial(_ready, bundle.pull_requests)
            fetch_issues = partial(_ready, bundle.issues)
            fetch_events = partial(_bundle_events, bundle)

        scope = repo.full_name
        await self._sync_kind(
            ctx, EntityKind.COMMITS, scope, fetch_commits, to_commit_record, repository_id=repo.id
        )
        await self._sync_kind(
            ctx,
            EntityKind.PULL_REQUESTS,
            scope,
            fetch_pulls,
            to_pull_request_record,
            repository_id=repo.id,
        )
        issues = await self._sync_kind(
            ctx, EntityKind.ISSUES, scope, fetch_issues, to_issue_record, repository_id=repo.id
        )
        await self._sync_issue_events(ctx, repo, issues, fetch_events)

    async def _sync_issue_events(
        self,
        ctx: _RunContext,
        repo: _RepoRef,
        issues: Sequence[RecordBase],
        fetch_events: Callable[[int], Awaitable[list[RawItem]]],
    ) -> None:
        """Write the events of each issue, re-reading the stored issue first."""
        stored_issues = EntityRepository(self._session, EntityKind.ISSUES)

        for record in issues:
            number: int = record.number  # type: ignore[attr-defined]
            issue = await stored_issues.find_one(repository_id=repo.id, number=number)
            if issue is None:
                continue
            await self._sync_kind(
                ctx,
                EntityKind.ISSUE_CHANGELOGS,
                f"{repo.full_name}#{number}",
                lambda: fetch_events(number),
                to_issue_changelog_record,
                repository_id=repo.id,
                issue_id=issue.id,
            )

    async def _sync_repos_on_pool(
        self,
        ctx: _RunContext,
        pool: WorkerPool[RepoJobPayload, RepoBundle],
        repos: Sequence[_RepoRef],
    ) -> None:
        """Fetch every repository on the pool, then persist bundles in order."""
        github_config = self._settings.github
        payloads = [
            RepoJobPayload(
                access_token=ctx.access_token,
                owner=repo.owner,
                repo=repo.name,
                per_page=github_config.per_page,
                cooldown_seconds=github_config.rate_limit_cooldown_seconds,
            )
            for repo in repos
        ]
        outcomes = await asyncio.gather(
            *(pool.submit(payload) for payload in payloads),
            return_exceptions=True,
        )

        for repo, outcome in zip(repos, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                ctx.log.error(
                    "Fetch job failed for {repo}: {error}",
                    repo=repo.full_name,
                    error=outcome,
                )
                ctx.stats.record_failure("repository fetch", repo.full_name, outcome)
                continue
            await self._sync_repository(ctx, repo, outcome)
