"""Tests for SyncOrchestrator.

Tests cover:
- Full hierarchy sync against a fake GitHub transport
- Idempotent re-runs and in-place updates
- Stage isolation (one failed stage does not stop the run)
- Worker pool strategy
"""

from functools import partial
from unittest.mock import AsyncMock, patch

import pytest
from loguru import logger

from github_sync_db.db.entities import EntityKind
from github_sync_db.db.repositories import EntityRepository
from github_sync_db.exceptions import IntegrationNotFoundError
from github_sync_db.github.exceptions import GitHubFetchError
from github_sync_db.github.fetchers import GitHubFetcher
from github_sync_db.github.sync import SyncOrchestrator, SyncStrategy, WorkerPool
from tests.factories import make_github_issue, make_github_repo, make_integration
from tests.fixtures.fake_github import FakeGitHubClient, client_factory_for, scenario_routes


@pytest.fixture
async def integration(db_session):
    integration = make_integration(db_session)
    await db_session.commit()
    return integration


@pytest.fixture
def routes():
    return scenario_routes()


@pytest.fixture
def fake_client(routes):
    return FakeGitHubClient(routes)


@pytest.fixture
def orchestrator(db_session, fake_client):
    return SyncOrchestrator(
        db_session,
        client_factory=client_factory_for(fake_client),
        strategy=SyncStrategy.SEQUENTIAL,
    )


async def stored_counts(session, integration_id: int) -> dict[str, int]:
    return {
        kind.collection: await EntityRepository(session, kind).count_by_integration(
            integration_id
        )
        for kind in EntityKind
    }


async def fake_repo_job(routes, payload):
    """Worker job fetching one repository from the fake transport."""
    fetcher = GitHubFetcher(FakeGitHubClient(routes), per_page=payload.per_page)
    return await fetcher.fetch_repo_bundle(payload.owner, payload.repo)


# -----------------------------------------------------------------------------
# Test: Full Sync
# -----------------------------------------------------------------------------
class TestRunSync:
    async def test_scenario_counts(self, db_session, orchestrator, integration):
        """One issue with two events yields issues == 1 and issue_changelogs == 2."""
        stats = await orchestrator.run_sync(integration.id)

        assert stats.success
        assert stats.organizations == 1
        assert stats.repositories == 1
        assert stats.commits == 1
        assert stats.pull_requests == 1
        assert stats.issues == 1
        assert stats.issue_changelogs == 2
        assert stats.users == 2
        assert await stored_counts(db_session, integration.id) == {
            "organizations": 1,
            "repositories": 1,
            "commits": 1,
            "pullrequests": 1,
            "issues": 1,
            "issuechangelogs": 2,
            "users": 2,
        }

    async def test_links_children_to_parents(self, db_session, orchestrator, integration):
        await orchestrator.run_sync(integration.id)

        org = (await EntityRepository(db_session, EntityKind.ORGANIZATIONS).find())[0]
        repo = (await EntityRepository(db_session, EntityKind.REPOSITORIES).find())[0]
        issue = (await EntityRepository(db_session, EntityKind.ISSUES).find())[0]
        events = await EntityRepository(db_session, EntityKind.ISSUE_CHANGELOGS).find()
        members = await EntityRepository(db_session, EntityKind.USERS).find()

        assert repo.organization_id == org.id
        assert issue.repository_id == repo.id
        assert {e.issue_id for e in events} == {issue.id}
        assert {m.organization_id for m in members} == {org.id}

    async def test_stamps_last_synced_at(self, db_session, orchestrator, integration):
        assert integration.last_synced_at is None

        stats = await orchestrator.run_sync(integration.id)

        await db_session.refresh(integration)
        assert integration.last_synced_at is not None
        assert stats.completed_at is not None

    async def test_yields_to_the_loop_after_every_write(self, orchestrator, integration):
        """Org, repository, commits, pulls, issues, one issue's events and members."""
        with patch(
            "github_sync_db.github.sync.orchestrator.checkpoint", new_callable=AsyncMock
        ) as mock_checkpoint:
            await orchestrator.run_sync(integration.id)

        assert mock_checkpoint.await_count == 7

    async def test_logs_organization_stage_with_org_context(self, orchestrator, integration):
        lines: list[str] = []
        sink_id = logger.add(
            lambda message: lines.append(str(message).rstrip("\n")),
            format="{extra[integration]} {extra[org]} | {message}",
            filter=lambda record: "org" in record["extra"] and "repo" not in record["extra"],
            level="DEBUG",
        )
        try:
            await orchestrator.run_sync(integration.id)
        finally:
            logger.remove(sink_id)

        assert f"{integration.id} octo-org | Syncing organization" in lines
        assert f"{integration.id} octo-org | Stored 1 repositories" in lines

    async def test_unknown_integration(self, orchestrator):
        with pytest.raises(IntegrationNotFoundError):
            await orchestrator.run_sync(9999)

    async def test_uses_integration_token(self, db_session, fake_client, integration):
        tokens: list[str] = []

        def factory(token: str) -> FakeGitHubClient:
            tokens.append(token)
            return fake_client

        await SyncOrchestrator(db_session, client_factory=factory).run_sync(integration.id)

        assert tokens == ["gho_test_token"]
        assert fake_client.closed


# -----------------------------------------------------------------------------
# Test: Idempotence
# -----------------------------------------------------------------------------
class TestIdempotence:
    async def test_second_run_converges(self, db_session, orchestrator, integration):
        await orchestrator.run_sync(integration.id)
        first = await stored_counts(db_session, integration.id)

        await orchestrator.run_sync(integration.id)
        second = await stored_counts(db_session, integration.id)

        assert second == first

    async def test_issue_updated_in_place(self, db_session, orchestrator, routes, integration):
        await orchestrator.run_sync(integration.id)
        issues = EntityRepository(db_session, EntityKind.ISSUES)
        before = (await issues.find())[0]
        before_id = before.id

        routes["/repos/octo-org/api/issues"] = [make_github_issue(number=1, state="closed")]
        await orchestrator.run_sync(integration.id)

        rows = await issues.find()
        assert len(rows) == 1
        assert rows[0].id == before_id
        assert rows[0].state == "closed"


# -----------------------------------------------------------------------------
# Test: Stage Isolation
# -----------------------------------------------------------------------------
class TestStageIsolation:
    async def test_failed_stage_is_recorded_and_skipped(
        self, db_session, orchestrator, routes, integration
    ):
        routes["/repos/octo-org/api/commits"] = GitHubFetchError("boom", status_code=500)

        stats = await orchestrator.run_sync(integration.id)

        assert not stats.success
        assert [(f.stage, f.scope) for f in stats.failures] == [("commits", "octo-org/api")]
        assert stats.failures[0].error_type == "GitHubFetchError"
        assert stats.commits == 0
        assert stats.issues == 1
        assert stats.issue_changelogs == 2
        assert stats.users == 2
        await db_session.refresh(integration)
        assert integration.last_synced_at is not None

    async def test_org_listing_failure_is_not_fatal(
        self, db_session, orchestrator, routes, integration
    ):
        routes["/user/orgs"] = GitHubFetchError("boom", status_code=502)

        stats = await orchestrator.run_sync(integration.id)

        assert stats.organizations == 0
        assert [f.stage for f in stats.failures] == ["organizations"]
        await db_session.refresh(integration)
        assert integration.last_synced_at is not None

    async def test_malformed_repo_is_skipped(self, orchestrator, routes, integration):
        routes["/orgs/octo-org/repos"] = [
            {"name": "no-id"},
            make_github_repo(name="api"),
        ]

        stats = await orchestrator.run_sync(integration.id)

        assert stats.repositories == 1
        assert stats.success

    async def test_missing_events_route_yields_no_events(self, orchestrator, routes, integration):
        del routes["/repos/octo-org/api/issues/1/events"]

        stats = await orchestrator.run_sync(integration.id)

        assert stats.issues == 1
        assert stats.issue_changelogs == 0


# -----------------------------------------------------------------------------
# Test: Worker Pool Strategy
# -----------------------------------------------------------------------------
class TestWorkerPoolStrategy:
    async def test_matches_sequential_counts(self, db_session, fake_client, routes, integration):
        async with WorkerPool(partial(fake_repo_job, routes), size=2) as pool:
            orchestrator = SyncOrchestrator(
                db_session,
                client_factory=client_factory_for(fake_client),
                strategy=SyncStrategy.WORKER_POOL,
                worker_pool=pool,
            )
            stats = await orchestrator.run_sync(integration.id)

        assert orchestrator.strategy is SyncStrategy.WORKER_POOL
        assert stats.success
        assert stats.issues == 1
        assert stats.issue_changelogs == 2
        counts = await stored_counts(db_session, integration.id)
        assert counts["commits"] == 1
        assert counts["issuechangelogs"] == 2

    async def test_failed_job_is_recorded(self, db_session, fake_client, routes, integration):
        routes["/repos/octo-org/api/pulls"] = GitHubFetchError("boom", status_code=500)

        async with WorkerPool(partial(fake_repo_job, routes), size=2) as pool:
            stats = await SyncOrchestrator(
                db_session,
                client_factory=client_factory_for(fake_client),
                strategy="worker_pool",
                worker_pool=pool,
            ).run_sync(integration.id)

        assert [(f.stage, f.scope) for f in stats.failures] == [
            ("repository fetch", "octo-org/api")
        ]
        assert stats.commits == 0
        assert stats.repositories == 1
        assert stats.users == 2
