"""Tests for IntegrationService lifecycle operations."""

from functools import partial

import pytest
from sqlalchemy.exc import SQLAlchemyError

from github_sync_db.db.entities import EntityKind
from github_sync_db.db.models import IntegrationStatus
from github_sync_db.db.repositories import EntityRepository, IntegrationRepository
from github_sync_db.exceptions import (
    IntegrationInactiveError,
    IntegrationNotFoundError,
    IntegrationTransactionError,
)
from github_sync_db.github.exceptions import OAuthExchangeError
from github_sync_db.github.oauth import OAuthToken
from github_sync_db.github.sync import SyncOrchestrator
from github_sync_db.services import IntegrationService
from tests.conftest import CONNECTED_AT
from tests.factories import (
    make_commit,
    make_github_profile,
    make_integration,
    make_issue,
    make_issue_changelog,
    make_organization,
    make_repository,
    make_user,
)
from tests.fixtures.fake_github import FakeGitHubClient, client_factory_for, scenario_routes


async def exchange_ok(code: str, settings) -> OAuthToken:
    return OAuthToken(access_token=f"gho_{code}", token_type="bearer", scope="repo,read:org")


async def exchange_rejected(code: str, settings) -> OAuthToken:
    raise OAuthExchangeError("Token exchange rejected: bad_verification_code")


@pytest.fixture
def fake_client():
    return FakeGitHubClient(scenario_routes(), profile=make_github_profile(id=583231))


@pytest.fixture
def service(db_session, fake_client):
    factory = client_factory_for(fake_client)
    return IntegrationService(
        db_session,
        client_factory=factory,
        token_exchanger=exchange_ok,
        orchestrator_factory=partial(SyncOrchestrator, client_factory=factory),
    )


@pytest.fixture
async def seeded(db_session):
    """Active integration owning one row in every collection."""
    integration = make_integration(db_session)
    await db_session.flush()
    org = make_organization(db_session, integration_id=integration.id)
    await db_session.flush()
    repo = make_repository(db_session, integration_id=integration.id, organization_id=org.id)
    await db_session.flush()
    issue = make_issue(db_session, integration_id=integration.id, repository_id=repo.id)
    make_commit(db_session, integration_id=integration.id, repository_id=repo.id)
    make_user(db_session, integration_id=integration.id, organization_id=org.id)
    await db_session.flush()
    make_issue_changelog(
        db_session, integration_id=integration.id, repository_id=repo.id, issue_id=issue.id
    )
    await db_session.commit()
    return integration


@pytest.fixture
async def sharing(db_session, seeded):
    """Second integration whose rows hang off the seeded organization, repo and issue."""
    org = await EntityRepository(db_session, EntityKind.ORGANIZATIONS).find_one(github_id=9919)
    repo = await EntityRepository(db_session, EntityKind.REPOSITORIES).find_one(
        github_id=1296269
    )
    issue = await EntityRepository(db_session, EntityKind.ISSUES).find_one(
        repository_id=repo.id, number=1
    )
    other = make_integration(db_session, user_id="7", access_token="gho_other")
    await db_session.flush()
    make_repository(
        db_session, integration_id=other.id, organization_id=org.id, github_id=999, name="web"
    )
    make_user(db_session, integration_id=other.id, organization_id=org.id, github_id=77)
    make_commit(db_session, integration_id=other.id, repository_id=repo.id, sha="b" * 40)
    make_issue(db_session, integration_id=other.id, repository_id=repo.id, number=2)
    make_issue_changelog(
        db_session,
        integration_id=other.id,
        repository_id=repo.id,
        issue_id=issue.id,
        github_event_id=2,
    )
    await db_session.commit()
    return other


# Rows the second integration sees once the seeded parents are handed over
SHARED_AFTER_CLEAR = {
    "organizations": 1,
    "repositories": 2,
    "commits": 1,
    "pullrequests": 0,
    "issues": 2,
    "issuechangelogs": 1,
    "users": 1,
}


async def child_counts(session, integration_id: int) -> dict[str, int]:
    return {
        kind.collection: await EntityRepository(session, kind).count_by_integration(
            integration_id
        )
        for kind in EntityKind
    }


# -----------------------------------------------------------------------------
# Test: Connect / Status
# -----------------------------------------------------------------------------
class TestConnect:
    async def test_connect_creates_integration(self, service):
        integration = await service.connect("abc")

        assert integration.user_id == "583231"
        assert integration.status == IntegrationStatus.ACTIVE
        assert integration.scope == "repo,read:org"
        assert integration.github_user == {
            "id": 583231,
            "login": "octocat",
            "name": "The Octocat",
            "email": "octocat@github.com",
            "avatar_url": "https://github.com/images/error/octocat_happy.gif",
            "html_url": "https://github.com/octocat",
        }

    async def test_read_model_has_no_tokens(self, service):
        integration = await service.connect("abc")

        dumped = integration.model_dump()
        assert "access_token" not in dumped
        assert "refresh_token" not in dumped

    async def test_reconnect_reuses_row(self, db_session, service):
        first = await service.connect("abc")
        await service.disconnect(first.id)

        second = await service.connect("def")

        assert second.id == first.id
        assert second.status == IntegrationStatus.ACTIVE
        stored = await IntegrationRepository(db_session).get_by_id(first.id)
        assert stored.access_token == "gho_def"

    async def test_rejected_code(self, db_session, fake_client):
        service = IntegrationService(
            db_session,
            client_factory=client_factory_for(fake_client),
            token_exchanger=exchange_rejected,
        )

        with pytest.raises(OAuthExchangeError):
            await service.connect("stale")

        assert await IntegrationRepository(db_session).count() == 0

    async def test_status(self, service):
        created = await service.connect("abc")

        status = await service.get_status("583231")

        assert status is not None
        assert status.id == created.id
        assert await service.get_status("someone-else") is None

    async def test_status_after_disconnect(self, service):
        created = await service.connect("abc")
        disconnected = await service.disconnect(created.id)

        assert disconnected.status == IntegrationStatus.DISCONNECTED
        assert await service.get_status("583231") is None


# -----------------------------------------------------------------------------
# Test: Details
# -----------------------------------------------------------------------------
class TestDetails:
    async def test_counts_per_collection(self, service, seeded):
        details = await service.get_details(seeded.id)

        assert details.integration.id == seeded.id
        assert details.data == {
            "organizations": 1,
            "repositories": 1,
            "commits": 1,
            "pullrequests": 0,
            "issues": 1,
            "issuechangelogs": 1,
            "users": 1,
        }
        assert details.total == 6

    async def test_not_found(self, service):
        with pytest.raises(IntegrationNotFoundError):
            await service.get_details(9999)


# -----------------------------------------------------------------------------
# Test: Remove
# -----------------------------------------------------------------------------
class TestRemove:
    async def test_remove_deletes_everything(self, db_session, service, seeded):
        integration_id = seeded.id

        result = await service.remove(integration_id)

        assert result.total == 6
        assert result.deleted["issuechangelogs"] == 1
        with pytest.raises(IntegrationNotFoundError):
            await service.get_details(integration_id)
        assert set((await child_counts(db_session, integration_id)).values()) == {0}

    async def test_remove_keeps_other_integrations(self, db_session, service, seeded):
        other = make_integration(db_session, user_id="7")
        await db_session.flush()
        make_organization(db_session, integration_id=other.id, github_id=1, login="other-org")
        await db_session.commit()

        await service.remove(seeded.id)

        assert (await child_counts(db_session, other.id))["organizations"] == 1

    async def test_remove_keeps_rows_under_shared_parents(
        self, db_session, service, seeded, sharing
    ):
        before = await child_counts(db_session, sharing.id)
        assert before["repositories"] == 1
        assert before["users"] == 1

        result = await service.remove(seeded.id)

        assert result.deleted["commits"] == 1
        assert result.deleted["users"] == 1
        assert result.deleted["organizations"] == 0
        assert await child_counts(db_session, sharing.id) == SHARED_AFTER_CLEAR
        assert set((await child_counts(db_session, seeded.id)).values()) == {0}

    async def test_remove_not_found(self, service):
        with pytest.raises(IntegrationNotFoundError):
            await service.remove(9999)

    async def test_failure_mid_remove_leaves_rows(self, db_session, service, seeded, monkeypatch):
        integration_id = seeded.id
        before = await child_counts(db_session, integration_id)
        original = EntityRepository.delete_by_integration
        calls = 0

        async def flaky_delete(self, target_id):
            nonlocal calls
            calls += 1
            if calls == 3:
                raise SQLAlchemyError("disk I/O error")
            return await original(self, target_id)

        monkeypatch.setattr(EntityRepository, "delete_by_integration", flaky_delete)

        with pytest.raises(IntegrationTransactionError):
            await service.remove(integration_id)

        monkeypatch.undo()
        assert await child_counts(db_session, integration_id) == before
        assert await IntegrationRepository(db_session).get_by_id(integration_id) is not None


# -----------------------------------------------------------------------------
# Test: Resync
# -----------------------------------------------------------------------------
class TestResync:
    async def test_resync_clears_and_syncs(self, db_session, service, seeded):
        integration_id = seeded.id

        result = await service.resync(integration_id)

        assert result.cleared["commits"] == 1
        assert result.sync is not None
        assert result.sync["issues"] == 1
        assert result.sync["issue_changelogs"] == 2

        integration = await IntegrationRepository(db_session).get_by_id(integration_id)
        await db_session.refresh(integration)
        assert integration.connected_at == CONNECTED_AT
        assert integration.last_synced_at is not None

        counts = await child_counts(db_session, integration_id)
        assert counts["commits"] == 1
        assert counts["users"] == 2
        assert counts["issuechangelogs"] == 2

    async def test_resync_without_sync(self, db_session, service, seeded):
        integration_id = seeded.id

        result = await service.resync(integration_id, run_sync=False)

        assert result.sync is None
        assert set((await child_counts(db_session, integration_id)).values()) == {0}
        integration = await IntegrationRepository(db_session).get_by_id(integration_id)
        await db_session.refresh(integration)
        assert integration.last_synced_at is None
        assert integration.connected_at == CONNECTED_AT

    async def test_resync_keeps_rows_under_shared_parents(
        self, db_session, service, seeded, sharing
    ):
        result = await service.resync(seeded.id, run_sync=False)

        assert result.cleared["issuechangelogs"] == 1
        assert result.cleared["repositories"] == 0
        assert await child_counts(db_session, sharing.id) == SHARED_AFTER_CLEAR
        assert set((await child_counts(db_session, seeded.id)).values()) == {0}

    async def test_resync_inactive(self, db_session, service):
        integration = make_integration(db_session, status=IntegrationStatus.DISCONNECTED)
        await db_session.commit()

        with pytest.raises(IntegrationInactiveError):
            await service.resync(integration.id)

    async def test_resync_not_found(self, service):
        with pytest.raises(IntegrationNotFoundError):
            await service.resync(9999)
