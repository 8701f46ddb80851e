"""Integration lifecycle: connect, inspect, remove and resync."""

from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_db.config import Settings, get_settings
from github_sync_db.db.entities import EntityKind
from github_sync_db.db.models import Integration, IntegrationStatus
from github_sync_db.db.repositories import EntityRepository, IntegrationRepository
from github_sync_db.exceptions import (
    IntegrationInactiveError,
    IntegrationNotFoundError,
    IntegrationTransactionError,
)
from github_sync_db.github.client import GitHubClient
from github_sync_db.github.oauth import OAuthToken, exchange_code_for_token
from github_sync_db.github.sync import SyncOrchestrator
from github_sync_db.logging import bind_integration, get_logger
from github_sync_db.schemas.integration import (
    IntegrationDetails,
    IntegrationRead,
    RemovalResult,
    ResyncResult,
)

logger = get_logger(__name__)

# Profile fields kept on the integration as a snapshot of the connecting user
GITHUB_USER_FIELDS = ("id", "login", "name", "email", "avatar_url", "html_url")

TokenExchanger = Callable[[str, Settings], Awaitable[OAuthToken]]
OrchestratorFactory = Callable[[AsyncSession], SyncOrchestrator]
ClientFactory = Callable[[str], GitHubClient]


class IntegrationService:
    """Manages GitHub integrations and the data synced under them.

    Remove and resync run their deletes in a single transaction: either
    every child collection is cleared or nothing is.

    Usage:
        async with get_session() as session:
            service = IntegrationService(session)
            integration = await service.connect(code)
            details = await service.get_details(integration.id)
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        settings: Settings | None = None,
        orchestrator_factory: OrchestratorFactory = SyncOrchestrator,
        client_factory: ClientFactory = GitHubClient,
        token_exchanger: TokenExchanger = exchange_code_for_token,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._orchestrator_factory = orchestrator_factory
        self._client_factory = client_factory
        self._token_exchanger = token_exchanger
        self._integrations = IntegrationRepository(session)

    # -------------------------------------------------------------------------
    # Connect / Status
    # -------------------------------------------------------------------------
    async def connect(self, code: str) -> IntegrationRead:
        """Complete the OAuth flow and store the integration.

        Reconnecting the same GitHub user refreshes the tokens of the
        existing integration and reactivates it.

        Raises:
            OAuthExchangeError: If the code cannot be exchanged
            GitHubClientError: If the user profile cannot be fetched
        """
        token = await self._token_exchanger(code, self._settings)

        async with self._client_factory(token.access_token) as client:
            profile = await client.get_authenticated_user()

        github_user = {key: profile.get(key) for key in GITHUB_USER_FIELDS}
        integration, created = await self._integrations.upsert_from_oauth(
            user_id=str(profile["id"]),
            access_token=token.access_token,
            token_type=token.token_type,
            scope=token.scope,
            refresh_token=token.refresh_token,
            github_user=github_user,
        )
        await self._session.commit()

        logger.info(
            "{action} integration {id} for {login}",
            action="Created" if created else "Reconnected",
            id=integration.id,
            login=github_user.get("login"),
        )
        return IntegrationRead.from_row(integration)

    async def get_status(self, user_id: str) -> IntegrationRead | None:
        """The user's active integration, if any."""
        integration = await self._integrations.get_active_for_user(user_id)
        return IntegrationRead.from_row(integration) if integration else None

    async def disconnect(self, integration_id: int) -> IntegrationRead:
        """Mark an integration disconnected, keeping its data."""
        integration = await self._require(integration_id)
        self._integrations.mark_disconnected(integration)
        await self._session.commit()
        return IntegrationRead.from_row(integration)

    async def get_details(self, integration_id: int) -> IntegrationDetails:
        """Integration (without tokens) plus row counts per collection.

        Raises:
            IntegrationNotFoundError: If the integration does not exist
        """
        integration = await self._require(integration_id)

        data: dict[str, int] = {}
        for kind in EntityKind:
            data[kind.collection] = await EntityRepository(
                self._session, kind
            ).count_by_integration(integration_id)

        return IntegrationDetails(
            integration=IntegrationRead.from_row(integration),
            data=data,
            total=sum(data.values()),
        )

    # -------------------------------------------------------------------------
    # Remove / Resync
    # -------------------------------------------------------------------------
    async def remove(self, integration_id: int) -> RemovalResult:
        """Delete an integration and everything synced under it.

        Raises:
            IntegrationNotFoundError: If the integration does not exist
            IntegrationTransactionError: If the delete failed; nothing was removed
        """
        integration = await self._require(integration_id)
        log = bind_integration(integration_id)

        try:
            deleted = await self._delete_children(integration_id)
            await self._integrations.delete(integration)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            log.error("Remove rolled back: {error}", error=e)
            raise IntegrationTransactionError(
                f"Failed to remove integration {integration_id}: {e}"
            ) from e

        log.info("Removed integration ({total} rows)", total=sum(deleted.values()))
        return RemovalResult(integration_id=integration_id, deleted=deleted)

    async def resync(self, integration_id: int, *, run_sync: bool = True) -> ResyncResult:
        """Clear all synced data of an active integration, then sync again.

        The integration row and its ``connected_at`` are kept. When
        ``run_sync`` is set the follow-up sync stamps ``last_synced_at``.

        Raises:
            IntegrationNotFoundError: If the integration does not exist
            IntegrationInactiveError: If the integration is not active
            IntegrationTransactionError: If clearing failed; nothing was removed
        """
        integration = await self._require(integration_id)
        if integration.status != IntegrationStatus.ACTIVE:
            raise IntegrationInactiveError(integration_id, integration.status.value)
        log = bind_integration(integration_id)

        try:
            cleared = await self._delete_children(integration_id)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            log.error("Resync clear rolled back: {error}", error=e)
            raise IntegrationTransactionError(
                f"Failed to clear integration {integration_id}: {e}"
            ) from e

        log.info("Cleared {total} rows for resync", total=sum(cleared.values()))

        sync: dict[str, Any] | None = None
        if run_sync:
            stats = await self._orchestrator_factory(self._session).run_sync(integration_id)
            sync = stats.to_dict()

        return ResyncResult(integration_id=integration_id, cleared=cleared, sync=sync)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    async def _require(self, integration_id: int) -> Integration:
        integration = await self._integrations.get_by_id(integration_id)
        if integration is None:
            raise IntegrationNotFoundError(integration_id)
        return integration

    async def _delete_children(self, integration_id: int) -> dict[str, int]:
        """Delete every child collection, children before parents (no commit).

        Parent rows still referenced by another integration's rows are
        handed off to that integration and left out of the counts.
        """
        deleted: dict[str, int] = {}
        for kind in EntityKind.deletion_order():
            entities = EntityRepository(self._session, kind)
            handed_off = await entities.hand_off_shared(integration_id)
            if handed_off:
                bind_integration(integration_id).info(
                    "Handed off {count} shared {kind}",
                    count=handed_off,
                    kind=kind.collection,
                )
            deleted[kind.collection] = await entities.delete_by_integration(integration_id)
        return deleted
