"""Repository for Integration model CRUD operations."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_db.db.models import Integration, IntegrationStatus

from .base import BaseRepository

GITHUB_PROVIDER = "github"


class IntegrationRepository(BaseRepository[Integration]):
    """Credential store for GitHub integrations.

    One integration exists per (user_id, provider). Reconnecting through
    OAuth updates the existing row instead of creating a second one.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Integration)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def get_by_user_and_provider(
        self,
        user_id: str,
        provider: str = GITHUB_PROVIDER,
    ) -> Integration | None:
        """Get the integration for a user and provider, if any."""
        stmt = select(Integration).where(
            Integration.user_id == user_id,
            Integration.provider == provider,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active_for_user(
        self,
        user_id: str,
        provider: str = GITHUB_PROVIDER,
    ) -> Integration | None:
        """Get the user's integration only if it is active."""
        integration = await self.get_by_user_and_provider(user_id, provider)
        if integration is None or integration.status != IntegrationStatus.ACTIVE:
            return None
        return integration

    async def list_active_ids_for_user(self, user_id: str) -> list[int]:
        """IDs of every active integration owned by a user."""
        stmt = select(Integration.id).where(
            Integration.user_id == user_id,
            Integration.status == IntegrationStatus.ACTIVE,
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    # -------------------------------------------------------------------------
    # Write Methods
    # -------------------------------------------------------------------------

    async def upsert_from_oauth(
        self,
        *,
        user_id: str,
        access_token: str,
        token_type: str | None = None,
        scope: str | None = None,
        refresh_token: str | None = None,
        github_user: dict[str, Any] | None = None,
        provider: str = GITHUB_PROVIDER,
    ) -> tuple[Integration, bool]:
        """Create or refresh an integration after a successful OAuth callback.

        ``connected_at`` is set on creation and preserved on reconnect.
        The status is (re)set to active either way.

        Args:
            user_id: GitHub user ID of the connecting user
            access_token: OAuth access token
            token_type: Token type reported by GitHub (usually "bearer")
            scope: Granted scopes
            refresh_token: Refresh token, when the OAuth app issues one
            github_user: Profile snapshot {id, login, name, email, avatar_url, html_url}
            provider: Integration provider

        Returns:
            Tuple of (integration, created) where created is True if new
        """
        integration = await self.get_by_user_and_provider(user_id, provider)
        created = integration is None

        if integration is None:
            integration = Integration(
                user_id=user_id,
                provider=provider,
                access_token=access_token,
                connected_at=datetime.now(UTC),
            )
            self.add(integration)

        integration.access_token = access_token
        integration.token_type = token_type
        integration.scope = scope
        integration.refresh_token = refresh_token
        integration.github_user = github_user
        integration.status = IntegrationStatus.ACTIVE

        await self.flush()
        return integration, created

    def mark_synced(self, integration: Integration, at: datetime | None = None) -> None:
        """Record the completion time of a full sync pass (does not flush)."""
        integration.last_synced_at = at or datetime.now(UTC)

    def mark_disconnected(self, integration: Integration) -> None:
        """Flag an integration as disconnected (does not flush)."""
        integration.status = IntegrationStatus.DISCONNECTED
