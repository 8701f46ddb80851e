"""Pydantic schemas for integration lifecycle results."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from github_sync_db.db.models import IntegrationStatus

from .base import SchemaBase


class IntegrationRead(SchemaBase):
    """Integration as exposed to callers. Tokens are never included."""

    id: int
    user_id: str
    provider: str
    status: IntegrationStatus
    scope: str | None = None
    connected_at: datetime | None = None
    last_synced_at: datetime | None = None
    github_user: dict[str, Any] | None = None


class IntegrationDetails(BaseModel):
    """Integration plus the number of synced rows per collection."""

    integration: IntegrationRead
    data: dict[str, int] = Field(description="Row count per collection")
    total: int


class RemovalResult(BaseModel):
    """Rows deleted when an integration is removed."""

    integration_id: int
    deleted: dict[str, int] = Field(description="Deleted row count per collection")

    @property
    def total(self) -> int:
        return sum(self.deleted.values())


class ResyncResult(BaseModel):
    """Outcome of clearing an integration's data and syncing it again."""

    integration_id: int
    cleared: dict[str, int] = Field(description="Cleared row count per collection")
    sync: dict[str, Any] | None = Field(
        default=None,
        description="SyncStats.to_dict() of the follow-up sync, if one ran",
    )
