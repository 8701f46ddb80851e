"""Shared async repository base.

Every stored row except ``Integration`` itself hangs off an integration, so
the base carries the integration-scoped count and delete used by the
lifecycle service alongside plain primary-key access.
"""

from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_db.db.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Session-bound access to one table.

    Usage:
        class IntegrationRepository(BaseRepository[Integration]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(session, Integration)

    The caller owns the session lifecycle (commit/rollback).
    """

    def __init__(self, session: AsyncSession, model_class: type[ModelT]) -> None:
        self._session = session
        self._model_class = model_class

    async def get_by_id(self, id: int) -> ModelT | None:
        return await self._session.get(self._model_class, id)

    def add(self, entity: ModelT) -> ModelT:
        """Stage a new row (flushed by the caller)."""
        self._session.add(entity)
        return entity

    async def flush(self) -> None:
        await self._session.flush()

    async def delete(self, entity: ModelT) -> None:
        await self._session.delete(entity)

    async def count(self) -> int:
        stmt = select(func.count()).select_from(self._model_class)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    # -------------------------------------------------------------------------
    # Integration Scope
    # -------------------------------------------------------------------------

    async def count_by_integration(self, integration_ids: int | Sequence[int]) -> int:
        """Count rows owned by one or more integrations."""
        ids = [integration_ids] if isinstance(integration_ids, int) else list(integration_ids)
        if not ids:
            return 0
        model: Any = self._model_class
        stmt = select(func.count()).select_from(model).where(model.integration_id.in_(ids))
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def delete_by_integration(self, integration_id: int) -> int:
        """Delete every row owned by an integration.

        Does not commit; callers run this inside their own transaction.

        Returns:
            Number of rows deleted
        """
        model: Any = self._model_class
        stmt = delete(model).where(model.integration_id == integration_id)
        result = await self._session.execute(stmt)
        return result.rowcount or 0  # type: ignore[attr-defined]
