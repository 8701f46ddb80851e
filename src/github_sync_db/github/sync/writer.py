"""Transactional write units used by the sync orchestrator."""

from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_db.db.entities import EntityKind
from github_sync_db.db.models import Base
from github_sync_db.db.repositories import EntityRepository
from github_sync_db.exceptions import UpsertWriteError
from github_sync_db.logging import get_logger
from github_sync_db.schemas.records import RecordBase

logger = get_logger(__name__)


class UpsertWriter:
    """Commit one upsert batch at a time.

    Each call is its own unit: it commits on success, and on a database
    error it rolls back only that unit and raises ``UpsertWriteError``.
    Batches committed earlier in the run are kept.

    Usage:
        writer = UpsertWriter(session)
        written = await writer.write(EntityKind.COMMITS, records, scope="octo-org/api")
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def write(
        self,
        kind: EntityKind,
        records: Sequence[RecordBase],
        scope: str,
    ) -> int:
        """Bulk upsert records of one kind and commit.

        Args:
            kind: Entity kind being written
            records: Normalized records (may be empty)
            scope: Parent scope used in errors and logs

        Returns:
            Number of records written (0 for an empty batch)

        Raises:
            UpsertWriteError: If the write failed; the unit is rolled back
        """
        if not records:
            return 0

        rows = [record.to_row() for record in records]
        try:
            written = await EntityRepository(self._session, kind).bulk_upsert(rows)
            await self._session.commit()
        except (SQLAlchemyError, ValueError) as e:
            await self._session.rollback()
            raise UpsertWriteError(kind.collection, scope, e) from e

        logger.debug(
            "Wrote {count} {kind} for {scope}",
            count=written,
            kind=kind.collection,
            scope=scope,
        )
        return written

    async def write_one(self, kind: EntityKind, record: RecordBase, scope: str) -> Base:
        """Upsert a single record, commit, and return the stored row."""
        try:
            entity = await EntityRepository(self._session, kind).upsert_one(record.to_row())
            await self._session.commit()
        except (SQLAlchemyError, ValueError, LookupError) as e:
            await self._session.rollback()
            raise UpsertWriteError(kind.collection, scope, e) from e
        return entity
