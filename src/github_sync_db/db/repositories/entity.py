"""Natural-key upsert repository shared by every synced entity kind."""

from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.dialects.sqlite import Insert, insert
from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_db.db.entities import EntityKind
from github_sync_db.db.models import Base

from .base import BaseRepository


class EntityRepository(BaseRepository[Base]):
    """Store handle for one ``EntityKind``.

    Writes are ``INSERT ... ON CONFLICT (natural key) DO UPDATE`` so a
    sync run converges on one row per natural key no matter how often it
    sees the same upstream object.

    On conflict:
    - natural key, parent foreign keys and ``created_at`` are left alone
    - every other column present in the incoming row is overwritten, an
      explicit ``None`` included
    - columns absent from the incoming row keep their stored value
    - ``updated_at`` is refreshed

    Usage:
        commits = EntityRepository(session, EntityKind.COMMITS)
        written = await commits.bulk_upsert(rows)
        await session.commit()
    """

    def __init__(self, session: AsyncSession, kind: EntityKind) -> None:
        super().__init__(session, kind.model)
        self._kind = kind

    @property
    def kind(self) -> EntityKind:
        return self._kind

    # -------------------------------------------------------------------------
    # Upserts
    # -------------------------------------------------------------------------

    def _upsert_statement(self, columns: Sequence[str]) -> Insert:
        """Build the upsert for rows carrying exactly ``columns``."""
        stmt = insert(self._model_class.__table__)
        updatable = set(self._kind.updatable_columns)

        set_: dict[str, Any] = {
            name: stmt.excluded[name] for name in columns if name in updatable
        }
        set_["updated_at"] = func.now()

        return stmt.on_conflict_do_update(
            index_elements=list(self._kind.natural_key),
            set_=set_,
        )

    async def bulk_upsert(self, rows: Sequence[Mapping[str, Any]]) -> int:
        """Upsert a batch of rows.

        Rows are grouped by the set of columns they carry and each group is
        sent as one executemany, so a column missing from a row is never
        mistaken for an explicit ``None``. Groups run in order of first
        appearance. Does not commit.

        Args:
            rows: Column-name mappings, each including the natural key

        Returns:
            Number of rows written

        Raises:
            ValueError: If a row is missing part of the natural key
        """
        if not rows:
            return 0

        groups: dict[tuple[str, ...], list[dict[str, Any]]] = {}
        for row in rows:
            for key in self._kind.natural_key:
                if row.get(key) is None:
                    raise ValueError(
                        f"{self._kind.label} row is missing natural key column '{key}'"
                    )
            groups.setdefault(tuple(sorted(row)), []).append(dict(row))

        conn = await self._session.connection()
        for columns, params in groups.items():
            await conn.execute(self._upsert_statement(columns), params)
        return len(rows)

    async def upsert_one(self, row: Mapping[str, Any]) -> Base:
        """Upsert a single row and return the stored entity.

        Does not commit.
        """
        await self.bulk_upsert([row])
        key = {name: row[name] for name in self._kind.natural_key}
        entity = await self.find_one(**key)
        if entity is None:  # pragma: no cover - the row was just written
            raise LookupError(f"{self._kind.label} {key} missing after upsert")
        return entity

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def find_one(self, **natural_key: Any) -> Base | None:
        """Re-read a row by its natural key.

        Args:
            **natural_key: Natural key columns, e.g. ``repository_id=1, number=7``

        Returns:
            Entity with freshly loaded attributes, or None
        """
        rows = await self.find(**natural_key)
        return rows[0] if rows else None

    async def find(self, **filters: Any) -> list[Base]:
        """Find rows matching equality filters, ordered by primary key."""
        model: Any = self._model_class
        stmt = select(model).order_by(model.id)
        for name, value in filters.items():
            stmt = stmt.where(getattr(self._model_class, name) == value)
        # Upserts bypass the identity map, so reload attributes of cached objects
        stmt = stmt.execution_options(populate_existing=True)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    # -------------------------------------------------------------------------
    # Integration Scope
    # -------------------------------------------------------------------------

    async def hand_off_shared(self, integration_id: int) -> int:
        """Reassign this integration's rows that another integration's rows point at.

        Natural keys are global, so a second integration syncing the same
        organization attaches its repositories, members, commits and issues
        to parent rows the first integration created. Each such parent moves
        to the lowest referencing integration instead of being deleted.
        Run once the integration's own children are gone. Does not commit.

        Returns:
            Number of rows handed off
        """
        table = self._model_class.__table__
        handed_off = 0
        for column in self._kind.referencing_columns:
            child = column.table
            heir = (
                select(func.min(child.c.integration_id))
                .where(column == table.c.id, child.c.integration_id != integration_id)
                .correlate(table)
                .scalar_subquery()
            )
            stmt = (
                update(table)
                .where(table.c.integration_id == integration_id, heir.is_not(None))
                .values(integration_id=heir)
            )
            result = await self._session.execute(stmt)
            handed_off += result.rowcount or 0  # type: ignore[attr-defined]
        return handed_off
