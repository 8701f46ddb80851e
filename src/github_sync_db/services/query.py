"""Read layer over the synced collections.

Every query is scoped to the requesting user's active integrations and
bounded by a time cap, so one slow collection cannot stall a caller.
"""

import asyncio
import json
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from pydantic import ValidationError
from sqlalchemy import JSON, Boolean, ColumnElement, DateTime, Integer, String, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from github_sync_db.config import Settings, get_settings
from github_sync_db.db.entities import EntityKind
from github_sync_db.db.models import Base
from github_sync_db.db.repositories import IntegrationRepository
from github_sync_db.exceptions import QueryTimeoutError
from github_sync_db.logging import get_logger
from github_sync_db.schemas.query import FieldDef, FilterCondition, Page, SearchHit, SortItem

logger = get_logger(__name__)

SortModel = str | Sequence[Mapping[str, Any]] | None
FilterModel = str | Mapping[str, Mapping[str, Any]] | None


# ------------------------------------------------------------------------------
# Model parsing
# ------------------------------------------------------------------------------
def _load_json(raw: Any, what: str) -> Any:
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Ignoring unparseable {what}: {error}", what=what, error=e)
        return None


def parse_sort_model(raw: SortModel) -> list[SortItem]:
    """Parse a sort model (JSON string or list); invalid input sorts nothing."""
    items = _load_json(raw, "sort model")
    if not isinstance(items, list):
        return []
    parsed: list[SortItem] = []
    for item in items:
        try:
            parsed.append(SortItem.model_validate(item))
        except ValidationError:
            logger.warning("Ignoring invalid sort item {item}", item=item)
    return parsed


def parse_filter_model(raw: FilterModel) -> dict[str, FilterCondition]:
    """Parse a filter model (JSON string or dict); invalid input filters nothing."""
    conditions = _load_json(raw, "filter model")
    if not isinstance(conditions, dict):
        return {}
    parsed: dict[str, FilterCondition] = {}
    for field_name, condition in conditions.items():
        try:
            parsed[field_name] = FilterCondition.model_validate(condition)
        except ValidationError:
            logger.warning("Ignoring invalid filter for {field}", field=field_name)
    return parsed


def column_type_name(column_type: Any) -> str:
    """Grid-facing type name of a column."""
    if isinstance(column_type, Boolean):
        return "Boolean"
    if isinstance(column_type, DateTime):
        return "Date"
    if isinstance(column_type, Integer):
        return "Number"
    if isinstance(column_type, String):
        return "String"
    if isinstance(column_type, JSON):
        return "Mixed"
    return type(column_type).__name__


def row_to_dict(row: Base) -> dict[str, Any]:
    """Plain column mapping of an ORM row."""
    return {column.key: getattr(row, column.key) for column in row.__table__.columns}


# ------------------------------------------------------------------------------
# Service
# ------------------------------------------------------------------------------
class CollectionQueryService:
    """Paginated, filtered and searchable reads over synced collections.

    Usage:
        async with get_session() as session:
            service = CollectionQueryService(session)
            page = await service.query_collection(
                "issues",
                user_id="583231",
                filter_model={"state": {"type": "equals", "filter": "open"}},
            )
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self._session = session
        self._config = (settings or get_settings()).query
        self._integrations = IntegrationRepository(session)

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------
    def list_collections(self) -> list[str]:
        return EntityKind.collections()

    def get_fields(self, collection: str) -> list[FieldDef]:
        """Column definitions of a collection.

        Raises:
            CollectionNotFoundError: If the collection does not exist
        """
        kind = EntityKind.from_collection(collection)
        return [FieldDef.for_column(c.name, column_type_name(c.type)) for c in kind.columns]

    # -------------------------------------------------------------------------
    # Paginated Query
    # -------------------------------------------------------------------------
    async def query_collection(
        self,
        collection: str,
        *,
        user_id: str,
        page: int = 1,
        page_size: int | None = None,
        sort_model: SortModel = None,
        filter_model: FilterModel = None,
        search: str | None = None,
    ) -> Page:
        """Fetch one page of a collection for a user.

        Args:
            collection: Collection name (see ``list_collections``)
            user_id: Owner of the integrations to read from
            page: 1-based page number
            page_size: Rows per page, capped at ``query.max_page_size``
            sort_model: ``[{"colId": ..., "sort": "asc"|"desc"}]``
            filter_model: ``{field: {"type"|"filterType": ..., "filter": ..., "filterTo": ...}}``
            search: Case-insensitive substring matched against string columns

        Returns:
            Page of rows plus total counts and the collection's field names

        Raises:
            CollectionNotFoundError: If the collection does not exist
            QueryTimeoutError: If the query exceeds ``query.list_timeout_seconds``
            ValueError: If user_id is empty
        """
        kind = EntityKind.from_collection(collection)
        if not user_id:
            raise ValueError("user_id is required")

        page = max(page, 1)
        page_size = min(
            max(page_size or self._config.default_page_size, 1),
            self._config.max_page_size,
        )
        fields = kind.field_names()

        integration_ids = await self._integrations.list_active_ids_for_user(user_id)
        if not integration_ids:
            return Page(
                data=[], total=0, page=page, page_size=page_size, total_pages=0, fields=fields
            )

        conditions = [kind.model.integration_id.in_(integration_ids)]  # type: ignore[attr-defined]
        conditions.extend(self._filter_conditions(kind, parse_filter_model(filter_model)))
        if search:
            search_condition = self._search_condition(kind, search)
            if search_condition is not None:
                conditions.append(search_condition)
        order_by = self._order_by(kind, parse_sort_model(sort_model))

        try:
            data, total = await asyncio.wait_for(
                self._fetch_page(kind, conditions, order_by, page, page_size),
                timeout=self._config.list_timeout_seconds,
            )
        except TimeoutError as e:
            raise QueryTimeoutError(
                f"Query on '{collection}' exceeded {self._config.list_timeout_seconds}s"
            ) from e

        return Page(
            data=data,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=-(-total // page_size),
            fields=fields,
        )

    async def _fetch_page(
        self,
        kind: EntityKind,
        conditions: Sequence[ColumnElement[bool]],
        order_by: Sequence[Any],
        page: int,
        page_size: int,
    ) -> tuple[list[dict[str, Any]], int]:
        model = kind.model
        stmt = (
            select(model)
            .where(*conditions)
            .order_by(*order_by)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        count_stmt = select(func.count()).select_from(model).where(*conditions)

        rows = (await self._session.execute(stmt)).scalars().all()
        total = (await self._session.execute(count_stmt)).scalar() or 0
        return [row_to_dict(row) for row in rows], total

    # -------------------------------------------------------------------------
    # Global Search
    # -------------------------------------------------------------------------
    async def global_search(self, search_value: str, *, user_id: str) -> dict[str, SearchHit]:
        """Search every collection for a value.

        Each collection is capped at ``query.search_limit`` rows and
        ``query.search_timeout_seconds``. A collection that fails or times
        out is reported as an empty hit instead of failing the search.

        Raises:
            ValueError: If search_value or user_id is empty
        """
        if not search_value:
            raise ValueError("search_value is required")
        if not user_id:
            raise ValueError("user_id is required")

        integration_ids = await self._integrations.list_active_ids_for_user(user_id)
        if not integration_ids:
            return {}

        results: dict[str, SearchHit] = {}
        # One session runs one statement at a time, so collections go in turn
        for kind in EntityKind:
            try:
                rows = await asyncio.wait_for(
                    self._search_collection(kind, integration_ids, search_value),
                    timeout=self._config.search_timeout_seconds,
                )
            except Exception as e:
                logger.warning(
                    "Search in {collection} failed: {error}",
                    collection=kind.collection,
                    error=e,
                )
                results[kind.collection] = SearchHit()
                continue
            results[kind.collection] = SearchHit(count=len(rows), data=rows)
        return results

    async def _search_collection(
        self,
        kind: EntityKind,
        integration_ids: Sequence[int],
        search_value: str,
    ) -> list[dict[str, Any]]:
        search_condition = self._search_condition(kind, search_value)
        if search_condition is None:
            return []
        model: Any = kind.model
        stmt = (
            select(model)
            .where(model.integration_id.in_(integration_ids), search_condition)
            .order_by(model.id)
            .limit(self._config.search_limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [row_to_dict(row) for row in rows]

    # -------------------------------------------------------------------------
    # Expression Builders
    # -------------------------------------------------------------------------
    def _search_condition(self, kind: EntityKind, value: str) -> ColumnElement[bool] | None:
        """Case-insensitive OR across the kind's top-level string columns."""
        table = kind.model.__table__
        needle = value.lower()
        clauses = [
            func.lower(table.c[name]).contains(needle, autoescape=True)
            for name in kind.searchable_fields()
        ]
        return or_(*clauses) if clauses else None

    def _resolve(self, kind: EntityKind, path: str, sample: Any = None) -> Any | None:
        """Column expression for a field name or a one-level ``column.key`` path."""
        table = kind.model.__table__
        if "." not in path:
            return table.c.get(path)

        name, key = path.split(".", 1)
        column = table.c.get(name)
        if column is None or not isinstance(column.type, JSON) or "." in key:
            return None
        element = column[key]
        if isinstance(sample, bool):
            return element.as_boolean()
        if isinstance(sample, int):
            return element.as_integer()
        if isinstance(sample, float):
            return element.as_float()
        return element.as_string()

    def _coerce(self, expr: Any, value: Any) -> Any:
        """Turn ISO strings into datetimes when compared with DateTime columns."""
        if isinstance(value, str) and isinstance(getattr(expr, "type", None), DateTime):
            try:
                return datetime.fromisoformat(value)
            except ValueError:
                return value
        return value

    def _filter_conditions(
        self,
        kind: EntityKind,
        filters: Mapping[str, FilterCondition],
    ) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []
        for field_name, condition in filters.items():
            expr = self._resolve(kind, field_name, condition.filter)
            if expr is None:
                logger.warning(
                    "Ignoring filter on unknown field {field} in {collection}",
                    field=field_name,
                    collection=kind.collection,
                )
                continue
            clause = self._filter_clause(expr, condition)
            if clause is not None:
                conditions.append(clause)
        return conditions

    def _filter_clause(self, expr: Any, condition: FilterCondition) -> ColumnElement[bool] | None:
        value = self._coerce(expr, condition.filter)
        operator = condition.operator

        if operator in ("text", "contains"):
            return func.lower(expr).contains(str(value).lower(), autoescape=True)
        if operator == "equals":
            return expr == value
        if operator == "notEqual":
            # Rows without a value count as "not equal"
            return or_(expr != value, expr.is_(None))
        if operator == "startsWith":
            return func.lower(expr).startswith(str(value).lower(), autoescape=True)
        if operator == "endsWith":
            return func.lower(expr).endswith(str(value).lower(), autoescape=True)
        if operator == "lessThan":
            return expr < value
        if operator == "greaterThan":
            return expr > value
        if operator == "inRange":
            return expr.between(value, self._coerce(expr, condition.filter_to))
        if condition.has_value:
            return expr == value
        return None

    def _order_by(self, kind: EntityKind, sort_items: Sequence[SortItem]) -> list[Any]:
        order_by: list[Any] = []
        for item in sort_items:
            expr = self._resolve(kind, item.col_id)
            if expr is None:
                logger.warning(
                    "Ignoring sort on unknown field {field} in {collection}",
                    field=item.col_id,
                    collection=kind.collection,
                )
                continue
            order_by.append(expr.desc() if item.sort == "desc" else expr.asc())
        # Stable paging across equal sort keys
        order_by.append(kind.model.id.asc())  # type: ignore[attr-defined]
        return order_by
