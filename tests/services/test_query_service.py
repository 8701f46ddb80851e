"""Tests for CollectionQueryService."""

import asyncio
from datetime import datetime
from unittest.mock import patch

import pytest

from github_sync_db.config import QueryConfig, Settings
from github_sync_db.db.models import IntegrationStatus
from github_sync_db.exceptions import CollectionNotFoundError, QueryTimeoutError
from github_sync_db.schemas.query import SearchHit
from github_sync_db.services import CollectionQueryService
from github_sync_db.services.query import parse_filter_model, parse_sort_model
from tests.factories import make_commit, make_integration, make_issue, make_repository

USER = "583231"


@pytest.fixture
async def issues_scope(db_session):
    """Five issues for USER, one issue for another user."""
    mine = make_integration(db_session, user_id=USER)
    theirs = make_integration(db_session, user_id="7")
    await db_session.flush()
    repo = make_repository(db_session, integration_id=mine.id)
    other_repo = make_repository(db_session, integration_id=theirs.id, github_id=2, name="web")
    await db_session.flush()

    specs = [
        (1, "Crash on startup", "open", "octocat", datetime(2024, 1, 10)),
        (2, "Login button misaligned", "closed", "hubot", datetime(2024, 1, 11)),
        (3, "CRASH when saving", "open", "octocat", datetime(2024, 1, 12)),
        (4, "Docs typo", None, "monalisa", datetime(2024, 1, 13)),
        (5, "Slow search", "closed", "hubot", datetime(2024, 1, 14)),
    ]
    for number, title, state, login, created in specs:
        make_issue(
            db_session,
            integration_id=mine.id,
            repository_id=repo.id,
            number=number,
            title=title,
            state=state,
            user={"login": login, "id": number},
            github_created_at=created,
        )
    make_issue(
        db_session,
        integration_id=theirs.id,
        repository_id=other_repo.id,
        number=1,
        title="Crash in their repo",
    )
    make_commit(
        db_session, integration_id=mine.id, repository_id=repo.id, message="Fix crash on startup"
    )
    await db_session.commit()
    return mine


@pytest.fixture
def service(db_session):
    return CollectionQueryService(db_session, Settings(_env_file=None))


def numbers(page) -> list[int]:
    return [row["number"] for row in page.data]


# -----------------------------------------------------------------------------
# Test: Model Parsing
# -----------------------------------------------------------------------------
class TestParsing:
    def test_sort_model_from_json(self):
        items = parse_sort_model('[{"colId": "number", "sort": "desc"}]')
        assert [(i.col_id, i.sort) for i in items] == [("number", "desc")]

    def test_invalid_sort_json_is_ignored(self):
        assert parse_sort_model("[{not json") == []

    def test_invalid_sort_item_is_skipped(self):
        items = parse_sort_model([{"colId": "number", "sort": "sideways"}, {"colId": "title"}])
        assert [i.col_id for i in items] == ["title"]

    def test_filter_model_type_aliases(self):
        filters = parse_filter_model({"state": {"filterType": "equals", "filter": "open"}})
        assert filters["state"].operator == "equals"

    def test_invalid_filter_json_is_ignored(self):
        assert parse_filter_model("{oops") == {}


# -----------------------------------------------------------------------------
# Test: Schema
# -----------------------------------------------------------------------------
class TestSchema:
    def test_list_collections(self, service):
        assert service.list_collections() == [
            "organizations",
            "repositories",
            "commits",
            "pullrequests",
            "issues",
            "issuechangelogs",
            "users",
        ]

    def test_get_fields_types(self, service):
        fields = {f.field: f for f in service.get_fields("issues")}

        assert fields["number"].type == "Number"
        assert fields["title"].type == "String"
        assert fields["locked"].type == "Boolean"
        assert fields["github_created_at"].type == "Date"
        assert fields["labels"].type == "Mixed"
        assert fields["github_created_at"].header_name == "Github created at"

    def test_unknown_collection(self, service):
        with pytest.raises(CollectionNotFoundError):
            service.get_fields("gists")


# -----------------------------------------------------------------------------
# Test: Paginated Query
# -----------------------------------------------------------------------------
class TestQueryCollection:
    async def test_scoped_to_user(self, service, issues_scope):
        page = await service.query_collection("issues", user_id=USER)

        assert page.total == 5
        assert numbers(page) == [1, 2, 3, 4, 5]
        assert page.total_pages == 1
        assert "title" in page.fields

    async def test_pagination(self, service, issues_scope):
        page = await service.query_collection("issues", user_id=USER, page=3, page_size=2)

        assert numbers(page) == [5]
        assert page.total == 5
        assert page.total_pages == 3

    async def test_page_size_capped(self, service, issues_scope):
        page = await service.query_collection("issues", user_id=USER, page_size=5000)
        assert page.page_size == 1000

    async def test_wire_aliases(self, service, issues_scope):
        page = await service.query_collection("issues", user_id=USER, page_size=2)
        dumped = page.model_dump(by_alias=True)

        assert dumped["pageSize"] == 2
        assert dumped["totalPages"] == 3

    async def test_disconnected_integration_is_hidden(self, db_session, service, issues_scope):
        issues_scope.status = IntegrationStatus.DISCONNECTED
        await db_session.commit()

        page = await service.query_collection("issues", user_id=USER)

        assert page.total == 0
        assert page.data == []
        assert page.total_pages == 0

    async def test_requires_user(self, service):
        with pytest.raises(ValueError):
            await service.query_collection("issues", user_id="")

    async def test_unknown_collection(self, service):
        with pytest.raises(CollectionNotFoundError):
            await service.query_collection("gists", user_id=USER)

    async def test_sort_desc(self, service, issues_scope):
        page = await service.query_collection(
            "issues", user_id=USER, sort_model=[{"colId": "number", "sort": "desc"}]
        )
        assert numbers(page) == [5, 4, 3, 2, 1]

    async def test_sort_by_json_path(self, service, issues_scope):
        page = await service.query_collection(
            "issues", user_id=USER, sort_model='[{"colId": "user.login", "sort": "asc"}]'
        )
        assert numbers(page) == [2, 5, 4, 1, 3]

    async def test_unknown_sort_field_is_ignored(self, service, issues_scope):
        page = await service.query_collection(
            "issues", user_id=USER, sort_model=[{"colId": "nope", "sort": "desc"}]
        )
        assert numbers(page) == [1, 2, 3, 4, 5]

    async def test_search_is_case_insensitive(self, service, issues_scope):
        page = await service.query_collection("issues", user_id=USER, search="crash")
        assert numbers(page) == [1, 3]

    async def test_search_escapes_wildcards(self, service, issues_scope):
        page = await service.query_collection("issues", user_id=USER, search="%")
        assert page.total == 0


class TestFilters:
    async def _query(self, service, filter_model):
        return await service.query_collection("issues", user_id=USER, filter_model=filter_model)

    async def test_equals(self, service, issues_scope):
        page = await self._query(service, {"state": {"type": "equals", "filter": "open"}})
        assert numbers(page) == [1, 3]

    async def test_not_equal_includes_missing_values(self, service, issues_scope):
        page = await self._query(service, {"state": {"type": "notEqual", "filter": "open"}})
        assert numbers(page) == [2, 4, 5]

    async def test_contains(self, service, issues_scope):
        page = await self._query(service, {"title": {"filterType": "contains", "filter": "CRASH"}})
        assert numbers(page) == [1, 3]

    async def test_starts_and_ends_with(self, service, issues_scope):
        starts = await self._query(service, {"title": {"type": "startsWith", "filter": "slow"}})
        ends = await self._query(service, {"title": {"type": "endsWith", "filter": "TYPO"}})

        assert numbers(starts) == [5]
        assert numbers(ends) == [4]

    async def test_numeric_comparisons(self, service, issues_scope):
        less = await self._query(service, {"number": {"type": "lessThan", "filter": 3}})
        greater = await self._query(service, {"number": {"type": "greaterThan", "filter": 3}})
        in_range = await self._query(
            service, {"number": {"type": "inRange", "filter": 2, "filterTo": 4}}
        )

        assert numbers(less) == [1, 2]
        assert numbers(greater) == [4, 5]
        assert numbers(in_range) == [2, 3, 4]

    async def test_date_filter_from_iso_string(self, service, issues_scope):
        page = await self._query(
            service,
            {"github_created_at": {"type": "greaterThan", "filter": "2024-01-12T12:00:00"}},
        )
        assert numbers(page) == [4, 5]

    async def test_json_path_equals(self, service, issues_scope):
        page = await self._query(service, {"user.login": {"type": "equals", "filter": "hubot"}})
        assert numbers(page) == [2, 5]

    async def test_filter_without_type_is_equality(self, service, issues_scope):
        page = await self._query(service, {"state": {"filter": "closed"}})
        assert numbers(page) == [2, 5]

    async def test_unknown_field_is_ignored(self, service, issues_scope):
        page = await self._query(service, {"nope": {"type": "equals", "filter": 1}})
        assert page.total == 5

    async def test_filters_are_combined(self, service, issues_scope):
        page = await self._query(
            service,
            {
                "state": {"type": "equals", "filter": "closed"},
                "user.login": {"type": "equals", "filter": "hubot"},
                "number": {"type": "greaterThan", "filter": 2},
            },
        )
        assert numbers(page) == [5]


# -----------------------------------------------------------------------------
# Test: Timeouts
# -----------------------------------------------------------------------------
class TestTimeouts:
    async def test_query_timeout(self, db_session, issues_scope):
        settings = Settings(_env_file=None, query=QueryConfig(list_timeout_seconds=0.05))
        service = CollectionQueryService(db_session, settings)

        async def slow_fetch(*args, **kwargs):
            await asyncio.sleep(1)

        with patch.object(CollectionQueryService, "_fetch_page", side_effect=slow_fetch):
            with pytest.raises(QueryTimeoutError):
                await service.query_collection("issues", user_id=USER)


# -----------------------------------------------------------------------------
# Test: Global Search
# -----------------------------------------------------------------------------
class TestGlobalSearch:
    async def test_hits_per_collection(self, service, issues_scope):
        results = await service.global_search("crash", user_id=USER)

        assert set(results) == set(service.list_collections())
        assert results["issues"].count == 2
        assert results["commits"].count == 1
        assert results["organizations"] == SearchHit()

    async def test_limit_per_collection(self, db_session, issues_scope):
        settings = Settings(_env_file=None, query=QueryConfig(search_limit=1))
        service = CollectionQueryService(db_session, settings)

        results = await service.global_search("crash", user_id=USER)

        assert results["issues"].count == 1

    async def test_failing_collection_is_empty_hit(self, service, issues_scope):
        original = CollectionQueryService._search_collection

        async def flaky(self, kind, integration_ids, value):
            if kind.collection == "commits":
                raise RuntimeError("statement timeout")
            return await original(self, kind, integration_ids, value)

        with patch.object(CollectionQueryService, "_search_collection", flaky):
            results = await service.global_search("crash", user_id=USER)

        assert results["commits"] == SearchHit()
        assert results["issues"].count == 2

    async def test_no_integrations(self, service):
        assert await service.global_search("crash", user_id="nobody") == {}

    async def test_requires_value(self, service):
        with pytest.raises(ValueError):
            await service.global_search("", user_id=USER)
