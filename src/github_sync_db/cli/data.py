"""Read commands over synced collections."""

from typing import Annotated, Any

import typer
from rich.table import Table

from github_sync_db.cli.common import (
    OutputFormatOption,
    UserOption,
    console,
    print_json,
    run_async_command,
)
from github_sync_db.db import EntityKind, get_session
from github_sync_db.github.sync.enums import OutputFormat
from github_sync_db.schemas.query import Page, SearchHit
from github_sync_db.services import CollectionQueryService

app = typer.Typer(help="Browse and search synced data")

CollectionArgument = Annotated[str, typer.Argument(help="Collection name, e.g. issues")]

# Columns shown in text mode when --columns is not given
DEFAULT_TEXT_COLUMNS = 6


def _cell(value: Any, width: int = 40) -> str:
    text = "" if value is None else str(value)
    return text if len(text) <= width else text[: width - 3] + "..."


def _rows_table(title: str, rows: list[dict[str, Any]], columns: list[str]) -> Table:
    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*(_cell(row.get(column)) for column in columns))
    return table


@app.command("collections")
def collections() -> None:
    """List the queryable collections."""
    for name in EntityKind.collections():
        console.print(name)


@app.command("fields")
def fields(
    collection: CollectionArgument,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """List the fields of a collection."""

    async def _fields() -> list[dict[str, str]]:
        async with get_session() as session:
            defs = CollectionQueryService(session).get_fields(collection)
            return [d.model_dump(by_alias=True) for d in defs]

    field_defs = run_async_command(_fields())

    if output_format == OutputFormat.JSON:
        print_json({"fields": field_defs})
        return
    table = Table(title=f"Fields of {collection}")
    table.add_column("Field", style="cyan")
    table.add_column("Type")
    table.add_column("Header")
    for field_def in field_defs:
        table.add_row(field_def["field"], field_def["type"], field_def["headerName"])
    console.print(table)


@app.command("query")
def query(
    collection: CollectionArgument,
    user: UserOption,
    page: int = typer.Option(1, "--page", "-p", min=1, help="Page number (1-based)"),
    page_size: int = typer.Option(100, "--page-size", min=1, help="Rows per page (max 1000)"),
    sort: str | None = typer.Option(
        None, "--sort", help='Sort model JSON, e.g. \'[{"colId": "number", "sort": "desc"}]\''
    ),
    filter_: str | None = typer.Option(
        None,
        "--filter",
        help='Filter model JSON, e.g. \'{"state": {"type": "equals", "filter": "open"}}\'',
    ),
    search: str | None = typer.Option(None, "--search", "-s", help="Free-text search"),
    columns: str | None = typer.Option(
        None, "--columns", "-c", help="Comma-separated columns for text output"
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Query one page of a collection.

    Examples:
        ghsync data query issues --user 583231 --search crash
        ghsync data query commits --user 583231 --page-size 20 --format json
    """

    async def _query() -> Page:
        async with get_session() as session:
            return await CollectionQueryService(session).query_collection(
                collection,
                user_id=user,
                page=page,
                page_size=page_size,
                sort_model=sort,
                filter_model=filter_,
                search=search,
            )

    result = run_async_command(_query(), error_prefix="Query failed")

    if output_format == OutputFormat.JSON:
        print_json(result.model_dump(mode="json", by_alias=True))
        return

    shown = (
        [c.strip() for c in columns.split(",") if c.strip()]
        if columns
        else result.fields[:DEFAULT_TEXT_COLUMNS]
    )
    console.print(_rows_table(collection, result.data, shown))
    console.print(
        f"Page {result.page}/{max(result.total_pages, 1)} "
        f"({result.total} rows, {result.page_size} per page)"
    )


@app.command("search")
def search(
    value: Annotated[str, typer.Argument(help="Text to search for")],
    user: UserOption,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Search every collection at once."""

    async def _search() -> dict[str, SearchHit]:
        async with get_session() as session:
            return await CollectionQueryService(session).global_search(value, user_id=user)

    results = run_async_command(_search(), error_prefix="Search failed")

    if output_format == OutputFormat.JSON:
        print_json({name: hit.model_dump(mode="json") for name, hit in results.items()})
        return
    if not results:
        console.print(f"No active integrations for user {user}")
        return
    table = Table(title=f"Matches for '{value}'")
    table.add_column("Collection", style="cyan")
    table.add_column("Matches", justify="right")
    for name, hit in results.items():
        table.add_row(name, str(hit.count))
    console.print(table)
