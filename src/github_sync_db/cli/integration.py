"""Integration management commands: show, remove, resync."""

import typer
from rich.table import Table

from github_sync_db.cli.common import (
    IntegrationIdArgument,
    OutputFormatOption,
    YesOption,
    console,
    print_json,
    run_async_command,
)
from github_sync_db.db import get_session
from github_sync_db.github.sync.enums import OutputFormat
from github_sync_db.schemas.integration import IntegrationDetails, RemovalResult, ResyncResult
from github_sync_db.services import IntegrationService

app = typer.Typer(help="Manage GitHub integrations")


def _counts_table(title: str, counts: dict[str, int]) -> Table:
    table = Table(title=title)
    table.add_column("Collection", style="cyan")
    table.add_column("Rows", justify="right")
    for collection, count in counts.items():
        table.add_row(collection, str(count))
    table.add_row("[bold]total[/bold]", f"[bold]{sum(counts.values())}[/bold]")
    return table


@app.command("show")
def show(
    integration_id: IntegrationIdArgument,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Show an integration and how many rows it owns per collection."""

    async def _show() -> IntegrationDetails:
        async with get_session() as session:
            return await IntegrationService(session).get_details(integration_id)

    details = run_async_command(_show())

    if output_format == OutputFormat.JSON:
        print_json(details.model_dump(mode="json"))
        return

    integration = details.integration
    login = (integration.github_user or {}).get("login", "?")
    console.print(f"[bold]Integration {integration.id}[/bold] ({login})")
    console.print(f"  Status: {integration.status.value}")
    console.print(f"  Connected: {integration.connected_at or '-'}")
    console.print(f"  Last synced: {integration.last_synced_at or 'never'}")
    console.print(_counts_table("Synced data", details.data))


@app.command("remove")
def remove(
    integration_id: IntegrationIdArgument,
    yes: YesOption = False,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Delete an integration and all data synced under it.

    Examples:
        ghsync integration remove 3
        ghsync integration remove 3 --yes --format json
    """
    if not yes:
        typer.confirm(
            f"Remove integration {integration_id} and all of its data?",
            abort=True,
        )

    async def _remove() -> RemovalResult:
        async with get_session() as session:
            return await IntegrationService(session).remove(integration_id)

    result = run_async_command(_remove(), error_prefix="Remove failed")

    if output_format == OutputFormat.JSON:
        print_json({**result.model_dump(mode="json"), "total": result.total})
        return
    console.print(f"[green]Removed integration {integration_id}[/green]")
    console.print(_counts_table("Deleted rows", result.deleted))


@app.command("resync")
def resync(
    integration_id: IntegrationIdArgument,
    no_sync: bool = typer.Option(
        False,
        "--no-sync",
        help="Only clear synced data; do not run a fresh sync",
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Clear an active integration's data and sync it again from GitHub."""

    async def _resync() -> ResyncResult:
        async with get_session() as session:
            return await IntegrationService(session).resync(
                integration_id, run_sync=not no_sync
            )

    if output_format == OutputFormat.TEXT:
        console.print(f"[dim]Resyncing integration {integration_id}...[/dim]")

    result = run_async_command(_resync(), error_prefix="Resync failed")

    if output_format == OutputFormat.JSON:
        print_json(result.model_dump(mode="json"))
        return
    console.print(_counts_table("Cleared rows", result.cleared))
    if result.sync is None:
        console.print("Data cleared. Run [bold]ghsync sync run[/bold] to fetch fresh data.")
        return
    failures = result.sync.get("failures", [])
    console.print(
        f"[green]Sync complete:[/green] {result.sync['total_written']} rows written, "
        f"{len(failures)} failed stage(s)"
    )
