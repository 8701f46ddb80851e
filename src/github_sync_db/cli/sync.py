"""Sync commands for GitHub Sync DB."""

import typer
from rich.table import Table

from github_sync_db.cli.common import (
    IntegrationIdArgument,
    OutputFormatOption,
    console,
    print_json,
    run_async_command,
)
from github_sync_db.config import get_settings
from github_sync_db.db import get_session
from github_sync_db.github.sync import SyncOrchestrator, SyncStats
from github_sync_db.github.sync.enums import OutputFormat, SyncStrategy

app = typer.Typer(help="Sync GitHub data into the database")


def _print_stats(stats: SyncStats) -> None:
    table = Table(title=f"Sync of integration {stats.integration_id}")
    table.add_column("Kind", style="cyan")
    table.add_column("Written", justify="right")
    table.add_row("organizations", str(stats.organizations))
    table.add_row("repositories", str(stats.repositories))
    table.add_row("commits", str(stats.commits))
    table.add_row("pull requests", str(stats.pull_requests))
    table.add_row("issues", str(stats.issues))
    table.add_row("issue events", str(stats.issue_changelogs))
    table.add_row("members", str(stats.users))
    console.print(table)
    console.print(f"Duration: {stats.duration_seconds:.1f}s")

    if stats.failures:
        console.print(f"\n[yellow]{len(stats.failures)} stage(s) failed:[/yellow]")
        for failure in stats.failures[:10]:
            console.print(f"  {failure.stage} [{failure.scope}]: {failure.error}")
        if len(stats.failures) > 10:
            console.print(f"  ... and {len(stats.failures) - 10} more")


@app.command("run")
def run(
    integration_id: IntegrationIdArgument,
    strategy: SyncStrategy | None = typer.Option(  # noqa: B008
        None,
        "--strategy",
        "-s",
        help="Per-repository strategy (default: SYNC__STRATEGY setting)",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        "-w",
        min=1,
        max=32,
        help="Worker pool size for the worker_pool strategy",
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Run a full sync for an integration.

    Fetches organizations, repositories, commits, pull requests, issues,
    issue events and members, and upserts everything by natural key.

    Examples:
        ghsync sync run 3
        ghsync sync run 3 --strategy worker_pool --workers 4
        ghsync -v sync run 3 --format json
    """
    settings = get_settings()
    if workers is not None:
        settings = settings.model_copy(
            update={"sync": settings.sync.model_copy(update={"worker_pool_size": workers})}
        )

    async def _sync() -> SyncStats:
        async with get_session() as session:
            orchestrator = SyncOrchestrator(session, strategy=strategy, settings=settings)
            return await orchestrator.run_sync(integration_id)

    if output_format == OutputFormat.TEXT:
        console.print(f"[dim]Syncing integration {integration_id}...[/dim]")

    stats = run_async_command(_sync(), error_prefix="Sync failed")

    if output_format == OutputFormat.JSON:
        print_json(stats.to_dict())
        return
    _print_stats(stats)
