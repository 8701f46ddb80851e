"""OAuth commands: authorize URL, connect and status."""

import typer

from github_sync_db.cli.common import (
    IntegrationIdArgument,
    OutputFormatOption,
    console,
    print_json,
    run_async_command,
)
from github_sync_db.config import get_settings
from github_sync_db.db import get_session
from github_sync_db.github.oauth import build_authorize_url
from github_sync_db.github.sync.enums import OutputFormat
from github_sync_db.schemas.integration import IntegrationRead
from github_sync_db.services import IntegrationService

app = typer.Typer(help="GitHub OAuth connection")


def _print_integration(integration: IntegrationRead) -> None:
    login = (integration.github_user or {}).get("login", "?")
    console.print(f"[bold]Integration {integration.id}[/bold] ({login})")
    console.print(f"  Status: {integration.status.value}")
    console.print(f"  Connected: {integration.connected_at or '-'}")
    console.print(f"  Last synced: {integration.last_synced_at or 'never'}")


@app.command("url")
def auth_url() -> None:
    """Print the GitHub authorization URL to start the OAuth flow."""
    settings = get_settings()
    if not settings.github_client_id:
        console.print("[yellow]Warning:[/yellow] GITHUB_CLIENT_ID is not set")
    console.print(build_authorize_url(settings), soft_wrap=True)


@app.command("connect")
def connect(
    code: str = typer.Argument(..., help="Authorization code from the OAuth callback"),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Exchange an authorization code and store the integration.

    Examples:
        ghsync auth connect 4f2a9c0e1b
        ghsync auth connect 4f2a9c0e1b --format json
    """

    async def _connect() -> IntegrationRead:
        async with get_session() as session:
            return await IntegrationService(session).connect(code)

    integration = run_async_command(_connect(), error_prefix="Connect failed")

    if output_format == OutputFormat.JSON:
        print_json(integration.model_dump(mode="json"))
        return
    console.print("[green]Connected.[/green]")
    _print_integration(integration)


@app.command("status")
def status(
    user_id: str = typer.Argument(..., help="GitHub user ID"),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Show the user's active integration."""

    async def _status() -> IntegrationRead | None:
        async with get_session() as session:
            return await IntegrationService(session).get_status(user_id)

    integration = run_async_command(_status())

    if output_format == OutputFormat.JSON:
        print_json(
            {
                "connected": integration is not None,
                "integration": integration.model_dump(mode="json") if integration else None,
            }
        )
        return
    if integration is None:
        console.print(f"No active integration for user {user_id}")
        return
    _print_integration(integration)


@app.command("disconnect")
def disconnect(integration_id: IntegrationIdArgument) -> None:
    """Mark an integration disconnected without deleting its data."""

    async def _disconnect() -> IntegrationRead:
        async with get_session() as session:
            return await IntegrationService(session).disconnect(integration_id)

    integration = run_async_command(_disconnect())
    console.print(f"Integration {integration.id} is now {integration.status.value}")
