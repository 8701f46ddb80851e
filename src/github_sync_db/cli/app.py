"""Main CLI application for GitHub Sync DB."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from github_sync_db import __version__
from github_sync_db.cli import auth as auth_cmd
from github_sync_db.cli import data as data_cmd
from github_sync_db.cli import db as db_cmd
from github_sync_db.cli import integration as integration_cmd
from github_sync_db.cli import sync as sync_cmd
from github_sync_db.config import get_settings
from github_sync_db.logging import setup_logging

app = typer.Typer(
    name="ghsync",
    help="Sync GitHub organizations, repositories and issue activity into SQL.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"ghsync version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """GitHub Sync DB - Mirror GitHub activity into a queryable store."""
    settings = get_settings()
    log_config = settings.logging

    # Setup logging with CLI overrides
    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )


# Register subcommands
app.add_typer(auth_cmd.app, name="auth")
app.add_typer(integration_cmd.app, name="integration")
app.add_typer(sync_cmd.app, name="sync")
app.add_typer(data_cmd.app, name="data")
app.add_typer(db_cmd.app, name="db")


if __name__ == "__main__":
    app()
