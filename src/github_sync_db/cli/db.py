"""Database setup commands."""

import typer

from github_sync_db.cli.common import YesOption, console, run_async_command
from github_sync_db.db import create_tables, dispose_engine, drop_tables

app = typer.Typer(help="Database setup (development)")


@app.command("init")
def init() -> None:
    """Create all tables.

    Use this for development setup. In production, run ``alembic upgrade head``.
    """

    async def _init() -> None:
        try:
            await create_tables()
        finally:
            await dispose_engine()

    run_async_command(_init(), error_prefix="Init failed")
    console.print("[green]Tables created.[/green]")


@app.command("reset")
def reset(yes: YesOption = False) -> None:
    """Drop and recreate all tables. Deletes every row."""
    if not yes:
        typer.confirm("Drop all tables and delete all data?", abort=True)

    async def _reset() -> None:
        try:
            await drop_tables()
            await create_tables()
        finally:
            await dispose_engine()

    run_async_command(_reset(), error_prefix="Reset failed")
    console.print("[green]Tables recreated.[/green]")
