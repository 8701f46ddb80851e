"""Common CLI option factories and helpers.

This module centralizes reusable CLI options so Typer's call-in-default
pattern lives in one place.

It also provides:
- `run_async_command`: Unified async execution with error handling for CLI commands
- `print_json`: JSON output for ``--format json``
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from typing import Annotated, Any, TypeVar

import typer
from rich.console import Console

from github_sync_db.github.sync.enums import OutputFormat

# Shared console instance for CLI output
console = Console()

T = TypeVar("T")


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from synchronous CLI command with unified error handling.

    Uses asyncio.run() for clean event loop management. Catches exceptions,
    prints user-friendly error messages, and exits with code 1.

    Args:
        coro: Async coroutine to execute
        error_prefix: Prefix for error messages (default: "Error")

    Returns:
        Result from the coroutine

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error

    Example:
        async def _details() -> IntegrationDetails:
            async with get_session() as session:
                return await IntegrationService(session).get_details(3)

        details = run_async_command(_details(), error_prefix="Lookup failed")
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        # Re-raise deliberate exits (e.g., from validation helpers)
        raise
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


def print_json(data: Any) -> None:
    """Print a JSON-serializable value (datetimes rendered as ISO strings)."""
    console.print_json(json.dumps(data, default=str))


# Typer requires function calls as default arguments, which triggers B008.
# Using Annotated with a centralized type alias keeps the noqa in one place.

OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format",
    ),
]
"""Output format option type for CLI commands.

Usage:
    def command(output_format: OutputFormatOption = OutputFormat.TEXT):
"""

IntegrationIdArgument = Annotated[
    int,
    typer.Argument(help="Integration ID"),
]

UserOption = Annotated[
    str,
    typer.Option(
        "--user",
        "-u",
        help="GitHub user ID owning the integrations to read from",
    ),
]

YesOption = Annotated[
    bool,
    typer.Option(
        "--yes",
        "-y",
        help="Skip the confirmation prompt",
    ),
]
