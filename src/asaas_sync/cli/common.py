"""Common CLI option factories and helpers.

This module centralizes reusable CLI options and provides
`run_async_command`, the unified async entry point for commands.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from typing import Annotated, Any, TypeVar

import typer
from rich.console import Console

from asaas_sync.db.models import RecordKind
from asaas_sync.sync.enums import OutputFormat

# Shared console instance for CLI output
console = Console()

T = TypeVar("T")


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from a synchronous CLI command with unified error handling.

    Args:
        coro: Async coroutine to execute
        error_prefix: Prefix for error messages (default: "Error")

    Returns:
        Result from the coroutine

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error

    Example:
        async def _check() -> dict[str, Any]:
            async with AsaasClient() as client:
                return (await client.get_account()).model_dump()

        result = run_async_command(_check(), error_prefix="Connection failed")
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


def print_json(data: dict[str, Any]) -> None:
    """Print a result dictionary as JSON."""
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

DryRunOption = Annotated[
    bool,
    typer.Option(
        "--dry-run",
        help="Don't write to database, just show what would happen",
    ),
]

MaxItemsOption = Annotated[
    int | None,
    typer.Option(
        "--max",
        "-m",
        help="Maximum number of records to sync (useful for testing)",
    ),
]

LimitOption = Annotated[
    int,
    typer.Option(
        "--limit",
        "-l",
        help="Maximum number of records to process",
    ),
]

RecordKindArgument = Annotated[
    RecordKind,
    typer.Argument(
        help="Record kind: customer, payment or installment",
    ),
]
"""Required positional record kind argument.

Usage:
    def sync_record(kind: RecordKindArgument, asaas_id: str) -> None:
"""

RecordKindOption = Annotated[
    RecordKind | None,
    typer.Option(
        "--kind",
        "-k",
        help="Only this record kind",
    ),
]
