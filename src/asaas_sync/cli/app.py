"""Main CLI application for Asaas Sync."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from asaas_sync import __version__
from asaas_sync.cli import asaas as asaas_cmd
from asaas_sync.cli import db as db_cmd
from asaas_sync.cli import report as report_cmd
from asaas_sync.cli import sync as sync_cmd
from asaas_sync.config import get_settings
from asaas_sync.logging import setup_logging

app = typer.Typer(
    name="asaas-sync",
    help="Mirror Asaas customers, charges and installment plans into a local database.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"asaas-sync version {__version__}")
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
    """Asaas Sync - Rate-governed mirror of Asaas records."""
    settings = get_settings()
    log_config = settings.logging

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
app.add_typer(sync_cmd.app, name="sync")
app.add_typer(asaas_cmd.app, name="asaas")
app.add_typer(db_cmd.app, name="db")
app.add_typer(report_cmd.app, name="report")


if __name__ == "__main__":
    app()
