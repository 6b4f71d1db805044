"""Local database commands."""

import typer

from asaas_sync.cli.common import console, run_async_command
from asaas_sync.config import get_settings
from asaas_sync.db import create_tables, dispose_engine

app = typer.Typer(help="Local database commands")


@app.command("init")
def init_db() -> None:
    """Create the local tables if they don't exist.

    For managed databases prefer ``alembic upgrade head``.

    Examples:
        asaas-sync db init
    """

    async def _init() -> None:
        try:
            await create_tables()
        finally:
            await dispose_engine()

    run_async_command(_init(), error_prefix="Database init failed")
    console.print(f"[green]Tables ready[/green] at {get_settings().database_url}")
