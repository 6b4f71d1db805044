"""Reporting commands over the local mirror."""

from typing import Any

import typer
from rich.table import Table

from asaas_sync.cli.common import OutputFormatOption, console, print_json, run_async_command
from asaas_sync.db import (
    CustomerRepository,
    InstallmentRepository,
    PaymentRepository,
    SyncFailureRepository,
    get_session,
)
from asaas_sync.schemas import PaymentClass
from asaas_sync.sync import OutputFormat

app = typer.Typer(help="Reports over the local mirror")


@app.command("status")
def report_status(
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Show record counts, charge classification and pending failures.

    Examples:
        asaas-sync report status
        asaas-sync report status --format json
    """

    async def _status() -> dict[str, Any]:
        async with get_session() as session:
            payments = PaymentRepository(session)
            by_class = await payments.count_by_class()
            return {
                "customers": await CustomerRepository(session).count(),
                "payments": await payments.count(),
                "installments": await InstallmentRepository(session).count(),
                "payment_classes": {c.value: n for c, n in by_class.items()},
                "failures": await SyncFailureRepository(session).get_stats(),
            }

    result = run_async_command(_status(), error_prefix="Report failed")

    if output_format == OutputFormat.JSON:
        print_json(result)
        return

    table = Table(title="Local Mirror")
    table.add_column("Table", style="bold")
    table.add_column("Rows", justify="right")
    for name in ("customers", "payments", "installments"):
        table.add_row(name, str(result[name]))
    console.print(table)

    classes = result["payment_classes"]
    console.print()
    console.print("[bold]Charges[/bold]")
    console.print(f"  [green]Paid:[/green]     {classes[PaymentClass.PAID.value]}")
    console.print(f"  [blue]Open:[/blue]     {classes[PaymentClass.OPEN.value]}")
    console.print(f"  [red]Overdue:[/red]  {classes[PaymentClass.OVERDUE.value]}")

    failures = result["failures"]
    if failures["pending"]:
        console.print()
        console.print(
            f"[yellow]{failures['pending']} pending failure(s).[/yellow] "
            "Run `asaas-sync sync retry` to retry them."
        )
