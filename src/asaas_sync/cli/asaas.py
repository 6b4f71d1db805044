"""Asaas API verification commands."""

from datetime import date
from typing import Any

import typer
from rich.table import Table

from asaas_sync.asaas import (
    AsaasAuthenticationError,
    AsaasClient,
    AsaasNotFoundError,
    AsaasThrottleError,
    RateLimitGovernor,
    RateLimitStatus,
)
from asaas_sync.cli.common import OutputFormatOption, console, print_json, run_async_command
from asaas_sync.config import get_settings
from asaas_sync.schemas import classify_payment, summarize_installment
from asaas_sync.sync import OutputFormat

app = typer.Typer(help="Asaas API commands")


def _get_status_style(status: RateLimitStatus) -> str:
    """Get rich style for status."""
    match status:
        case RateLimitStatus.HEALTHY:
            return "[green]HEALTHY[/green]"
        case RateLimitStatus.WARNING:
            return "[yellow]WARNING[/yellow]"
        case RateLimitStatus.CRITICAL:
            return "[red]CRITICAL[/red]"
        case RateLimitStatus.EXHAUSTED:
            return "[bold red]EXHAUSTED[/bold red]"
        case _:
            return str(status)


@app.command("test")
def test_connection(
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Test Asaas API connectivity and show the rate-limit budget.

    Examples:
        asaas-sync asaas test
        asaas-sync asaas test --format json
    """

    async def _test() -> dict[str, Any]:
        settings = get_settings()
        if not settings.asaas_api_key:
            console.print("[red]Error:[/red] ASAAS_API_KEY not set in environment")
            raise typer.Exit(1)

        governor = RateLimitGovernor(settings.rate_limit)
        try:
            async with AsaasClient(governor=governor) as client:
                account = await client.get_account()
                customers = await client.list_customers(limit=1)
        except AsaasAuthenticationError:
            console.print("[red]Error:[/red] Invalid Asaas API key")
            raise typer.Exit(1) from None
        except AsaasThrottleError as e:
            console.print(f"[red]Error:[/red] Throttled by Asaas: {e}")
            raise typer.Exit(1) from None

        return {
            "api_url": settings.asaas_api_url,
            "account": account.model_dump(exclude_none=True),
            "customer_count": customers.total_count,
            "rate_limit": governor.to_dict(),
        }

    result = run_async_command(_test(), error_prefix="Connection failed")

    if output_format == OutputFormat.JSON:
        print_json(result)
        return

    account = result["account"]
    console.print(f"[bold]Connected to {result['api_url']}[/bold]")
    console.print(f"  Account: {account.get('name', '?')} ({account.get('email', '-')})")
    console.print(f"  Customers upstream: {result['customer_count']}")

    rate = result["rate_limit"]
    table = Table(title="Asaas Rate Limit")
    table.add_column("Status")
    table.add_column("Remaining", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Remaining %", justify="right")
    table.add_column("Resets In", justify="right")
    table.add_row(
        _get_status_style(RateLimitStatus(rate["status"])),
        str(rate["remaining"]),
        str(rate["limit"]),
        f"{rate['remaining_percent']:.1f}%",
        f"{rate['reset_seconds']}s",
    )
    console.print()
    console.print(table)
    console.print("\n[green]Asaas API connection verified![/green]")


@app.command("installment")
def installment_standing(
    installment_id: str = typer.Argument(..., help="Asaas installment ID"),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Show the standing of an installment plan from its charges upstream.

    Examples:
        asaas-sync asaas installment 2765d086-c7c5-5cca-898a-4262d212587c
    """

    async def _standing() -> dict[str, Any]:
        today = date.today()
        try:
            async with AsaasClient() as client:
                payments = await client.list_installment_payments(installment_id)
        except AsaasNotFoundError:
            console.print(f"[red]Error:[/red] Installment {installment_id} not found")
            raise typer.Exit(1) from None

        charges = [
            {
                "id": p.id,
                "installment_number": p.installment_number,
                "due_date": p.due_date.isoformat(),
                "value": str(p.value),
                "status": p.status,
                "class": classify_payment(p.status, p.due_date, today).value,
            }
            for p in sorted(payments, key=lambda p: (p.installment_number or 0, p.due_date))
        ]
        standing = summarize_installment(
            classify_payment(p.status, p.due_date, today) for p in payments
        )
        return {"installment_id": installment_id, "standing": standing.value, "charges": charges}

    result = run_async_command(_standing(), error_prefix="Lookup failed")

    if output_format == OutputFormat.JSON:
        print_json(result)
        return

    table = Table(title=f"Installment {installment_id}")
    table.add_column("#", justify="right")
    table.add_column("Charge", style="cyan")
    table.add_column("Due")
    table.add_column("Value", justify="right")
    table.add_column("Status")
    for charge in result["charges"]:
        table.add_row(
            str(charge["installment_number"] or "-"),
            charge["id"],
            charge["due_date"],
            charge["value"],
            f"{charge['status']} ({charge['class']})",
        )
    console.print(table)
    console.print(f"Standing: [bold]{result['standing'].upper()}[/bold]")
