"""Sync commands for Asaas Sync."""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractContextManager, asynccontextmanager, nullcontext
from typing import Any

import typer
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn

from asaas_sync.asaas import AsaasClient, RateLimitGovernor
from asaas_sync.batch import ProgressTracker
from asaas_sync.cli.common import (
    DryRunOption,
    LimitOption,
    MaxItemsOption,
    OutputFormatOption,
    RecordKindArgument,
    RecordKindOption,
    console,
    print_json,
    run_async_command,
)
from asaas_sync.config import get_settings
from asaas_sync.db import InstallmentRepository, RecordKind, get_session
from asaas_sync.sync import (
    BankSlipBackfillService,
    CommitManager,
    FailureRetryService,
    FullSyncService,
    OutputFormat,
    ReconciliationEngine,
    spec_for,
)

app = typer.Typer(help="Sync Asaas records into the local database")


# -----------------------------------------------------------------------------
# Wiring
# -----------------------------------------------------------------------------


@asynccontextmanager
async def _sync_context(
    dry_run: bool = False,
) -> AsyncIterator[tuple[AsaasClient, ReconciliationEngine]]:
    """Client, session and engine for one sync command.

    One governor is shared by every request of the command. Writes are
    committed in chunks by a CommitManager; a dry run never commits.
    """
    settings = get_settings()
    governor = RateLimitGovernor(settings.rate_limit)
    async with AsaasClient(governor=governor) as client:
        async with get_session(auto_commit=not dry_run) as session:
            write_lock = asyncio.Lock()
            commit_manager = (
                None
                if dry_run
                else CommitManager(session, write_lock, settings.sync.commit_batch_size)
            )
            engine = ReconciliationEngine(
                client,
                session,
                write_lock=write_lock,
                config=settings.sync,
                commit_manager=commit_manager,
                dry_run=dry_run,
            )
            yield client, engine


def _progress_factory(
    progress: Progress | None,
) -> Callable[[RecordKind], ProgressTracker] | None:
    """Bridge ProgressTracker updates onto a rich progress bar."""
    if progress is None:
        return None

    def factory(kind: RecordKind) -> ProgressTracker:
        tracker = ProgressTracker(name=f"{kind.value} sync")
        task_id = progress.add_task(kind.value, total=None)

        def update(event: Any) -> None:
            progress.update(task_id, total=event.total or None, completed=event.processed)

        tracker.on_progress(update)
        return tracker

    return factory


def _new_progress(enabled: bool) -> AbstractContextManager[Progress | None]:
    if not enabled:
        return nullcontext()
    return Progress(
        TextColumn("[bold]{task.description:<12}[/bold]"),
        BarColumn(bar_width=40),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    )


# -----------------------------------------------------------------------------
# Output
# -----------------------------------------------------------------------------


def _print_report(report: dict[str, Any], dry_run: bool = False) -> None:
    """Print one phase report as text."""
    prefix = "[dim](dry-run)[/dim] " if dry_run else ""
    console.print(f"{prefix}[bold]{report['kind'].title()} sync complete[/bold]")
    console.print()
    console.print(f"  [green]Created:[/green]    {report['created']}")
    console.print(f"  [blue]Updated:[/blue]    {report['updated']}")
    console.print(f"  [dim]Unchanged:[/dim]  {report['unchanged']}")
    if report["ignored"]:
        console.print(f"  [yellow]Ignored:[/yellow]    {report['ignored']}")
    if report["failed"]:
        console.print(f"  [red]Failed:[/red]     {report['failed']}")
    console.print()
    console.print(f"  Fetched: {report['fetched']}")
    console.print(f"  Duration: {report['duration_seconds']:.1f}s")

    diffs: dict[str, list[dict[str, Any]]] = report.get("diffs", {})
    if diffs:
        console.print()
        console.print("[bold]Changes:[/bold]")
        for asaas_id, fields in diffs.items():
            changes = ", ".join(f"{d['field']}: {d['old']!r} → {d['new']!r}" for d in fields)
            console.print(f"  {asaas_id}: {changes}")

    failures = report.get("failures", [])
    if failures:
        console.print()
        console.print("[bold]Failed records:[/bold]")
        for failure in failures:
            console.print(f"  {failure['asaas_id']}: {failure['error']}")
    console.print()


def _run_phase(
    kind: RecordKind,
    *,
    filters: dict[str, Any] | None,
    max_items: int | None,
    dry_run: bool,
    output_format: OutputFormat,
) -> None:
    show_progress = output_format == OutputFormat.TEXT

    async def _sync() -> dict[str, Any]:
        async with _sync_context(dry_run) as (client, engine):
            with _new_progress(show_progress) as progress:
                service = FullSyncService(
                    client,
                    engine,
                    progress_factory=_progress_factory(progress),
                )
                report = await service.sync_kind(kind, filters=filters, max_items=max_items)
                return report.to_dict()

    if show_progress:
        console.print(f"[dim]Syncing {kind.value} records from Asaas...[/dim]")
    result = run_async_command(_sync(), error_prefix="Sync failed")

    if output_format == OutputFormat.JSON:
        print_json(result)
        return
    _print_report(result, dry_run)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


@app.command("customers")
def sync_customers(
    max_items: MaxItemsOption = None,
    dry_run: DryRunOption = False,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync every customer.

    Examples:
        asaas-sync sync customers
        asaas-sync sync customers --max 10 --dry-run
    """
    _run_phase(
        RecordKind.CUSTOMER,
        filters=None,
        max_items=max_items,
        dry_run=dry_run,
        output_format=output_format,
    )


@app.command("payments")
def sync_payments(
    status: str | None = typer.Option(
        None,
        "--status",
        "-s",
        help="Only charges with this Asaas status (e.g. OVERDUE, PENDING)",
    ),
    due_from: str | None = typer.Option(
        None,
        "--due-from",
        help="Only charges due on or after this date (YYYY-MM-DD)",
    ),
    due_to: str | None = typer.Option(
        None,
        "--due-to",
        help="Only charges due on or before this date (YYYY-MM-DD)",
    ),
    max_items: MaxItemsOption = None,
    dry_run: DryRunOption = False,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync charges, optionally filtered upstream.

    Examples:
        asaas-sync sync payments
        asaas-sync sync payments --status OVERDUE
        asaas-sync sync payments --due-from 2024-01-01 --format json
    """
    _run_phase(
        RecordKind.PAYMENT,
        filters=_payment_filters(status, due_from, due_to),
        max_items=max_items,
        dry_run=dry_run,
        output_format=output_format,
    )


def _payment_filters(
    status: str | None,
    due_from: str | None,
    due_to: str | None,
) -> dict[str, Any] | None:
    filters: dict[str, Any] = {}
    if status:
        filters["status"] = status.upper()
    if due_from:
        filters["dueDate[ge]"] = due_from
    if due_to:
        filters["dueDate[le]"] = due_to
    return filters or None


@app.command("installments")
def sync_installments(
    max_items: MaxItemsOption = None,
    dry_run: DryRunOption = False,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync every installment plan.

    Examples:
        asaas-sync sync installments
    """
    _run_phase(
        RecordKind.INSTALLMENT,
        filters=None,
        max_items=max_items,
        dry_run=dry_run,
        output_format=output_format,
    )


@app.command("all")
def sync_all(
    auto_retry: bool = typer.Option(
        False,
        "--auto-retry",
        help="Retry pending failures after the full sync",
    ),
    max_items: MaxItemsOption = None,
    dry_run: DryRunOption = False,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync customers, then payments, then installment plans.

    Examples:
        asaas-sync sync all
        asaas-sync sync all --auto-retry
        asaas-sync sync all --max 20 --dry-run --format json
    """
    show_progress = output_format == OutputFormat.TEXT

    async def _sync() -> dict[str, Any]:
        settings = get_settings()
        async with _sync_context(dry_run) as (client, engine):
            with _new_progress(show_progress) as progress:
                service = FullSyncService(
                    client,
                    engine,
                    config=settings.sync,
                    progress_factory=_progress_factory(progress),
                )
                report = await service.run(max_items=max_items)
            result = report.to_dict()

            if auto_retry and not dry_run:
                retry_service = FailureRetryService(
                    client, engine, max_retries=settings.sync.max_failure_retries
                )
                result["retry_result"] = (await retry_service.retry_pending()).to_dict()
            result["rate_limit"] = client.governor.to_dict()
            return result

    if show_progress:
        console.print("[dim]Syncing customers, payments and installments from Asaas...[/dim]")
    result = run_async_command(_sync(), error_prefix="Sync failed")

    if output_format == OutputFormat.JSON:
        print_json(result)
        return

    for phase in result["phases"]:
        _print_report(phase, dry_run)

    retry_result = result.get("retry_result")
    if retry_result:
        _print_retry(retry_result)

    rate = result["rate_limit"]
    console.print(
        f"Total: {result['total']} record(s), {result['failed']} failed "
        f"in {result['duration_seconds']:.1f}s "
        f"({rate['calls']} calls, {rate['waits']} rate-limit wait(s))"
    )


def _print_retry(result: dict[str, Any]) -> None:
    console.print("[bold]Retry Results[/bold]")
    console.print()
    console.print(f"  [green]Resolved:[/green]      {result['resolved']}")
    console.print(f"  [yellow]Failed again:[/yellow]  {result['failed_again']}")
    console.print(f"  [red]Permanent:[/red]     {result['marked_permanent']}")
    console.print()


@app.command("retry")
def sync_retry(
    kind: RecordKindOption = None,
    limit: LimitOption = 100,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Retry records whose last reconciliation failed.

    Examples:
        asaas-sync sync retry
        asaas-sync sync retry --kind payment --limit 50
    """

    async def _retry() -> dict[str, Any]:
        settings = get_settings()
        async with _sync_context() as (client, engine):
            service = FailureRetryService(
                client, engine, max_retries=settings.sync.max_failure_retries
            )
            result = await service.retry_pending(record_kind=kind, limit=limit)
            return result.to_dict()

    result = run_async_command(_retry(), error_prefix="Retry failed")

    if output_format == OutputFormat.JSON:
        print_json(result)
        return

    if result["total_pending"] == 0:
        console.print("[green]No pending failures.[/green]")
        return
    _print_retry(result)


@app.command("bank-slips")
def sync_bank_slips(
    limit: int | None = typer.Option(
        None,
        "--limit",
        "-l",
        help="Maximum number of installment plans to backfill",
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Fill missing bank slip URLs of installment plans.

    Examples:
        asaas-sync sync bank-slips
        asaas-sync sync bank-slips --limit 200
    """

    async def _backfill() -> dict[str, Any]:
        settings = get_settings()
        governor = RateLimitGovernor(settings.rate_limit)
        async with AsaasClient(governor=governor) as client:
            async with get_session(auto_commit=False) as session:
                write_lock = asyncio.Lock()
                service = BankSlipBackfillService(
                    client,
                    InstallmentRepository(session, write_lock),
                    config=settings.sync,
                    commit_manager=CommitManager(
                        session, write_lock, settings.sync.commit_batch_size
                    ),
                )
                result = await service.run(limit=limit)
                return result.to_dict()

    result = run_async_command(_backfill(), error_prefix="Backfill failed")

    if output_format == OutputFormat.JSON:
        print_json(result)
        return

    console.print("[bold]Bank slip backfill complete[/bold]")
    console.print()
    console.print(f"  Candidates: {result['candidates']}")
    console.print(f"  [green]Filled:[/green]     {result['filled']}")
    console.print(f"  [dim]Skipped:[/dim]    {len(result['skipped'])}")
    if result["failures"]:
        console.print(f"  [red]Failed:[/red]     {len(result['failures'])}")
        for failure in result["failures"]:
            console.print(f"    {failure['installment_id']}: {failure['error']}")


@app.command("record")
def sync_record(
    kind: RecordKindArgument,
    asaas_id: str = typer.Argument(..., help="Asaas ID (e.g. pay_080225913252)"),
    dry_run: DryRunOption = False,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Fetch one record by ID and reconcile it.

    Examples:
        asaas-sync sync record payment pay_080225913252
        asaas-sync sync record customer cus_000005219613 --dry-run
    """
    spec = spec_for(kind)

    async def _sync() -> dict[str, Any]:
        async with _sync_context(dry_run) as (client, engine):
            remote = await spec.fetch_one(client, asaas_id)
            outcome = await engine.reconcile_record(spec, remote)
            return outcome.to_dict()

    result = run_async_command(_sync(), error_prefix="Sync failed")

    if output_format == OutputFormat.JSON:
        print_json(result)
        return

    prefix = "[dim](dry-run)[/dim] " if dry_run else ""
    outcome = result["outcome"]
    if outcome == "failed":
        console.print(f"[red]Error:[/red] {result.get('error', 'Unknown error')}")
        raise typer.Exit(1)

    console.print(f"{prefix}[bold]{outcome.title()}[/bold] {kind.value} {asaas_id}")
    if outcome == "ignored":
        console.print(f"  Reason: {result.get('reason')}")
    for diff in result.get("diffs", []):
        console.print(f"  {diff['field']}: {diff['old']!r} → {diff['new']!r}")
