from __future__ import annotations

from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from plansearch.domain.models import ResultView
from plansearch.index.sweeper import SweepReport
from plansearch.ingestion.worker import ProviderReport


def _price(view: ResultView) -> str:
    if view.min_price == view.max_price:
        return f"{view.min_price:,.2f}"
    return f"{view.min_price:,.2f} - {view.max_price:,.2f}"


def print_results(
    events: Sequence[ResultView], truncated: bool = False, console: Optional[Console] = None
) -> None:
    """
    Render search results as a rich table.

    Rows keep the engine's order (grouped by base plan, earliest start first).
    """
    console = console or Console()

    if not events:
        console.print("[yellow]No plans in this window.[/yellow]")
        return

    caption = f"{len(events)} plan(s)"
    if truncated:
        caption += " [bold red](truncated: narrow the window for the rest)[/bold red]"

    table = Table(title="Plan Search Results", box=box.ROUNDED, caption=caption)
    table.add_column("Base", style="cyan", no_wrap=True)
    table.add_column("Plan", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Start", style="green", no_wrap=True)
    table.add_column("End", style="green", no_wrap=True)
    table.add_column("Price", justify="right", style="yellow")

    for view in events:
        table.add_row(
            view.id,
            view.plan_id,
            view.title,
            f"{view.start_date} {view.start_time}",
            f"{view.end_date} {view.end_time}",
            _price(view),
        )

    console.print(table)


def print_ingest_reports(reports: List[ProviderReport], console: Optional[Console] = None) -> None:
    """Render one row per provider processed in an ingestion cycle."""
    console = console or Console()

    if not reports:
        console.print("[yellow]No active providers.[/yellow]")
        return

    table = Table(title="Ingestion Cycle", box=box.ROUNDED)
    table.add_column("Provider", style="cyan", no_wrap=True)
    table.add_column("Base plans", justify="right", style="magenta")
    table.add_column("Persisted", justify="right", style="magenta")
    table.add_column("Indexed", justify="right", style="bold green")
    table.add_column("Skipped", justify="right")
    table.add_column("Failures", justify="right", style="red")
    table.add_column("Status")

    for report in reports:
        failures = len(report.persist_failures) + len(report.index_failures)
        if report.error:
            status = f"[red]{report.error}[/red]"
        elif failures:
            status = "[yellow]partial[/yellow]"
        else:
            status = "[green]ok[/green]"
        table.add_row(
            report.provider,
            str(report.base_plans),
            str(report.persisted_plans),
            str(report.indexed),
            str(report.skipped),
            str(failures),
            status,
        )

    console.print(table)


def print_sweep_report(report: SweepReport, console: Optional[Console] = None) -> None:
    console = console or Console()
    console.print(
        f"Scanned [bold]{report.scanned}[/bold] member(s): "
        f"removed [green]{report.removed}[/green] ghost(s), "
        f"[red]{report.malformed}[/red] malformed."
    )


__all__ = ["print_ingest_reports", "print_results", "print_sweep_report"]
