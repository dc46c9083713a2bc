"""
CLI utility helpers — output formatting.
"""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from payspine.execution.models import AttemptReport, LedgerEvent

console = Console()
err_console = Console(stderr=True)


def print_events(events: list[LedgerEvent]) -> None:
    """Render ledger events as a table."""
    table = Table(title="Ledger events")
    table.add_column("Kind")
    table.add_column("Success")
    table.add_column("Recorded at")
    table.add_column("Elapsed ms")
    table.add_column("Reason")
    for event in events:
        table.add_row(
            event.kind.value,
            "[green]yes[/green]" if event.success else "[red]no[/red]",
            str(event.recorded_at),
            "" if event.elapsed_ms is None else str(event.elapsed_ms),
            event.reason or "",
        )
    console.print(table)


def print_report(report: AttemptReport) -> None:
    colour = "green" if report.succeeded else "red"
    console.print(
        f"[bold]{report.attempt.payment_id}[/bold] → [{colour}]{report.state.value}[/{colour}] "
        f"after {report.calls} call(s) of {report.max_attempts} allowed"
    )
    if report.error is not None:
        console.print(f"  reason: {report.error.reason}")
