"""
CLI: ``payspine payments`` — submit a payment against the configured account.
"""

from __future__ import annotations

import sqlite3
import uuid
from pathlib import Path

import typer

from payspine.cli.utils import err_console, print_events, print_report
from payspine.core.logging import configure_from_settings
from payspine.core.timestamps import now_ms
from payspine.execution.adapter import PaymentProviderAdapter
from payspine.execution.ledger import InMemoryLedger, SqliteLedger
from payspine.execution.transport import HttpxTransport

app = typer.Typer(no_args_is_help=True)


@app.command("submit")
def submit(
    amount: int = typer.Option(..., "--amount", "-a", help="Amount forwarded to the provider"),
    deadline_ms: int = typer.Option(5000, "--deadline-ms", "-d", help="Deadline relative to now"),
    payment_id: str | None = typer.Option(None, "--payment-id", help="Payment id (default: random uuid)"),
    database: Path | None = typer.Option(None, "--db", help="SQLite ledger file (default: in-memory)"),
) -> None:
    """Run one payment's attempt loop and print its ledger events."""
    from payspine.core.settings import get_settings

    settings = get_settings()
    configure_from_settings(settings)

    if not settings.enabled:
        err_console.print(f"[red]Account {settings.account_name} is disabled.[/red]")
        raise typer.Exit(code=1)

    if database is not None:
        ledger = SqliteLedger(sqlite3.connect(str(database), check_same_thread=False))
        ledger.ensure_schema()
    else:
        ledger = InMemoryLedger()

    payment_id = payment_id or str(uuid.uuid4())
    started_at = now_ms()

    with HttpxTransport(settings.base_url) as transport:
        adapter = PaymentProviderAdapter(settings, ledger, transport=transport)
        report = adapter.process_payment(payment_id, amount, started_at, started_at + deadline_ms)

    events = ledger.get_events(payment_id) if isinstance(ledger, SqliteLedger) else ledger.events_for(payment_id)
    print_events(events)
    print_report(report)
    if not report.succeeded:
        raise typer.Exit(code=2)
