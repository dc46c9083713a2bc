"""Payment ledger — append-only record of submission and processing outcomes.

The ledger is the only place a payment's outcome becomes visible to the
rest of the system. The adapter reports to it and never reads from it.

Architecture:

    .. code-block:: text

        PaymentLedger (Protocol)
          ├── InMemoryLedger   ─ thread-safe list, tests and the CLI
          └── SqliteLedger     ─ payment_events table

        report_submission()  ──▶  kind = submission
        report_processing()  ──▶  kind = processing

    Reports are append-only; reporting the same payment/transaction pair
    repeatedly just adds rows.

Example:
    >>> ledger = SqliteLedger(sqlite3.connect("payments.db", check_same_thread=False))
    >>> ledger.ensure_schema()
    >>> ledger.report_processing("p-1", "t-1", True, 1700000000000, None)
    >>> [e.success for e in ledger.get_events("p-1")]
    [True]
"""

from __future__ import annotations

import threading
from typing import Protocol

from .models import EventKind, LedgerEvent


class PaymentLedger(Protocol):
    def report_submission(
        self,
        payment_id: str,
        transaction_id: str,
        success: bool,
        recorded_at: int,
        elapsed_ms: int,
    ) -> None: ...

    def report_processing(
        self,
        payment_id: str,
        transaction_id: str,
        success: bool,
        recorded_at: int,
        reason: str | None,
    ) -> None: ...


class InMemoryLedger:
    """Keeps events in a list guarded by a lock."""

    def __init__(self):
        self._events: list[LedgerEvent] = []
        self._lock = threading.Lock()

    def report_submission(self, payment_id, transaction_id, success, recorded_at, elapsed_ms) -> None:
        self._append(
            LedgerEvent(
                kind=EventKind.SUBMISSION,
                payment_id=payment_id,
                transaction_id=transaction_id,
                success=success,
                recorded_at=recorded_at,
                elapsed_ms=elapsed_ms,
            )
        )

    def report_processing(self, payment_id, transaction_id, success, recorded_at, reason) -> None:
        self._append(
            LedgerEvent(
                kind=EventKind.PROCESSING,
                payment_id=payment_id,
                transaction_id=transaction_id,
                success=success,
                recorded_at=recorded_at,
                reason=reason,
            )
        )

    def _append(self, event: LedgerEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[LedgerEvent]:
        with self._lock:
            return list(self._events)

    def events_for(self, payment_id: str, kind: EventKind | None = None) -> list[LedgerEvent]:
        return [e for e in self.events if e.payment_id == payment_id and (kind is None or e.kind is kind)]

    def final_event(self, payment_id: str) -> LedgerEvent | None:
        """Last processing event reported for a payment."""
        processing = self.events_for(payment_id, EventKind.PROCESSING)
        return processing[-1] if processing else None


class SqliteLedger:
    """Ledger backed by a ``payment_events`` table.

    The connection is shared by every worker thread, so writes are
    serialized with a lock; open it with ``check_same_thread=False``.
    """

    def __init__(self, conn):
        """Initialize with a database connection.

        Args:
            conn: sqlite3.Connection
        """
        self._conn = conn
        self._lock = threading.Lock()

    def ensure_schema(self) -> None:
        with self._lock:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS payment_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    kind TEXT NOT NULL,
                    payment_id TEXT NOT NULL,
                    transaction_id TEXT NOT NULL,
                    success INTEGER NOT NULL,
                    recorded_at INTEGER NOT NULL,
                    elapsed_ms INTEGER,
                    reason TEXT
                )
                """
            )
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_payment_events_payment ON payment_events (payment_id)"
            )
            self._conn.commit()

    def report_submission(self, payment_id, transaction_id, success, recorded_at, elapsed_ms) -> None:
        self._insert(EventKind.SUBMISSION, payment_id, transaction_id, success, recorded_at, elapsed_ms, None)

    def report_processing(self, payment_id, transaction_id, success, recorded_at, reason) -> None:
        self._insert(EventKind.PROCESSING, payment_id, transaction_id, success, recorded_at, None, reason)

    def _insert(self, kind, payment_id, transaction_id, success, recorded_at, elapsed_ms, reason) -> None:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO payment_events (
                    kind, payment_id, transaction_id, success, recorded_at, elapsed_ms, reason
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (kind.value, payment_id, transaction_id, int(success), recorded_at, elapsed_ms, reason),
            )
            self._conn.commit()

    def get_events(self, payment_id: str) -> list[LedgerEvent]:
        """Events for a payment in report order."""
        with self._lock:
            cursor = self._conn.execute(
                """
                SELECT kind, payment_id, transaction_id, success, recorded_at, elapsed_ms, reason
                FROM payment_events
                WHERE payment_id = ?
                ORDER BY id
                """,
                (payment_id,),
            )
            rows = cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    def _row_to_event(self, row) -> LedgerEvent:
        return LedgerEvent(
            kind=EventKind(row[0]),
            payment_id=row[1],
            transaction_id=row[2],
            success=bool(row[3]),
            recorded_at=row[4],
            elapsed_ms=row[5],
            reason=row[6],
        )
