"""Tests for attempt models."""

from payspine.core.errors import AttemptsExhausted
from payspine.execution.models import (
    AttemptReport,
    AttemptState,
    EventKind,
    LedgerEvent,
    PaymentAttempt,
)


class TestPaymentAttempt:
    def test_create_generates_transaction_id(self):
        a = PaymentAttempt.create("p-1", 100, 1000, 6000)
        b = PaymentAttempt.create("p-1", 100, 1000, 6000)

        assert a.payment_id == "p-1"
        assert a.transaction_id != b.transaction_id

    def test_payment_id_is_stringified(self):
        assert PaymentAttempt.create(42, 1, 0, 1).payment_id == "42"


class TestAttemptState:
    def test_terminal_states(self):
        assert {s for s in AttemptState if s.is_terminal} == {
            AttemptState.SUCCESS,
            AttemptState.DEADLINE_ABORTED,
            AttemptState.TERMINAL_FAILURE,
            AttemptState.EXHAUSTED,
        }


class TestAttemptReport:
    def test_to_dict(self):
        attempt = PaymentAttempt("p-1", "t-1", 100, 0, 3500)
        report = AttemptReport(
            attempt,
            AttemptState.EXHAUSTED,
            calls=3,
            max_attempts=3,
            delays_ms=[250, 500, 1000],
            error=AttemptsExhausted(),
        )

        data = report.to_dict()

        assert report.succeeded is False
        assert data["state"] == "exhausted"
        assert data["delays_ms"] == [250, 500, 1000]
        assert data["error"]["error_type"] == "AttemptsExhausted"


def test_ledger_event_to_dict():
    event = LedgerEvent(EventKind.PROCESSING, "p-1", "t-1", False, 1000, reason="busy")
    assert event.to_dict() == {
        "kind": "processing",
        "payment_id": "p-1",
        "transaction_id": "t-1",
        "success": False,
        "recorded_at": 1000,
        "elapsed_ms": None,
        "reason": "busy",
    }
