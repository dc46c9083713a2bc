"""Payment attempt models.

``PaymentAttempt`` is the immutable identity of one payment request inside
the adapter; ``AttemptState`` is the loop's state machine; ``AttemptReport``
is what the loop returns when it reaches a terminal state; ``LedgerEvent``
is one row of the append-only payment event log.

State machine::

    INIT ──▶ SUBMITTED ──▶ ATTEMPTING ──┬──▶ SUCCESS
                                        ├──▶ DEADLINE_ABORTED
                                        ├──▶ TERMINAL_FAILURE
                                        └──▶ EXHAUSTED
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from payspine.core.errors import PaymentError


class AttemptState(str, Enum):
    INIT = "init"
    SUBMITTED = "submitted"
    ATTEMPTING = "attempting"
    SUCCESS = "success"
    DEADLINE_ABORTED = "deadline_aborted"
    TERMINAL_FAILURE = "terminal_failure"
    EXHAUSTED = "exhausted"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {
        AttemptState.SUCCESS,
        AttemptState.DEADLINE_ABORTED,
        AttemptState.TERMINAL_FAILURE,
        AttemptState.EXHAUSTED,
    }
)


@dataclass(frozen=True)
class PaymentAttempt:
    """One accepted payment request.

    Attributes:
        payment_id: Caller's payment id
        transaction_id: Generated once per request
        amount: Amount forwarded to the provider as-is
        started_at: When the request was accepted (epoch ms)
        deadline: Absolute deadline (epoch ms)
    """

    payment_id: str
    transaction_id: str
    amount: int
    started_at: int
    deadline: int

    @classmethod
    def create(cls, payment_id: str, amount: int, started_at: int, deadline: int) -> PaymentAttempt:
        return cls(
            payment_id=str(payment_id),
            transaction_id=str(uuid.uuid4()),
            amount=amount,
            started_at=started_at,
            deadline=deadline,
        )


@dataclass
class AttemptReport:
    """Final state of one payment's attempt loop."""

    attempt: PaymentAttempt
    state: AttemptState
    calls: int = 0
    max_attempts: int = 0
    delays_ms: list[float] = field(default_factory=list)
    error: PaymentError | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is AttemptState.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "payment_id": self.attempt.payment_id,
            "transaction_id": self.attempt.transaction_id,
            "state": self.state.value,
            "calls": self.calls,
            "max_attempts": self.max_attempts,
            "delays_ms": list(self.delays_ms),
            "error": self.error.to_dict() if self.error else None,
        }


class EventKind(str, Enum):
    SUBMISSION = "submission"
    PROCESSING = "processing"


@dataclass(frozen=True)
class LedgerEvent:
    """One reported submission or processing outcome."""

    kind: EventKind
    payment_id: str
    transaction_id: str
    success: bool
    recorded_at: int
    elapsed_ms: int | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "payment_id": self.payment_id,
            "transaction_id": self.transaction_id,
            "success": self.success,
            "recorded_at": self.recorded_at,
            "elapsed_ms": self.elapsed_ms,
            "reason": self.reason,
        }
