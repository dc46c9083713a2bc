"""
Structured error types for payspine.

Every way a payment attempt loop can end badly is modelled as a typed error
carrying retry semantics and context, so the orchestrator can report a
human-readable reason to the ledger and emit structured log fields from the
same object.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                       PaymentError                          │
        │     (category, retryable, reason, context, cause)           │
        ├─────────────────────────────────────────────────────────────┤
        │                                                             │
        │  AdmissionTimeout        RetriableProviderError             │
        │  (ADMISSION)             (PROVIDER, retryable=True)         │
        │                                                             │
        │  TerminalProviderError   AttemptsExhausted                  │
        │  (PROVIDER)              (DEADLINE)                         │
        │                                                             │
        │  BodyDecodeError                                            │
        │  (PARSE)                                                    │
        └─────────────────────────────────────────────────────────────┘

        TransportTimeout(TimeoutError) is raised by transports and is
        classified as retriable; it is not a PaymentError.

Examples:
    >>> error = AdmissionTimeout()
    >>> error.reason
    'deadline exceeded'
    >>> error.with_context(payment_id="p-1").to_dict()["context"]["payment_id"]
    'p-1'

Tags:
    error-handling, exception-hierarchy, retry-logic, payspine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEADLINE_EXCEEDED = "deadline exceeded"
MAX_RETRIES_REACHED = "max retries reached or deadline exceeded"


class ErrorCategory(str, Enum):
    """Categories used for log routing and reporting."""

    ADMISSION = "ADMISSION"
    PROVIDER = "PROVIDER"
    DEADLINE = "DEADLINE"
    PARSE = "PARSE"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Metadata attached to an error.

    Attributes:
        payment_id: Payment the error belongs to
        transaction_id: Transaction id of the attempt loop
        account_name: Provider account that was being called
        status_code: HTTP status received from the provider, if any
        attempt: Zero-based attempt index when the error happened
        extra: Free-form additional fields
    """

    payment_id: str | None = None
    transaction_id: str | None = None
    account_name: str | None = None
    status_code: int | None = None
    attempt: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, dropping unset fields."""
        result = {
            "payment_id": self.payment_id,
            "transaction_id": self.transaction_id,
            "account_name": self.account_name,
            "status_code": self.status_code,
            "attempt": self.attempt,
        }
        result = {k: v for k, v in result.items() if v is not None}
        if self.extra:
            result.update(self.extra)
        return result


class PaymentError(Exception):
    """Base class for payment attempt failures.

    Subclasses set ``default_category``, ``default_retryable`` and
    ``default_reason``. The ``reason`` is what gets written to the ledger.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False
    default_reason: str = "payment failed"

    def __init__(
        self,
        reason: str | None = None,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        self.reason = reason or self.default_reason
        super().__init__(self.reason)
        self.category = category or self.default_category
        self.retryable = self.default_retryable if retryable is None else retryable
        self.context = context or ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> PaymentError:
        """Set context fields and return self for chaining."""
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "extra":
                setattr(self.context, key, value)
            else:
                self.context.extra[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging."""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "reason": self.reason,
            "category": self.category.value,
            "retryable": self.retryable,
            "context": self.context.to_dict(),
        }
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.reason!r}, category={self.category.value})"


class AdmissionTimeout(PaymentError):
    """No concurrency slot in time, or the deadline cannot be met."""

    default_category = ErrorCategory.ADMISSION
    default_reason = DEADLINE_EXCEEDED


class RetriableProviderError(PaymentError):
    """Provider timed out or answered with a retriable status code."""

    default_category = ErrorCategory.PROVIDER
    default_retryable = True
    default_reason = "retriable provider error"


class TerminalProviderError(PaymentError):
    """Non-retriable status code, unexpected exception or unknown outcome."""

    default_category = ErrorCategory.PROVIDER
    default_reason = "terminal provider error"


class AttemptsExhausted(PaymentError):
    """Attempt budget consumed without a definitive outcome."""

    default_category = ErrorCategory.DEADLINE
    default_reason = MAX_RETRIES_REACHED


class BodyDecodeError(PaymentError):
    """Provider response body could not be decoded."""

    default_category = ErrorCategory.PARSE
    default_reason = "undecodable response body"


class TransportTimeout(TimeoutError):
    """Raised by a transport when the per-call timeout elapses.

    Inherits from built-in TimeoutError so classification can treat any
    timeout the same way.

    Attributes:
        timeout_ms: The per-call timeout that was exceeded
    """

    def __init__(self, timeout_ms: int, message: str | None = None):
        self.timeout_ms = timeout_ms
        super().__init__(message or f"provider call timed out after {timeout_ms}ms")
