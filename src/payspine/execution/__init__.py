"""payspine execution — admission, adaptive timeouts and the attempt loop.

ARCHITECTURE
────────────
::

    PaymentProviderAdapter (adapter.py)
      │   one attempt loop per payment, on a worker thread
      │
      ├── AdmissionGate      (admission.py)   shared per account
      │     ├── OngoingWindow        (concurrency.py) ─ in-flight cap
      │     └── SlidingWindowLimiter (rate_limit.py)  ─ calls per second
      ├── LatencyEstimator   (latency.py)     shared per account
      ├── RetryScheduler     (retry.py)       owned by the loop
      ├── classify()         (classify.py)    response → Outcome
      ├── Transport          (transport.py)   httpx + pydantic body
      └── PaymentLedger      (ledger.py)      submission/processing events

MODULE MAP
──────────
  1. models.py       ─ PaymentAttempt, AttemptState, AttemptReport, LedgerEvent
  2. latency.py      ─ LatencyHistogram, LatencyEstimator
  3. rate_limit.py   ─ RateLimiter, SlidingWindowLimiter
  4. concurrency.py  ─ OngoingWindow
  5. admission.py    ─ AdmissionGate
  6. classify.py     ─ Outcome, CallOutcome, classify
  7. retry.py        ─ ExponentialBackoff, RetryScheduler
  8. transport.py    ─ HttpxTransport, JsonBodyDecoder
  9. ledger.py       ─ InMemoryLedger, SqliteLedger
 10. adapter.py      ─ PaymentProviderAdapter
"""

from payspine.execution.adapter import PaymentProviderAdapter
from payspine.execution.admission import AdmissionGate, AdmissionStats
from payspine.execution.classify import (
    RETRIABLE_STATUS_CODES,
    CallOutcome,
    ExceptionKind,
    Outcome,
    classify,
)
from payspine.execution.concurrency import OngoingWindow
from payspine.execution.latency import LatencyEstimator, LatencyHistogram, TimeoutSnapshot
from payspine.execution.ledger import InMemoryLedger, PaymentLedger, SqliteLedger
from payspine.execution.models import (
    AttemptReport,
    AttemptState,
    EventKind,
    LedgerEvent,
    PaymentAttempt,
)
from payspine.execution.rate_limit import RateLimiter, SlidingWindowLimiter
from payspine.execution.retry import ExponentialBackoff, RetryScheduler
from payspine.execution.transport import (
    ExternalSysResponse,
    HttpxTransport,
    JsonBodyDecoder,
    PaymentRequest,
    TransportResponse,
)

__all__ = [
    "RETRIABLE_STATUS_CODES",
    "AdmissionGate",
    "AdmissionStats",
    "AttemptReport",
    "AttemptState",
    "CallOutcome",
    "EventKind",
    "ExceptionKind",
    "ExponentialBackoff",
    "ExternalSysResponse",
    "HttpxTransport",
    "InMemoryLedger",
    "JsonBodyDecoder",
    "LatencyEstimator",
    "LatencyHistogram",
    "LedgerEvent",
    "OngoingWindow",
    "Outcome",
    "PaymentAttempt",
    "PaymentLedger",
    "PaymentProviderAdapter",
    "PaymentRequest",
    "RateLimiter",
    "RetryScheduler",
    "SlidingWindowLimiter",
    "SqliteLedger",
    "TimeoutSnapshot",
    "TransportResponse",
    "classify",
]
