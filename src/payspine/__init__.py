"""payspine — deadline-aware resilience core for a single payment provider.

Submits monetary-transfer requests to one rate-limited, latency-variable
provider and reports a definitive outcome to a ledger before a
caller-supplied deadline.

    from payspine import PaymentProviderAdapter, ProviderAccountSettings, InMemoryLedger
"""

from payspine.core.settings import ProviderAccountSettings
from payspine.execution import InMemoryLedger, PaymentProviderAdapter, SqliteLedger

__version__ = "0.1.0"

__all__ = [
    "InMemoryLedger",
    "PaymentProviderAdapter",
    "ProviderAccountSettings",
    "SqliteLedger",
    "__version__",
]
