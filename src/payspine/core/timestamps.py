"""
Clock utilities (stdlib-only).

The attempt loop works in epoch milliseconds because that is what callers
hand in as ``started_at`` and ``deadline``. The clock is injectable so tests
can drive time by hand.
"""

import time
from datetime import UTC, datetime
from typing import Protocol


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def from_epoch_ms(value: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, UTC)


class Clock(Protocol):
    """Time source used by the attempt loop."""

    def now_ms(self) -> int: ...

    def sleep_ms(self, ms: float) -> None: ...


class SystemClock:
    """Real wall clock."""

    def now_ms(self) -> int:
        return now_ms()

    def sleep_ms(self, ms: float) -> None:
        if ms > 0:
            time.sleep(ms / 1000)
