"""Concurrency window — caps the number of in-flight provider calls.

WHY
───
The provider processes at most ``parallel_requests`` calls at once; more
than that only queue up on its side and blow the latency budget of every
payment. ``OngoingWindow`` is a counting gate: a caller takes a slot before
the call and gives it back afterwards.

ARCHITECTURE
────────────
::

    OngoingWindow(max_in_flight)
      ├── .try_acquire(timeout_ms)  ─ wait at most timeout_ms, True/False
      ├── .release()                ─ return one slot
      └── .in_flight                ─ slots currently held

BEST PRACTICES
──────────────
- Always release in a ``finally`` (or use ``AdmissionGate.admitted``,
  which handles this).
- A release without a matching acquire raises ``RuntimeError``; it is a
  slot-accounting bug, not something to tolerate.

Example::

    window = OngoingWindow(10)
    if window.try_acquire(timeout_ms=500):
        try:
            call_provider()
        finally:
            window.release()
"""

import threading
import time


class OngoingWindow:
    """Counting gate over a fixed number of slots."""

    def __init__(self, max_in_flight: int):
        if max_in_flight <= 0:
            raise ValueError(f"max_in_flight must be positive, got {max_in_flight}")
        self.max_in_flight = max_in_flight
        self._in_flight = 0
        self._cond = threading.Condition()

    def try_acquire(self, timeout_ms: float) -> bool:
        """Take a slot, waiting up to ``timeout_ms``.

        Args:
            timeout_ms: Maximum wait; zero or negative means don't wait

        Returns:
            True if a slot was taken, False otherwise
        """
        deadline = time.monotonic() + max(timeout_ms, 0) / 1000
        with self._cond:
            while self._in_flight >= self.max_in_flight:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._cond.wait(remaining)
            self._in_flight += 1
            return True

    def release(self) -> None:
        """Return a slot taken by ``try_acquire``."""
        with self._cond:
            if self._in_flight <= 0:
                raise RuntimeError("release() called without a matching acquire")
            self._in_flight -= 1
            self._cond.notify()

    @property
    def in_flight(self) -> int:
        with self._cond:
            return self._in_flight

    @property
    def available(self) -> int:
        with self._cond:
            return self.max_in_flight - self._in_flight
