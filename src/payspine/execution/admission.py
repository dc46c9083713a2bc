"""Admission control: concurrency window + rate limiter as one decision.

An attempt may call the provider only after it holds a concurrency slot
and the rate limiter has admitted it. The slot is taken first; while the
attempt then waits for rate budget it keeps the slot, which lowers
effective parallelism during rate back-pressure but keeps slot lifetime
simple: acquired here, released by the same attempt after its call.

::

    acquire(remaining_ms)
      ├── OngoingWindow.try_acquire(remaining_ms)  ── refused ──▶ False
      ├── RateLimiter.tick()                       ── admitted ─▶ True
      └── RateLimiter.tick_blocking(bound)         ── admitted ─▶ True
                                                   ── timed out ─▶ release slot, False

``bound`` is None (wait as long as it takes) unless the gate was built with
``bound_rate_wait=True``, in which case the wait is limited to the time left
before the deadline.

Example::

    gate = AdmissionGate(OngoingWindow(10), SlidingWindowLimiter(10))
    with gate.admitted(remaining_ms=deadline - now) as ok:
        if not ok:
            abort()
        call_provider()
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from payspine.core.logging import get_logger
from payspine.execution.concurrency import OngoingWindow
from payspine.execution.rate_limit import RateLimiter, SlidingWindowLimiter

logger = get_logger(__name__)


@dataclass(frozen=True)
class AdmissionStats:
    """Counters for monitoring the gate."""

    admitted: int
    refused: int
    rate_waits: int
    released: int
    in_flight: int


class AdmissionGate:
    """Thread-safe composition of a concurrency window and a rate limiter."""

    def __init__(
        self,
        window: OngoingWindow,
        limiter: RateLimiter,
        *,
        bound_rate_wait: bool = False,
    ):
        self.window = window
        self.limiter = limiter
        self.bound_rate_wait = bound_rate_wait
        self._lock = threading.Lock()
        self._admitted = 0
        self._refused = 0
        self._rate_waits = 0
        self._released = 0

    @classmethod
    def from_settings(cls, settings) -> AdmissionGate:
        """Build a gate sized by ``ProviderAccountSettings``."""
        return cls(
            OngoingWindow(settings.parallel_requests),
            SlidingWindowLimiter(max_requests=settings.rate_limit_per_sec, window_seconds=1.0),
            bound_rate_wait=settings.strict_deadline,
        )

    def acquire(self, remaining_ms: float) -> bool:
        """Admit one call, waiting for a slot at most ``remaining_ms``.

        Never raises on refusal; returns False so the caller can abort.
        Every True must be matched by exactly one ``release()``. With
        ``bound_rate_wait`` the slot wait and the rate wait together stay
        within ``remaining_ms``.
        """
        entered = time.monotonic()
        if not self.window.try_acquire(remaining_ms):
            with self._lock:
                self._refused += 1
            return False

        try:
            admitted = self._wait_for_rate_budget(remaining_ms, entered)
        except BaseException:
            self.window.release()
            raise

        if not admitted:
            self.window.release()
            with self._lock:
                self._refused += 1
            return False

        with self._lock:
            self._admitted += 1
        return True

    def _wait_for_rate_budget(self, remaining_ms: float, entered: float) -> bool:
        if self.limiter.tick():
            return True
        with self._lock:
            self._rate_waits += 1
        left_ms = max(remaining_ms - (time.monotonic() - entered) * 1000, 0)
        logger.warning("rate_limit_wait", remaining_ms=left_ms)
        bound = left_ms / 1000 if self.bound_rate_wait else None
        return self.limiter.tick_blocking(timeout=bound)

    def release(self) -> None:
        """Return the slot taken by a successful ``acquire``."""
        self.window.release()
        with self._lock:
            self._released += 1

    @contextmanager
    def admitted(self, remaining_ms: float) -> Iterator[bool]:
        """Yield the admission outcome; release on exit only if admitted."""
        ok = self.acquire(remaining_ms)
        try:
            yield ok
        finally:
            if ok:
                self.release()

    def stats(self) -> AdmissionStats:
        with self._lock:
            return AdmissionStats(
                admitted=self._admitted,
                refused=self._refused,
                rate_waits=self._rate_waits,
                released=self._released,
                in_flight=self.window.in_flight,
            )
