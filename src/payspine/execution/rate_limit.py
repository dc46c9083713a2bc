"""Rate Limiting — sliding-window throughput control for provider calls.

The provider accepts at most ``rate_limit_per_sec`` calls per second and
answers 429 beyond that. ``SlidingWindowLimiter`` lets the adapter throttle
outgoing calls *before* they hit the limit.

ARCHITECTURE
────────────
::

    RateLimiter (ABC)
      └── SlidingWindowLimiter   ─ exact count in rolling window

    .tick()                      ─ non-blocking, True if admitted
    .tick_blocking(timeout=None) ─ waits for the next free slot in the window
    .get_wait_time()             ─ seconds until a tick would succeed

    Thread-safe (internal Lock); the lock is released while sleeping.

Example::

    limiter = SlidingWindowLimiter(max_requests=10, window_seconds=1.0)
    if not limiter.tick():
        limiter.tick_blocking()
    make_provider_call()
"""

import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field


class RateLimiter(ABC):
    """Abstract base for rate limiters."""

    @abstractmethod
    def tick(self) -> bool:
        """Try to take one unit of budget without waiting."""
        ...

    @abstractmethod
    def tick_blocking(self, timeout: float | None = None) -> bool:
        """Wait for one unit of budget.

        Args:
            timeout: Maximum seconds to wait, None for no bound

        Returns:
            True once admitted, False if ``timeout`` elapsed first
        """
        ...

    @abstractmethod
    def get_wait_time(self) -> float:
        """Seconds until a tick would succeed (0 if available now)."""
        ...


@dataclass
class SlidingWindowLimiter(RateLimiter):
    """Sliding window rate limiter.

    Counts ticks in a rolling window; prevents the boundary bursts a fixed
    window allows.

    Attributes:
        max_requests: Maximum ticks per window
        window_seconds: Window size in seconds
    """

    max_requests: int
    window_seconds: float = 1.0

    _timestamps: deque[float] = field(default_factory=deque, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def __post_init__(self):
        if self.max_requests <= 0:
            raise ValueError(f"max_requests must be positive, got {self.max_requests}")

    def _cleanup(self, now: float) -> None:
        """Drop timestamps outside the window."""
        cutoff = now - self.window_seconds
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def _wait_time_locked(self, now: float) -> float:
        if len(self._timestamps) < self.max_requests:
            return 0.0
        oldest = self._timestamps[len(self._timestamps) - self.max_requests]
        return max(0.0, (oldest + self.window_seconds) - now)

    def tick(self) -> bool:
        with self._lock:
            now = time.monotonic()
            self._cleanup(now)
            if len(self._timestamps) < self.max_requests:
                self._timestamps.append(now)
                return True
            return False

    def tick_blocking(self, timeout: float | None = None) -> bool:
        give_up_at = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                now = time.monotonic()
                self._cleanup(now)
                if len(self._timestamps) < self.max_requests:
                    self._timestamps.append(now)
                    return True
                wait_time = self._wait_time_locked(now)

            if give_up_at is not None:
                left = give_up_at - time.monotonic()
                if left <= 0:
                    return False
                wait_time = min(wait_time, left)

            # Release lock while sleeping
            time.sleep(max(wait_time, 0.001))

    def get_wait_time(self) -> float:
        with self._lock:
            now = time.monotonic()
            self._cleanup(now)
            return self._wait_time_locked(now)

    @property
    def current_count(self) -> int:
        """Ticks taken in the current window."""
        with self._lock:
            self._cleanup(time.monotonic())
            return len(self._timestamps)
