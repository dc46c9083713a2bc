"""Latency tracking and adaptive per-call timeouts.

Every completed provider call feeds its round-trip latency into a
``LatencyEstimator``. The estimator keeps the most recent samples in a
bounded FIFO and publishes an immutable ``TimeoutSnapshot`` whose
``timeout_ms`` is a high percentile of those samples. Attempt loops read the
snapshot when they build their next call.

ARCHITECTURE
────────────
::

    record_latency(ms) ──lock──▶ LatencyHistogram
                                   ├── deque[int]   (FIFO, capacity K)
                                   └── list[int]    (bucket counts)
                                        │
                                        ▼
                          TimeoutSnapshot(timeout_ms, median_ms, n)
                                        │  (atomic reference swap)
                                        ▼
    current_timeout() / estimated_processing_time()   ◀── lock-free reads

The histogram is updated incrementally: adding a sample bumps one bucket
and evicting the oldest decrements one, so recording costs O(1) and a
percentile query walks the fixed bucket array, independent of K.

Values are clamped into ``[0, highest_ms]`` where ``highest_ms`` is twice the
configured average processing time, so the adaptive timeout never exceeds
that bound.

Example::

    estimator = LatencyEstimator(average_processing_time_ms=1000)
    estimator.current_timeout()       # 2000 until something is recorded
    estimator.record_latency(340)
    estimator.current_timeout()       # ~340
"""

from __future__ import annotations

import math
import threading
from collections import deque
from dataclasses import dataclass, field

from payspine.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_PERCENTILE = 92.0
DEFAULT_MAX_SAMPLES = 10_000
DEFAULT_BUCKETS = 200


@dataclass
class LatencyHistogram:
    """Fixed-resolution histogram over a bounded FIFO of samples.

    Attributes:
        highest_ms: Largest trackable value; larger samples are clamped
        buckets: Target number of buckets across ``[0, highest_ms]``
        capacity: Maximum retained samples
    """

    highest_ms: int
    buckets: int = DEFAULT_BUCKETS
    capacity: int = DEFAULT_MAX_SAMPLES

    _samples: deque[int] = field(default_factory=deque, init=False, repr=False)
    _counts: list[int] = field(default_factory=list, init=False, repr=False)
    _width: int = field(default=1, init=False)

    def __post_init__(self):
        if self.highest_ms < 1:
            raise ValueError(f"highest_ms must be positive, got {self.highest_ms}")
        self._width = max(1, math.ceil(self.highest_ms / self.buckets))
        self._counts = [0] * (self.highest_ms // self._width + 1)

    def __len__(self) -> int:
        return len(self._samples)

    def _bucket(self, value: int) -> int:
        return min(value // self._width, len(self._counts) - 1)

    def record(self, value: float) -> int | None:
        """Add a sample, evicting the oldest when full.

        Returns:
            The evicted sample, or None
        """
        clamped = min(max(int(value), 0), self.highest_ms)
        evicted = None
        if len(self._samples) >= self.capacity:
            evicted = self._samples.popleft()
            self._counts[self._bucket(evicted)] -= 1
        self._samples.append(clamped)
        self._counts[self._bucket(clamped)] += 1
        return evicted

    def value_at_percentile(self, percentile: float) -> int:
        """Highest value of the bucket holding the given percentile.

        Returns ``highest_ms`` for an empty histogram.
        """
        total = len(self._samples)
        if total == 0:
            return self.highest_ms
        rank = max(1, math.ceil(percentile / 100.0 * total))
        seen = 0
        for index, count in enumerate(self._counts):
            seen += count
            if seen >= rank:
                return max(1, min((index + 1) * self._width - 1, self.highest_ms))
        return self.highest_ms

    def samples(self) -> list[int]:
        """Retained samples, oldest first."""
        return list(self._samples)


@dataclass(frozen=True)
class TimeoutSnapshot:
    """Immutable view published after every recorded latency."""

    timeout_ms: int
    median_ms: int
    sample_count: int


class LatencyEstimator:
    """Shared, thread-safe source of adaptive call timeouts.

    Writers serialize on one lock; readers only dereference the current
    snapshot and may observe the previous one.
    """

    def __init__(
        self,
        average_processing_time_ms: int,
        *,
        percentile: float = DEFAULT_PERCENTILE,
        max_samples: int = DEFAULT_MAX_SAMPLES,
        buckets: int = DEFAULT_BUCKETS,
    ):
        if average_processing_time_ms <= 0:
            raise ValueError(f"average_processing_time_ms must be positive, got {average_processing_time_ms}")
        if not 0 < percentile <= 100:
            raise ValueError(f"percentile must be in (0, 100], got {percentile}")

        self.average_processing_time_ms = average_processing_time_ms
        self.percentile = percentile
        self._histogram = LatencyHistogram(
            highest_ms=average_processing_time_ms * 2,
            buckets=buckets,
            capacity=max_samples,
        )
        self._lock = threading.Lock()
        self._snapshot = TimeoutSnapshot(
            timeout_ms=average_processing_time_ms * 2,
            median_ms=average_processing_time_ms,
            sample_count=0,
        )

    @classmethod
    def from_settings(cls, settings) -> LatencyEstimator:
        """Build from ``ProviderAccountSettings``."""
        return cls(
            settings.average_processing_time_ms,
            percentile=settings.timeout_percentile,
            max_samples=settings.max_latency_samples,
            buckets=settings.histogram_buckets,
        )

    def record_latency(self, ms: float) -> TimeoutSnapshot:
        """Record one observed latency and publish a new snapshot."""
        with self._lock:
            self._histogram.record(ms)
            snapshot = TimeoutSnapshot(
                timeout_ms=self._histogram.value_at_percentile(self.percentile),
                median_ms=self._histogram.value_at_percentile(50.0),
                sample_count=len(self._histogram),
            )
            self._snapshot = snapshot

        logger.debug(
            "percentile_timeout_updated",
            timeout_ms=snapshot.timeout_ms,
            median_ms=snapshot.median_ms,
            samples=snapshot.sample_count,
        )
        return snapshot

    def current_timeout(self) -> int:
        """Timeout for the next call, in milliseconds."""
        return self._snapshot.timeout_ms

    def estimated_processing_time(self) -> int:
        """Expected duration of one call, for deadline feasibility checks."""
        return max(self.average_processing_time_ms, self._snapshot.median_ms)

    @property
    def snapshot(self) -> TimeoutSnapshot:
        return self._snapshot

    def samples(self) -> list[int]:
        """Copy of the retained samples, oldest first."""
        with self._lock:
            return self._histogram.samples()
