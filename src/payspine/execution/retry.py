"""Deadline-derived attempt budget and exponential backoff.

The number of attempts a payment gets is fixed up front from the time it
was given: ``floor((deadline - started_at) / average_processing_time)``.
Time later lost to waiting or backoff is not credited back. Between
retriable failures the loop sleeps; the first delay is a quarter of the
average processing time and every further one doubles, with no cap.

Example:
    >>> from payspine.execution.retry import RetryScheduler
    >>>
    >>> scheduler = RetryScheduler.for_deadline(
    ...     started_at=0, deadline=3500, average_processing_time_ms=1000,
    ... )
    >>> scheduler.max_attempts
    3
    >>> scheduler.record_retry(), scheduler.record_retry()
    (250.0, 500.0)
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ExponentialBackoff:
    """Uncapped exponential backoff.

    Delay = base_delay_ms * (multiplier ** attempt)

    Attributes:
        base_delay_ms: Delay before the first retry
        multiplier: Growth factor per retry (default: 2)
    """

    base_delay_ms: float
    multiplier: float = 2.0

    def next_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (zero-based)."""
        return self.base_delay_ms * (self.multiplier**attempt)


@dataclass
class RetryScheduler:
    """Attempt counter for one payment's loop.

    Owned by the thread running that loop; never shared.

    Attributes:
        max_attempts: Attempt budget, fixed at construction
        backoff: Delay schedule between attempts
        attempt: Attempts consumed so far
        delays: Delays handed out so far, in order
    """

    max_attempts: int
    backoff: ExponentialBackoff
    attempt: int = field(default=0, init=False)
    delays: list[float] = field(default_factory=list, init=False)

    @classmethod
    def for_deadline(
        cls,
        started_at: int,
        deadline: int,
        average_processing_time_ms: int,
    ) -> RetryScheduler:
        """Budget attempts from the window between start and deadline."""
        window = max(deadline - started_at, 0)
        return cls(
            max_attempts=window // average_processing_time_ms,
            backoff=ExponentialBackoff(base_delay_ms=average_processing_time_ms / 4),
        )

    def should_continue(self) -> bool:
        """True while the attempt budget is not used up."""
        return self.attempt < self.max_attempts

    def record_retry(self) -> float:
        """Consume one attempt and return the delay to sleep before the next."""
        delay = self.backoff.next_delay(self.attempt)
        self.delays.append(delay)
        self.attempt += 1
        return delay

    @property
    def remaining_attempts(self) -> int:
        return max(self.max_attempts - self.attempt, 0)
