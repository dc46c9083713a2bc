"""Tests for the admission gate."""

import threading
import time

import pytest

from payspine.execution.admission import AdmissionGate, AdmissionStats
from payspine.execution.concurrency import OngoingWindow
from payspine.execution.rate_limit import SlidingWindowLimiter


def make_gate(slots=2, rate=100, window_seconds=1.0, bound_rate_wait=False):
    return AdmissionGate(
        OngoingWindow(slots),
        SlidingWindowLimiter(max_requests=rate, window_seconds=window_seconds),
        bound_rate_wait=bound_rate_wait,
    )


class TestAdmissionGate:
    """Tests for AdmissionGate."""

    def test_admits_and_releases(self):
        gate = make_gate()

        assert gate.acquire(1000) is True
        assert gate.window.in_flight == 1

        gate.release()

        assert gate.stats() == AdmissionStats(admitted=1, refused=0, rate_waits=0, released=1, in_flight=0)

    def test_refuses_when_no_slot_in_time(self):
        """Test refusal does not take or leak a slot."""
        gate = make_gate(slots=1)
        gate.acquire(0)

        assert gate.acquire(10) is False

        stats = gate.stats()
        assert stats.refused == 1
        assert stats.in_flight == 1

    def test_refuses_immediately_when_deadline_passed(self):
        gate = make_gate(slots=1)
        gate.acquire(0)

        start = time.monotonic()
        assert gate.acquire(-100) is False
        assert time.monotonic() - start < 0.5

    def test_context_manager_releases_on_success(self):
        gate = make_gate()

        with gate.admitted(1000) as ok:
            assert ok is True
            assert gate.window.in_flight == 1

        assert gate.window.in_flight == 0
        assert gate.stats().released == 1

    def test_context_manager_does_not_release_when_refused(self):
        """Test a refused admission never gives back someone else's slot."""
        gate = make_gate(slots=1)
        gate.acquire(0)

        with gate.admitted(0) as ok:
            assert ok is False

        assert gate.window.in_flight == 1
        assert gate.stats().released == 0

    def test_context_manager_releases_on_exception(self):
        gate = make_gate()

        with pytest.raises(ConnectionError):
            with gate.admitted(1000):
                raise ConnectionError("boom")

        assert gate.window.in_flight == 0

    def test_rate_wait_in_soft_mode_blocks_until_budget(self):
        """Test the gate waits for rate budget even with little time left."""
        gate = make_gate(slots=5, rate=1, window_seconds=0.05)
        gate.acquire(1000)
        gate.release()

        start = time.monotonic()
        assert gate.acquire(1) is True
        assert time.monotonic() - start >= 0.03
        assert gate.stats().rate_waits == 1

    def test_rate_wait_in_strict_mode_is_bounded(self):
        """Test a bounded rate wait gives back the slot when it times out."""
        gate = make_gate(slots=5, rate=1, window_seconds=10.0, bound_rate_wait=True)
        gate.acquire(1000)
        gate.release()

        assert gate.acquire(20) is False

        stats = gate.stats()
        assert stats.rate_waits == 1
        assert stats.refused == 1
        assert stats.in_flight == 0

    def test_from_settings(self, make_settings):
        settings = make_settings(parallel_requests=3, rate_limit_per_sec=7, strict_deadline=True)

        gate = AdmissionGate.from_settings(settings)

        assert gate.window.max_in_flight == 3
        assert gate.limiter.max_requests == 7
        assert gate.bound_rate_wait is True

    def test_strict_rate_wait_counts_time_spent_on_the_slot(self):
        """Slot wait plus rate wait stay within the time left."""
        gate = make_gate(slots=1, rate=1, window_seconds=10.0, bound_rate_wait=True)
        gate.acquire(1000)  # holds the only slot and the whole rate budget

        timer = threading.Timer(0.08, gate.release)
        timer.start()
        try:
            start = time.monotonic()
            admitted = gate.acquire(100)
            elapsed = time.monotonic() - start
        finally:
            timer.cancel()

        assert admitted is False
        assert elapsed < 0.15
        assert gate.stats().in_flight == 0

    def test_slot_returned_when_rate_limiter_raises(self):
        class BrokenLimiter(SlidingWindowLimiter):
            def tick(self) -> bool:
                raise RuntimeError("limiter down")

        gate = AdmissionGate(OngoingWindow(1), BrokenLimiter(max_requests=1))

        with pytest.raises(RuntimeError):
            gate.acquire(1000)

        assert gate.window.in_flight == 0
        assert gate.stats().admitted == 0
        assert gate.window.try_acquire(0) is True
