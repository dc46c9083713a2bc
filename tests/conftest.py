"""
Shared pytest fixtures for payspine tests.

This module provides:
- Cleanup of cached settings and structlog configuration between tests
- A fake clock fixture
- Settings and adapter factories wired to the fakes in ``_support.fakes``

Usage:
    def test_something(clock, make_adapter):
        transport = ScriptedTransport([response()], clock=clock)
        adapter, ledger = make_adapter(transport)
"""

import pytest
import structlog

from _support.fakes import FakeClock
from payspine.core.settings import ProviderAccountSettings, clear_settings_cache
from payspine.execution.adapter import PaymentProviderAdapter
from payspine.execution.admission import AdmissionGate
from payspine.execution.concurrency import OngoingWindow
from payspine.execution.latency import LatencyEstimator
from payspine.execution.ledger import InMemoryLedger
from payspine.execution.rate_limit import SlidingWindowLimiter


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Keep cached settings and structlog config from leaking between tests."""
    clear_settings_cache()
    yield
    clear_settings_cache()
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(start=1_700_000_000_000)


@pytest.fixture
def make_settings():
    def _make(**overrides) -> ProviderAccountSettings:
        values = {
            "account_name": "acc-test",
            "service_name": "svc-test",
            "average_processing_time_ms": 1000,
            "rate_limit_per_sec": 1000,
            "parallel_requests": 4,
        }
        values.update(overrides)
        return ProviderAccountSettings(_env_file=None, **values)

    return _make


@pytest.fixture
def make_adapter(clock, make_settings):
    """Build an adapter on the fake clock; returns (adapter, ledger)."""

    def _make(transport, *, gate: AdmissionGate | None = None, **setting_overrides):
        settings = make_settings(**setting_overrides)
        ledger = InMemoryLedger()
        adapter = PaymentProviderAdapter(
            settings,
            ledger,
            transport=transport,
            estimator=LatencyEstimator.from_settings(settings),
            gate=gate
            or AdmissionGate(
                OngoingWindow(settings.parallel_requests),
                SlidingWindowLimiter(max_requests=settings.rate_limit_per_sec),
                bound_rate_wait=settings.strict_deadline,
            ),
            clock=clock,
        )
        return adapter, ledger

    return _make
