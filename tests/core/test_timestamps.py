"""Tests for clock utilities."""

import time
from datetime import UTC, datetime

from payspine.core.timestamps import SystemClock, from_epoch_ms, now_ms, utc_now


def test_now_ms_tracks_wall_clock():
    before = int(time.time() * 1000)
    value = now_ms()
    after = int(time.time() * 1000)
    assert before <= value <= after


def test_from_epoch_ms():
    assert from_epoch_ms(1_700_000_000_000) == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)


def test_utc_now_is_aware():
    assert utc_now().tzinfo is UTC


class TestSystemClock:
    def test_sleep_ms_waits(self):
        clock = SystemClock()
        start = time.monotonic()
        clock.sleep_ms(20)
        assert time.monotonic() - start >= 0.015

    def test_non_positive_sleep_returns_immediately(self):
        clock = SystemClock()
        start = time.monotonic()
        clock.sleep_ms(-100)
        clock.sleep_ms(0)
        assert time.monotonic() - start < 0.5
