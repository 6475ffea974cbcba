"""Tests for the deterministic clock used by services and fixtures."""

from datetime import datetime, timedelta, timezone

from capex_kernel.domain.clock import DeterministicClock, SystemClock

START = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)


class TestDeterministicClock:

    def test_now_is_stable(self):
        clock = DeterministicClock(START)

        assert clock.now() == clock.now() == START

    def test_advance_accumulates(self):
        clock = DeterministicClock(START)

        clock.advance(days=2)
        clock.advance(weeks=1, seconds=30)

        assert clock.now() == START + timedelta(days=9, seconds=30)

    def test_default_start_is_aware(self):
        assert DeterministicClock().now().tzinfo is not None

    def test_exposes_only_advance(self):
        clock = DeterministicClock(START)

        assert not hasattr(clock, "tick")
        assert not hasattr(clock, "set_time")


def test_system_clock_is_utc():
    assert SystemClock().now().tzinfo == timezone.utc
