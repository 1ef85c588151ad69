"""Unit tests for the injectable clocks."""

from datetime import UTC, date, datetime

from estate_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:

    def test_default_time(self):
        clock = DeterministicClock()
        assert clock.now() == datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
        assert clock.today() == date(2024, 1, 1)

    def test_advance(self):
        clock = DeterministicClock()
        clock.advance(90)
        assert clock.now() == datetime(2024, 1, 1, 12, 1, 30, tzinfo=UTC)

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance(10)
        clock.set_time(datetime(2025, 6, 30, tzinfo=UTC))
        assert clock.today() == date(2025, 6, 30)


class TestSystemClock:

    def test_timezone_aware(self):
        assert SystemClock().now().tzinfo is not None
