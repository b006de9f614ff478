"""
Unit tests for the quiet hours window.

Tests QuietHoursEvaluator, time parsing and the UTC to wall-clock
conversion used by the router.
"""

from datetime import datetime, time

import pytest

from gatekeeper.application.notification_router import local_time
from gatekeeper.domain.models import QuietHoursConfig, Severity
from gatekeeper.domain.services import QuietHoursEvaluator, parse_time_of_day


@pytest.fixture
def evaluator() -> QuietHoursEvaluator:
    return QuietHoursEvaluator()


class TestParseTimeOfDay:
    """Tests for HH:MM parsing."""

    @pytest.mark.parametrize(
        "value, minutes",
        [("00:00", 0), ("07:30", 450), ("7:05", 425), ("23:59", 1439)],
    )
    def test_valid(self, value, minutes):
        assert parse_time_of_day(value) == minutes

    @pytest.mark.parametrize("value", ["24:00", "12:60", "noon", "", "12-30"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_time_of_day(value)


class TestQuietHoursWindow:
    """Tests for QuietHoursEvaluator.is_active."""

    def test_disabled_never_active(self, evaluator: QuietHoursEvaluator):
        config = QuietHoursConfig(enabled=False, start="00:00", end="23:59")
        assert evaluator.is_active(time(12, 0), config) is False

    @pytest.mark.parametrize(
        "now, active",
        [
            (time(21, 59), False),
            (time(22, 0), True),
            (time(23, 30), True),
            (time(0, 0), True),
            (time(6, 59), True),
            (time(7, 0), False),
            (time(12, 0), False),
        ],
    )
    def test_window_wraps_midnight(self, evaluator: QuietHoursEvaluator, now, active):
        """22:00-07:00 covers the night, start inclusive, end exclusive."""
        config = QuietHoursConfig(enabled=True, start="22:00", end="07:00")
        assert evaluator.is_active(now, config) is active

    @pytest.mark.parametrize(
        "now, active",
        [(time(12, 59), False), (time(13, 0), True), (time(14, 59), True), (time(15, 0), False)],
    )
    def test_same_day_window(self, evaluator: QuietHoursEvaluator, now, active):
        config = QuietHoursConfig(enabled=True, start="13:00", end="15:00")
        assert evaluator.is_active(now, config) is active

    def test_equal_bounds_is_empty(self, evaluator: QuietHoursEvaluator):
        config = QuietHoursConfig(enabled=True, start="08:00", end="08:00")
        assert evaluator.is_active(time(8, 0), config) is False
        assert evaluator.is_active(time(20, 0), config) is False

    def test_accepts_datetime(self, evaluator: QuietHoursEvaluator):
        config = QuietHoursConfig(enabled=True, start="22:00", end="07:00")
        assert evaluator.is_active(datetime(2026, 3, 1, 23, 15), config) is True


class TestShouldQueue:
    """Tests for severity bypass."""

    @pytest.fixture
    def night(self) -> QuietHoursConfig:
        return QuietHoursConfig(enabled=True, start="22:00", end="07:00", bypass_critical=True)

    @pytest.mark.parametrize(
        "severity, queued",
        [
            (Severity.LOW, True),
            (Severity.MEDIUM, True),
            (Severity.HIGH, False),
            (Severity.CRITICAL, False),
        ],
    )
    def test_urgent_events_bypass(self, evaluator: QuietHoursEvaluator, night, severity, queued):
        assert evaluator.should_queue(severity, time(23, 0), night) is queued

    def test_no_bypass_queues_everything(self, evaluator: QuietHoursEvaluator, night):
        config = QuietHoursConfig(enabled=True, start=night.start, end=night.end, bypass_critical=False)
        assert evaluator.should_queue(Severity.CRITICAL, time(23, 0), config) is True

    def test_outside_window_never_queued(self, evaluator: QuietHoursEvaluator, night):
        assert evaluator.should_queue(Severity.LOW, time(12, 0), night) is False


class TestLocalTime:
    """Tests for UTC to wall-clock conversion."""

    def test_utc(self):
        assert local_time(datetime(2026, 1, 10, 21, 30), "UTC").hour == 21

    def test_fixed_offset_zone(self):
        """Asia/Tokyo has no DST: 21:30 UTC is 06:30 the next day."""
        converted = local_time(datetime(2026, 1, 10, 21, 30), "Asia/Tokyo")
        assert (converted.day, converted.hour, converted.minute) == (11, 6, 30)

    def test_unknown_zone_falls_back_to_utc(self):
        assert local_time(datetime(2026, 1, 10, 21, 30), "Mars/Olympus").hour == 21
