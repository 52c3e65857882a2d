"""
Tests for the Time Window Splitter.

Covers:
- Day shifts (no night hours)
- Shifts crossing 22:00 and midnight
- Early-morning shifts inside the night window
- Quarter-hour snapping and one-decimal fallback rounding
- "HH:MM" parsing and malformed input
"""

from decimal import Decimal

import pytest

from payroll_config.schema import NightWindow
from payroll_engines.time_window import (
    parse_time_of_day,
    shift_duration_hours,
    split_time_window,
)
from payroll_kernel.exceptions import MalformedTimeError


def hm(text: str) -> int:
    return parse_time_of_day(text)


class TestSplitTimeWindow:
    """Normal/night split against the 22:00-08:00 window."""

    def test_evening_shift_crossing_22(self):
        split = split_time_window(hm("21:00"), hm("23:30"))
        assert split.normal_hours == Decimal("1.0")
        assert split.night_hours == Decimal("1.5")

    def test_day_shift_has_no_night_hours(self):
        split = split_time_window(hm("09:00"), hm("17:00"))
        assert split.night_hours == Decimal("0")
        assert split.normal_hours == Decimal("8")

    def test_full_night_window(self):
        split = split_time_window(hm("22:00"), hm("08:00"))
        assert split.night_hours == Decimal("10")
        assert split.normal_hours == Decimal("0")

    def test_overnight_shift_inside_window(self):
        split = split_time_window(hm("23:00"), hm("07:00"))
        assert split.night_hours == Decimal("8")
        assert split.normal_hours == Decimal("0")

    def test_overnight_shift_past_08(self):
        split = split_time_window(hm("20:00"), hm("09:00"))
        assert split.normal_hours == Decimal("3")
        assert split.night_hours == Decimal("10")
        assert split.total_minutes == 13 * 60

    def test_early_morning_shift_is_night(self):
        """Work before 08:00 on the same day lies inside the night window."""
        split = split_time_window(hm("06:00"), hm("09:00"))
        assert split.night_hours == Decimal("2")
        assert split.normal_hours == Decimal("1")

    def test_equal_start_and_end_is_a_full_day(self):
        split = split_time_window(hm("09:00"), hm("09:00"))
        assert split.total_minutes == 24 * 60
        assert split.night_hours == Decimal("10")
        assert split.normal_hours == Decimal("14")

    def test_non_quarter_minutes_round_to_one_decimal(self):
        split = split_time_window(hm("09:00"), hm("09:10"))
        assert split.normal_hours == Decimal("0.2")

    def test_rounding_applies_to_both_components(self):
        split = split_time_window(hm("21:50"), hm("22:10"))
        assert split.normal_hours == Decimal("0.2")
        assert split.night_hours == Decimal("0.2")
        assert split.normal_minutes == 10
        assert split.night_minutes == 10

    def test_quarter_hours_stay_exact(self):
        split = split_time_window(hm("09:00"), hm("10:45"))
        assert split.normal_hours == Decimal("1.75")

    def test_window_without_midnight_crossing(self):
        window = NightWindow(start_minute=hm("22:00"), end_minute=hm("24:00"))
        split = split_time_window(hm("21:00"), hm("02:00"), window)
        assert split.night_hours == Decimal("2")
        assert split.normal_hours == Decimal("3")


class TestParseTimeOfDay:
    """Parsing scheduler time strings."""

    @pytest.mark.parametrize(
        "text, minutes",
        [("00:00", 0), ("9:05", 545), ("09:05", 545), ("23:59", 1439), ("24:00", 1440), ("08:30:00", 510)],
    )
    def test_valid(self, text, minutes):
        assert parse_time_of_day(text) == minutes

    @pytest.mark.parametrize("text", [None, "", "9", "ab:cd", "12:60", "25:00", "24:30", "9:0x"])
    def test_malformed(self, text):
        with pytest.raises(MalformedTimeError) as exc_info:
            parse_time_of_day(text)
        assert exc_info.value.code == "MALFORMED_TIME"
        assert exc_info.value.value == text


class TestShiftDurationHours:
    def test_same_day(self):
        assert shift_duration_hours("09:00", "12:30") == Decimal("3.5")

    def test_crossing_midnight(self):
        assert shift_duration_hours("22:00", "06:00") == Decimal("8")

    def test_malformed_raises(self):
        with pytest.raises(MalformedTimeError):
            shift_duration_hours("22:00", "later")
