"""
Tests for weekly time windows, including windows that cross midnight.
"""
import pytest
from datetime import datetime, time, timezone

from daypart_scheduler.core.exceptions import WindowValidationError
from daypart_scheduler.core.time_window import (
    TimeWindow,
    day_of_week,
    format_time_of_day,
    normalize_days,
    parse_time_of_day,
    to_store_local,
)

SUNDAY, MONDAY, TUESDAY, WEDNESDAY, SATURDAY = 0, 1, 2, 3, 6


class TestDayOfWeek:

    def test_sunday_is_zero(self):
        assert day_of_week(datetime(2024, 1, 7)) == SUNDAY

    def test_monday_is_one(self):
        assert day_of_week(datetime(2024, 1, 8)) == MONDAY

    def test_saturday_is_six(self):
        assert day_of_week(datetime(2024, 1, 13)) == SATURDAY


class TestParseTimeOfDay:

    def test_hours_and_minutes(self):
        assert parse_time_of_day("06:30") == time(6, 30)

    def test_with_seconds(self):
        assert parse_time_of_day("23:59:59") == time(23, 59, 59)

    def test_time_object_drops_microseconds(self):
        assert parse_time_of_day(time(6, 30, 5, 123)) == time(6, 30, 5)

    @pytest.mark.parametrize("value", ["24:00", "12:60", "7", "ab:cd", "10:00:00:00", "10:00:61"])
    def test_invalid_values_rejected(self, value):
        with pytest.raises(WindowValidationError):
            parse_time_of_day(value)

    def test_format_omits_zero_seconds(self):
        assert format_time_of_day(time(6, 0)) == "06:00"
        assert format_time_of_day(time(6, 0, 30)) == "06:00:30"


class TestNormalizeDays:

    def test_duplicates_collapse(self):
        assert normalize_days([1, 1, 2]) == frozenset({1, 2})

    def test_empty_rejected(self):
        with pytest.raises(WindowValidationError):
            normalize_days([])

    @pytest.mark.parametrize("day", [-1, 7, True, "1"])
    def test_invalid_day_rejected(self, day):
        with pytest.raises(WindowValidationError):
            normalize_days([day])


class TestTimeWindowConstruction:

    def test_zero_length_window_rejected(self):
        with pytest.raises(WindowValidationError):
            TimeWindow(frozenset({MONDAY}), time(9, 0), time(9, 0))

    def test_zero_length_is_also_a_value_error(self):
        with pytest.raises(ValueError):
            TimeWindow(frozenset({MONDAY}), "09:00", "09:00")

    def test_string_times_are_parsed(self):
        window = TimeWindow(frozenset({MONDAY}), "06:00", "11:00")
        assert window.start_time == time(6, 0)
        assert window.as_tuple() == ((MONDAY,), "06:00", "11:00")

    def test_crosses_midnight(self):
        assert TimeWindow(frozenset({MONDAY}), time(22, 0), time(2, 0)).crosses_midnight
        assert not TimeWindow(frozenset({MONDAY}), time(6, 0), time(11, 0)).crosses_midnight


class TestContains:

    def test_same_day_window_is_half_open(self):
        window = TimeWindow(frozenset({WEDNESDAY}), time(6, 0), time(11, 0))
        assert window.contains_local(WEDNESDAY, time(6, 0))
        assert window.contains_local(WEDNESDAY, time(10, 59, 59))
        assert not window.contains_local(WEDNESDAY, time(11, 0))
        assert not window.contains_local(WEDNESDAY, time(5, 59))

    def test_same_day_window_other_day(self):
        window = TimeWindow(frozenset({WEDNESDAY}), time(6, 0), time(11, 0))
        assert not window.contains_local(TUESDAY, time(7, 0))

    def test_midnight_wraparound(self):
        """Monday 22:00-02:00 belongs to Monday's rule on both sides of midnight."""
        window = TimeWindow(frozenset({MONDAY}), time(22, 0), time(2, 0))

        assert window.contains_local(MONDAY, time(23, 0))
        assert window.contains_local(TUESDAY, time(1, 0))
        assert not window.contains_local(TUESDAY, time(3, 0))
        assert not window.contains_local(SUNDAY, time(23, 0))

    def test_wraparound_end_is_exclusive(self):
        window = TimeWindow(frozenset({MONDAY}), time(22, 0), time(2, 0))
        assert not window.contains_local(TUESDAY, time(2, 0))
        assert window.contains_local(MONDAY, time(22, 0))

    def test_saturday_night_wraps_into_sunday(self):
        window = TimeWindow(frozenset({SATURDAY}), time(22, 0), time(2, 0))
        assert window.contains_local(SUNDAY, time(0, 30))
        assert not window.contains_local(SATURDAY, time(0, 30))

    def test_contains_uses_instant_weekday(self):
        window = TimeWindow(frozenset({MONDAY}), time(22, 0), time(2, 0))
        assert window.contains(datetime(2024, 1, 8, 23, 0))   # Monday
        assert window.contains(datetime(2024, 1, 9, 1, 0))    # Tuesday
        assert not window.contains(datetime(2024, 1, 9, 3, 0))
        assert not window.contains(datetime(2024, 1, 7, 23, 0))  # Sunday


class TestToStoreLocal:

    def test_aware_instant_converted_to_store_zone(self):
        instant = datetime(2024, 1, 10, 13, 0, tzinfo=timezone.utc)
        local = to_store_local(instant, "America/Chicago")
        assert local == datetime(2024, 1, 10, 7, 0)
        assert local.tzinfo is None

    def test_naive_instant_taken_as_local(self):
        instant = datetime(2024, 1, 10, 7, 0)
        assert to_store_local(instant, "America/Chicago") == instant
