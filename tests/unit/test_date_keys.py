"""
Tests for date key handling
"""

from datetime import date, datetime

import pandas as pd
import pytest

from src.utils.date_keys import (
    CalendarDay,
    EventDay,
    date_key,
    date_range,
    day_ref,
    is_date_key,
    to_date,
    week_dates,
)


class TestToDate:
    """Tests for converting inputs to calendar dates"""

    def test_accepts_common_types(self):
        expected = date(2025, 1, 6)
        assert to_date(expected) == expected
        assert to_date(datetime(2025, 1, 6, 23, 59)) == expected
        assert to_date(pd.Timestamp("2025-01-06 23:30")) == expected
        assert to_date("2025-01-06") == expected

    def test_timestamp_string_keeps_calendar_day(self):
        """A late-evening UTC timestamp never moves to the next day"""
        assert to_date("2025-01-06T23:00:00Z") == date(2025, 1, 6)

    def test_invalid_inputs(self):
        with pytest.raises(ValueError):
            to_date("06/01/2025")
        with pytest.raises(TypeError):
            to_date(None)

    def test_date_key_format(self):
        assert date_key(date(2025, 3, 9)) == "2025-03-09"
        assert is_date_key("2025-03-09")
        assert not is_date_key("event_x_2025-03-09_2025-03-10")


class TestWeeks:
    """Tests for week and range helpers"""

    def test_week_runs_monday_to_sunday(self):
        week = week_dates("2025-01-09")
        assert week[0] == date(2025, 1, 6)
        assert week[-1] == date(2025, 1, 12)
        assert len(week) == 7

    def test_sunday_belongs_to_previous_monday(self):
        assert week_dates("2025-01-12")[0] == date(2025, 1, 6)

    def test_date_range_is_inclusive(self):
        assert date_range("2025-01-30", "2025-02-02") == [
            date(2025, 1, 30), date(2025, 1, 31), date(2025, 2, 1), date(2025, 2, 2)
        ]


class TestDayRef:
    """Tests for telling calendar days from event keys"""

    def test_calendar_day(self):
        ref = day_ref("2025-01-06")
        assert isinstance(ref, CalendarDay)
        assert ref.key == "2025-01-06"

    def test_event_day(self):
        ref = day_ref("event_kill_event_2025-01-06_2025-01-08")
        assert isinstance(ref, EventDay)
        assert ref.key == "event_kill_event_2025-01-06_2025-01-08"

    def test_refs_are_hashable_and_comparable(self):
        assert day_ref("2025-01-06") == CalendarDay(date(2025, 1, 6))
        assert len({day_ref("2025-01-06"), day_ref(date(2025, 1, 6))}) == 1

    def test_unknown_value_rejected(self):
        with pytest.raises(ValueError):
            day_ref("yesterday")
