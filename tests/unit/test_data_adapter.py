"""
Tests for converting stored rows to records
"""

import pytest

from src.base import RankingRecord
from src.rankings.data_adapter import (
    normalize_train_time,
    parse_points,
    ranking_from_row,
    rankings_from_rows,
    rankings_to_dataframe,
    remove_duplicate_rankings,
)
from src.utils.date_keys import CalendarDay, EventDay, day_ref


class TestParsePoints:
    """Points are read leniently and never raise"""

    @pytest.mark.parametrize("value,expected", [
        (1500, 1500),
        ("1500", 1500),
        ("1,234,567", 1234567),
        (" 42 ", 42),
        ("88k", 88),
        ("", 0),
        ("n/a", 0),
        (None, 0),
        (float("nan"), 0),
        (12.9, 12),
    ])
    def test_values(self, value, expected):
        assert parse_points(value) == expected


class TestRankingRows:
    """Tests for ranking row conversion"""

    def test_calendar_row(self):
        record = ranking_from_row({'day': '2025-01-06', 'ranking': '3', 'commander': ' Alice ', 'points': '900'})
        assert record.day == CalendarDay(day_ref('2025-01-06').date)
        assert record.rank == 3
        assert record.commander == 'Alice'

    def test_event_row(self):
        record = ranking_from_row({'day': 'event_kvk_2025-01-06_2025-01-07', 'ranking': 1, 'commander': 'Bob'})
        assert isinstance(record.day, EventDay)

    def test_unusable_rows_are_skipped(self):
        rows = [
            {'day': '2025-01-06', 'ranking': 1, 'commander': 'Alice', 'points': '1'},
            {'day': '2025-01-06', 'ranking': 0, 'commander': 'Zero', 'points': '1'},
            {'day': '2025-01-06', 'ranking': 2, 'commander': '', 'points': '1'},
            {'day': 'garbage', 'ranking': 3, 'commander': 'Carol', 'points': '1'},
        ]
        records = rankings_from_rows(rows)
        assert [r.commander for r in records] == ['Alice']


class TestRemoveDuplicateRankings:
    """The higher points keep a contested rank"""

    def test_higher_points_win(self):
        day = day_ref('2025-01-06')
        records = [
            RankingRecord(day=day, rank=2, commander='Low', points='100'),
            RankingRecord(day=day, rank=1, commander='Top', points='999'),
            RankingRecord(day=day, rank=2, commander='High', points='1,000'),
        ]
        result = remove_duplicate_rankings(records)
        assert [(r.rank, r.commander) for r in result] == [(1, 'Top'), (2, 'High')]

    def test_dataframe_has_numeric_points(self):
        day = day_ref('2025-01-06')
        df = rankings_to_dataframe([RankingRecord(day=day, rank=1, commander='A', points='1,500')])
        assert df.loc[0, 'points'] == 1500
        assert list(df.columns) == ['day', 'rank', 'commander', 'points']


class TestTrainTime:
    """Train times are stored as HH:MM:SS"""

    def test_defaults_and_padding(self):
        assert normalize_train_time(None) == "04:00:00"
        assert normalize_train_time("4:30") == "04:30:00"
        assert normalize_train_time("16:05:00") == "16:05:00"

    def test_invalid(self):
        with pytest.raises(ValueError):
            normalize_train_time("25:00")
        with pytest.raises(ValueError):
            normalize_train_time("noon")
