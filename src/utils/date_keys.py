"""
Date key handling.

Every day in the system is identified by a ``YYYY-MM-DD`` string. Conversions
happen here and nowhere else: inputs are read as calendar dates, never as
instants, so no timezone can move a ranking to a neighbouring day.

Special-event rankings are stored under the event key instead of a date, so a
stored ``day`` column is either a calendar date or an event key. ``day_ref``
turns the raw column into a ``CalendarDay`` or an ``EventDay``.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Union

import pandas as pd

EVENT_KEY_PREFIX = "event_"


def to_date(value) -> date:
    """Convert a date, datetime, pandas Timestamp or ``YYYY-MM-DD`` string to a date."""
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        # Only the date part is significant; "2025-01-06T23:00:00Z" is 2025-01-06
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            raise ValueError(f"Invalid date key: {value!r}")
    raise TypeError(f"Cannot interpret {type(value).__name__} as a date")


def date_key(value) -> str:
    """Format any accepted date value as ``YYYY-MM-DD``."""
    return to_date(value).isoformat()


def is_date_key(value: str) -> bool:
    if not isinstance(value, str) or len(value) != 10:
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def week_dates(value) -> List[date]:
    """Monday..Sunday of the week containing ``value``."""
    day = to_date(value)
    monday = day - timedelta(days=day.weekday())
    return [monday + timedelta(days=i) for i in range(7)]


def date_range(start, end) -> List[date]:
    """Inclusive list of dates from start to end."""
    start, end = to_date(start), to_date(end)
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


@dataclass(frozen=True)
class CalendarDay:
    """Rankings captured on a regular day."""
    date: date

    @property
    def key(self) -> str:
        return self.date.isoformat()

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class EventDay:
    """Rankings belonging to a special event."""
    event_key: str

    @property
    def key(self) -> str:
        return self.event_key

    def __str__(self) -> str:
        return self.key


DayRef = Union[CalendarDay, EventDay]


def day_ref(raw) -> DayRef:
    """Build a DayRef from a stored ``day`` value or an existing DayRef."""
    if isinstance(raw, (CalendarDay, EventDay)):
        return raw
    if isinstance(raw, (date, datetime, pd.Timestamp)):
        return CalendarDay(to_date(raw))
    raw = str(raw).strip()
    if raw.startswith(EVENT_KEY_PREFIX):
        return EventDay(raw)
    if is_date_key(raw[:10]) and (len(raw) == 10 or raw[10] in "T "):
        return CalendarDay(to_date(raw))
    raise ValueError(f"Unrecognised day reference: {raw!r}")
