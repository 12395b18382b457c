"""
Special events.

An event spans one or more days and has its own ranking, stored in the
``rankings`` table under the event key instead of a date. Deleting an event
deletes its rankings.
"""

import logging
import re
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from config.settings import SEASON_CONFIG, TABLES
from src.base import BaseStore, RankingRecord, SpecialEvent
from src.rankings.data_adapter import event_from_row, event_to_row
from src.rankings.ranking_store import RankingStore
from src.utils.date_keys import EVENT_KEY_PREFIX, EventDay, date_key, to_date
from src.utils.exceptions import NotFoundError, ValidationError
from src.utils.validators import SpecialEventValidator

logger = logging.getLogger(__name__)


def make_event_key(name: str, start_date, end_date) -> str:
    """``event_<name lowercased, whitespace runs as _>_<start>_<end>``"""
    slug = re.sub(r'\s+', '_', name.strip()).lower()
    return f"{EVENT_KEY_PREFIX}{slug}_{date_key(start_date)}_{date_key(end_date)}"


class SpecialEventStore:
    """Special event definitions, backed by the ``special_events`` table"""

    def __init__(self, store: BaseStore, rankings: RankingStore):
        self.store = store
        self.rankings = rankings
        self._events: Dict[str, SpecialEvent] = {}
        self._validator = SpecialEventValidator()

    @classmethod
    def from_events(cls, store: BaseStore, rankings: RankingStore, events: Iterable[SpecialEvent]) -> "SpecialEventStore":
        event_store = cls(store, rankings)
        event_store._events = {e.key: e for e in events}
        return event_store

    async def load(self) -> None:
        self._events = {}
        rows = await self.store.select(TABLES['special_events'])
        self._events = {row['key']: event_from_row(row) for row in rows}
        logger.info(f"Loaded {len(self._events)} special events")

    async def refresh(self) -> None:
        await self.load()

    def list_events(self) -> List[SpecialEvent]:
        """All events, most recent start first"""
        return sorted(self._events.values(), key=lambda e: (e.start_date, e.key), reverse=True)

    def get(self, key: str) -> SpecialEvent:
        try:
            return self._events[key]
        except KeyError:
            raise NotFoundError("special event", key) from None

    def events_on(self, day) -> List[SpecialEvent]:
        """Events whose inclusive date range contains ``day``"""
        day = to_date(day)
        return sorted((e for e in self._events.values() if e.covers(day)), key=lambda e: e.key)

    def events_in_range(self, start, end) -> List[SpecialEvent]:
        """Events overlapping the inclusive range ``[start, end]``"""
        start, end = to_date(start), to_date(end)
        return sorted(
            (e for e in self._events.values() if e.overlaps(start, end)),
            key=lambda e: (e.start_date, e.key)
        )

    def pinned_events(self) -> List[SpecialEvent]:
        return [e for e in self.list_events() if e.pinned]

    def _check(self, name: str, start_date, end_date, weight) -> None:
        is_valid, error = self._validator.validate({
            'name': name,
            'start_date': start_date,
            'end_date': end_date,
            'event_weight': weight,
        })
        if not is_valid:
            raise ValidationError(error)

    async def create(self, name: str, start_date, end_date, weight: Optional[float] = None) -> SpecialEvent:
        """
        Create an event.

        Raises:
            ValidationError: empty name, start after end, negative weight,
                or an event with the same key already exists
        """
        weight = SEASON_CONFIG['default_event_weight'] if weight is None else weight
        self._check(name, start_date, end_date, weight)
        start, end = to_date(start_date), to_date(end_date)
        key = make_event_key(name, start, end)
        if key in self._events:
            raise ValidationError(f"Special event '{name}' already exists for {start} to {end}")

        event = SpecialEvent(
            key=key,
            name=name.strip(),
            start_date=start,
            end_date=end,
            weight=float(weight),
            created=datetime.now().isoformat(),
        )
        await self.store.insert(TABLES['special_events'], [event_to_row(event)])
        self._events[key] = event
        logger.info(f"Created special event '{event.name}' ({start} to {end}, weight {event.weight})")
        return event

    async def update(self, key: str, name: Optional[str] = None, start_date=None,
                     end_date=None, weight: Optional[float] = None) -> SpecialEvent:
        """Edit an event in place. The key never changes, so its rankings stay attached."""
        current = self.get(key)
        name = current.name if name is None else name
        start_date = current.start_date if start_date is None else start_date
        end_date = current.end_date if end_date is None else end_date
        weight = current.weight if weight is None else weight
        self._check(name, start_date, end_date, weight)

        event = SpecialEvent(
            key=key,
            name=name.strip(),
            start_date=to_date(start_date),
            end_date=to_date(end_date),
            weight=float(weight),
            pinned=current.pinned,
            created=current.created,
        )
        row = event_to_row(event)
        await self.store.update(
            TABLES['special_events'],
            {k: row[k] for k in ('name', 'start_date', 'end_date', 'event_weight')},
            {'key': key}
        )
        self._events[key] = event
        logger.info(f"Updated special event {key}")
        return event

    async def delete(self, key: str) -> int:
        """Delete an event and its rankings, return how many rankings went with it"""
        self.get(key)
        removed = await self.rankings.clear_day(EventDay(key))
        await self.store.delete(TABLES['special_events'], {'key': key})
        del self._events[key]
        logger.info(f"Deleted special event {key} and {removed} rankings")
        return removed

    async def set_pinned(self, key: str, pinned: bool) -> SpecialEvent:
        event = self.get(key)
        await self.store.update(TABLES['special_events'], {'pinned': bool(pinned)}, {'key': key})
        event.pinned = bool(pinned)
        return event

    async def toggle_pinned(self, key: str) -> SpecialEvent:
        return await self.set_pinned(key, not self.get(key).pinned)

    def rankings_for_event(self, key: str) -> List[RankingRecord]:
        self.get(key)
        return self.rankings.rankings_for(EventDay(key))

    async def set_event_rankings(self, key: str, records: Iterable[RankingRecord]) -> List[RankingRecord]:
        self.get(key)
        return await self.rankings.set_rankings(EventDay(key), records)

    def __len__(self) -> int:
        return len(self._events)

    def __repr__(self) -> str:
        return f"SpecialEventStore(events={len(self._events)})"
