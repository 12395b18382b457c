"""
Ranking storage.

Holds every daily and special-event ranking in memory, indexed by day, and
writes changes through to the backing store. A day is always replaced as a
whole: the stored rows are deleted and the new list inserted, and a failed
insert puts the old rows back.
"""

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from config.settings import TABLES, WEEKLY_CONFIG
from src.base import BaseStore, RankingRecord
from src.rankings.data_adapter import (
    parse_points,
    rankings_from_rows,
    rankings_to_dataframe,
    ranking_to_row,
    remove_duplicate_rankings,
)
from src.utils.date_keys import CalendarDay, DayRef, day_ref, to_date
from src.utils.exceptions import ValidationError
from src.utils.player_names import name_key
from src.utils.validators import RankingBatchValidator

logger = logging.getLogger(__name__)


class RankingStore:
    """In-memory index of rankings by day, backed by the ``rankings`` table"""

    def __init__(self, store: BaseStore):
        self.store = store
        self._by_day: Dict[DayRef, List[RankingRecord]] = {}
        self._validator = RankingBatchValidator()

    @classmethod
    def from_records(cls, store: BaseStore, records: Iterable[RankingRecord]) -> "RankingStore":
        """Build an index from records already in hand (nothing is written)"""
        ranking_store = cls(store)
        ranking_store._index(records)
        return ranking_store

    def _index(self, records: Iterable[RankingRecord]) -> None:
        grouped = defaultdict(list)
        for record in records:
            grouped[record.day].append(record)
        self._by_day = {day: sorted(rows, key=lambda r: r.rank) for day, rows in grouped.items()}

    async def load(self) -> None:
        """Read all rankings. Raises BackingStoreUnavailable on failure."""
        self._by_day = {}
        rows = await self.store.select(TABLES['rankings'])
        self._index(rankings_from_rows(rows))
        logger.info(f"Loaded {self.total_count():,} rankings across {len(self._by_day)} days")

    async def refresh(self) -> None:
        await self.load()

    def rankings_for(self, day) -> List[RankingRecord]:
        """Records for a day or event, sorted by rank ascending"""
        return list(self._by_day.get(day_ref(day), []))

    def all_rankings(self) -> List[RankingRecord]:
        return [record for rows in self._by_day.values() for record in rows]

    def has_data(self, day) -> bool:
        return bool(self._by_day.get(day_ref(day)))

    def days_with_data(self) -> List[DayRef]:
        return [day for day, rows in self._by_day.items() if rows]

    def calendar_days(self) -> List[date]:
        """Sorted dates that have regular (non-event) rankings"""
        return sorted(day.date for day, rows in self._by_day.items() if rows and isinstance(day, CalendarDay))

    def calendar_days_in_range(self, start, end) -> List[date]:
        start, end = to_date(start), to_date(end)
        return [d for d in self.calendar_days() if start <= d <= end]

    def total_count(self) -> int:
        return sum(len(rows) for rows in self._by_day.values())

    async def set_rankings(self, day, records: Iterable[RankingRecord]) -> List[RankingRecord]:
        """
        Replace the rankings of a day or event.

        Duplicate ranks are resolved in favour of the higher points. The store
        is written first; the in-memory list is swapped only once that worked.

        Returns:
            The records actually stored, sorted by rank
        """
        ref = day_ref(day)
        records = [
            RankingRecord(day=ref, rank=r.rank, commander=r.commander.strip(), points=r.points)
            for r in records
        ]
        rows = [ranking_to_row(r) for r in records]
        is_valid, error = self._validator.validate({'rankings': rows})
        if not is_valid:
            raise ValidationError(f"Invalid rankings for {ref}: {error}")

        deduped = remove_duplicate_rankings(records)
        if len(deduped) < len(records):
            logger.warning(f"⚠️ Dropped {len(records) - len(deduped)} duplicate ranks for {ref}")

        await self.store.replace(TABLES['rankings'], {'day': ref.key}, [ranking_to_row(r) for r in deduped])
        self._by_day[ref] = deduped
        logger.info(f"Stored {len(deduped)} rankings for {ref}")
        return list(deduped)

    async def clear_day(self, day) -> int:
        """Delete all rankings of a day or event, return how many were removed"""
        ref = day_ref(day)
        await self.store.delete(TABLES['rankings'], {'day': ref.key})
        removed = len(self._by_day.pop(ref, []))
        logger.info(f"Cleared {removed} rankings for {ref}")
        return removed

    async def rename_commander(self, old_name: str, new_name: str) -> int:
        """Rename a player in every ranking, return how many rows changed"""
        new_name = (new_name or '').strip()
        if not new_name:
            raise ValidationError("New player name is required")
        old_key = name_key(old_name)

        changed = 0
        stored_names = set()
        updated: Dict[DayRef, List[RankingRecord]] = {}
        for day, rows in self._by_day.items():
            new_rows = []
            for r in rows:
                if name_key(r.commander) == old_key:
                    stored_names.add(r.commander)
                    new_rows.append(RankingRecord(day=r.day, rank=r.rank, commander=new_name, points=r.points))
                    changed += 1
                else:
                    new_rows.append(r)
            updated[day] = new_rows

        for stored in stored_names:
            await self.store.update(TABLES['rankings'], {'commander': new_name}, {'commander': stored})
        self._by_day = updated
        if changed:
            logger.info(f"Renamed '{old_name}' to '{new_name}' in {changed} rankings")
        return changed

    def player_history(self, player_name: str, start=None, end=None, resolver=None) -> List[RankingRecord]:
        """
        Regular-day rankings of one player, oldest first.

        Args:
            player_name: Any spelling of the player
            start: Optional first date to include
            end: Optional last date to include
            resolver: AliasResolver; when given every alias of the player matches

        Returns:
            Matching records sorted by date
        """
        start = to_date(start) if start is not None else None
        end = to_date(end) if end is not None else None
        names = resolver.variations_of(player_name) if resolver else {player_name}
        keys = {name_key(n) for n in names}
        history = [
            r for day, rows in self._by_day.items() if isinstance(day, CalendarDay)
            for r in rows
            if name_key(r.commander) in keys
            and (start is None or day.date >= start)
            and (end is None or day.date <= end)
        ]
        return sorted(history, key=lambda r: (r.day.date, r.rank))

    def player_stats(self, player_name: str, today=None, resolver=None,
                     days: Optional[int] = None) -> Optional[Dict]:
        """
        Summary of a player's ranking record.

        Returns:
            Dict with the record count, best rank (and the day it happened),
            latest points, last day seen and the records of the last ``days``
            days, or None when the player has never been ranked
        """
        records = self.player_history(player_name, resolver=resolver)
        if not records:
            return None
        today = to_date(today) if today is not None else date.today()
        days = days if days is not None else WEEKLY_CONFIG['player_history_days']
        window_start = today - timedelta(days=days)

        best = min(records, key=lambda r: (r.rank, r.day.date))
        latest = records[-1]
        return {
            'player': resolver.resolve(player_name) if resolver else player_name,
            'records': len(records),
            'best_rank': best.rank,
            'best_rank_day': best.day.date,
            'latest_points': parse_points(latest.points),
            'last_seen': latest.day.date,
            'history': [r for r in records if window_start <= r.day.date <= today],
        }

    def search_players(self, term: str, today=None, limit: int = 50) -> List[Dict]:
        """Stats for every commander whose name contains ``term`` (2+ characters)"""
        needle = name_key(term or '')
        if len(needle) < 2:
            return []
        names: Dict[str, str] = {}
        for day, rows in self._by_day.items():
            if not isinstance(day, CalendarDay):
                continue
            for r in rows:
                if needle in name_key(r.commander):
                    names.setdefault(name_key(r.commander), r.commander)
        matches = sorted(names.values(), key=name_key)[:limit]
        return [self.player_stats(name, today=today) for name in matches]

    def export_day_csv(self, day) -> Optional[str]:
        """CSV text (Ranking, Commander, Points) of one day's rankings, None when the day is empty"""
        records = self.rankings_for(day)
        if not records:
            return None
        df = rankings_to_dataframe(records)[['rank', 'commander', 'points']]
        df.columns = ['Ranking', 'Commander', 'Points']
        return df.to_csv(index=False, lineterminator='\n')

    def __repr__(self) -> str:
        return f"RankingStore(days={len(self._by_day)}, rankings={self.total_count()})"
