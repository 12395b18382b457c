"""
Weekly statistics.

For one Monday..Sunday week this computes which players reached the top-10
band (positions 1-10) or the bottom-20 band (positions 11-30) on at least two
days, and the five players with the highest cumulative points.

Special events can be folded in. Event rankings count toward every day the
event covers, but only for players with no regular ranking that day; a
player's own daily record always wins over event data. A player counts at
most once per day, however many rows or events mention them.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from config.settings import WEEKLY_CONFIG
from src.base import RankingRecord
from src.rankings.data_adapter import parse_points
from src.rankings.ranking_store import RankingStore
from src.rankings.special_events import SpecialEventStore
from src.utils.date_keys import CalendarDay, EventDay, to_date, week_dates
from src.utils.player_names import name_key

logger = logging.getLogger(__name__)


@dataclass
class WeeklyStats:
    """Everything shown on the weekly stats page"""
    week: List[date]
    top10_occurrences: Dict[str, int]
    bottom20_occurrences: Dict[str, int]
    cumulative_scores: Dict[str, int]
    days_with_data: List[date] = field(default_factory=list)
    include_special_events: bool = True

    def to_dataframe(self) -> pd.DataFrame:
        """One row per player mentioned in any of the three results"""
        players = list(dict.fromkeys(
            list(self.top10_occurrences) + list(self.bottom20_occurrences) + list(self.cumulative_scores)
        ))
        return pd.DataFrame({
            'player': players,
            'top10_days': [self.top10_occurrences.get(p, 0) for p in players],
            'bottom20_days': [self.bottom20_occurrences.get(p, 0) for p in players],
            'cumulative_points': [self.cumulative_scores.get(p, 0) for p in players],
        }, columns=['player', 'top10_days', 'bottom20_days', 'cumulative_points'])


class WeeklyAggregator:
    """Pure weekly aggregation over loaded rankings and special events"""

    def __init__(self, rankings: RankingStore, events: Optional[SpecialEventStore] = None,
                 resolver=None, config: Optional[Dict] = None):
        self.rankings = rankings
        self.events = events
        self.resolver = resolver
        self.config = {**WEEKLY_CONFIG, **(config or {})}

    def _week(self, week) -> List[date]:
        if isinstance(week, (list, tuple)):
            return [to_date(d) for d in week]
        return week_dates(week)

    def _include_events(self, include_special_events: Optional[bool]) -> bool:
        if self.events is None:
            return False
        if include_special_events is None:
            return self.config['include_special_events']
        return include_special_events

    def _player(self, commander: str, display: Dict[str, str]) -> str:
        """Canonical key for a commander; remembers the first spelling seen"""
        primary = self.resolver.resolve(commander) if self.resolver else commander
        primary = primary.strip()
        key = name_key(primary)
        display.setdefault(key, primary)
        return key

    def _daily_rows(self, day: date) -> List[RankingRecord]:
        return self.rankings.rankings_for(CalendarDay(day))

    def _event_row_sets(self, day: date) -> List[List[RankingRecord]]:
        return [self.rankings.rankings_for(EventDay(e.key)) for e in self.events.events_on(day)]

    def _band_occurrences(self, week, start: int, end: int,
                          include_special_events: Optional[bool]) -> Dict[str, int]:
        """Count days each player sits in positions ``start..end`` (1-based, inclusive)"""
        include = self._include_events(include_special_events)
        display: Dict[str, str] = {}
        counts: Dict[str, int] = {}

        for day in self._week(week):
            daily = self._daily_rows(day)
            daily_players = {self._player(r.commander, display) for r in daily}
            in_band = {self._player(r.commander, display) for r in daily[start - 1:end]}

            if include:
                for rows in self._event_row_sets(day):
                    for r in rows[start - 1:end]:
                        key = self._player(r.commander, display)
                        if key not in daily_players:
                            in_band.add(key)

            for key in in_band:
                counts[key] = counts.get(key, 0) + 1

        minimum = self.config['min_occurrences']
        kept = [(key, count) for key, count in counts.items() if count >= minimum]
        kept.sort(key=lambda item: -item[1])
        return {display[key]: count for key, count in kept}

    def top10_occurrences(self, week, include_special_events: Optional[bool] = None) -> Dict[str, int]:
        """
        Players in the top-10 band on at least two days of the week.

        Args:
            week: Seven dates (Mon..Sun) or any date inside the week
            include_special_events: Fold in event rankings (default from settings)

        Returns:
            {player: days in band}, highest count first
        """
        return self._band_occurrences(week, 1, self.config['top_band_size'], include_special_events)

    def bottom20_occurrences(self, week, include_special_events: Optional[bool] = None) -> Dict[str, int]:
        """Players in positions 11-30 on at least two days of the week"""
        return self._band_occurrences(
            week, self.config['bottom_band_start'], self.config['bottom_band_end'], include_special_events
        )

    def _best_rows(self, rows: Iterable[RankingRecord], display: Dict[str, str]) -> Dict[str, RankingRecord]:
        """Each player's lowest-rank row; equal ranks keep the higher points"""
        best: Dict[str, RankingRecord] = {}
        for r in rows:
            key = self._player(r.commander, display)
            current = best.get(key)
            if current is None or (r.rank, -parse_points(r.points)) < (current.rank, -parse_points(current.points)):
                best[key] = r
        return best

    def cumulative_scores(self, week, include_special_events: Optional[bool] = None) -> Dict[str, int]:
        """
        Top players by summed points over the week.

        Each day contributes one row per player, the player's best ranked one,
        so duplicate rows are never added twice. Unreadable points count as 0.

        Returns:
            {player: total}, at most five entries, highest first
        """
        include = self._include_events(include_special_events)
        display: Dict[str, str] = {}
        totals: Dict[str, int] = {}

        for day in self._week(week):
            best = self._best_rows(self._daily_rows(day), display)
            for key, row in best.items():
                totals[key] = totals.get(key, 0) + parse_points(row.points)

            if include:
                event_rows = [r for rows in self._event_row_sets(day) for r in rows]
                for key, row in self._best_rows(event_rows, display).items():
                    if key not in best:
                        totals[key] = totals.get(key, 0) + parse_points(row.points)

        ordered: List[Tuple[str, int]] = sorted(totals.items(), key=lambda item: -item[1])
        return {display[key]: total for key, total in ordered[:self.config['cumulative_top_n']]}

    def weekly_summary(self, week, include_special_events: Optional[bool] = None) -> WeeklyStats:
        days = self._week(week)
        include = self._include_events(include_special_events)
        stats = WeeklyStats(
            week=days,
            top10_occurrences=self.top10_occurrences(days, include),
            bottom20_occurrences=self.bottom20_occurrences(days, include),
            cumulative_scores=self.cumulative_scores(days, include),
            days_with_data=[d for d in days if self.rankings.has_data(CalendarDay(d))],
            include_special_events=include,
        )
        logger.debug(
            f"Weekly stats {days[0]}..{days[-1]}: {len(stats.top10_occurrences)} top-10 repeaters, "
            f"{len(stats.bottom20_occurrences)} bottom-20 repeaters, {len(stats.days_with_data)} days with data"
        )
        return stats
