"""
Season leaderboard scoring.

For a date range every eligible player gets four category scores:

- kudos: the latest kudos award in range, 1-10 points scaled to 0-100
- VS performance: share of the range's ranking days (days with any data at
  all) on which the player finished in the top 10, as a percentage
- special events: for each event overlapping the range (excluding alliance
  contribution events) the player's best rank converted to a percentage
  against a fixed participant baseline, times the event weight, summed
- alliance contribution: the same calculation over events whose name
  mentions "alliance" or "contribution"

The total weights the first three by the configured percentages and adds
alliance contribution as it is. Players are ranked by total, highest first;
equal totals keep alphabetical order.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from config.settings import SEASON_CONFIG
from src.base import RankingRecord, SeasonRankingRow, SeasonWeights, SpecialEvent
from src.rankings.kudos import KudosLedger
from src.rankings.ranking_store import RankingStore
from src.rankings.special_events import SpecialEventStore
from src.utils.date_keys import CalendarDay, EventDay, to_date
from src.utils.exceptions import ValidationError
from src.utils.player_names import name_key

logger = logging.getLogger(__name__)

SCORE_COLUMNS = [
    'kudos_score',
    'vs_performance_score',
    'special_events_score',
    'alliance_contribution_score',
    'total_weighted_score',
]


def default_weights() -> SeasonWeights:
    weights = SEASON_CONFIG['default_weights']
    return SeasonWeights(
        kudos=weights['kudos'],
        vs_performance=weights['vs_performance'],
        special_events=weights['special_events'],
    )


def validate_weights(weights: SeasonWeights) -> SeasonWeights:
    for name in ('kudos', 'vs_performance', 'special_events'):
        value = getattr(weights, name)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or np.isnan(value):
            raise ValidationError(f"Weight '{name}' must be a number")
        if value < 0:
            raise ValidationError(f"Weight '{name}' cannot be negative")
    return weights


def is_alliance_event(event: SpecialEvent) -> bool:
    name = event.name.lower()
    return any(keyword in name for keyword in SEASON_CONFIG['alliance_keywords'])


def event_rank_percentage(rank: int, baseline: Optional[int] = None) -> float:
    """``max(0, (baseline - rank + 1) / baseline * 100)``"""
    baseline = baseline or SEASON_CONFIG['participant_baseline']
    return max(0.0, (baseline - rank + 1) / baseline * 100)


@dataclass
class SeasonLeaderboard:
    """Scored season, highest total first"""
    start_date: date
    end_date: date
    weights: SeasonWeights
    rows: List[SeasonRankingRow] = field(default_factory=list)
    data_days: int = 0

    def to_dataframe(self) -> pd.DataFrame:
        columns = ['final_rank', 'player_name', 'is_eligible'] + SCORE_COLUMNS + [
            'kudos_rank', 'vs_rank', 'special_events_rank', 'alliance_rank'
        ]
        data = [{k: v for k, v in asdict(r).items() if k != 'breakdown'} for r in self.rows]
        return pd.DataFrame(data, columns=columns)

    def __len__(self) -> int:
        return len(self.rows)


class SeasonScorer:
    """Pure season scoring over loaded rankings, events, kudos and roster state"""

    def __init__(self, rankings: RankingStore, events: SpecialEventStore, kudos: KudosLedger,
                 leaders=None, removed=None, resolver=None):
        self.rankings = rankings
        self.events = events
        self.kudos = kudos
        self.leaders = leaders
        self.removed = removed
        self.resolver = resolver

    def _primary(self, name: str) -> str:
        return (self.resolver.resolve(name) if self.resolver else name).strip()

    def _spellings(self, primary: str) -> List[str]:
        return sorted(self.resolver.variations_of(primary)) if self.resolver else [primary]

    def is_eligible(self, player_name: str) -> bool:
        """Not removed and not an active alliance leader, under any of the player's names"""
        for spelling in self._spellings(self._primary(player_name)):
            if self.removed is not None and self.removed.is_removed(spelling):
                return False
            if self.leaders is not None and self.leaders.is_alliance_leader(spelling):
                return False
        return True

    def candidate_players(self, start, end) -> List[str]:
        """Distinct players with a daily ranking in range, alphabetical"""
        players: Dict[str, str] = {}
        for day in self.rankings.calendar_days_in_range(start, end):
            for record in self.rankings.rankings_for(CalendarDay(day)):
                primary = self._primary(record.commander)
                players.setdefault(name_key(primary), primary)
        return [players[k] for k in sorted(players)]

    def _best_ranks(self, records: Iterable[RankingRecord]) -> Dict[str, int]:
        best: Dict[str, int] = {}
        for record in records:
            key = name_key(self._primary(record.commander))
            if key not in best or record.rank < best[key]:
                best[key] = record.rank
        return best

    def _event_scores(self, events: List[SpecialEvent]) -> Dict[str, Dict]:
        """Per player: summed weighted score and per-event detail"""
        scores: Dict[str, Dict] = {}
        for event in events:
            best = self._best_ranks(self.rankings.rankings_for(EventDay(event.key)))
            for key, rank in best.items():
                percentage = event_rank_percentage(rank)
                score = percentage * event.weight / 100
                entry = scores.setdefault(key, {'score': 0.0, 'events': []})
                entry['score'] += score
                entry['events'].append({
                    'event': event.name,
                    'key': event.key,
                    'rank': rank,
                    'percentage': round(percentage, 2),
                    'weight': event.weight,
                    'score': round(score, 2),
                })
        return scores

    def score(self, start_date, end_date, weights: Optional[SeasonWeights] = None) -> SeasonLeaderboard:
        """
        Score every eligible player over ``[start_date, end_date]``.

        Args:
            start_date: First day of the season (inclusive)
            end_date: Last day of the season (inclusive)
            weights: Category weights in percent (defaults from settings)

        Returns:
            SeasonLeaderboard with rows sorted by final rank
        """
        start, end = to_date(start_date), to_date(end_date)
        if start > end:
            raise ValidationError(f"Season start {start} is after end {end}")
        weights = validate_weights(weights or default_weights())
        precision = SEASON_CONFIG['score_precision']

        data_days = self.rankings.calendar_days_in_range(start, end)
        top_rank = SEASON_CONFIG['vs_top_rank']
        top_days: Dict[str, int] = {}
        for day in data_days:
            for key, rank in self._best_ranks(self.rankings.rankings_for(CalendarDay(day))).items():
                if rank <= top_rank:
                    top_days[key] = top_days.get(key, 0) + 1

        overlapping = self.events.events_in_range(start, end) if self.events is not None else []
        special = self._event_scores([e for e in overlapping if not is_alliance_event(e)])
        alliance = self._event_scores([e for e in overlapping if is_alliance_event(e)])

        records = []
        for player in self.candidate_players(start, end):
            if not self.is_eligible(player):
                continue
            key = name_key(player)

            awards = self.kudos.for_player(player, start, end, resolver=self.resolver) if self.kudos else []
            latest = awards[0] if awards else None
            kudos_score = latest.points * SEASON_CONFIG['kudos_multiplier'] if latest else 0.0

            vs_days = top_days.get(key, 0)
            vs_score = vs_days / len(data_days) * 100 if data_days else 0.0

            special_score = special.get(key, {}).get('score', 0.0)
            alliance_score = alliance.get(key, {}).get('score', 0.0)
            total = (
                kudos_score * weights.kudos / 100
                + vs_score * weights.vs_performance / 100
                + special_score * weights.special_events / 100
                + alliance_score
            )
            records.append({
                'player_name': player,
                'kudos_score': float(kudos_score),
                'vs_performance_score': float(vs_score),
                'special_events_score': float(special_score),
                'alliance_contribution_score': float(alliance_score),
                'total_weighted_score': float(total),
                'breakdown': {
                    'kudos': {
                        'points': latest.points if latest else 0,
                        'date_awarded': latest.date_awarded.isoformat() if latest else None,
                    },
                    'vs_performance': {'top10_days': vs_days, 'data_days': len(data_days)},
                    'special_events': special.get(key, {}).get('events', []),
                    'alliance_contribution': alliance.get(key, {}).get('events', []),
                },
            })

        leaderboard = SeasonLeaderboard(start_date=start, end_date=end, weights=weights, data_days=len(data_days))
        if not records:
            logger.warning(f"⚠️ No eligible players with rankings between {start} and {end}")
            return leaderboard

        df = pd.DataFrame(records)
        # Ties keep candidate (alphabetical) order
        df['kudos_rank'] = df['kudos_score'].rank(method='first', ascending=False)
        df['vs_rank'] = df['vs_performance_score'].rank(method='first', ascending=False)
        df['special_events_rank'] = df['special_events_score'].rank(method='first', ascending=False)
        df['alliance_rank'] = df['alliance_contribution_score'].rank(method='first', ascending=False)
        df = df.sort_values('total_weighted_score', ascending=False, kind='mergesort').reset_index(drop=True)
        df['final_rank'] = np.arange(1, len(df) + 1)

        for row in df.itertuples(index=False):
            leaderboard.rows.append(SeasonRankingRow(
                player_name=row.player_name,
                is_eligible=True,
                kudos_score=round(float(row.kudos_score), precision),
                vs_performance_score=round(float(row.vs_performance_score), precision),
                special_events_score=round(float(row.special_events_score), precision),
                alliance_contribution_score=round(float(row.alliance_contribution_score), precision),
                total_weighted_score=round(float(row.total_weighted_score), precision),
                final_rank=int(row.final_rank),
                kudos_rank=int(row.kudos_rank),
                vs_rank=int(row.vs_rank),
                special_events_rank=int(row.special_events_rank),
                alliance_rank=int(row.alliance_rank),
                breakdown=row.breakdown,
            ))

        logger.info(f"Scored {len(leaderboard.rows)} players for {start} to {end} ({len(data_days)} ranking days)")
        return leaderboard
