"""
Season Report Management

This module saves scored season leaderboards as snapshots in the
season_rankings table and reads them back. A snapshot is keyed by
(season_name, start_date, end_date); saving again replaces it.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Tuple

from config.settings import TABLES
from src.base import BaseStore, SeasonRankingRow, SeasonWeights
from src.rankings.season import SeasonLeaderboard, SeasonScorer
from src.utils.date_keys import date_key
from src.utils.exceptions import ValidationError
from src.utils.player_names import name_key

logger = logging.getLogger(__name__)

SnapshotKey = Tuple[str, str, str]


def _row_to_record(season_name: str, start: str, end: str, row: SeasonRankingRow) -> Dict:
    return {
        'season_name': season_name,
        'start_date': start,
        'end_date': end,
        'player_name': row.player_name,
        'is_eligible': bool(row.is_eligible),
        'kudos_score': float(row.kudos_score),
        'vs_performance_score': float(row.vs_performance_score),
        'special_events_score': float(row.special_events_score),
        'alliance_contribution_score': float(row.alliance_contribution_score),
        'total_weighted_score': float(row.total_weighted_score),
        'final_rank': int(row.final_rank),
        'kudos_rank': int(row.kudos_rank) if row.kudos_rank is not None else None,
        'vs_rank': int(row.vs_rank) if row.vs_rank is not None else None,
        'special_events_rank': int(row.special_events_rank) if row.special_events_rank is not None else None,
        'alliance_rank': int(row.alliance_rank) if row.alliance_rank is not None else None,
    }


def _record_to_row(record: Dict) -> SeasonRankingRow:
    def optional_int(value):
        return int(value) if value is not None else None

    return SeasonRankingRow(
        player_name=record['player_name'],
        is_eligible=bool(record.get('is_eligible', True)),
        kudos_score=float(record.get('kudos_score') or 0),
        vs_performance_score=float(record.get('vs_performance_score') or 0),
        special_events_score=float(record.get('special_events_score') or 0),
        alliance_contribution_score=float(record.get('alliance_contribution_score') or 0),
        total_weighted_score=float(record.get('total_weighted_score') or 0),
        final_rank=int(record['final_rank']),
        kudos_rank=optional_int(record.get('kudos_rank')),
        vs_rank=optional_int(record.get('vs_rank')),
        special_events_rank=optional_int(record.get('special_events_rank')),
        alliance_rank=optional_int(record.get('alliance_rank')),
    )


class SeasonReportService:
    """
    Generates and stores season leaderboard snapshots.

    Regenerating the same snapshot key is serialised within this process.
    Two processes regenerating the same key at once are not guarded against;
    the delete-then-insert replace is not transactional.
    """

    def __init__(self, store: BaseStore, scorer: SeasonScorer):
        self.store = store
        self.scorer = scorer
        self._locks: Dict[SnapshotKey, asyncio.Lock] = {}
        self._lock_users: Dict[SnapshotKey, int] = {}

    @staticmethod
    def _key(season_name: str, start_date, end_date) -> SnapshotKey:
        season_name = (season_name or '').strip()
        if not season_name:
            raise ValidationError("Season name is required")
        return season_name, date_key(start_date), date_key(end_date)

    @asynccontextmanager
    async def _locked(self, key: SnapshotKey):
        """Hold the lock of one snapshot key; the lock is dropped once nobody uses it"""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if self._lock_users[key] == 0:
                del self._lock_users[key]
                del self._locks[key]

    async def generate(self, season_name: str, start_date, end_date,
                       weights: Optional[SeasonWeights] = None, save: bool = True) -> SeasonLeaderboard:
        """
        Score a season and (by default) replace its stored snapshot.

        Args:
            season_name: Display name of the season
            start_date: First day (inclusive)
            end_date: Last day (inclusive)
            weights: Category weights in percent
            save: Write the snapshot; False only scores

        Returns:
            The scored leaderboard
        """
        key = self._key(season_name, start_date, end_date)
        async with self._locked(key):
            leaderboard = self.scorer.score(start_date, end_date, weights)
            if save:
                await self._save(key, leaderboard)
            return leaderboard

    async def _save(self, key: SnapshotKey, leaderboard: SeasonLeaderboard) -> int:
        season_name, start, end = key
        records = [_row_to_record(season_name, start, end, row) for row in leaderboard.rows]
        logger.info(f"💾 Saving {len(records):,} season rankings for '{season_name}' ({start} to {end})...")
        try:
            await self.store.replace(
                TABLES['season_rankings'],
                {'season_name': season_name, 'start_date': start, 'end_date': end},
                records
            )
        except Exception as e:
            logger.error(f"❌ Error saving season rankings for '{season_name}': {e}")
            raise
        logger.info(f"✅ Saved {len(records):,} season rankings")
        return len(records)

    async def get(self, season_name: str, start_date, end_date) -> List[SeasonRankingRow]:
        """Stored snapshot ordered by final rank (empty if none)"""
        season_name, start, end = self._key(season_name, start_date, end_date)
        records = await self.store.select(
            TABLES['season_rankings'],
            {'season_name': season_name, 'start_date': start, 'end_date': end},
            order_by='final_rank'
        )
        return [_record_to_row(r) for r in records]

    async def available_reports(self) -> List[Dict]:
        """Distinct stored snapshots, newest first"""
        records = await self.store.select(TABLES['season_rankings'], order_by='created_at', descending=True)
        seen = set()
        reports = []
        for record in records:
            key = (record['season_name'], record['start_date'], record['end_date'])
            if key in seen:
                continue
            seen.add(key)
            reports.append({
                'season_name': key[0],
                'start_date': key[1],
                'end_date': key[2],
                'created_at': record.get('created_at'),
            })
        return reports

    async def clear(self, season_name: str, start_date, end_date) -> int:
        key = self._key(season_name, start_date, end_date)
        async with self._locked(key):
            season_name, start, end = key
            removed = await self.store.delete(
                TABLES['season_rankings'],
                {'season_name': season_name, 'start_date': start, 'end_date': end}
            )
        logger.info(f"Cleared {removed} season rankings for '{season_name}'")
        return removed

    async def rename_player(self, old_name: str, new_name: str) -> int:
        """Rename a player in every stored snapshot"""
        records = await self.store.select(TABLES['season_rankings'])
        stored = {r['player_name'] for r in records if name_key(r['player_name']) == name_key(old_name)}
        changed = 0
        for name in stored:
            updated = await self.store.update(TABLES['season_rankings'], {'player_name': new_name}, {'player_name': name})
            changed += len(updated)
        return changed
