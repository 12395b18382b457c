"""Base classes for AllianceRank components"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Union
from dataclasses import dataclass, field
from datetime import date

from src.utils.date_keys import DayRef

logger = logging.getLogger(__name__)


@dataclass
class RankingRecord:
    """One row of a daily or special-event ranking"""
    day: DayRef
    rank: int
    commander: str
    points: Union[int, str] = 0


@dataclass
class SpecialEvent:
    """Multi-day event whose rankings are stored under its key"""
    key: str
    name: str
    start_date: date
    end_date: date
    weight: float = 10.0
    pinned: bool = False
    created: Optional[str] = None

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def overlaps(self, start: date, end: date) -> bool:
        return self.start_date <= end and self.end_date >= start


@dataclass
class AllianceLeader:
    player_name: str
    is_active: bool = True


@dataclass
class RotationEntry:
    player_name: str
    rotation_order: int
    is_active: bool = True


@dataclass
class VIPSelection:
    """Conductor and VIP chosen for one train"""
    date: date
    conductor: str
    vip_player: str
    train_time: str = "04:00:00"
    notes: str = ""


@dataclass
class PlayerAlias:
    primary_name: str
    alias_name: str
    created_by: Optional[str] = None
    is_active: bool = True


@dataclass
class KudosAward:
    player_name: str
    points: int
    date_awarded: date
    reason: str = ""
    awarded_by: Optional[str] = None
    id: Optional[Any] = None


@dataclass
class RemovedPlayer:
    player_name: str
    removed_by: Optional[str] = None
    reason: Optional[str] = None
    removed_date: Optional[str] = None


@dataclass
class SeasonWeights:
    """Category weights in percent. Alliance contribution is never weighted."""
    kudos: float = 30.0
    vs_performance: float = 40.0
    special_events: float = 30.0


@dataclass
class SeasonRankingRow:
    """One player's line on a season leaderboard"""
    player_name: str
    is_eligible: bool
    kudos_score: float
    vs_performance_score: float
    special_events_score: float
    alliance_contribution_score: float
    total_weighted_score: float
    final_rank: int
    kudos_rank: Optional[int] = None
    vs_rank: Optional[int] = None
    special_events_rank: Optional[int] = None
    alliance_rank: Optional[int] = None
    breakdown: Dict[str, Any] = field(default_factory=dict)


class BaseValidator(ABC):
    """Base class for data validators"""

    @abstractmethod
    def validate(self, data: Dict) -> tuple[bool, Optional[str]]:
        """Validate data, return (is_valid, error_message)"""
        pass


class BaseStore(ABC):
    """
    Async table storage used by every component.

    Filters are equality matches on column values. Rows are plain dicts.
    Implementations raise ``BackingStoreUnavailable`` when the backend fails.
    """

    @abstractmethod
    async def select(self, table: str, filters: Optional[Dict] = None,
                     order_by: Optional[str] = None, descending: bool = False) -> List[Dict]:
        """Return rows of ``table`` matching ``filters``"""
        pass

    @abstractmethod
    async def insert(self, table: str, rows: Sequence[Dict]) -> List[Dict]:
        pass

    @abstractmethod
    async def upsert(self, table: str, rows: Sequence[Dict], on_conflict: str) -> List[Dict]:
        """Insert rows, replacing existing rows that share the ``on_conflict`` columns"""
        pass

    @abstractmethod
    async def update(self, table: str, values: Dict, filters: Dict) -> List[Dict]:
        pass

    @abstractmethod
    async def delete(self, table: str, filters: Optional[Dict] = None) -> int:
        """Delete matching rows, return how many were removed"""
        pass

    async def replace(self, table: str, filters: Optional[Dict], rows: Sequence[Dict]) -> List[Dict]:
        """
        Delete every row matching ``filters`` then insert ``rows``.

        If the insert fails the previous rows are written back before the
        error is re-raised, so a failed replace leaves the table as it was.
        """
        previous = await self.select(table, filters)
        await self.delete(table, filters)
        if not rows:
            return []
        try:
            return await self.insert(table, rows)
        except Exception as e:
            logger.error(f"❌ Replace on {table} failed, restoring {len(previous)} previous rows: {e}")
            try:
                await self.delete(table, filters)
                if previous:
                    await self.insert(table, [
                        {k: v for k, v in r.items() if k not in ('id', 'created_at')} for r in previous
                    ])
            except Exception as restore_error:
                logger.error(f"❌ Could not restore {table}: {restore_error}")
            raise

    @abstractmethod
    async def ping(self) -> bool:
        pass
