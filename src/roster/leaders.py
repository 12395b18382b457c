"""
Alliance leaders and VIP train selections.

Leaders are the players who take turns conducting trains. Removing a leader
who has already conducted a train keeps them on record as inactive, since
the VIP history still names them; only leaders with no history are deleted.
"""

import logging
from datetime import date, timedelta
from enum import Enum
from typing import Dict, List, Optional

from config.settings import ROTATION_CONFIG, TABLES
from src.base import AllianceLeader, BaseStore, VIPSelection
from src.rankings.data_adapter import leader_from_row, normalize_train_time, vip_from_row, vip_to_row
from src.roster.rotation import RotationEngine
from src.utils.date_keys import date_key, date_range, to_date, week_dates
from src.utils.exceptions import NotFoundError, ValidationError
from src.utils.player_names import name_key, same_player

logger = logging.getLogger(__name__)


class LeaderRemoval(Enum):
    """Outcome of removing an alliance leader"""
    DELETED = "deleted"
    CONFLICT_WITH_HISTORY = "conflict_with_history"

    @property
    def user_message(self) -> str:
        if self is LeaderRemoval.CONFLICT_WITH_HISTORY:
            return ("⚠️ This leader has conducted trains before, so they were marked inactive "
                    "instead of deleted to keep the VIP history intact.")
        return "✅ Leader removed."


class LeaderRoster:
    """Alliance leaders and VIP selections, coupled to the conductor rotation"""

    def __init__(self, store: BaseStore, rotation: RotationEngine):
        self.store = store
        self.rotation = rotation
        self._leaders: List[AllianceLeader] = []
        self._vips: Dict[tuple, VIPSelection] = {}

    @classmethod
    def from_records(cls, store: BaseStore, rotation: RotationEngine,
                     leaders: List[AllianceLeader], vips: List[VIPSelection]) -> "LeaderRoster":
        roster = cls(store, rotation)
        roster._leaders = list(leaders)
        roster._vips = {(date_key(v.date), v.train_time): v for v in vips}
        return roster

    async def load(self) -> None:
        """Load leaders and VIP selections (the rotation loads itself)"""
        self._leaders = []
        self._vips = {}
        leader_rows = await self.store.select(TABLES['alliance_leaders'], order_by='player_name')
        vip_rows = await self.store.select(TABLES['vip_selections'], order_by='date')
        self._leaders = [leader_from_row(r) for r in leader_rows]
        for row in vip_rows:
            vip = vip_from_row(row)
            self._vips[(date_key(vip.date), vip.train_time)] = vip
        logger.info(f"Loaded {len(self.active_leaders())} active leaders and {len(self._vips)} VIP selections")

    async def refresh(self) -> None:
        await self.load()

    # Leaders

    def leaders(self) -> List[AllianceLeader]:
        return list(self._leaders)

    def active_leaders(self) -> List[AllianceLeader]:
        return [l for l in self._leaders if l.is_active]

    def _find_leader(self, player_name: str) -> Optional[AllianceLeader]:
        key = name_key(player_name)
        return next((l for l in self._leaders if name_key(l.player_name) == key), None)

    def is_alliance_leader(self, player_name: str) -> bool:
        leader = self._find_leader(player_name)
        return leader is not None and leader.is_active

    def has_conductor_history(self, player_name: str) -> bool:
        return any(same_player(v.conductor, player_name) for v in self._vips.values())

    async def add_alliance_leader(self, player_name: str) -> AllianceLeader:
        """
        Add a leader at the back of the rotation.

        An inactive leader is reactivated rather than duplicated.

        Raises:
            ValidationError: empty name or the player is already an active leader
        """
        player_name = (player_name or '').strip()
        if not player_name:
            raise ValidationError("Player name is required")

        existing = self._find_leader(player_name)
        if existing is not None and existing.is_active:
            raise ValidationError(f"{existing.player_name} is already an alliance leader")

        if existing is not None:
            await self.store.update(TABLES['alliance_leaders'], {'is_active': True},
                                    {'player_name': existing.player_name})
            existing.is_active = True
            leader = existing
            logger.info(f"Reactivated alliance leader {leader.player_name}")
        else:
            leader = AllianceLeader(player_name=player_name, is_active=True)
            await self.store.insert(TABLES['alliance_leaders'], [{'player_name': player_name, 'is_active': True}])
            self._leaders.append(leader)
            logger.info(f"Added alliance leader {player_name}")

        await self.rotation.append(leader.player_name)
        return leader

    async def remove_alliance_leader(self, player_name: str) -> LeaderRemoval:
        """
        Remove a leader.

        Returns:
            LeaderRemoval.CONFLICT_WITH_HISTORY when the leader has conducted a
            train and was marked inactive instead, LeaderRemoval.DELETED otherwise

        Raises:
            NotFoundError: no leader by that name
        """
        leader = self._find_leader(player_name)
        if leader is None:
            raise NotFoundError("alliance leader", player_name)

        if self.has_conductor_history(leader.player_name):
            await self.store.update(TABLES['alliance_leaders'], {'is_active': False},
                                    {'player_name': leader.player_name})
            leader.is_active = False
            if self.rotation.find(leader.player_name) is not None:
                await self.rotation.deactivate(leader.player_name)
            logger.info(f"Marked alliance leader {leader.player_name} inactive (has conductor history)")
            return LeaderRemoval.CONFLICT_WITH_HISTORY

        await self.store.delete(TABLES['alliance_leaders'], {'player_name': leader.player_name})
        self._leaders = [l for l in self._leaders if l is not leader]
        await self.rotation.delete_player(leader.player_name)
        logger.info(f"Deleted alliance leader {leader.player_name}")
        return LeaderRemoval.DELETED

    # VIP selections

    async def set_vip_for_date(self, day, conductor: str, vip_player: str,
                               train_time: Optional[str] = None, notes: str = "") -> VIPSelection:
        """Record (or overwrite) the conductor and VIP of one train"""
        conductor = (conductor or '').strip()
        vip_player = (vip_player or '').strip()
        if not conductor or not vip_player:
            raise ValidationError("Conductor and VIP player are both required")
        try:
            train_time = normalize_train_time(train_time, ROTATION_CONFIG['default_train_time'])
            day = to_date(day)
        except (ValueError, TypeError) as e:
            raise ValidationError(str(e)) from e

        selection = VIPSelection(date=day, conductor=conductor, vip_player=vip_player,
                                 train_time=train_time, notes=notes or "")
        await self.store.upsert(TABLES['vip_selections'], [vip_to_row(selection)], on_conflict='date,train_time')
        self._vips[(date_key(day), train_time)] = selection
        logger.info(f"VIP for {day} {train_time}: {vip_player} (conductor {conductor})")
        return selection

    def vip_for_date(self, day) -> List[VIPSelection]:
        """Trains on a date, earliest first"""
        key = date_key(day)
        return sorted((v for (d, _), v in self._vips.items() if d == key), key=lambda v: v.train_time)

    def vip_selections(self) -> List[VIPSelection]:
        return sorted(self._vips.values(), key=lambda v: (v.date, v.train_time))

    async def delete_vip_for_date(self, day, train_time: Optional[str] = None, missing_ok: bool = True) -> int:
        """
        Delete one train (``train_time`` given) or every train of a date.

        Returns:
            Number of selections deleted

        Raises:
            NotFoundError: nothing matched and ``missing_ok`` is False
        """
        key = date_key(day)
        if train_time is not None:
            train_time = normalize_train_time(train_time)
        targets = [k for k in self._vips if k[0] == key and (train_time is None or k[1] == train_time)]
        if not targets:
            if missing_ok:
                return 0
            raise NotFoundError("VIP selection", f"{key} {train_time}" if train_time else key)

        filters = {'date': key}
        if train_time is not None:
            filters['train_time'] = train_time
        await self.store.delete(TABLES['vip_selections'], filters)
        for k in targets:
            del self._vips[k]
        logger.info(f"Deleted {len(targets)} VIP selections for {key}")
        return len(targets)

    def is_rotation_paused(self, day) -> bool:
        """True when the leader due has no part (conductor or VIP) in any train on ``day``"""
        due = self.rotation.next_leader_due()
        if due is None:
            return False
        trains = self.vip_for_date(day)
        return not any(same_player(t.conductor, due) or same_player(t.vip_player, due) for t in trains)

    async def advance_after_train(self, day) -> bool:
        """Advance the rotation if the leader due took part in a train on ``day``"""
        if self.rotation.next_leader_due() is None or self.is_rotation_paused(day):
            return False
        await self.rotation.advance()
        return True

    def is_vip_for_week(self, player_name: str, day) -> bool:
        """Whether the player was VIP on any day of the Monday..Sunday week containing ``day``"""
        days = {d.isoformat() for d in week_dates(day)}
        return any(
            date_key(v.date) in days and same_player(v.vip_player, player_name)
            for v in self._vips.values()
        )

    def vip_frequency(self, player_name: str, today=None) -> Dict:
        """
        How recently and how often a player had a train role (VIP or conductor).

        Returns:
            {'last_selected_days': int or None, 'frequency_30_days': int}
        """
        today = to_date(today or date.today())
        window_start = today - timedelta(days=ROTATION_CONFIG['vip_frequency_window_days'])
        roles = [
            v for v in self._vips.values()
            if same_player(v.vip_player, player_name) or same_player(v.conductor, player_name)
        ]
        if not roles:
            return {'last_selected_days': None, 'frequency_30_days': 0}
        latest = max(v.date for v in roles)
        return {
            'last_selected_days': (today - latest).days,
            'frequency_30_days': sum(1 for v in roles if window_start <= v.date <= today),
        }

    def recent_vips(self, limit: Optional[int] = None) -> List[VIPSelection]:
        limit = ROTATION_CONFIG['recent_vips_limit'] if limit is None else limit
        return sorted(self._vips.values(), key=lambda v: (v.date, v.train_time), reverse=True)[:limit]

    def next_default_date(self, today=None) -> date:
        """Day after the latest recorded train, or tomorrow when there is none"""
        if not self._vips:
            return to_date(today or date.today()) + timedelta(days=1)
        return max(v.date for v in self._vips.values()) + timedelta(days=1)

    def missing_dates(self, today=None) -> List[date]:
        """Dates after the latest recorded train up to today that have no train"""
        if not self._vips:
            return []
        today = to_date(today or date.today())
        latest = max(v.date for v in self._vips.values())
        if latest >= today:
            return []
        recorded = {date_key(v.date) for v in self._vips.values()}
        return [d for d in date_range(latest + timedelta(days=1), today) if d.isoformat() not in recorded]

    async def rename_player(self, old_name: str, new_name: str) -> int:
        """Rename a player across leaders, rotation and VIP selections"""
        new_name = (new_name or '').strip()
        if not new_name:
            raise ValidationError("New player name is required")
        changed = 0

        leader = self._find_leader(old_name)
        if leader is not None:
            await self.store.update(TABLES['alliance_leaders'], {'player_name': new_name},
                                    {'player_name': leader.player_name})
            leader.player_name = new_name
            changed += 1
        if await self.rotation.rename(old_name, new_name):
            changed += 1

        for selection in self._vips.values():
            values = {}
            if same_player(selection.conductor, old_name):
                values['train_conductor'] = new_name
            if same_player(selection.vip_player, old_name):
                values['vip_player'] = new_name
            if not values:
                continue
            await self.store.update(TABLES['vip_selections'], values,
                                    {'date': date_key(selection.date), 'train_time': selection.train_time})
            if 'train_conductor' in values:
                selection.conductor = new_name
            if 'vip_player' in values:
                selection.vip_player = new_name
            changed += 1

        if changed:
            logger.info(f"Renamed '{old_name}' to '{new_name}' in {changed} roster records")
        return changed

    def __repr__(self) -> str:
        return f"LeaderRoster(active_leaders={len(self.active_leaders())}, vips={len(self._vips)})"
