"""
Train conductor rotation.

Active rotation entries hold a dense 1..N ``rotation_order``. Two views of
"whose turn is it" exist side by side:

- ``current_train_conductor(date)`` is a pure function of the date and the
  current active roster size (days since the epoch, modulo N). Changing the
  roster size changes the answer for past dates as well.
- ``next_leader_due()`` is the front of the line (order 1); ``advance()``
  sends that player to the back once their train has run.

Every mutation builds a complete new rotation, writes it in one replace call
and only then swaps it in, so readers never see a half-applied change.
Inactive entries are numbered after the active block (N+1, N+2, ...) in their
previous relative order, so every stored order value is unique.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional

from config.settings import ROTATION_CONFIG, TABLES
from src.base import BaseStore, RotationEntry
from src.rankings.data_adapter import rotation_from_row, rotation_to_row
from src.utils.date_keys import to_date
from src.utils.exceptions import NotFoundError, ValidationError
from src.utils.player_names import name_key

logger = logging.getLogger(__name__)


def densify(entries: Iterable[RotationEntry]) -> List[RotationEntry]:
    """Renumber active entries 1..N in their current order, then inactive ones from N+1"""
    entries = list(entries)
    active = sorted((e for e in entries if e.is_active), key=lambda e: e.rotation_order)
    inactive = sorted((e for e in entries if not e.is_active), key=lambda e: e.rotation_order)
    renumbered = [RotationEntry(e.player_name, i, True) for i, e in enumerate(active, start=1)]
    start = len(renumbered) + 1
    return renumbered + [RotationEntry(e.player_name, i, False) for i, e in enumerate(inactive, start=start)]


class RotationEngine:
    """Round-robin rotation of alliance leaders who conduct trains"""

    def __init__(self, store: BaseStore, epoch: Optional[date] = None):
        self.store = store
        self.epoch = epoch or ROTATION_CONFIG['epoch']
        self._entries: List[RotationEntry] = []

    @classmethod
    def from_entries(cls, store: BaseStore, entries: Iterable[RotationEntry], epoch: Optional[date] = None) -> "RotationEngine":
        engine = cls(store, epoch)
        engine._entries = list(entries)
        return engine

    async def load(self) -> None:
        self._entries = []
        rows = await self.store.select(TABLES['rotation'], order_by='rotation_order')
        self._entries = [rotation_from_row(r) for r in rows]
        logger.info(f"Loaded rotation with {len(self.active_entries())} active conductors")

    async def refresh(self) -> None:
        await self.load()

    def entries(self) -> List[RotationEntry]:
        """Every entry, active first in rotation order, then inactive"""
        inactive = sorted((e for e in self._entries if not e.is_active), key=lambda e: e.rotation_order)
        return self.active_entries() + inactive

    def active_entries(self) -> List[RotationEntry]:
        return sorted((e for e in self._entries if e.is_active), key=lambda e: e.rotation_order)

    def active_names(self) -> List[str]:
        return [e.player_name for e in self.active_entries()]

    def find(self, player_name: str) -> Optional[RotationEntry]:
        key = name_key(player_name)
        return next((e for e in self._entries if name_key(e.player_name) == key), None)

    def current_train_conductor(self, day) -> Optional[str]:
        """
        Conductor for a date by round-robin from the epoch.

        Args:
            day: Date to look up (date, datetime or YYYY-MM-DD)

        Returns:
            Player name, or None when nobody is in the rotation
        """
        active = self.active_entries()
        if not active:
            return None
        days_since_epoch = (to_date(day) - self.epoch).days
        # Floor modulo keeps dates before the epoch in range
        return active[days_since_epoch % len(active)].player_name

    def next_leader_due(self) -> Optional[str]:
        """Player at the front of the line (rotation order 1)"""
        return next((e.player_name for e in self.active_entries() if e.rotation_order == 1), None)

    def _index(self, index: int) -> List[RotationEntry]:
        active = self.active_entries()
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(active):
            raise ValidationError(f"Invalid rotation position: {index}")
        return active

    async def _commit(self, entries: List[RotationEntry]) -> List[RotationEntry]:
        entries = densify(entries)
        await self.store.replace(TABLES['rotation'], None, [rotation_to_row(e) for e in entries])
        self._entries = entries
        return self.active_entries()

    def _inactive(self) -> List[RotationEntry]:
        return [e for e in self._entries if not e.is_active]

    async def advance(self) -> List[RotationEntry]:
        """Send the player at order 1 to the back; everyone else moves up one"""
        active = self.active_entries()
        if not active:
            return []
        rotated = active[1:] + active[:1]
        reordered = [RotationEntry(e.player_name, i, True) for i, e in enumerate(rotated, start=1)]
        result = await self._commit(reordered + self._inactive())
        logger.info(f"Rotation advanced: {active[0].player_name} moved to the back, {result[0].player_name} is next")
        return result

    async def move_up(self, index: int) -> List[RotationEntry]:
        active = self._index(index)
        if index == 0:
            raise ValidationError(f"{active[0].player_name} is already first in the rotation")
        return await self._swap(active, index - 1, index)

    async def move_down(self, index: int) -> List[RotationEntry]:
        active = self._index(index)
        if index == len(active) - 1:
            raise ValidationError(f"{active[index].player_name} is already last in the rotation")
        return await self._swap(active, index, index + 1)

    async def _swap(self, active: List[RotationEntry], a: int, b: int) -> List[RotationEntry]:
        names = [e.player_name for e in active]
        names[a], names[b] = names[b], names[a]
        return await self._commit(self._ordered(names))

    def _ordered(self, names: List[str]) -> List[RotationEntry]:
        return [RotationEntry(n, i, True) for i, n in enumerate(names, start=1)] + self._inactive()

    async def remove(self, index: int) -> RotationEntry:
        """Delete the entry at a 0-based active position; later entries move up"""
        active = self._index(index)
        removed = active[index]
        remaining = [e for e in self._entries if e is not removed]
        await self._commit(remaining)
        logger.info(f"Removed {removed.player_name} from the rotation")
        return removed

    async def reorder(self, names: List[str]) -> List[RotationEntry]:
        """Set the full active order; ``names`` must be exactly the active players"""
        current = self.active_names()
        if sorted(name_key(n) for n in names) != sorted(name_key(n) for n in current):
            raise ValidationError("New order must contain each player in the rotation exactly once")
        by_key = {name_key(n): n for n in current}
        return await self._commit(self._ordered([by_key[name_key(n)] for n in names]))

    async def append(self, player_name: str) -> RotationEntry:
        """Put a player at the back of the rotation, reactivating an old entry if there is one"""
        player_name = (player_name or '').strip()
        if not player_name:
            raise ValidationError("Player name is required")
        existing = self.find(player_name)
        if existing is not None and existing.is_active:
            raise ValidationError(f"{existing.player_name} is already in the rotation")

        name = existing.player_name if existing else player_name
        others = [e for e in self._entries if e is not existing]
        back = len(self.active_entries()) + 1
        await self._commit(others + [RotationEntry(name, back, True)])
        return self.find(name)

    async def deactivate(self, player_name: str) -> RotationEntry:
        """Mark a player's entry inactive; it moves behind the active rotation"""
        existing = self.find(player_name)
        if existing is None:
            raise NotFoundError("rotation entry", player_name)
        entries = [
            RotationEntry(e.player_name, e.rotation_order, False) if e is existing else e
            for e in self._entries
        ]
        await self._commit(entries)
        return self.find(player_name)

    async def reactivate(self, player_name: str) -> RotationEntry:
        """Bring an inactive entry back at the end of the rotation"""
        existing = self.find(player_name)
        if existing is None:
            raise NotFoundError("rotation entry", player_name)
        if existing.is_active:
            raise ValidationError(f"{existing.player_name} is already active in the rotation")
        return await self.append(existing.player_name)

    async def delete_player(self, player_name: str) -> bool:
        """Hard-delete a player's entry; returns False if there was none"""
        existing = self.find(player_name)
        if existing is None:
            return False
        await self._commit([e for e in self._entries if e is not existing])
        return True

    async def rename(self, old_name: str, new_name: str) -> bool:
        existing = self.find(old_name)
        if existing is None:
            return False
        entries = [
            RotationEntry(new_name.strip(), e.rotation_order, e.is_active) if e is existing else e
            for e in self._entries
        ]
        await self._commit(entries)
        return True

    def __len__(self) -> int:
        return len(self.active_entries())

    def __repr__(self) -> str:
        return f"RotationEngine(active={self.active_names()})"

