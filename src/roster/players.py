"""Players removed from the alliance (excluded from season rankings)"""

import logging
from datetime import date
from typing import List, Optional

from config.settings import TABLES
from src.base import BaseStore, RemovedPlayer
from src.rankings.data_adapter import removed_from_row
from src.utils.exceptions import NotFoundError, ValidationError
from src.utils.player_names import name_key

logger = logging.getLogger(__name__)


class RemovedPlayerList:
    """Case-insensitive list backed by the ``removed_players`` table"""

    def __init__(self, store: BaseStore):
        self.store = store
        self._entries: List[RemovedPlayer] = []

    async def load(self) -> None:
        self._entries = []
        rows = await self.store.select(TABLES['removed_players'], order_by='player_name')
        self._entries = [removed_from_row(r) for r in rows]
        logger.info(f"Loaded {len(self._entries)} removed players")

    async def refresh(self) -> None:
        await self.load()

    def entries(self) -> List[RemovedPlayer]:
        return sorted(self._entries, key=lambda e: name_key(e.player_name))

    def is_removed(self, player_name: Optional[str]) -> bool:
        key = name_key(player_name)
        return any(name_key(e.player_name) == key for e in self._entries)

    async def add(self, player_name: str, removed_by: str, reason: Optional[str] = None) -> RemovedPlayer:
        player_name = (player_name or '').strip()
        if not player_name:
            raise ValidationError("Player name is required")
        if self.is_removed(player_name):
            raise ValidationError(f"{player_name} is already on the removed list")

        entry = RemovedPlayer(
            player_name=player_name,
            removed_by=removed_by,
            reason=reason,
            removed_date=date.today().isoformat(),
        )
        await self.store.insert(TABLES['removed_players'], [{
            'player_name': entry.player_name,
            'removed_by': entry.removed_by,
            'reason': entry.reason,
            'removed_date': entry.removed_date,
        }])
        self._entries.append(entry)
        logger.info(f"Removed player {player_name} (by {removed_by})")
        return entry

    async def remove(self, player_name: str) -> None:
        """Take a player off the removed list"""
        key = name_key(player_name)
        entry = next((e for e in self._entries if name_key(e.player_name) == key), None)
        if entry is None:
            raise NotFoundError("removed player", player_name)
        await self.store.delete(TABLES['removed_players'], {'player_name': entry.player_name})
        self._entries = [e for e in self._entries if e is not entry]
        logger.info(f"Restored player {entry.player_name}")

    def __len__(self) -> int:
        return len(self._entries)
