"""
Kudos awards.

Leaders award a player 1-10 kudos points at most once per day; awarding again
on the same day overwrites the earlier award. With an alias resolver the
player's aliases count as the same player and new awards are stored under
the primary name.
"""

import logging
from datetime import date
from typing import List, Optional

from config.settings import TABLES
from src.base import BaseStore, KudosAward
from src.rankings.data_adapter import kudos_from_row
from src.utils.date_keys import date_key, to_date
from src.utils.exceptions import NotFoundError, ValidationError
from src.utils.player_names import name_key
from src.utils.validators import KudosValidator

logger = logging.getLogger(__name__)


class KudosLedger:
    """Kudos awards backed by the ``kudos_points`` table"""

    def __init__(self, store: BaseStore, resolver=None):
        self.store = store
        self.resolver = resolver
        self._awards: List[KudosAward] = []
        self._validator = KudosValidator()

    @classmethod
    def from_awards(cls, store: BaseStore, awards: List[KudosAward], resolver=None) -> "KudosLedger":
        ledger = cls(store, resolver=resolver)
        ledger._awards = list(awards)
        return ledger

    async def load(self) -> None:
        self._awards = []
        rows = await self.store.select(TABLES['kudos'], order_by='date_awarded', descending=True)
        self._awards = [kudos_from_row(r) for r in rows]
        logger.info(f"Loaded {len(self._awards)} kudos awards")

    async def refresh(self) -> None:
        await self.load()

    async def award(self, player_name: str, points: int, reason: str = "",
                    awarded_by: Optional[str] = None, on=None) -> KudosAward:
        """
        Award kudos to a player for a day (today by default).

        Raises:
            ValidationError: missing player, points outside 1-10 or a bad date
        """
        on = on if on is not None else date.today()
        player_name = (player_name or '').strip()
        is_valid, error = self._validator.validate({
            'player_name': player_name,
            'points': points,
            'date_awarded': on,
        })
        if not is_valid:
            raise ValidationError(error)

        day = to_date(on)
        existing = self.for_player_on(player_name, day)
        primary = self.resolver.resolve(player_name) if self.resolver else player_name
        stored_name = existing.player_name if existing else primary
        rows = await self.store.upsert(TABLES['kudos'], [{
            'player_name': stored_name,
            'points': points,
            'reason': reason or '',
            'awarded_by': awarded_by,
            'date_awarded': date_key(day),
        }], on_conflict='player_name,date_awarded')

        award = KudosAward(
            id=rows[0].get('id') if rows else (existing.id if existing else None),
            player_name=stored_name,
            points=points,
            date_awarded=day,
            reason=reason or '',
            awarded_by=awarded_by,
        )
        self._awards = [a for a in self._awards if a is not existing] + [award]
        logger.info(f"Awarded {points} kudos to {stored_name} for {day}")
        return award

    def for_player_on(self, player_name: str, day) -> Optional[KudosAward]:
        """The award a player got on a day, under any of their spellings when a resolver is set"""
        day = to_date(day)
        names = self.resolver.variations_of(player_name) if self.resolver else {player_name}
        keys = {name_key(n) for n in names}
        return next((a for a in self._awards if name_key(a.player_name) in keys and a.date_awarded == day), None)

    def for_player(self, player_name: str, start=None, end=None, resolver=None) -> List[KudosAward]:
        """Awards for a player (and their aliases when a resolver is given), newest first"""
        start = to_date(start) if start is not None else None
        end = to_date(end) if end is not None else None
        names = resolver.variations_of(player_name) if resolver else {player_name}
        keys = {name_key(n) for n in names}
        awards = [
            a for a in self._awards
            if name_key(a.player_name) in keys
            and (start is None or a.date_awarded >= start)
            and (end is None or a.date_awarded <= end)
        ]
        return sorted(awards, key=lambda a: a.date_awarded, reverse=True)

    def in_range(self, start, end) -> List[KudosAward]:
        start, end = to_date(start), to_date(end)
        return [a for a in self._awards if start <= a.date_awarded <= end]

    def recent(self, limit: int = 10) -> List[KudosAward]:
        return sorted(self._awards, key=lambda a: a.date_awarded, reverse=True)[:limit]

    async def delete(self, kudos_id) -> None:
        award = next((a for a in self._awards if a.id == kudos_id), None)
        if award is None:
            raise NotFoundError("kudos award", kudos_id)
        await self.store.delete(TABLES['kudos'], {'id': kudos_id})
        self._awards = [a for a in self._awards if a is not award]
        logger.info(f"Deleted kudos award {kudos_id} ({award.player_name}, {award.date_awarded})")

    async def rename_player(self, old_name: str, new_name: str) -> int:
        key = name_key(old_name)
        stored = {a.player_name for a in self._awards if name_key(a.player_name) == key}
        for name in stored:
            await self.store.update(TABLES['kudos'], {'player_name': new_name}, {'player_name': name})
        changed = 0
        for award in self._awards:
            if award.player_name in stored:
                award.player_name = new_name
                changed += 1
        return changed

    def __len__(self) -> int:
        return len(self._awards)
