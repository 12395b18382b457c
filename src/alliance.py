"""
Alliance data wiring.

Builds every store on top of one backend and loads them in dependency order.
Components are plain objects; nothing here is module state.
"""

import logging
from dataclasses import dataclass
from typing import Dict

from src.base import BaseStore
from src.rankings.kudos import KudosLedger
from src.rankings.ranking_store import RankingStore
from src.rankings.season import SeasonScorer
from src.rankings.season_reports import SeasonReportService
from src.rankings.special_events import SpecialEventStore
from src.rankings.weekly import WeeklyAggregator
from src.roster.leaders import LeaderRoster
from src.roster.players import RemovedPlayerList
from src.roster.rotation import RotationEngine
from src.utils.alias_resolver import AliasResolver
from src.utils.player_names import suggest_players

logger = logging.getLogger(__name__)


@dataclass
class AllianceData:
    store: BaseStore
    rankings: RankingStore
    events: SpecialEventStore
    rotation: RotationEngine
    leaders: LeaderRoster
    removed: RemovedPlayerList
    kudos: KudosLedger
    aliases: AliasResolver

    @classmethod
    def create(cls, store: BaseStore) -> "AllianceData":
        rankings = RankingStore(store)
        rotation = RotationEngine(store)
        aliases = AliasResolver(store)
        return cls(
            store=store,
            rankings=rankings,
            events=SpecialEventStore(store, rankings),
            rotation=rotation,
            leaders=LeaderRoster(store, rotation),
            removed=RemovedPlayerList(store),
            kudos=KudosLedger(store, resolver=aliases),
            aliases=aliases,
        )

    async def load(self) -> None:
        """Load every component. Raises BackingStoreUnavailable if any read fails."""
        await self.aliases.load()
        await self.rankings.load()
        await self.events.load()
        await self.rotation.load()
        await self.leaders.load()
        await self.removed.load()
        await self.kudos.load()
        logger.info("✅ Alliance data loaded")

    def weekly(self) -> WeeklyAggregator:
        return WeeklyAggregator(self.rankings, self.events, resolver=self.aliases)

    def season_scorer(self) -> SeasonScorer:
        return SeasonScorer(self.rankings, self.events, self.kudos,
                            leaders=self.leaders, removed=self.removed, resolver=self.aliases)

    def season_reports(self) -> SeasonReportService:
        return SeasonReportService(self.store, self.season_scorer())

    def known_players(self):
        names = {r.commander for r in self.rankings.all_rankings()}
        names.update(l.player_name for l in self.leaders.leaders())
        return sorted(names, key=str.casefold)

    def suggest_players(self, query: str, exclude=(), limit: int = 10):
        return suggest_players(query, self.known_players(), resolver=self.aliases, exclude=exclude, limit=limit)

    async def rename_player(self, old_name: str, new_name: str) -> Dict[str, int]:
        """Rename a player everywhere they appear"""
        changed = {
            'rankings': await self.rankings.rename_commander(old_name, new_name),
            'roster': await self.leaders.rename_player(old_name, new_name),
            'kudos': await self.kudos.rename_player(old_name, new_name),
            'season_rankings': await self.season_reports().rename_player(old_name, new_name),
        }
        logger.info(f"Renamed '{old_name}' to '{new_name}': {changed}")
        return changed


async def load_alliance_data(store: BaseStore) -> AllianceData:
    data = AllianceData.create(store)
    await data.load()
    return data
