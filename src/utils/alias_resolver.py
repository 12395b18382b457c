"""
Player alias resolution.

This module provides the AliasResolver class for mapping the different
spellings a player shows up under (OCR typos, renamed accounts, short names)
to one primary name. Weekly stats, season scoring and player search all look
names up through it so that an alias counts as the primary player.
"""

import hashlib
import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Set

from rapidfuzz.distance import Levenshtein

from config.settings import ALIAS_CONFIG, TABLES
from src.base import BaseStore, PlayerAlias
from src.rankings.data_adapter import alias_from_row
from src.utils.exceptions import ValidationError, NotFoundError
from src.utils.player_names import name_key

logger = logging.getLogger(__name__)


class AliasResolver:
    """
    Resolves player aliases to primary player names.

    Loads the active rows of ``player_aliases`` and keeps a case-insensitive
    lookup in memory. The lookup expires after ``cache_ttl`` seconds; callers
    that run for a long time use ``refresh_if_needed()``.

    Usage:
        resolver = AliasResolver(store)
        await resolver.load()

        primary = resolver.resolve("Jhon")
        names = resolver.variations_of("John")

        # Include version in cache key
        cache_key = f"weekly_{resolver.version}"
    """

    def __init__(self, store: Optional[BaseStore], cache_ttl: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize the AliasResolver.

        Args:
            store: Store holding the player_aliases table (None for a read-only resolver)
            cache_ttl: Seconds before the lookup is considered stale
            clock: Time source, monotonic seconds
        """
        self.store = store
        self.cache_ttl = cache_ttl if cache_ttl is not None else ALIAS_CONFIG['cache_ttl_seconds']
        self._clock = clock
        self._aliases: List[PlayerAlias] = []
        self._lookup: Dict[str, str] = {}
        self._version: Optional[str] = None
        self._loaded_at: Optional[float] = None

    @classmethod
    def from_aliases(cls, aliases: Iterable[PlayerAlias], store: Optional[BaseStore] = None) -> "AliasResolver":
        """Build a resolver from alias records already in hand"""
        resolver = cls(store)
        resolver._rebuild([a for a in aliases if a.is_active])
        return resolver

    async def load(self) -> None:
        """
        Load active aliases from the store.

        Raises BackingStoreUnavailable if the table cannot be read; the
        previous lookup is dropped in that case.
        """
        self._aliases = []
        self._lookup = {}
        self._loaded_at = None
        rows = await self.store.select(TABLES['player_aliases'], {'is_active': True})
        self._rebuild([alias_from_row(r) for r in rows])
        if self._aliases:
            logger.info(f"Loaded {len(self._aliases)} player aliases (version: {self._version})")
        else:
            logger.debug("No player aliases found")

    async def refresh(self) -> None:
        await self.load()

    def needs_refresh(self) -> bool:
        if self._loaded_at is None:
            return True
        return self._clock() - self._loaded_at >= self.cache_ttl

    async def refresh_if_needed(self) -> bool:
        """Reload when the lookup has expired. Returns True if it reloaded."""
        if self.store is None or not self.needs_refresh():
            return False
        await self.load()
        return True

    def _rebuild(self, aliases: List[PlayerAlias]) -> None:
        self._aliases = aliases
        lookup: Dict[str, str] = {}
        for alias in aliases:
            primary = alias.primary_name.strip()
            lookup[name_key(alias.alias_name)] = primary
            lookup.setdefault(name_key(primary), primary)
        self._lookup = lookup

        if aliases:
            map_str = ''.join(sorted(f"{name_key(a.alias_name)}:{name_key(a.primary_name)}" for a in aliases))
            self._version = hashlib.md5(map_str.encode()).hexdigest()[:8]
        else:
            self._version = "no_aliases"
        self._loaded_at = self._clock()

    def resolve(self, name: Optional[str]) -> Optional[str]:
        """
        Resolve a player name to its primary name.

        Args:
            name: Name as it appears in rankings or user input (can be None)

        Returns:
            The primary name, the input unchanged when it is not an alias,
            or None if input was None
        """
        if name is None:
            return None
        return self._lookup.get(name_key(name), name)

    def variations_of(self, name: str) -> Set[str]:
        """All spellings of a player: the primary name and its active aliases"""
        primary = self.resolve(name)
        variations = {primary}
        primary_key = name_key(primary)
        for alias in self._aliases:
            if name_key(alias.primary_name) == primary_key:
                variations.add(alias.alias_name)
        return variations

    def is_alias(self, name: Optional[str]) -> bool:
        """True when ``name`` maps to a different primary player"""
        if not name:
            return False
        primary = self._lookup.get(name_key(name))
        return primary is not None and name_key(primary) != name_key(name)

    def aliases_for(self, primary_name: str) -> List[PlayerAlias]:
        key = name_key(self.resolve(primary_name))
        return sorted(
            (a for a in self._aliases if name_key(a.primary_name) == key),
            key=lambda a: name_key(a.alias_name)
        )

    async def create_alias(self, primary_name: str, alias_name: str, created_by: str) -> PlayerAlias:
        """
        Register ``alias_name`` as another spelling of ``primary_name``.

        Raises:
            ValidationError: a field is empty, the names are the same player,
                or the alias is already mapped
        """
        primary_name = (primary_name or '').strip()
        alias_name = (alias_name or '').strip()
        created_by = (created_by or '').strip()
        if not primary_name or not alias_name or not created_by:
            raise ValidationError("Primary name, alias name and creator are all required")
        if name_key(primary_name) == name_key(alias_name):
            raise ValidationError(f"'{alias_name}' cannot be an alias of itself")
        if name_key(alias_name) in self._lookup:
            raise ValidationError(f"'{alias_name}' is already mapped to '{self._lookup[name_key(alias_name)]}'")

        # Chain aliases to the final primary
        primary_name = self.resolve(primary_name)
        alias = PlayerAlias(primary_name=primary_name, alias_name=alias_name, created_by=created_by)
        await self.store.insert(TABLES['player_aliases'], [{
            'primary_name': alias.primary_name,
            'alias_name': alias.alias_name,
            'created_by': alias.created_by,
            'is_active': True,
        }])
        self._rebuild(self._aliases + [alias])
        logger.info(f"Created alias '{alias_name}' -> '{primary_name}'")
        return alias

    async def deactivate_alias(self, primary_name: str, alias_name: str) -> None:
        """Deactivate an alias; raises NotFoundError if it is not active"""
        match = next(
            (a for a in self._aliases
             if name_key(a.primary_name) == name_key(primary_name)
             and name_key(a.alias_name) == name_key(alias_name)),
            None
        )
        if match is None:
            raise NotFoundError("alias", alias_name)
        await self.store.update(
            TABLES['player_aliases'],
            {'is_active': False},
            {'primary_name': match.primary_name, 'alias_name': match.alias_name}
        )
        self._rebuild([a for a in self._aliases if a is not match])
        logger.info(f"Deactivated alias '{match.alias_name}' -> '{match.primary_name}'")

    def find_potential_aliases(self, name: str, all_names: Iterable[str],
                               threshold: Optional[float] = None,
                               limit: Optional[int] = None) -> List[Dict]:
        """
        Suggest names that look like misspellings of ``name``.

        Similarity is normalised Levenshtein similarity (1 - distance / longest
        length) on lowercased names. Names already mapped to the same primary
        are skipped.

        Returns:
            List of {'name': str, 'similarity': float}, most similar first
        """
        threshold = ALIAS_CONFIG['similarity_threshold'] if threshold is None else threshold
        limit = ALIAS_CONFIG['max_suggestions'] if limit is None else limit
        target = name_key(name)
        target_primary = name_key(self.resolve(name))
        if not target:
            return []

        seen = set()
        suggestions = []
        for candidate in all_names:
            key = name_key(candidate)
            if not key or key == target or key in seen:
                continue
            seen.add(key)
            if name_key(self.resolve(candidate)) == target_primary:
                continue
            similarity = Levenshtein.normalized_similarity(target, key)
            if similarity > threshold:
                suggestions.append({'name': candidate.strip(), 'similarity': round(similarity, 3)})

        suggestions.sort(key=lambda s: (-s['similarity'], name_key(s['name'])))
        return suggestions[:limit]

    def cache_stats(self) -> Dict:
        age = None if self._loaded_at is None else self._clock() - self._loaded_at
        return {
            'alias_count': len(self._aliases),
            'lookup_size': len(self._lookup),
            'version': self.version,
            'age_seconds': age,
            'needs_refresh': self.needs_refresh(),
        }

    @property
    def version(self) -> str:
        """8-character hash of the active alias set, for cache keys"""
        return self._version or "unknown"

    @property
    def alias_count(self) -> int:
        return len(self._aliases)

    def __repr__(self) -> str:
        return f"AliasResolver(aliases={len(self._aliases)}, version={self.version})"
