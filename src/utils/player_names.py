"""Player name comparison and search"""
from typing import Iterable, List, Optional

from config.settings import ALIAS_CONFIG


def name_key(name: Optional[str]) -> str:
    """Case-insensitive comparison key for a player name"""
    return (name or '').strip().casefold()


def same_player(a: Optional[str], b: Optional[str]) -> bool:
    return name_key(a) == name_key(b)


def suggest_players(query: str, names: Iterable[str], resolver=None,
                    exclude: Iterable[str] = (), limit: int = 10) -> List[str]:
    """
    Autocomplete player names.

    A name matches when the query is a substring of it or of any of its
    aliases. Results are primary names; names starting with the query come
    first, the rest alphabetically.

    Args:
        query: Text typed so far (at least two characters)
        names: Known player names
        resolver: Optional AliasResolver for alias-aware matching
        exclude: Names to leave out (e.g. players already chosen)
        limit: Maximum number of suggestions

    Returns:
        List of matching primary names
    """
    needle = name_key(query)
    if len(needle) < ALIAS_CONFIG['min_query_length']:
        return []

    excluded = {name_key(resolver.resolve(n) if resolver else n) for n in exclude}
    candidates = {}
    for name in names:
        primary = resolver.resolve(name) if resolver else name
        key = name_key(primary)
        if not key or key in excluded or key in candidates:
            continue
        spellings = resolver.variations_of(primary) if resolver else {primary}
        spellings = set(spellings) | {primary}
        if any(needle in name_key(s) for s in spellings):
            candidates[key] = primary.strip()

    def sort_key(primary: str):
        return (0 if name_key(primary).startswith(needle) else 1, name_key(primary))

    return sorted(candidates.values(), key=sort_key)[:limit]
