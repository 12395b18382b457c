"""
Tests for AliasResolver
"""

import pytest
import pytest_asyncio

from src.base import PlayerAlias
from src.storage.local_store import LocalStore
from src.utils.alias_resolver import AliasResolver
from src.utils.exceptions import NotFoundError, ValidationError


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def alias_store():
    return LocalStore(tables={'player_aliases': [
        {'primary_name': 'Harold', 'alias_name': 'Harry', 'created_by': 'Alice', 'is_active': True},
        {'primary_name': 'Harold', 'alias_name': 'H4rold', 'created_by': 'Alice', 'is_active': True},
        {'primary_name': 'Zed', 'alias_name': 'Zedd', 'created_by': 'Alice', 'is_active': False},
    ]})


@pytest_asyncio.fixture
async def resolver(alias_store):
    resolver = AliasResolver(alias_store)
    await resolver.load()
    return resolver


class TestResolve:
    """Lookups against loaded aliases"""

    @pytest.mark.asyncio
    async def test_alias_resolves_to_primary(self, resolver):
        assert resolver.resolve("harry") == "Harold"
        assert resolver.resolve("  H4ROLD ") == "Harold"
        assert resolver.resolve("Harold") == "Harold"

    @pytest.mark.asyncio
    async def test_unknown_and_none(self, resolver):
        assert resolver.resolve("Stranger") == "Stranger"
        assert resolver.resolve(None) is None

    @pytest.mark.asyncio
    async def test_inactive_aliases_ignored(self, resolver):
        assert resolver.resolve("Zedd") == "Zedd"
        assert resolver.alias_count == 2

    @pytest.mark.asyncio
    async def test_variations(self, resolver):
        assert resolver.variations_of("Harry") == {"Harold", "Harry", "H4rold"}
        assert resolver.variations_of("Solo") == {"Solo"}
        assert [a.alias_name for a in resolver.aliases_for("harold")] == ["H4rold", "Harry"]

    @pytest.mark.asyncio
    async def test_is_alias(self, resolver):
        assert resolver.is_alias("Harry")
        assert not resolver.is_alias("Harold")
        assert not resolver.is_alias("")
        assert not resolver.is_alias(None)


class TestCreateAndDeactivate:
    @pytest.mark.asyncio
    async def test_create_alias_persists(self, resolver, alias_store):
        await resolver.create_alias("Harold", "Hal", "Bob")
        assert resolver.resolve("HAL") == "Harold"
        assert any(r['alias_name'] == 'Hal' for r in alias_store.rows('player_aliases'))

    @pytest.mark.asyncio
    async def test_alias_of_alias_points_at_primary(self, resolver):
        alias = await resolver.create_alias("Harry", "Haz", "Bob")
        assert alias.primary_name == "Harold"
        assert resolver.resolve("Haz") == "Harold"

    @pytest.mark.asyncio
    async def test_create_validation(self, resolver):
        with pytest.raises(ValidationError):
            await resolver.create_alias("Harold", "", "Bob")
        with pytest.raises(ValidationError):
            await resolver.create_alias("Harold", "harold", "Bob")
        with pytest.raises(ValidationError):
            await resolver.create_alias("Someone", "Harry", "Bob")
        with pytest.raises(ValidationError):
            await resolver.create_alias("Harold", "Hal", " ")

    @pytest.mark.asyncio
    async def test_deactivate(self, resolver, alias_store):
        await resolver.deactivate_alias("Harold", "harry")
        assert resolver.resolve("Harry") == "Harry"
        stored = next(r for r in alias_store.rows('player_aliases') if r['alias_name'] == 'Harry')
        assert stored['is_active'] is False

    @pytest.mark.asyncio
    async def test_deactivate_unknown(self, resolver):
        with pytest.raises(NotFoundError):
            await resolver.deactivate_alias("Harold", "Nope")


class TestPotentialAliases:
    """Similarity suggestions"""

    def test_close_spellings_first(self):
        resolver = AliasResolver.from_aliases([])
        suggestions = resolver.find_potential_aliases("Jonathan", ["Jonathon", "Jon", "Zzzzzzzz", "jonathan"])
        names = [s['name'] for s in suggestions]
        assert names[0] == "Jonathon"
        assert "Zzzzzzzz" not in names
        assert "jonathan" not in names
        assert suggestions[0]['similarity'] == pytest.approx(0.875)

    def test_existing_aliases_skipped(self):
        resolver = AliasResolver.from_aliases([PlayerAlias(primary_name="Harold", alias_name="Harald")])
        names = [s['name'] for s in resolver.find_potential_aliases("Harold", ["Harald", "Haroldo"])]
        assert names == ["Haroldo"]

    def test_limit(self):
        resolver = AliasResolver.from_aliases([])
        candidates = [f"Player{i}" for i in range(20)]
        assert len(resolver.find_potential_aliases("Player", candidates)) == 10


class TestCaching:
    @pytest.mark.asyncio
    async def test_ttl_refresh(self, alias_store):
        clock = FakeClock()
        resolver = AliasResolver(alias_store, cache_ttl=300, clock=clock)
        assert resolver.needs_refresh()
        await resolver.load()
        assert not resolver.needs_refresh()
        assert await resolver.refresh_if_needed() is False

        await alias_store.insert('player_aliases', [
            {'primary_name': 'Zed', 'alias_name': 'Zeddy', 'created_by': 'Bob', 'is_active': True}
        ])
        clock.now = 301
        assert resolver.needs_refresh()
        assert await resolver.refresh_if_needed() is True
        assert resolver.resolve("Zeddy") == "Zed"

    def test_version_tracks_alias_set(self):
        empty = AliasResolver.from_aliases([])
        assert empty.version == "no_aliases"

        one = AliasResolver.from_aliases([PlayerAlias(primary_name="A", alias_name="B")])
        same = AliasResolver.from_aliases([PlayerAlias(primary_name="a", alias_name="b")])
        other = AliasResolver.from_aliases([PlayerAlias(primary_name="A", alias_name="C")])
        assert len(one.version) == 8
        assert one.version == same.version
        assert one.version != other.version

    def test_repr_and_stats(self):
        resolver = AliasResolver.from_aliases([PlayerAlias(primary_name="A", alias_name="B")])
        assert "aliases=1" in repr(resolver)
        stats = resolver.cache_stats()
        assert stats['alias_count'] == 1
        assert stats['lookup_size'] == 2
