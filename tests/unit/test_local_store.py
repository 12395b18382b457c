"""
Tests for LocalStore and open_store
"""

import json

import pytest

from config.settings import STORE_CONFIG
from src.storage import LocalStore, open_store
from src.utils.exceptions import BackingStoreUnavailable, ValidationError


class TestLocalStore:
    @pytest.mark.asyncio
    async def test_insert_stamps_rows(self, store):
        rows = await store.insert('kudos_points', [{'player_name': 'Bob'}, {'player_name': 'Carol'}])
        assert [r['id'] for r in rows] == [1, 2]
        assert all(r['created_at'] for r in rows)

    @pytest.mark.asyncio
    async def test_seeded_ids_are_not_reused(self):
        store = LocalStore(tables={'rankings': [{'id': 10, 'commander': 'A'}]})
        rows = await store.insert('rankings', [{'commander': 'B'}])
        assert rows[0]['id'] == 11

    @pytest.mark.asyncio
    async def test_select_filters_and_orders(self, store):
        await store.insert('rankings', [
            {'day': 'd', 'ranking': 2}, {'day': 'd', 'ranking': None}, {'day': 'd', 'ranking': 1}, {'day': 'x', 'ranking': 3},
        ])
        rows = await store.select('rankings', {'day': 'd'}, order_by='ranking')
        assert [r['ranking'] for r in rows] == [1, 2, None]
        rows = await store.select('rankings', order_by='ranking', descending=True)
        assert [r['ranking'] for r in rows] == [3, 2, 1, None]

    @pytest.mark.asyncio
    async def test_select_returns_copies(self, store):
        await store.insert('rankings', [{'commander': 'A'}])
        rows = await store.select('rankings')
        rows[0]['commander'] = 'changed'
        assert store.rows('rankings')[0]['commander'] == 'A'

    @pytest.mark.asyncio
    async def test_upsert_on_conflict_columns(self, store):
        await store.upsert('vip_selections', [{'date': 'd', 'train_time': 't1', 'vip_player': 'A'}], on_conflict='date,train_time')
        await store.upsert('vip_selections', [{'date': 'd', 'train_time': 't2', 'vip_player': 'B'}], on_conflict='date,train_time')
        await store.upsert('vip_selections', [{'date': 'd', 'train_time': 't1', 'vip_player': 'C'}], on_conflict='date,train_time')
        assert sorted(r['vip_player'] for r in store.rows('vip_selections')) == ['B', 'C']

    @pytest.mark.asyncio
    async def test_update_and_delete(self, store):
        await store.insert('alliance_leaders', [{'player_name': 'A', 'is_active': True}, {'player_name': 'B', 'is_active': True}])
        updated = await store.update('alliance_leaders', {'is_active': False}, {'player_name': 'A'})
        assert len(updated) == 1
        assert await store.delete('alliance_leaders', {'is_active': False}) == 1
        assert await store.delete('alliance_leaders') == 1
        assert store.rows('alliance_leaders') == []

    @pytest.mark.asyncio
    async def test_replace(self, store):
        await store.insert('rankings', [{'day': 'd', 'commander': 'Old'}, {'day': 'e', 'commander': 'Keep'}])
        await store.replace('rankings', {'day': 'd'}, [{'day': 'd', 'commander': 'New'}])
        assert sorted(r['commander'] for r in store.rows('rankings')) == ['Keep', 'New']


class TestPersistence:
    """JSON file round trip"""

    @pytest.mark.asyncio
    async def test_writes_survive_reopen(self, tmp_path):
        path = tmp_path / "alliance.json"
        store = LocalStore(path)
        await store.insert('removed_players', [{'player_name': 'Eve'}])

        reopened = LocalStore(path)
        assert [r['player_name'] for r in reopened.rows('removed_players')] == ['Eve']
        rows = await reopened.insert('removed_players', [{'player_name': 'Mallory'}])
        assert rows[0]['id'] == 2

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "alliance.json"
        path.write_text("{not json", encoding='utf-8')
        with pytest.raises(BackingStoreUnavailable):
            LocalStore(path)

    def test_open_store_offline(self, tmp_path, monkeypatch):
        path = tmp_path / "offline.json"
        path.write_text(json.dumps({'tables': {'rankings': [{'id': 1, 'commander': 'A'}]}, 'next_id': 2}), encoding='utf-8')
        monkeypatch.setitem(STORE_CONFIG, 'local_path', path)
        store = open_store(offline=True)
        assert isinstance(store, LocalStore)
        assert store.rows('rankings')[0]['commander'] == 'A'


class TestSync:
    """Offline rows are merged into the other store, never replacing it"""

    @pytest.mark.asyncio
    async def test_sync_merges_rows(self):
        local = LocalStore(tables={
            'kudos_points': [{'player_name': 'Bob', 'date_awarded': '2025-02-03', 'points': 9}],
            'rankings': [{'day': '2025-02-03', 'ranking': 1, 'commander': 'Offline', 'points': '10'}],
        })
        remote = LocalStore(tables={
            'kudos_points': [{'player_name': 'Bob', 'date_awarded': '2025-02-03', 'points': 2}],
            'rankings': [{'day': '2025-01-01', 'ranking': i, 'commander': f'P{i}', 'points': '1'} for i in range(1, 101)],
        })

        written = await local.sync_to(
            remote,
            ['kudos_points', 'rankings'],
            conflict_keys={'kudos_points': 'player_name,date_awarded', 'rankings': 'day,ranking'}
        )

        assert written == {'kudos_points': 1, 'rankings': 1}
        assert [r['points'] for r in remote.rows('kudos_points')] == [9]
        assert len(remote.rows('rankings')) == 101

    @pytest.mark.asyncio
    async def test_table_without_conflict_key_rejected(self):
        local = LocalStore(tables={'rankings': [{'day': '2025-02-03', 'ranking': 1, 'commander': 'A', 'points': '1'}]})
        remote = LocalStore(tables={'kudos_points': [{'player_name': 'Bob', 'date_awarded': '2025-02-03', 'points': 2}]})

        with pytest.raises(ValidationError):
            await local.sync_to(remote, ['kudos_points', 'rankings'], conflict_keys={'kudos_points': 'player_name,date_awarded'})
        assert [r['points'] for r in remote.rows('kudos_points')] == [2]
        assert remote.rows('rankings') == []

    def test_script_keys_cover_every_table(self):
        from scripts.sync_local_data import CONFLICT_KEYS, SYNC_TABLES
        assert set(SYNC_TABLES) <= set(CONFLICT_KEYS)
