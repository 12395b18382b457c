"""
Tests for SupabaseStore against a mocked supabase client
"""

import time
from unittest.mock import MagicMock, Mock

import pytest

from src.storage import supabase_store
from src.storage.supabase_store import SupabaseStore
from src.utils.exceptions import BackingStoreUnavailable


@pytest.fixture
def query():
    """Query builder whose chain methods all return itself"""
    query = MagicMock()
    for method in ('select', 'eq', 'neq', 'order', 'limit', 'insert', 'upsert', 'update', 'delete'):
        getattr(query, method).return_value = query
    query.execute.return_value = Mock(data=[{'id': 1, 'player_name': 'Alice'}])
    return query


@pytest.fixture
def client(query):
    client = Mock()
    client.table.return_value = query
    return client


@pytest.fixture
def store(client):
    return SupabaseStore(client, request_timeout=5, max_retries=3, retry_delay=0)


class TestQueries:
    """Query building"""

    @pytest.mark.asyncio
    async def test_select_with_filters_and_order(self, store, client, query):
        rows = await store.select('alliance_leaders', {'is_active': True}, order_by='player_name', descending=True)

        assert rows == [{'id': 1, 'player_name': 'Alice'}]
        client.table.assert_called_with('alliance_leaders')
        query.select.assert_called_once_with('*')
        query.eq.assert_called_once_with('is_active', True)
        query.order.assert_called_once_with('player_name', desc=True)

    @pytest.mark.asyncio
    async def test_empty_response(self, store, query):
        query.execute.return_value = Mock(data=None)
        assert await store.select('rankings') == []

    @pytest.mark.asyncio
    async def test_upsert_passes_conflict_columns(self, store, query):
        await store.upsert('vip_selections', [{'date': '2025-01-06', 'train_time': '04:00:00'}],
                           on_conflict='date,train_time')
        query.upsert.assert_called_once_with(
            [{'date': '2025-01-06', 'train_time': '04:00:00'}], on_conflict='date,train_time'
        )

    @pytest.mark.asyncio
    async def test_empty_writes_skip_request(self, store, client):
        assert await store.insert('rankings', []) == []
        assert await store.upsert('kudos_points', [], on_conflict='player_name,date_awarded') == []
        client.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_filters(self, store, query):
        await store.update('player_aliases', {'is_active': False}, {'primary_name': 'A', 'alias_name': 'B'})
        query.update.assert_called_once_with({'is_active': False})
        assert query.eq.call_count == 2

    @pytest.mark.asyncio
    async def test_delete_counts_rows(self, store, query):
        query.execute.return_value = Mock(data=[{'id': 1}, {'id': 2}])
        assert await store.delete('rankings', {'day': '2025-01-06'}) == 2
        query.eq.assert_called_once_with('day', '2025-01-06')

    @pytest.mark.asyncio
    async def test_unfiltered_delete(self, store, query):
        await store.delete('train_conductor_rotation')
        query.neq.assert_called_once_with('id', -1)

    @pytest.mark.asyncio
    async def test_replace_deletes_then_inserts(self, store, query):
        await store.replace('rankings', {'day': '2025-01-06'}, [{'day': '2025-01-06', 'ranking': 1}])
        query.delete.assert_called_once()
        query.insert.assert_called_once_with([{'day': '2025-01-06', 'ranking': 1}])


class TestFailures:
    """Retries, timeouts and configuration errors"""

    @pytest.mark.asyncio
    async def test_retries_then_raises(self, store, query):
        query.execute.side_effect = Exception("connection reset")
        with pytest.raises(BackingStoreUnavailable) as exc_info:
            await store.select('rankings')
        assert query.execute.call_count == 3
        assert "select rankings" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_recovers_after_transient_error(self, store, query):
        query.execute.side_effect = [Exception("502"), Mock(data=[{'id': 7}])]
        assert await store.select('rankings') == [{'id': 7}]

    @pytest.mark.asyncio
    async def test_timeout(self, client, query):
        def slow():
            time.sleep(0.2)
            return Mock(data=[])
        query.execute.side_effect = slow
        store = SupabaseStore(client, request_timeout=0.01, max_retries=1, retry_delay=0)
        with pytest.raises(BackingStoreUnavailable):
            await store.select('rankings')

    @pytest.mark.asyncio
    async def test_insert_is_not_retried(self, store, query):
        query.execute.side_effect = Exception("connection reset")
        with pytest.raises(BackingStoreUnavailable):
            await store.insert('rankings', [{'day': '2025-01-06', 'ranking': 1}])
        assert query.execute.call_count == 1

    @pytest.mark.asyncio
    async def test_insert_timeout_is_not_sent_twice(self, client, query):
        def slow_but_lands():
            time.sleep(0.2)
            return Mock(data=[{'id': 1}])
        query.execute.side_effect = slow_but_lands
        store = SupabaseStore(client, request_timeout=0.01, max_retries=3, retry_delay=0)
        with pytest.raises(BackingStoreUnavailable):
            await store.insert('rankings', [{'day': '2025-01-06', 'ranking': 1}])
        assert query.execute.call_count == 1
        assert query.insert.call_count == 1

    @pytest.mark.asyncio
    async def test_ping(self, store, query):
        assert await store.ping() is True
        query.execute.side_effect = Exception("down")
        assert await store.ping() is False

    def test_missing_credentials(self, monkeypatch):
        monkeypatch.setattr(supabase_store, 'SUPABASE_URL', None)
        with pytest.raises(BackingStoreUnavailable):
            SupabaseStore.from_settings()
