"""
Supabase-backed table storage.

supabase-py is synchronous, so each request runs in a worker thread under
``asyncio.wait_for``. Failed requests other than inserts are retried with
exponential backoff and finally surface as ``BackingStoreUnavailable``.
"""
import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from supabase import create_client, Client

from config.settings import SUPABASE_URL, SUPABASE_KEY, SUPABASE_SERVICE_ROLE_KEY, STORE_CONFIG
from src.base import BaseStore
from src.utils.exceptions import BackingStoreUnavailable

logger = logging.getLogger(__name__)


class SupabaseStore(BaseStore):
    """BaseStore implementation over a supabase ``Client``"""

    def __init__(self, client: Client, request_timeout: Optional[float] = None,
                 max_retries: Optional[int] = None, retry_delay: Optional[float] = None):
        self.client = client
        self.request_timeout = request_timeout if request_timeout is not None else STORE_CONFIG['request_timeout']
        self.max_retries = max_retries if max_retries is not None else STORE_CONFIG['max_retries']
        self.retry_delay = retry_delay if retry_delay is not None else STORE_CONFIG['retry_delay']

    @classmethod
    def from_settings(cls) -> "SupabaseStore":
        key = SUPABASE_SERVICE_ROLE_KEY or SUPABASE_KEY
        if not SUPABASE_URL or not key:
            raise BackingStoreUnavailable("connect", "SUPABASE_URL and SUPABASE_KEY must be set")
        return cls(create_client(SUPABASE_URL, key))

    async def _execute(self, operation: str, build_query, retry: bool = True):
        """
        Run ``build_query().execute()`` with timeout and retries, return ``response.data``.

        A timed-out request keeps running in its worker thread and may still
        land, so requests that are not safe to repeat pass ``retry=False``.
        """
        attempts = self.max_retries if retry else 1
        for attempt in range(attempts):
            try:
                response = await asyncio.wait_for(
                    asyncio.to_thread(lambda: build_query().execute()),
                    timeout=self.request_timeout
                )
                return response.data or []
            except Exception as e:
                if attempt < attempts - 1:
                    wait_time = self.retry_delay * (2 ** attempt)
                    logger.warning(f"{operation} failed (attempt {attempt + 1}/{attempts}), retrying in {wait_time}s: {e}")
                    await asyncio.sleep(wait_time)
                    continue
                logger.error(f"❌ {operation} failed after {attempts} attempt(s): {e}")
                raise BackingStoreUnavailable(operation, str(e)) from e

    @staticmethod
    def _apply_filters(query, filters: Optional[Dict]):
        for column, value in (filters or {}).items():
            query = query.eq(column, value)
        return query

    async def select(self, table: str, filters: Optional[Dict] = None,
                     order_by: Optional[str] = None, descending: bool = False) -> List[Dict]:
        def build():
            query = self._apply_filters(self.client.table(table).select('*'), filters)
            if order_by:
                query = query.order(order_by, desc=descending)
            return query
        return await self._execute(f"select {table}", build)

    async def insert(self, table: str, rows: Sequence[Dict]) -> List[Dict]:
        if not rows:
            return []
        # Not retried: a repeated insert can duplicate rows that already landed
        return await self._execute(
            f"insert {table}",
            lambda: self.client.table(table).insert(list(rows)),
            retry=False
        )

    async def upsert(self, table: str, rows: Sequence[Dict], on_conflict: str) -> List[Dict]:
        if not rows:
            return []
        return await self._execute(
            f"upsert {table}",
            lambda: self.client.table(table).upsert(list(rows), on_conflict=on_conflict)
        )

    async def update(self, table: str, values: Dict, filters: Dict) -> List[Dict]:
        return await self._execute(
            f"update {table}",
            lambda: self._apply_filters(self.client.table(table).update(values), filters)
        )

    async def delete(self, table: str, filters: Optional[Dict] = None) -> int:
        def build():
            query = self.client.table(table).delete()
            if not filters:
                # PostgREST refuses an unfiltered delete
                return query.neq('id', -1)
            return self._apply_filters(query, filters)
        data = await self._execute(f"delete {table}", build)
        return len(data)

    async def ping(self) -> bool:
        try:
            await self._execute("ping", lambda: self.client.table('alliance_leaders').select('player_name').limit(1))
        except BackingStoreUnavailable:
            return False
        return True
