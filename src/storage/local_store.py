"""
In-process table storage with optional JSON file persistence.

Used for offline mode and tests. Rows get an ``id`` and ``created_at`` on
insert the way the hosted tables fill them in.
"""
import copy
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from src.base import BaseStore
from src.utils.exceptions import BackingStoreUnavailable, ValidationError

logger = logging.getLogger(__name__)


class LocalStore(BaseStore):
    """BaseStore kept in memory, saved to ``path`` after every write when given"""

    def __init__(self, path: Optional[Path] = None, tables: Optional[Dict[str, List[Dict]]] = None):
        self.path = Path(path) if path else None
        self._tables: Dict[str, List[Dict]] = {}
        self._next_id = 1
        if self.path and self.path.exists():
            self._load_file()
        for table, rows in (tables or {}).items():
            self._tables.setdefault(table, [])
            for row in rows:
                self._tables[table].append(self._stamp(dict(row)))

    def _load_file(self) -> None:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise BackingStoreUnavailable("load local store", str(e)) from e
        self._tables = payload.get('tables', {})
        self._next_id = payload.get('next_id', 1)
        logger.debug(f"Loaded local store from {self.path} ({sum(len(r) for r in self._tables.values())} rows)")

    def _save_file(self) -> None:
        if not self.path:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump({'tables': self._tables, 'next_id': self._next_id}, f, indent=2, default=str)
        except OSError as e:
            raise BackingStoreUnavailable("save local store", str(e)) from e

    def _stamp(self, row: Dict) -> Dict:
        if row.get('id') is None:
            row['id'] = self._next_id
            self._next_id += 1
        elif isinstance(row['id'], int):
            self._next_id = max(self._next_id, row['id'] + 1)
        row.setdefault('created_at', datetime.now().isoformat())
        return row

    @staticmethod
    def _matches(row: Dict, filters: Optional[Dict]) -> bool:
        return all(row.get(column) == value for column, value in (filters or {}).items())

    def rows(self, table: str) -> List[Dict]:
        """Synchronous snapshot of a table, for inspection"""
        return copy.deepcopy(self._tables.get(table, []))

    async def select(self, table: str, filters: Optional[Dict] = None,
                     order_by: Optional[str] = None, descending: bool = False) -> List[Dict]:
        result = [copy.deepcopy(r) for r in self._tables.get(table, []) if self._matches(r, filters)]
        if order_by:
            present = [r for r in result if r.get(order_by) is not None]
            missing = [r for r in result if r.get(order_by) is None]
            present.sort(key=lambda r: r[order_by], reverse=descending)
            result = present + missing
        return result

    async def insert(self, table: str, rows: Sequence[Dict]) -> List[Dict]:
        stored = self._tables.setdefault(table, [])
        inserted = [self._stamp(dict(row)) for row in rows]
        stored.extend(inserted)
        self._save_file()
        return copy.deepcopy(inserted)

    async def upsert(self, table: str, rows: Sequence[Dict], on_conflict: str) -> List[Dict]:
        columns = [c.strip() for c in on_conflict.split(',') if c.strip()]
        stored = self._tables.setdefault(table, [])
        written = []
        for row in rows:
            key = {c: row.get(c) for c in columns}
            existing = next((r for r in stored if self._matches(r, key)), None)
            if existing is not None:
                existing.update(row)
                written.append(existing)
            else:
                new_row = self._stamp(dict(row))
                stored.append(new_row)
                written.append(new_row)
        self._save_file()
        return copy.deepcopy(written)

    async def update(self, table: str, values: Dict, filters: Dict) -> List[Dict]:
        updated = []
        for row in self._tables.get(table, []):
            if self._matches(row, filters):
                row.update(values)
                updated.append(row)
        if updated:
            self._save_file()
        return copy.deepcopy(updated)

    async def delete(self, table: str, filters: Optional[Dict] = None) -> int:
        stored = self._tables.get(table, [])
        kept = [r for r in stored if not self._matches(r, filters)]
        removed = len(stored) - len(kept)
        self._tables[table] = kept
        if removed:
            self._save_file()
        return removed

    async def ping(self) -> bool:
        return True

    async def sync_to(self, other: BaseStore, tables: Iterable[str], conflict_keys: Dict[str, str]) -> Dict[str, int]:
        """
        Push local rows to another store.

        Every table is upserted on its ``conflict_keys`` columns, so rows that
        exist only in the other store are left alone. Returns rows written per
        table.

        Raises:
            ValidationError: A table has no conflict key (checked before any write)
        """
        tables = list(tables)
        missing = [t for t in tables if t not in conflict_keys]
        if missing:
            raise ValidationError(f"No conflict key for {', '.join(missing)}; sync only merges rows")
        written = {}
        for table in tables:
            rows = [{k: v for k, v in r.items() if k not in ('id', 'created_at')} for r in self._tables.get(table, [])]
            result = await other.upsert(table, rows, on_conflict=conflict_keys[table])
            written[table] = len(result) if result else 0
            logger.info(f"Synced {written[table]} rows to {table}")
        return written
