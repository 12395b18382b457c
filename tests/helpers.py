"""Record builders and store doubles shared by the tests"""
from datetime import date
from typing import Dict, List, Sequence, Tuple

from src.base import RankingRecord
from src.storage.local_store import LocalStore
from src.utils.date_keys import CalendarDay, EventDay
from src.utils.exceptions import BackingStoreUnavailable


def day_records(day: str, entries: Sequence[Tuple[str, object]]) -> List[RankingRecord]:
    """Ranking records for a date; ``entries`` are (commander, points) in rank order"""
    ref = CalendarDay(date.fromisoformat(day))
    return [RankingRecord(day=ref, rank=i, commander=name, points=points)
            for i, (name, points) in enumerate(entries, start=1)]


def event_records(key: str, entries: Sequence[Tuple[str, object]]) -> List[RankingRecord]:
    ref = EventDay(key)
    return [RankingRecord(day=ref, rank=i, commander=name, points=points)
            for i, (name, points) in enumerate(entries, start=1)]


def ranking_rows(day: str, entries: Sequence[Tuple[str, object]]) -> List[Dict]:
    """Raw ``rankings`` rows for a day or event key"""
    return [{'day': day, 'ranking': i, 'commander': name, 'points': str(points)}
            for i, (name, points) in enumerate(entries, start=1)]


def fillers(prefix: str, count: int, points: int = 100) -> List[Tuple[str, int]]:
    return [(f"{prefix}{i}", points) for i in range(1, count + 1)]


class FailingInsertStore(LocalStore):
    """LocalStore whose next ``failures`` inserts into ``table`` fail"""

    def __init__(self, table: str, failures: int = 1, **kwargs):
        super().__init__(**kwargs)
        self.fail_table = table
        self.failures = failures

    async def insert(self, table, rows):
        if table == self.fail_table and self.failures > 0:
            self.failures -= 1
            raise BackingStoreUnavailable(f"insert into {table}", "connection reset")
        return await super().insert(table, rows)


class UniqueRotationOrderStore(LocalStore):
    """LocalStore enforcing a unique ``rotation_order`` on the rotation table"""

    async def insert(self, table, rows):
        if table == 'train_conductor_rotation':
            orders = [r['rotation_order'] for r in self.rows(table)] + [r['rotation_order'] for r in rows]
            if len(orders) != len(set(orders)):
                raise BackingStoreUnavailable(f"insert into {table}", "duplicate key value violates unique constraint")
        return await super().insert(table, rows)
