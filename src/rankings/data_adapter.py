"""Data adapter to convert between stored table rows and typed records"""
from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional

import pandas as pd

from src.base import (
    RankingRecord,
    SpecialEvent,
    AllianceLeader,
    RotationEntry,
    VIPSelection,
    PlayerAlias,
    KudosAward,
    RemovedPlayer,
)
from src.utils.date_keys import day_ref, date_key, to_date

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r'^[+-]?\d+')


def parse_points(value) -> int:
    """
    Leniently read a points value.

    Thousands separators and whitespace are ignored and the leading integer is
    used ("1,234,567" -> 1234567, "88k" -> 88). Anything unreadable counts as 0.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return 0 if pd.isna(value) else int(value)
    cleaned = re.sub(r'[,\s]', '', str(value))
    match = _LEADING_INT.match(cleaned)
    return int(match.group()) if match else 0


def parse_rank(value) -> Optional[int]:
    try:
        rank = int(float(value))
    except (TypeError, ValueError):
        return None
    return rank if rank >= 1 else None


def ranking_from_row(row: Dict) -> Optional[RankingRecord]:
    """Convert a ``rankings`` row, returning None for rows that cannot be ranked"""
    rank = parse_rank(row.get('ranking'))
    commander = str(row.get('commander') or '').strip()
    if rank is None or not commander:
        return None
    try:
        day = day_ref(row.get('day'))
    except (ValueError, TypeError):
        return None
    return RankingRecord(day=day, rank=rank, commander=commander, points=row.get('points', 0))


def ranking_to_row(record: RankingRecord) -> Dict:
    return {
        'day': record.day.key,
        'ranking': int(record.rank),
        'commander': record.commander,
        'points': str(record.points if record.points is not None else ''),
    }


def rankings_from_rows(rows: Iterable[Dict]) -> List[RankingRecord]:
    records = []
    skipped = 0
    for row in rows:
        record = ranking_from_row(row)
        if record is None:
            skipped += 1
            continue
        records.append(record)
    if skipped:
        logger.warning(f"⚠️ Skipped {skipped} ranking rows without a usable day, rank or commander")
    return records


def remove_duplicate_rankings(records: Iterable[RankingRecord]) -> List[RankingRecord]:
    """Keep one record per rank, the one with more points, sorted by rank"""
    by_rank: Dict[int, RankingRecord] = {}
    for record in records:
        current = by_rank.get(record.rank)
        if current is None or parse_points(record.points) > parse_points(current.points):
            by_rank[record.rank] = record
    return [by_rank[rank] for rank in sorted(by_rank)]


def rankings_to_dataframe(records: Iterable[RankingRecord]) -> pd.DataFrame:
    """Tabular view of ranking records with numeric points"""
    data = [
        {
            'day': r.day.key,
            'rank': r.rank,
            'commander': r.commander,
            'points': parse_points(r.points),
        }
        for r in records
    ]
    return pd.DataFrame(data, columns=['day', 'rank', 'commander', 'points'])


def event_from_row(row: Dict) -> SpecialEvent:
    weight = row.get('event_weight')
    return SpecialEvent(
        key=row['key'],
        name=row.get('name', ''),
        start_date=to_date(row['start_date']),
        end_date=to_date(row['end_date']),
        weight=float(weight) if weight is not None else 10.0,
        pinned=bool(row.get('pinned', False)),
        created=row.get('created') or row.get('created_at'),
    )


def event_to_row(event: SpecialEvent) -> Dict:
    return {
        'key': event.key,
        'name': event.name,
        'start_date': date_key(event.start_date),
        'end_date': date_key(event.end_date),
        'event_weight': float(event.weight),
        'pinned': bool(event.pinned),
        'created': event.created,
    }


def leader_from_row(row: Dict) -> AllianceLeader:
    return AllianceLeader(player_name=row['player_name'], is_active=bool(row.get('is_active', True)))


def rotation_from_row(row: Dict) -> RotationEntry:
    return RotationEntry(
        player_name=row['player_name'],
        rotation_order=int(row['rotation_order']),
        is_active=bool(row.get('is_active', True)),
    )


def rotation_to_row(entry: RotationEntry) -> Dict:
    return {
        'player_name': entry.player_name,
        'rotation_order': int(entry.rotation_order),
        'is_active': bool(entry.is_active),
    }


def normalize_train_time(value: Optional[str], default: str = "04:00:00") -> str:
    """Return ``HH:MM:SS``; ``HH:MM`` gains seconds"""
    if not value:
        return default
    value = str(value).strip()
    if re.fullmatch(r'\d{1,2}:\d{2}', value):
        value = f"{value}:00"
    if not re.fullmatch(r'\d{1,2}:\d{2}:\d{2}', value):
        raise ValueError(f"Invalid train time: {value!r}")
    hours, minutes, seconds = (int(p) for p in value.split(':'))
    if hours > 23 or minutes > 59 or seconds > 59:
        raise ValueError(f"Invalid train time: {value!r}")
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def vip_from_row(row: Dict) -> VIPSelection:
    return VIPSelection(
        date=to_date(row['date']),
        conductor=row.get('train_conductor') or '',
        vip_player=row.get('vip_player') or '',
        train_time=normalize_train_time(row.get('train_time')),
        notes=row.get('notes') or '',
    )


def vip_to_row(selection: VIPSelection) -> Dict:
    return {
        'date': date_key(selection.date),
        'train_time': selection.train_time,
        'train_conductor': selection.conductor,
        'vip_player': selection.vip_player,
        'notes': selection.notes or '',
    }


def alias_from_row(row: Dict) -> PlayerAlias:
    return PlayerAlias(
        primary_name=row['primary_name'],
        alias_name=row['alias_name'],
        created_by=row.get('created_by'),
        is_active=bool(row.get('is_active', True)),
    )


def kudos_from_row(row: Dict) -> KudosAward:
    return KudosAward(
        id=row.get('id'),
        player_name=row['player_name'],
        points=int(row['points']),
        date_awarded=to_date(row['date_awarded']),
        reason=row.get('reason') or '',
        awarded_by=row.get('awarded_by'),
    )


def removed_from_row(row: Dict) -> RemovedPlayer:
    return RemovedPlayer(
        player_name=row['player_name'],
        removed_by=row.get('removed_by'),
        reason=row.get('reason'),
        removed_date=row.get('removed_date'),
    )
