#!/usr/bin/env python3
"""
Push data recorded in offline mode to Supabase
"""
import asyncio
import argparse
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))

from rich.console import Console
import logging

from config.settings import LOG_LEVEL, STORE_CONFIG, TABLES
from src.storage import LocalStore, open_store
from src.utils.exceptions import AllianceRankError

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(message)s',
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)

console = Console()

# Columns each table is merged on; rows only in Supabase are never deleted
CONFLICT_KEYS = {
    TABLES['rankings']: 'day,ranking',
    TABLES['rotation']: 'rotation_order',
    TABLES['removed_players']: 'player_name',
    TABLES['player_aliases']: 'alias_name',
    TABLES['vip_selections']: 'date,train_time',
    TABLES['kudos']: 'player_name,date_awarded',
    TABLES['alliance_leaders']: 'player_name',
    TABLES['special_events']: 'key',
}

SYNC_TABLES = [
    TABLES['alliance_leaders'],
    TABLES['rotation'],
    TABLES['vip_selections'],
    TABLES['special_events'],
    TABLES['rankings'],
    TABLES['kudos'],
    TABLES['removed_players'],
    TABLES['player_aliases'],
]


async def main():
    parser = argparse.ArgumentParser(description='Sync offline data to Supabase')
    parser.add_argument('--path', type=str, default=str(STORE_CONFIG['local_path']), help='Local data file')
    parser.add_argument('--tables', nargs='*', default=None, help='Tables to sync (default: all)')
    args = parser.parse_args()

    path = Path(args.path)
    if not path.exists():
        console.print(f"[red]Error: {path} does not exist[/red]")
        sys.exit(1)

    tables = args.tables or SYNC_TABLES
    unknown = [t for t in tables if t not in SYNC_TABLES]
    if unknown:
        console.print(f"[red]Error: unknown tables {', '.join(unknown)}[/red]")
        sys.exit(1)

    try:
        local = LocalStore(path)
        written = await local.sync_to(open_store(), tables, CONFLICT_KEYS)
    except AllianceRankError as e:
        console.print(f"[red]{e.user_message}[/red]")
        logger.error(str(e))
        sys.exit(1)

    for table, count in written.items():
        console.print(f"  {table}: {count:,} rows")
    console.print("[green]Sync complete[/green]")


if __name__ == '__main__':
    asyncio.run(main())
