#!/usr/bin/env python3
"""
Show weekly statistics: top-10 and bottom-20 repeaters and cumulative points
"""
import asyncio
import argparse
import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))

from rich.console import Console
from rich.table import Table
import logging

from config.settings import LOG_LEVEL
from src.alliance import load_alliance_data
from src.storage import open_store
from src.utils.date_keys import week_dates
from src.utils.exceptions import AllianceRankError

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(message)s',
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)

console = Console()


def print_counts(title: str, counts: dict, value_label: str):
    table = Table(title=title)
    table.add_column("Player", style="cyan")
    table.add_column(value_label, style="green", justify="right")
    for player, value in counts.items():
        table.add_row(player, f"{value:,}")
    if not counts:
        console.print(f"[dim]{title}: nobody[/dim]")
    else:
        console.print(table)


async def main():
    parser = argparse.ArgumentParser(description='Show weekly ranking statistics')
    parser.add_argument('--week', type=str, default=None, help='Any date in the week (YYYY-MM-DD, default: this week)')
    parser.add_argument('--no-special-events', action='store_true', help='Ignore special event rankings')
    parser.add_argument('--offline', action='store_true', help='Use the local data file instead of Supabase')
    args = parser.parse_args()

    try:
        days = week_dates(args.week or date.today())
    except (ValueError, TypeError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    try:
        data = await load_alliance_data(open_store(offline=args.offline))
    except AllianceRankError as e:
        console.print(f"[red]{e.user_message}[/red]")
        logger.error(str(e))
        sys.exit(1)

    stats = data.weekly().weekly_summary(days, include_special_events=not args.no_special_events)

    console.print(f"\n[bold green]Week {days[0]} to {days[-1]}[/bold green]")
    console.print(f"  Days with data: {len(stats.days_with_data)}/7")
    console.print(f"  Special events: {'included' if stats.include_special_events else 'ignored'}\n")

    print_counts("Top 10 (2+ days)", stats.top10_occurrences, "Days")
    print_counts("Bottom 20 (2+ days)", stats.bottom20_occurrences, "Days")
    print_counts("Top 5 Cumulative Points", stats.cumulative_scores, "Points")


if __name__ == '__main__':
    asyncio.run(main())
