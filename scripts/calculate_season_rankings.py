#!/usr/bin/env python3
"""
Calculate a season leaderboard and save it as a snapshot
"""
import asyncio
import argparse
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))

from rich.console import Console
from rich.table import Table
import logging

from config.settings import LOG_LEVEL, SEASON_CONFIG
from src.alliance import load_alliance_data
from src.base import SeasonWeights
from src.storage import open_store
from src.utils.exceptions import AllianceRankError

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(message)s',
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)

console = Console()


async def main():
    weights = SEASON_CONFIG['default_weights']
    parser = argparse.ArgumentParser(description='Calculate season rankings')
    parser.add_argument('--season', type=str, required=True, help='Season name')
    parser.add_argument('--start', type=str, required=True, help='First day of the season (YYYY-MM-DD)')
    parser.add_argument('--end', type=str, required=True, help='Last day of the season (YYYY-MM-DD)')
    parser.add_argument('--kudos-weight', type=float, default=weights['kudos'], help=f"Kudos weight in percent (default: {weights['kudos']})")
    parser.add_argument('--vs-weight', type=float, default=weights['vs_performance'], help=f"VS performance weight in percent (default: {weights['vs_performance']})")
    parser.add_argument('--events-weight', type=float, default=weights['special_events'], help=f"Special events weight in percent (default: {weights['special_events']})")
    parser.add_argument('--top', type=int, default=20, help='Rows to display (default: 20)')
    parser.add_argument('--dry-run', action='store_true', help='Calculate without saving the snapshot')
    parser.add_argument('--offline', action='store_true', help='Use the local data file instead of Supabase')
    args = parser.parse_args()

    season_weights = SeasonWeights(
        kudos=args.kudos_weight,
        vs_performance=args.vs_weight,
        special_events=args.events_weight,
    )

    console.print(f"\n[bold green]Calculating season '{args.season}'[/bold green]")
    console.print(f"  Range: {args.start} to {args.end}")
    console.print(f"  Weights: kudos {season_weights.kudos}%, VS {season_weights.vs_performance}%, events {season_weights.special_events}%")
    if args.dry_run:
        console.print("  [yellow]Mode: DRY RUN (no database writes)[/yellow]")
    console.print("")

    try:
        data = await load_alliance_data(open_store(offline=args.offline))
        leaderboard = await data.season_reports().generate(
            args.season, args.start, args.end, season_weights, save=not args.dry_run
        )
    except AllianceRankError as e:
        console.print(f"[red]{e.user_message}[/red]")
        logger.error(str(e))
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if not leaderboard.rows:
        console.print("[yellow]No eligible players found for this range[/yellow]")
        return

    table = Table(title=f"{args.season} ({leaderboard.data_days} ranking days)")
    table.add_column("Rank", style="cyan", justify="right")
    table.add_column("Player", style="cyan")
    table.add_column("Kudos", style="yellow", justify="right")
    table.add_column("VS", style="yellow", justify="right")
    table.add_column("Events", style="yellow", justify="right")
    table.add_column("Alliance", style="blue", justify="right")
    table.add_column("Total", style="green", justify="right")
    for row in leaderboard.rows[:args.top]:
        table.add_row(
            str(row.final_rank),
            row.player_name,
            f"{row.kudos_score:.2f}",
            f"{row.vs_performance_score:.2f}",
            f"{row.special_events_score:.2f}",
            f"{row.alliance_contribution_score:.2f}",
            f"{row.total_weighted_score:.2f}",
        )
    console.print(table)

    if not args.dry_run:
        console.print(f"\n[green]Saved {len(leaderboard.rows)} season rankings[/green]")


if __name__ == '__main__':
    asyncio.run(main())
