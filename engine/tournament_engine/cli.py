"""Administrative command line for the tournament engine.

Usage:
    python -m tournament_engine init-db
    python -m tournament_engine leaderboard --community 123 [--event 7]
    python -m tournament_engine standings --community 123 --period 2026-05
    python -m tournament_engine wipe --community 123 --yes
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from sqlalchemy.engine import make_url

from .config import settings
from .db import get_engine, init_db
from .errors import TournamentError
from .logging import logger
from .services.render import format_weight
from .services.standings import parse_period
from .services.tournament import Actor, TournamentService


def _ensure_sqlite_directory(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def _cmd_init_db(args: argparse.Namespace, service: TournamentService) -> int:
    _ensure_sqlite_directory(settings.database_url)
    init_db(get_engine())
    print("Database schema is up to date.")
    return 0


def _cmd_leaderboard(args: argparse.Namespace, service: TournamentService) -> int:
    boards = service.leaderboards(args.community, args.event)
    print("Big Bass")
    for rank, entry in enumerate(boards.best_single, start=1):
        print(f"  {rank:>2}. {entry.angler_id}  {format_weight(entry.best_single)} lbs")
    print(f"Total Bag (Top {service.config.bag_size})")
    for rank, entry in enumerate(boards.top_total, start=1):
        print(
            f"  {rank:>2}. {entry.angler_id}  {format_weight(entry.total)} lbs"
            f"  ({entry.catch_count} fish)"
        )
    if boards.is_empty:
        print("  No weigh-ins.")
    return 0


def _cmd_standings(args: argparse.Namespace, service: TournamentService) -> int:
    period = parse_period(args.period, service.tz)
    standings = service.standings(args.community, period)
    print(f"Standings for {period.key}")
    if not standings:
        print("  No finished tournaments in this period.")
    for rank, row in enumerate(standings, start=1):
        print(
            f"  {rank:>2}. {row.angler_id}  bag {format_weight(row.total)} lbs"
            f"  big {format_weight(row.best_single)} lbs  events {row.events}"
        )
    return 0


def _cmd_wipe(args: argparse.Namespace, service: TournamentService) -> int:
    if not args.yes:
        print("Refusing to wipe without --yes.")
        return 2
    actor = Actor(community_id=args.community, user_id="cli", is_admin=True)
    summary = service.wipe_community(actor)
    print(
        f"Removed {summary['events']} events, {summary['catches']} catches, "
        f"{summary['event_results']} results for community {args.community}."
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tournament_engine", description="Tournament engine admin tools")
    sub = parser.add_subparsers(dest="command", required=True)

    init_parser = sub.add_parser("init-db", help="Create database tables")
    init_parser.set_defaults(handler=_cmd_init_db)

    lb_parser = sub.add_parser("leaderboard", help="Show an event's rankings")
    lb_parser.add_argument("--community", required=True)
    lb_parser.add_argument("--event", type=int, default=None, help="Event id (default: active event)")
    lb_parser.set_defaults(handler=_cmd_leaderboard)

    st_parser = sub.add_parser("standings", help="Show monthly or yearly standings")
    st_parser.add_argument("--community", required=True)
    st_parser.add_argument("--period", required=True, help="YYYY-MM or YYYY")
    st_parser.set_defaults(handler=_cmd_standings)

    wipe_parser = sub.add_parser("wipe", help="Delete all events, catches and results for a community")
    wipe_parser.add_argument("--community", required=True)
    wipe_parser.add_argument("--yes", action="store_true", help="Confirm the deletion")
    wipe_parser.set_defaults(handler=_cmd_wipe)

    return parser


def main(argv: Sequence[str] | None = None, service: TournamentService | None = None) -> int:
    args = build_parser().parse_args(argv)
    service = service or TournamentService()
    try:
        return args.handler(args, service)
    except TournamentError as exc:
        logger.info("cli_command_rejected", command=args.command, error=exc.message)
        print(exc.message)
        return 1
