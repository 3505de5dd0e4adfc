from __future__ import annotations

import argparse
import signal
import sys
import threading
from typing import List, Optional, Sequence

from drawsync.config import DrawSyncOptions
from drawsync.db import init_db
from drawsync.errors import DrawSyncError, SyncCancelled
from drawsync.games import parse_game
from drawsync.logging_config import configure_logging
from drawsync.models import GameSyncResult
from drawsync.sync import DrawSyncService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sync Loto and EuroMillions draw history from the published archives."
    )
    parser.add_argument("--trigger", default="manual", help="Label stored on each sync run (default: manual)")
    parser.add_argument(
        "--game",
        action="append",
        type=parse_game,
        default=None,
        help="Game to sync (loto, euromillions); repeatable. Default: all games.",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL (default: DRAWSYNC_DATABASE_URL, DATABASE_URL or sqlite:///drawsync.db)",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("--quiet", action="store_true", help="Suppress per-game summary print")
    return parser


def _print_result(result: GameSyncResult) -> None:
    if result.succeeded:
        last = result.last_known_date.isoformat() if result.last_known_date else "-"
        print(f"[ok]   {result.game.value}: {result.upserted_count} upserted, last draw {last}")
    else:
        print(f"[fail] {result.game.value}: {result.error}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    options = DrawSyncOptions.from_env()
    database_url = args.database_url or options.database_url
    service = DrawSyncService(options, init_db(database_url))

    cancel = threading.Event()
    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGTERM, lambda signum, frame: cancel.set())

    if args.game:
        results: List[GameSyncResult] = []
        for game in dict.fromkeys(args.game):
            results.append(service.sync_game(game, args.trigger, cancel))
    else:
        results = service.sync_all(args.trigger, cancel).games

    if not args.quiet:
        for result in results:
            _print_result(result)
    return 1 if any(not r.succeeded for r in results) else 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("Aborted.", file=sys.stderr)
        sys.exit(130)
    except SyncCancelled:
        print("Cancelled.", file=sys.stderr)
        sys.exit(143)
    except DrawSyncError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
