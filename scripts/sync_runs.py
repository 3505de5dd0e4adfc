from __future__ import annotations

import argparse
import datetime as dt
from pathlib import Path
from typing import Optional, Sequence

from drawsync import load_history
from drawsync.config import DrawSyncOptions
from drawsync.db import init_db
from drawsync.games import LotteryGame, parse_game
from drawsync.repository import SyncRunRepository, status_for
from drawsync.tables import SyncRun


def _stamp(value: Optional[dt.datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "-"


def format_run(run: SyncRun) -> str:
    line = (
        f"{_stamp(run.started_at)}  {run.game:<12} {run.status:<7} "
        f"upserted={run.draws_upserted_count:<5} trigger={run.trigger or '-'} "
        f"finished={_stamp(run.finished_at)}"
    )
    if run.error:
        # Full traceback is stored; the last line carries the message.
        line += f"\n    error: {run.error.strip().splitlines()[-1]}"
    return line


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Show recent draw sync runs and per-game status.")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL (default: from environment)")
    parser.add_argument("--limit", type=int, default=20, help="Number of runs to list (default: 20)")
    parser.add_argument("--game", type=parse_game, default=None, help="Only show runs of this game")
    parser.add_argument(
        "--export-dir",
        type=Path,
        default=None,
        help="Also write <game>.csv with the canonical draws into this directory",
    )
    args = parser.parse_args(argv)

    url = args.database_url or DrawSyncOptions.from_env().database_url
    session_factory = init_db(url)
    games = [args.game] if args.game else list(LotteryGame)

    with session_factory() as session:
        print("Status:")
        for game in games:
            status = status_for(session, game, dt.date.today())
            last = status.last_draw_date.isoformat() if status.last_draw_date else "-"
            print(
                f"  {game.value:<12} draws={status.draws_count:<5} last_draw={last} "
                f"last_sync={_stamp(status.last_successful_sync_at)} next_draw={status.next_draw_date.isoformat()}"
            )

        runs = SyncRunRepository(session).list_recent(args.limit, args.game)
        print(f"\nLast {len(runs)} runs:")
        for run in runs:
            print("  " + format_run(run))

    if args.export_dir is not None:
        args.export_dir.mkdir(parents=True, exist_ok=True)
        for game in games:
            out = args.export_dir / f"{game.value}.csv"
            df = load_history(session_factory, game)
            df.to_csv(out, index=False)
            print(f"Wrote {len(df):,} rows -> {out}")


if __name__ == "__main__":
    main()
