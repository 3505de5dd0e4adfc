"""
Public draw-sync API.

Stable surface:
- LotteryGame / parse_game / get_rules: the supported games and their rules.
- DrawSyncOptions: runtime options (``DrawSyncOptions.from_env()`` for DRAWSYNC_* overrides).
- init_db: engine + tables + session factory for a database URL.
- DrawSyncService: ``sync_game`` / ``sync_all`` against the configured history pages.
- load_history: canonical draws of one game as a DataFrame (wraps pandas).

Everything else in this package should be treated as internal.
"""

from __future__ import annotations

import pandas as pd
from sqlalchemy.orm import Session, sessionmaker

from .config import DrawSyncOptions, GameOptions
from .db import init_db
from .errors import DrawSyncError, SyncCancelled
from .games import LotteryGame, get_rules, next_draw_date, parse_game
from .repository import DrawRepository
from .schema import draws_frame
from .sync import DrawSyncService


def load_history(session_factory: sessionmaker[Session], game: LotteryGame) -> pd.DataFrame:
    """
    Load the canonical history of ``game`` into a wide DataFrame.

    Columns are ``draw_date``, ``ball_1..5``, the bonus column(s) and ``source``,
    one row per draw in ascending date order.
    """

    with session_factory() as session:
        draws = DrawRepository(session).list_draws(game)
    return draws_frame(game, draws)


__all__ = [
    "DrawSyncError",
    "DrawSyncOptions",
    "DrawSyncService",
    "GameOptions",
    "LotteryGame",
    "SyncCancelled",
    "get_rules",
    "init_db",
    "load_history",
    "next_draw_date",
    "parse_game",
]
