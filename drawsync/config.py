"""Runtime options for the draw sync, with ``DRAWSYNC_*`` environment overrides."""

from __future__ import annotations

import datetime as dt
import os
from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Optional

from .errors import ConfigurationError
from .games import LotteryGame

DEFAULT_USER_AGENT = "lotteries-drawsync/1.0 (+https://github.com/kugguk2022/lotteries)"
DEFAULT_DATABASE_URL = "sqlite:///drawsync.db"
MERGE_POLICIES = ("later_wins", "earlier_wins")


@dataclass(frozen=True)
class GameOptions:
    history_url: str
    rule_start_date: dt.date


def _default_games() -> Dict[LotteryGame, GameOptions]:
    return {
        LotteryGame.LOTO: GameOptions(
            history_url="https://www.fdj.fr/jeux-de-tirage/loto/historique",
            rule_start_date=dt.date(2019, 11, 4),
        ),
        LotteryGame.EUROMILLIONS: GameOptions(
            history_url="https://www.fdj.fr/jeux-de-tirage/euromillions-my-million/historique",
            rule_start_date=dt.date(2016, 9, 1),
        ),
    }


@dataclass(frozen=True)
class DrawSyncOptions:
    user_agent: str = DEFAULT_USER_AGENT
    http_timeout_seconds: float = 30.0
    max_retries: int = 3
    backoff_factor: float = 0.5
    database_url: str = DEFAULT_DATABASE_URL
    merge_policy: str = "later_wins"
    games: Dict[LotteryGame, GameOptions] = field(default_factory=_default_games)

    def __post_init__(self) -> None:
        if self.merge_policy not in MERGE_POLICIES:
            raise ConfigurationError(
                f"Unsupported merge policy {self.merge_policy!r}; choose from {MERGE_POLICIES}."
            )
        if self.http_timeout_seconds <= 0:
            raise ConfigurationError("http_timeout_seconds must be > 0.")
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be >= 0.")

    def game_options(self, game: LotteryGame) -> GameOptions:
        try:
            return self.games[LotteryGame(game)]
        except (KeyError, ValueError):
            raise ConfigurationError(f"No options configured for game {game!r}") from None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DrawSyncOptions":
        """Build options from defaults overlaid with environment variables."""

        env = os.environ if environ is None else environ
        base = cls()
        games = dict(base.games)
        for game in LotteryGame:
            prefix = f"DRAWSYNC_{game.value.upper()}_"
            current = games[game]
            url = env.get(prefix + "HISTORY_URL") or current.history_url
            start_raw = env.get(prefix + "RULE_START")
            start = _parse_date(prefix + "RULE_START", start_raw) if start_raw else current.rule_start_date
            games[game] = GameOptions(history_url=url, rule_start_date=start)

        return replace(
            base,
            user_agent=env.get("DRAWSYNC_USER_AGENT") or base.user_agent,
            http_timeout_seconds=_parse_number(
                "DRAWSYNC_HTTP_TIMEOUT", env.get("DRAWSYNC_HTTP_TIMEOUT"), base.http_timeout_seconds, float
            ),
            max_retries=_parse_number(
                "DRAWSYNC_MAX_RETRIES", env.get("DRAWSYNC_MAX_RETRIES"), base.max_retries, int
            ),
            database_url=env.get("DRAWSYNC_DATABASE_URL") or env.get("DATABASE_URL") or base.database_url,
            merge_policy=(env.get("DRAWSYNC_MERGE_POLICY") or base.merge_policy).strip().lower(),
            games=games,
        )


def _parse_date(name: str, raw: str) -> dt.date:
    try:
        return dt.date.fromisoformat(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be YYYY-MM-DD, got {raw!r}") from exc


def _parse_number(name: str, raw: Optional[str], default, kind):
    if raw is None or not raw.strip():
        return default
    try:
        return kind(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be numeric, got {raw!r}") from exc


__all__ = ["GameOptions", "DrawSyncOptions", "MERGE_POLICIES"]
