from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass
from typing import FrozenSet


class LotteryGame(str, enum.Enum):
    """Supported draw games. Values are the persisted identifiers."""

    LOTO = "loto"
    EUROMILLIONS = "euromillions"


# datetime.weekday(): Monday == 0
MONDAY, TUESDAY, WEDNESDAY, FRIDAY, SATURDAY = 0, 1, 2, 4, 5


@dataclass(frozen=True)
class GameRules:
    """Pool shape and draw calendar of one game."""

    game: LotteryGame
    main_pool_size: int
    main_numbers_to_pick: int
    bonus_pool_size: int
    bonus_numbers_to_pick: int
    draw_weekdays: FrozenSet[int]


_RULES = {
    LotteryGame.LOTO: GameRules(
        LotteryGame.LOTO,
        main_pool_size=49,
        main_numbers_to_pick=5,
        bonus_pool_size=10,
        bonus_numbers_to_pick=1,
        draw_weekdays=frozenset({MONDAY, WEDNESDAY, SATURDAY}),
    ),
    LotteryGame.EUROMILLIONS: GameRules(
        LotteryGame.EUROMILLIONS,
        main_pool_size=50,
        main_numbers_to_pick=5,
        bonus_pool_size=12,
        bonus_numbers_to_pick=2,
        draw_weekdays=frozenset({TUESDAY, FRIDAY}),
    ),
}

_GAME_ALIASES = {
    "loto": LotteryGame.LOTO,
    "euromillion": LotteryGame.EUROMILLIONS,
    "euromillions": LotteryGame.EUROMILLIONS,
    "euromillionsmymillion": LotteryGame.EUROMILLIONS,
}


def get_rules(game: LotteryGame) -> GameRules:
    return _RULES[LotteryGame(game)]


def parse_game(raw: str) -> LotteryGame:
    """Parse user input like ``"EuroMillions"`` or ``"euromillions-my-million"``."""

    key = (raw or "").strip().lower()
    for sep in ("-", "_", " "):
        key = key.replace(sep, "")
    try:
        return _GAME_ALIASES[key]
    except KeyError:
        raise ValueError(f"Unsupported game {raw!r}; choose from {sorted(_GAME_ALIASES)}.") from None


def next_draw_date(game: LotteryGame, from_date: dt.date) -> dt.date:
    """First draw day on or after ``from_date``."""

    rules = get_rules(game)
    for offset in range(8):
        candidate = from_date + dt.timedelta(days=offset)
        if candidate.weekday() in rules.draw_weekdays:
            return candidate
    raise ValueError(f"No draw weekday configured for {game.value}")


__all__ = ["LotteryGame", "GameRules", "get_rules", "parse_game", "next_draw_date"]
