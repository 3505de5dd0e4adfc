from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

import pandas as pd

from .games import LotteryGame, get_rules


def _check_zone(values: Sequence[int], expected_len: int, hi: int, label: str) -> None:
    if len(values) != expected_len:
        raise ValueError(f"expected {expected_len} {label} numbers, got {len(values)}")
    if len(set(values)) != expected_len:
        raise ValueError(f"{label} numbers must be distinct: {list(values)}")
    bad = [v for v in values if not 1 <= v <= hi]
    if bad:
        raise ValueError(f"{label} numbers outside [1..{hi}]: {bad}")


def validate_numbers(
    game: LotteryGame, main_numbers: Sequence[int], bonus_numbers: Sequence[int]
) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
    """Sort both zones and check count, distinctness and pool bounds.

    Raises ValueError with a human-readable reason on the first violation.
    """

    rules = get_rules(game)
    main = tuple(sorted(int(v) for v in main_numbers))
    bonus = tuple(sorted(int(v) for v in bonus_numbers))
    _check_zone(main, rules.main_numbers_to_pick, rules.main_pool_size, "main")
    _check_zone(bonus, rules.bonus_numbers_to_pick, rules.bonus_pool_size, "bonus")
    return main, bonus


def frame_columns(game: LotteryGame) -> List[str]:
    rules = get_rules(game)
    bonus_name = "chance" if game == LotteryGame.LOTO else "star"
    main_cols = [f"ball_{i}" for i in range(1, rules.main_numbers_to_pick + 1)]
    if rules.bonus_numbers_to_pick == 1:
        bonus_cols = [bonus_name]
    else:
        bonus_cols = [f"{bonus_name}_{i}" for i in range(1, rules.bonus_numbers_to_pick + 1)]
    return ["draw_date", *main_cols, *bonus_cols, "source"]


def draws_frame(game: LotteryGame, draws: Iterable) -> pd.DataFrame:
    """Flatten canonical draws (anything with ``draw_date``/``main_numbers``/``bonus_numbers``)
    into one wide row per draw, sorted by date."""

    columns = frame_columns(game)
    rows: List[Dict[str, object]] = []
    for draw in draws:
        values = [draw.draw_date, *draw.main_numbers, *draw.bonus_numbers, getattr(draw, "source", "")]
        rows.append(dict(zip(columns, values)))
    df = pd.DataFrame(rows, columns=columns)
    if df.empty:
        return df
    df["draw_date"] = pd.to_datetime(df["draw_date"])
    return df.sort_values("draw_date").reset_index(drop=True)


__all__ = ["validate_numbers", "frame_columns", "draws_frame"]
