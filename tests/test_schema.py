import datetime as dt

import pytest

from drawsync.games import LotteryGame
from drawsync.models import ParsedDraw
from drawsync.schema import draws_frame, frame_columns, validate_numbers


def test_validate_numbers_sorts_both_zones():
    main, bonus = validate_numbers(LotteryGame.EUROMILLIONS, [50, 1, 30, 7, 12], [12, 3])

    assert main == (1, 7, 12, 30, 50)
    assert bonus == (3, 12)


@pytest.mark.parametrize(
    "game, main, bonus",
    [
        (LotteryGame.LOTO, [1, 2, 3, 4], [1]),
        (LotteryGame.LOTO, [1, 2, 3, 4, 4], [1]),
        (LotteryGame.LOTO, [1, 2, 3, 4, 50], [1]),
        (LotteryGame.LOTO, [1, 2, 3, 4, 5], [0]),
        (LotteryGame.LOTO, [1, 2, 3, 4, 5], [1, 2]),
        (LotteryGame.EUROMILLIONS, [1, 2, 3, 4, 5], [13, 1]),
        (LotteryGame.EUROMILLIONS, [1, 2, 3, 4, 5], [2, 2]),
    ],
)
def test_validate_numbers_rejects(game, main, bonus):
    with pytest.raises(ValueError):
        validate_numbers(game, main, bonus)


def test_frame_columns():
    assert frame_columns(LotteryGame.LOTO)[-2:] == ["chance", "source"]
    assert frame_columns(LotteryGame.EUROMILLIONS) == [
        "draw_date",
        "ball_1",
        "ball_2",
        "ball_3",
        "ball_4",
        "ball_5",
        "star_1",
        "star_2",
        "source",
    ]


def test_draws_frame_is_sorted_by_date():
    draws = [
        ParsedDraw(dt.date(2024, 3, 8), (1, 2, 3, 4, 5), (1, 2)),
        ParsedDraw(dt.date(2024, 3, 5), (6, 7, 8, 9, 10), (3, 4)),
    ]

    df = draws_frame(LotteryGame.EUROMILLIONS, draws)

    assert list(df["draw_date"].dt.date) == [dt.date(2024, 3, 5), dt.date(2024, 3, 8)]
    assert df.iloc[0]["ball_5"] == 10
    assert df.iloc[0]["star_2"] == 4
    assert df.iloc[0]["source"] == ""
    assert draws_frame(LotteryGame.LOTO, []).empty
