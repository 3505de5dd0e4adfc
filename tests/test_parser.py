import datetime as dt
import io
import logging

import pandas as pd
import pytest

from drawsync.games import LotteryGame
from drawsync.parser import (
    CSV_DELIMITERS,
    CSV_ENCODINGS,
    _try_delimited,  # type: ignore[attr-defined]
    parse_archive_entry,
    parse_draw_date,
    parse_int,
)


def test_loto_discrete_columns_example():
    content = (
        "date_tirage;numero1;numero2;numero3;numero4;numero5;num_chance\n"
        "19/02/2026;1;2;3;4;5;9\n"
    ).encode("utf-8")

    draws = parse_archive_entry(LotteryGame.LOTO, "archive.zip", "loto.csv", content)

    assert len(draws) == 1
    assert draws[0].draw_date == dt.date(2026, 2, 19)
    assert draws[0].main_numbers == (1, 2, 3, 4, 5)
    assert draws[0].bonus_numbers == (9,)


def test_euromillions_combined_columns_example():
    content = "Date du tirage,numeros gagnants,stars gagnantes\n20/02/2026,1 2 3 4 5,1 7\n".encode("utf-8")

    draws = parse_archive_entry(LotteryGame.EUROMILLIONS, "archive.zip", "euro.csv", content)

    assert len(draws) == 1
    assert draws[0].draw_date == dt.date(2026, 2, 20)
    assert draws[0].main_numbers == (1, 2, 3, 4, 5)
    assert draws[0].bonus_numbers == (1, 7)


@pytest.mark.parametrize("delimiter", CSV_DELIMITERS)
@pytest.mark.parametrize("encoding_index", range(3))
def test_every_encoding_delimiter_pair_is_reachable(encoding_index, delimiter):
    encoding = CSV_ENCODINGS[encoding_index]
    # utf-8 decodes "é" fine; cp1252 is needed for a lone 0xE9; only latin-1 maps 0x81.
    marker = {0: "ok", 1: "ok", 2: "\x81"}[encoding_index]
    header = delimiter.join(
        ["date_de_tirage", "boule_1", "boule_2", "boule_3", "boule_4", "boule_5", "numéro_chance", "note"]
    )
    row = delimiter.join(["04/11/2019", "5", "4", "3", "2", "1", "6", marker])
    content = f"{header}\n{row}\n".encode(encoding)

    result = _try_delimited(LotteryGame.LOTO, "loto.csv", content)

    assert result is not None
    draws, used_encoding, used_delimiter = result
    assert used_encoding == encoding
    assert used_delimiter == delimiter
    assert draws[0].main_numbers == (1, 2, 3, 4, 5)
    assert draws[0].bonus_numbers == (6,)


def test_invalid_rows_are_skipped_and_logged(caplog):
    content = (
        "date_de_tirage;boule_1;boule_2;boule_3;boule_4;boule_5;numero_chance\n"
        "not-a-date;1;2;3;4;5;6\n"
        "06/11/2019;1;1;3;4;5;6\n"
        "09/11/2019;1;2;3;4;50;6\n"
        "11/11/2019;1;2;3;4;5;11\n"
        ";;;;;;\n"
        "13/11/2019;10;20;30;40;49;10\n"
    ).encode("utf-8")

    with caplog.at_level(logging.WARNING, logger="drawsync.parser"):
        draws = parse_archive_entry(LotteryGame.LOTO, "archive.zip", "loto.csv", content)

    assert [d.draw_date for d in draws] == [dt.date(2019, 11, 13)]
    skipped = [r for r in caplog.records if "Skipping row" in r.getMessage()]
    assert len(skipped) == 4


def test_loto_combined_column_carries_trailing_chance():
    content = (
        "date_de_tirage;combinaison_gagnante_en_ordre_croissant\n"
        "02/03/2024;3-14-25-36-47+8\n"
    ).encode("utf-8")

    draws = parse_archive_entry(LotteryGame.LOTO, "archive.zip", "loto.csv", content)

    assert draws[0].main_numbers == (3, 14, 25, 36, 47)
    assert draws[0].bonus_numbers == (8,)


def test_euromillions_stars_from_seven_number_combination():
    content = "date,numeros_gagnants\n2024-03-05,45 7 12 23 34 11 2\n".encode("utf-8")

    draws = parse_archive_entry(LotteryGame.EUROMILLIONS, "archive.zip", "euro.csv", content)

    assert draws[0].draw_date == dt.date(2024, 3, 5)
    assert draws[0].main_numbers == (7, 12, 23, 34, 45)
    assert draws[0].bonus_numbers == (2, 11)


def test_header_without_known_date_column_yields_nothing():
    content = "jour;boule_1;boule_2;boule_3;boule_4;boule_5\n02/03/2024;1;2;3;4;5\n".encode("utf-8")

    assert parse_archive_entry(LotteryGame.LOTO, "archive.zip", "loto.csv", content) == []


def test_spreadsheet_fallback_reads_every_sheet():
    first = pd.DataFrame(
        {
            "Date de tirage": ["08/03/2024"],
            "Boule 1": [5],
            "Boule 2": [15],
            "Boule 3": [25],
            "Boule 4": [35],
            "Boule 5": [45],
            "Etoile 1": [3],
            "Etoile 2": [9],
        }
    )
    second = pd.DataFrame(
        {
            "Date de tirage": ["12/03/2024"],
            "Boule 1": [1],
            "Boule 2": [2],
            "Boule 3": [3],
            "Boule 4": [4],
            "Boule 5": [50],
            "Etoile 1": [12],
            "Etoile 2": [1],
        }
    )
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        first.to_excel(writer, sheet_name="2024a", index=False)
        second.to_excel(writer, sheet_name="2024b", index=False)

    draws = parse_archive_entry(LotteryGame.EUROMILLIONS, "archive.zip", "euro.xlsx", buffer.getvalue())

    assert sorted(d.draw_date for d in draws) == [dt.date(2024, 3, 8), dt.date(2024, 3, 12)]
    by_date = {d.draw_date: d for d in draws}
    assert by_date[dt.date(2024, 3, 12)].main_numbers == (1, 2, 3, 4, 50)
    assert by_date[dt.date(2024, 3, 12)].bonus_numbers == (1, 12)


def test_unreadable_content_yields_no_draws():
    assert parse_archive_entry(LotteryGame.LOTO, "archive.zip", "blob.bin", b"\x00\x01\x02garbage") == []


def test_parse_int_accepts_spreadsheet_floats():
    assert parse_int("7") == 7
    assert parse_int(" 12.0 ") == 12
    assert parse_int("3,0") == 3
    assert parse_int("4.5") is None
    assert parse_int("") is None


def test_parse_draw_date_formats():
    assert parse_draw_date("4/11/2019") == dt.date(2019, 11, 4)
    assert parse_draw_date("2019-11-04") == dt.date(2019, 11, 4)
    assert parse_draw_date("04-11-2019") == dt.date(2019, 11, 4)
    assert parse_draw_date("20191104") == dt.date(2019, 11, 4)
    assert parse_draw_date("2019-11-04 00:00:00") == dt.date(2019, 11, 4)
    assert parse_draw_date("11/2019") is None
