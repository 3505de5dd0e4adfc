"""
Turn the raw bytes of one archive entry into validated draws.

Delimited text is tried first over every (encoding, delimiter) pair in order;
the first pair whose header resolves the draw columns and which maps at least
one row wins. Otherwise the bytes are read as a spreadsheet workbook, table by
table. Bad rows are logged and skipped; an unreadable file yields no draws.
"""

from __future__ import annotations

import codecs
import csv
import datetime as dt
import io
import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .columns import (
    ResolvedColumns,
    build_column_index,
    has_minimum_columns,
    resolve_columns,
)
from .games import LotteryGame
from .models import ParsedDraw
from .schema import validate_numbers

LOGGER = logging.getLogger(__name__)


def _resolve_encodings(names: Sequence[str]) -> Tuple[str, ...]:
    # Fails at import time if the interpreter lacks one of the codecs.
    return tuple(codecs.lookup(name).name for name in names)


CSV_ENCODINGS = _resolve_encodings(("utf-8", "cp1252", "latin-1"))
CSV_DELIMITERS = (";", ",", "\t")
DATE_FORMATS = (
    "%d/%m/%Y",
    "%Y-%m-%d",
    "%d-%m-%Y",
    "%Y%m%d",
    "%Y-%m-%d %H:%M:%S",
)

_INTEGER = re.compile(r"\d+")
_WHOLE_NUMBER = re.compile(r"^\+?(\d+)(?:[.,]0+)?$")


class RowRejected(ValueError):
    """A single row could not be mapped to a valid draw."""


def parse_int(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    m = _WHOLE_NUMBER.match(raw.strip())
    return int(m.group(1)) if m else None


def parse_draw_date(raw: Optional[str]) -> Optional[dt.date]:
    if not raw or not raw.strip():
        return None
    value = raw.strip()
    for fmt in DATE_FORMATS:
        try:
            return dt.datetime.strptime(value, fmt).date()
        except ValueError:
            pass
    return None


def _integers(raw: Optional[str]) -> List[int]:
    return [int(x) for x in _INTEGER.findall(raw or "")]


def _field(fields: Sequence[str], position: Optional[int]) -> Optional[str]:
    if position is None or position >= len(fields):
        return None
    return fields[position].strip()


def _main_numbers(columns: ResolvedColumns, fields: Sequence[str]) -> Optional[List[int]]:
    if columns.has_discrete_main:
        values = [parse_int(_field(fields, position)) for position in columns.main]
        if all(v is not None for v in values):
            return values  # type: ignore[return-value]

    combined = _integers(_field(fields, columns.main_combined))
    if len(combined) >= 5:
        return combined[:5]
    return None


def _bonus_numbers(
    game: LotteryGame, columns: ResolvedColumns, fields: Sequence[str]
) -> Optional[List[int]]:
    combined_main = _integers(_field(fields, columns.main_combined))

    if game == LotteryGame.LOTO:
        chance = parse_int(_field(fields, columns.bonus[0]))
        if chance is not None:
            return [chance]
        # "1-5-12-33-45+7": the chance number trails the five balls
        if len(combined_main) >= 6:
            return [combined_main[-1]]
        return None

    stars = [parse_int(_field(fields, position)) for position in columns.bonus]
    if all(s is not None for s in stars):
        return stars  # type: ignore[return-value]
    combined_stars = _integers(_field(fields, columns.bonus_combined))
    if len(combined_stars) >= 2:
        return combined_stars[:2]
    if len(combined_main) >= 7:
        return combined_main[-2:]
    return None


def map_row(game: LotteryGame, columns: ResolvedColumns, fields: Sequence[str]) -> ParsedDraw:
    """Map one row to a :class:`ParsedDraw` or raise :class:`RowRejected`."""

    draw_date = parse_draw_date(_field(fields, columns.date))
    if draw_date is None:
        raise RowRejected("draw date missing or invalid")

    main = _main_numbers(columns, fields)
    if main is None:
        raise RowRejected("main numbers missing or invalid")

    bonus = _bonus_numbers(game, columns, fields)
    if bonus is None:
        raise RowRejected("bonus numbers missing or invalid")

    try:
        main_sorted, bonus_sorted = validate_numbers(game, main, bonus)
    except ValueError as exc:
        raise RowRejected(str(exc)) from exc
    return ParsedDraw(draw_date, main_sorted, bonus_sorted)


def _map_rows(
    game: LotteryGame,
    columns: ResolvedColumns,
    rows: Iterable[Tuple[int, Sequence[str]]],
    where: str,
) -> List[ParsedDraw]:
    draws: List[ParsedDraw] = []
    for line_no, fields in rows:
        if not fields or all(not str(f).strip() for f in fields):
            continue
        try:
            draws.append(map_row(game, columns, fields))
        except RowRejected as exc:
            LOGGER.warning("Skipping row %d of %s: %s", line_no, where, exc)
    return draws


def _csv_rows(reader, entry_name: str) -> Iterable[Tuple[int, List[str]]]:
    while True:
        try:
            fields = next(reader)
        except StopIteration:
            return
        except csv.Error as exc:
            LOGGER.warning("Skipping malformed line %d of %s: %s", reader.line_num, entry_name, exc)
            continue
        yield reader.line_num, fields


def parse_delimited(
    game: LotteryGame, entry_name: str, text: str, delimiter: str
) -> Optional[List[ParsedDraw]]:
    """Parse ``text`` with one delimiter. None when the header is not usable."""

    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, strict=True)
    try:
        header = next(reader)
    except (StopIteration, csv.Error):
        return None

    index = build_column_index(h.strip() for h in header)
    if not has_minimum_columns(index):
        return None

    columns = resolve_columns(game, index)
    return _map_rows(game, columns, _csv_rows(reader, entry_name), entry_name)


def _try_delimited(
    game: LotteryGame, entry_name: str, content: bytes
) -> Optional[Tuple[List[ParsedDraw], str, str]]:
    for encoding in CSV_ENCODINGS:
        try:
            text = content.decode(encoding)
        except UnicodeDecodeError:
            continue
        for delimiter in CSV_DELIMITERS:
            draws = parse_delimited(game, entry_name, text, delimiter)
            if draws:
                return draws, encoding, delimiter
    return None


def parse_spreadsheet(game: LotteryGame, entry_name: str, content: bytes) -> List[ParsedDraw]:
    """Read every table of a workbook; unreadable content yields an empty list."""

    try:
        tables = pd.read_excel(io.BytesIO(content), sheet_name=None, header=0, dtype=str)
    except Exception as exc:  # readers raise engine-specific errors for foreign bytes
        LOGGER.warning("Spreadsheet parsing failed for %s: %s", entry_name, exc)
        return []

    draws: List[ParsedDraw] = []
    for table_name, df in tables.items():
        index = build_column_index(str(c) for c in df.columns)
        if not index or not has_minimum_columns(index):
            continue
        columns = resolve_columns(game, index)
        rows = (
            (line_no, ["" if pd.isna(v) else str(v).strip() for v in values])
            for line_no, values in enumerate(df.itertuples(index=False, name=None), start=2)
        )
        draws.extend(_map_rows(game, columns, rows, f"{entry_name} [{table_name}]"))
    return draws


def parse_archive_entry(
    game: LotteryGame, archive_name: str, entry_name: str, content: bytes
) -> List[ParsedDraw]:
    """Parse one file (a zip entry or a flat download) into validated draws."""

    if content is None:
        raise TypeError("content must be bytes")

    delimited = _try_delimited(game, entry_name, content)
    if delimited is not None:
        draws, encoding, delimiter = delimited
        LOGGER.info(
            "Parsed %d %s draws from %s/%s as delimited text (encoding=%s, delimiter=%r)",
            len(draws),
            game.value,
            archive_name,
            entry_name,
            encoding,
            delimiter,
        )
        return draws

    draws = parse_spreadsheet(game, entry_name, content)
    if draws:
        LOGGER.info(
            "Parsed %d %s draws from %s/%s as spreadsheet",
            len(draws),
            game.value,
            archive_name,
            entry_name,
        )
        return draws

    LOGGER.warning(
        "Ignoring %s/%s for %s: neither delimited text nor spreadsheet yielded draws",
        archive_name,
        entry_name,
        game.value,
    )
    return []


__all__ = [
    "CSV_ENCODINGS",
    "CSV_DELIMITERS",
    "DATE_FORMATS",
    "RowRejected",
    "map_row",
    "parse_int",
    "parse_draw_date",
    "parse_delimited",
    "parse_spreadsheet",
    "parse_archive_entry",
]
