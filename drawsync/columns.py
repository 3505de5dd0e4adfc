"""
Header normalization and semantic column resolution for draw files.

Official exports renamed their columns many times ("date_de_tirage",
"Date du tirage", "boule_1", "numero1", "combinaison gagnante en ordre
croissant", ...). Each semantic column is described by an ordered tuple of
resolvers; a resolver is a pure function from a :data:`ColumnIndex` to a
column position (or None). The first resolver that answers wins.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple

from .games import LotteryGame

ColumnIndex = Dict[str, int]
Resolver = Callable[[ColumnIndex], Optional[int]]

_NON_ALNUM = re.compile(r"[^0-9a-z]")
_UNDERSCORES = re.compile(r"_+")


def strip_diacritics(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def normalize_header(value: object) -> str:
    """``" Numéro  Chance "`` -> ``"numero_chance"``."""

    text = strip_diacritics(str(value or "")).lower()
    text = _NON_ALNUM.sub("_", text)
    return _UNDERSCORES.sub("_", text).strip("_")


def build_column_index(headers: Iterable[object]) -> ColumnIndex:
    """Map normalized header -> position; the first occurrence of a name wins."""

    columns: ColumnIndex = {}
    for position, header in enumerate(headers):
        name = normalize_header(header)
        if name and name not in columns:
            columns[name] = position
    return columns


def alias(*names: str) -> Resolver:
    def _resolve(columns: ColumnIndex) -> Optional[int]:
        for name in names:
            if name in columns:
                return columns[name]
        return None

    _resolve.__name__ = f"alias({', '.join(names)})"
    return _resolve


def tokens(*parts: str) -> Resolver:
    """Match the first header (in file order) containing every part."""

    def _resolve(columns: ColumnIndex) -> Optional[int]:
        for name, position in columns.items():
            if all(part in name for part in parts):
                return position
        return None

    _resolve.__name__ = f"tokens({', '.join(parts)})"
    return _resolve


def resolve(resolvers: Sequence[Resolver], columns: ColumnIndex) -> Optional[int]:
    for resolver in resolvers:
        position = resolver(columns)
        if position is not None:
            return position
    return None


DATE_ALIASES = alias("date_de_tirage", "date_tirage", "date_du_tirage", "date_du_jeu", "date")
DATE: Tuple[Resolver, ...] = (DATE_ALIASES, tokens("date", "tirage"), tokens("date"))

MAIN_COMBINED_ALIASES = alias(
    "combinaison_gagnante_en_ordre_croissant",
    "boules_gagnantes_en_ordre_croissant",
    "numeros_gagnants_en_ordre_croissant",
    "numeros_gagnants",
)
MAIN_COMBINED: Tuple[Resolver, ...] = (
    MAIN_COMBINED_ALIASES,
    tokens("combinaison", "gagnante"),
    tokens("boules", "gagnantes"),
    tokens("numeros", "gagnants"),
)

LOTO_CHANCE: Tuple[Resolver, ...] = (
    alias("numero_chance", "numero_de_chance", "num_chance", "chance"),
)

STARS_COMBINED: Tuple[Resolver, ...] = (
    alias(
        "etoiles_gagnantes_en_ordre_croissant",
        "etoiles_gagnantes",
        "stars_gagnantes_en_ordre_croissant",
        "stars_gagnantes",
    ),
    tokens("etoiles", "gagnantes"),
    tokens("stars", "gagnantes"),
)


def main_number_aliases(index: int) -> Resolver:
    return alias(
        f"boule_{index}",
        f"boule{index}",
        f"numero_{index}",
        f"numero{index}",
        f"num_{index}",
        f"num{index}",
        f"n_{index}",
        f"n{index}",
    )


def star_aliases(index: int) -> Resolver:
    return alias(
        f"etoile_{index}",
        f"etoile{index}",
        f"star_{index}",
        f"star{index}",
        f"lucky_star_{index}",
        f"lucky_star{index}",
    )


MAIN_NUMBERS: Tuple[Resolver, ...] = tuple(main_number_aliases(i) for i in range(1, 6))
STARS: Tuple[Resolver, ...] = (star_aliases(1), star_aliases(2))


@dataclass(frozen=True)
class ResolvedColumns:
    """Positions of every semantic column found in one header row."""

    date: Optional[int]
    main: Tuple[Optional[int], ...]
    main_combined: Optional[int]
    bonus: Tuple[Optional[int], ...]
    bonus_combined: Optional[int]

    @property
    def has_discrete_main(self) -> bool:
        return all(position is not None for position in self.main)


def resolve_columns(game: LotteryGame, columns: ColumnIndex) -> ResolvedColumns:
    if game == LotteryGame.LOTO:
        bonus = (resolve(LOTO_CHANCE, columns),)
        bonus_combined = None
    else:
        bonus = tuple(resolver(columns) for resolver in STARS)
        bonus_combined = resolve(STARS_COMBINED, columns)
    return ResolvedColumns(
        date=resolve(DATE, columns),
        main=tuple(resolver(columns) for resolver in MAIN_NUMBERS),
        main_combined=resolve(MAIN_COMBINED, columns),
        bonus=bonus,
        bonus_combined=bonus_combined,
    )


def has_minimum_columns(columns: ColumnIndex) -> bool:
    """A known date header plus five discrete main columns or one combined column.

    Only exact aliases count here, so a header row split on the wrong
    delimiter is not mistaken for a usable one.
    """

    if DATE_ALIASES(columns) is None:
        return False
    discrete = all(resolver(columns) is not None for resolver in MAIN_NUMBERS)
    return discrete or MAIN_COMBINED_ALIASES(columns) is not None


__all__ = [
    "ColumnIndex",
    "Resolver",
    "ResolvedColumns",
    "alias",
    "tokens",
    "resolve",
    "normalize_header",
    "strip_diacritics",
    "build_column_index",
    "resolve_columns",
    "has_minimum_columns",
]
