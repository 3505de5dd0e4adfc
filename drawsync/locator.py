"""
Discover the downloadable history archives of a game.

The history page is fetched with a conditional GET (ETag / Last-Modified from
the previous discovery). A 304 with a remembered archive list short-circuits
everything; otherwise the anchors of the page are scraped and filtered with
game-specific heuristics, and each archive gets an inferred coverage period
from its label so the list can be ordered oldest first.
"""

from __future__ import annotations

import calendar
import datetime as dt
import email.utils
import logging
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from .columns import strip_diacritics
from .config import DrawSyncOptions, GameOptions
from .errors import ConfigurationError, DiscoveryError, FetchError, check_cancelled
from .fetcher import build_session, is_success
from .games import LotteryGame
from .models import ArchiveDescriptor, ArchiveDiscoveryCache, ArchiveDiscoveryResult

LOGGER = logging.getLogger(__name__)

FRENCH_MONTHS: Dict[str, int] = {
    "janvier": 1,
    "janv": 1,
    "fevrier": 2,
    "fev": 2,
    "mars": 3,
    "avril": 4,
    "avr": 4,
    "mai": 5,
    "juin": 6,
    "juillet": 7,
    "juil": 7,
    "aout": 8,
    "septembre": 9,
    "sept": 9,
    "octobre": 10,
    "oct": 10,
    "novembre": 11,
    "nov": 11,
    "decembre": 12,
    "dec": 12,
}

_FULL_DATE = re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{4}\b")
_MONTH_RANGE = re.compile(
    r"(?P<start_month>[a-z]+)\s+(?P<start_year>\d{4})\s+(?:a|au)\s+"
    r"(?P<end_month>[a-z]+)\s+(?P<end_year>\d{4})"
)
_WHITESPACE = re.compile(r"\s+")

_URL_ARCHIVE_HINTS = (".zip", "documentations", "historique", "archive")
_URL_DRAW_HINTS = ("service-draw-info", "tirage", "draw")
_LABEL_ARCHIVE_HINTS = ("historique", "telecharger", "archive")
_LOTO_VARIANTS_LABEL = ("grand loto", "super loto")
_LOTO_VARIANTS_COMPACT = ("grandloto", "superloto")


def normalize_whitespace(value: str) -> str:
    return _WHITESPACE.sub(" ", value or "").strip()


def normalize_for_matching(value: str) -> str:
    """Strip diacritics, lower-case and collapse whitespace."""

    return normalize_whitespace(strip_diacritics(value or "").lower())


def looks_like_archive_url(url: str) -> bool:
    normalized = normalize_for_matching(url)
    has_archive_hint = any(hint in normalized for hint in _URL_ARCHIVE_HINTS)
    has_draw_hint = any(hint in normalized for hint in _URL_DRAW_HINTS)
    return has_archive_hint and has_draw_hint


def looks_like_game_archive(label: str, url: str, game: LotteryGame, download: str = "") -> bool:
    """Label/URL heuristics: must hint an archive and name the game, not a variant of it."""

    norm_label = normalize_for_matching(label)
    norm_download = normalize_for_matching(download)
    norm_path = normalize_for_matching(urlparse(url).path)

    hints_archive = (
        any(hint in norm_label for hint in _LABEL_ARCHIVE_HINTS)
        or bool(norm_download)
        or any(hint in norm_path for hint in (".zip", "historique", "archive"))
    )
    if not hints_archive:
        return False

    haystacks = (norm_label, norm_download, norm_path)
    if game == LotteryGame.LOTO:
        if not any("loto" in text for text in haystacks):
            return False
        if any(variant in norm_label for variant in _LOTO_VARIANTS_LABEL):
            return False
        return not any(
            variant in text for variant in _LOTO_VARIANTS_COMPACT for text in (norm_download, norm_path)
        )
    if game == LotteryGame.EUROMILLIONS:
        return any("euromillion" in text for text in haystacks)
    return False


def _parse_full_date(value: str) -> Optional[dt.date]:
    for fmt in ("%d/%m/%Y", "%d-%m-%Y"):
        try:
            return dt.datetime.strptime(value, fmt).date()
        except ValueError:
            pass
    return None


def infer_period(text: str) -> Tuple[Optional[dt.date], Optional[dt.date]]:
    """Coverage period from "01/01/2019 ... 31/12/2019" or "novembre 2019 a fevrier 2024"."""

    if not text or not text.strip():
        return None, None

    dates = _FULL_DATE.findall(text)
    if len(dates) >= 2:
        start, end = _parse_full_date(dates[0]), _parse_full_date(dates[-1])
        if start and end:
            return start, end

    m = _MONTH_RANGE.search(normalize_for_matching(text))
    if not m:
        return None, None
    start_month = FRENCH_MONTHS.get(m.group("start_month"))
    end_month = FRENCH_MONTHS.get(m.group("end_month"))
    if not start_month or not end_month:
        return None, None
    start_year, end_year = int(m.group("start_year")), int(m.group("end_year"))
    last_day = calendar.monthrange(end_year, end_month)[1]
    return dt.date(start_year, start_month, 1), dt.date(end_year, end_month, last_day)


def _parse_http_date(raw: Optional[str]) -> Optional[dt.datetime]:
    if not raw:
        return None
    try:
        parsed = email.utils.parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def conditional_headers(cache: Optional[ArchiveDiscoveryCache]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    if cache is None:
        return headers
    if cache.etag and cache.etag.strip():
        headers["If-None-Match"] = cache.etag.strip()
    if cache.last_modified is not None:
        stamp = cache.last_modified
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=dt.timezone.utc)
        headers["If-Modified-Since"] = email.utils.format_datetime(
            stamp.astimezone(dt.timezone.utc), usegmt=True
        )
    return headers


def extract_archives(
    html: str, page_url: str, game: LotteryGame, game_options: GameOptions
) -> Tuple[List[ArchiveDescriptor], int]:
    """Scrape, filter, dedupe, order and period-filter archive links.

    Returns the retained archives and the number of unique candidates seen.
    """

    soup = BeautifulSoup(html, "html.parser")
    discovered: List[ArchiveDescriptor] = []
    seen = set()

    for anchor in soup.find_all("a", href=True):
        href = (anchor.get("href") or "").strip()
        if not href:
            continue
        absolute = urljoin(page_url, href)
        if urlparse(absolute).scheme not in ("http", "https"):
            continue
        if not looks_like_archive_url(absolute):
            continue

        label = normalize_whitespace(
            " ".join(
                part
                for part in (
                    anchor.get("title") or "",
                    anchor.get("aria-label") or "",
                    anchor.get_text(" "),
                )
                if part
            )
        )
        download = anchor.get("download") or ""
        if not looks_like_game_archive(label, absolute, game, download):
            continue

        key = absolute.lower()
        if key in seen:
            continue
        seen.add(key)

        start, end = infer_period(f"{label} {absolute}")
        discovered.append(ArchiveDescriptor(absolute, page_url, label, start, end))

    ordered = sorted(discovered, key=lambda a: a.period_start or dt.date.min)
    rule_start = game_options.rule_start_date
    current = [a for a in ordered if a.period_end is None or a.period_end >= rule_start]
    return (current or ordered), len(ordered)


class ArchiveLocator:
    """Find a game's archives on its configured history page."""

    def __init__(
        self,
        options: Optional[DrawSyncOptions] = None,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.options = options or DrawSyncOptions()
        self.session = session or build_session(self.options)

    def _history_url(self, game: LotteryGame) -> str:
        url = (self.options.game_options(game).history_url or "").strip()
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(f"Invalid history URL for {game.value}: {url!r}")
        return url

    def _get(self, url: str, headers: Dict[str, str], cancel) -> requests.Response:
        check_cancelled(cancel)
        try:
            return self.session.get(url, headers=headers, timeout=self.options.http_timeout_seconds)
        except requests.RequestException as exc:
            raise FetchError(f"{url}: {exc}") from exc

    def _request_history_page(
        self, url: str, cache: Optional[ArchiveDiscoveryCache], cancel
    ) -> requests.Response:
        response = self._get(url, conditional_headers(cache), cancel)
        if response.status_code != 304:
            return response
        if cache is not None and cache.archives:
            return response

        LOGGER.warning(
            "History page %s answered 304 without a cached archive list; retrying unconditionally",
            url,
        )
        response.close()
        return self._get(url, {}, cancel)

    def discover(
        self,
        game: LotteryGame,
        cache: Optional[ArchiveDiscoveryCache] = None,
        cancel=None,
    ) -> ArchiveDiscoveryResult:
        page_url = self._history_url(game)
        game_options = self.options.game_options(game)

        response = self._request_history_page(page_url, cache, cancel)
        if response.status_code == 304:
            if cache is None or not cache.archives:
                raise DiscoveryError(f"History page for {game.value} answered 304 with no cached archives")
            LOGGER.info(
                "History page unchanged for %s; reusing %d cached archives",
                game.value,
                len(cache.archives),
            )
            return ArchiveDiscoveryResult(
                archives=tuple(cache.archives),
                etag=response.headers.get("ETag") or cache.etag,
                last_modified=_parse_http_date(response.headers.get("Last-Modified")) or cache.last_modified,
                from_cache=True,
            )

        if not is_success(response.status_code):
            raise FetchError(f"{page_url}: HTTP {response.status_code}")

        archives, total = extract_archives(response.text, page_url, game, game_options)
        etag = response.headers.get("ETag")
        last_modified = _parse_http_date(response.headers.get("Last-Modified"))

        LOGGER.info(
            "Discovered %s archives: total=%d, retained=%d, rule_start=%s, etag=%s, last_modified=%s",
            game.value,
            total,
            len(archives),
            game_options.rule_start_date.isoformat(),
            etag,
            last_modified,
        )
        return ArchiveDiscoveryResult(
            archives=tuple(archives), etag=etag, last_modified=last_modified, from_cache=False
        )


__all__ = [
    "ArchiveLocator",
    "FRENCH_MONTHS",
    "conditional_headers",
    "extract_archives",
    "infer_period",
    "looks_like_archive_url",
    "looks_like_game_archive",
    "normalize_for_matching",
]
