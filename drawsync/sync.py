"""
Per-game sync: discover archives, download and parse them, merge the draws by
date and upsert the canonical history.

Every attempt leaves a ``SyncRun`` row. It is written as a failure before the
first network call and only flipped to success once the draws and the sync
state are committed, so a crash mid-way is still visible in the audit trail.
"""

from __future__ import annotations

import datetime as dt
import io
import json
import logging
import posixpath
import traceback
import zipfile
import zlib
from typing import Callable, Dict, Iterator, List, Optional, Tuple
from urllib.parse import unquote, urlparse

from sqlalchemy.orm import Session, sessionmaker

from .config import DrawSyncOptions
from .errors import NoArchivesError, NoDrawsError, SyncCancelled, check_cancelled
from .fetcher import ArchiveFetcher
from .games import LotteryGame
from .locator import ArchiveLocator
from .metrics import METRICS, SyncMetrics
from .models import (
    ArchiveDescriptor,
    ArchiveDiscoveryCache,
    ArchiveDiscoveryResult,
    GameSyncResult,
    ParsedDraw,
    SyncExecutionSummary,
)
from .parser import parse_archive_entry
from .repository import DrawRepository, SyncRunRepository, SyncStateRepository
from .tables import SyncState, utcnow

LOGGER = logging.getLogger(__name__)

SYNC_ORDER = (LotteryGame.LOTO, LotteryGame.EUROMILLIONS)

# Zip containers that are a single document, not a bundle of files.
_OOXML_WORKBOOK_PARTS = ("[Content_Types].xml", "xl/workbook.xml")

EntryParser = Callable[[LotteryGame, str, str, bytes], List[ParsedDraw]]


def entry_name_for(url: str) -> str:
    name = posixpath.basename(unquote(urlparse(url).path).rstrip("/"))
    return name or "archive"


def iter_archive_entries(url: str, payload: bytes) -> Iterator[Tuple[str, bytes]]:
    """Yield ``(entry_name, content)`` for each file of a zip, or the payload itself.

    A flat xlsx workbook is a zip too; it is yielded whole. Corrupt entries are
    logged and skipped.
    """

    buffer = io.BytesIO(payload)
    if not zipfile.is_zipfile(buffer):
        yield entry_name_for(url), payload
        return

    buffer.seek(0)
    with zipfile.ZipFile(buffer) as bundle:
        names = set(bundle.namelist())
        if all(part in names for part in _OOXML_WORKBOOK_PARTS):
            yield entry_name_for(url), payload
            return

        for info in bundle.infolist():
            if info.is_dir() or info.file_size == 0:
                continue
            try:
                content = bundle.read(info)
            except (zipfile.BadZipFile, zlib.error) as exc:
                LOGGER.warning("Skipping unreadable entry %s of %s: %s", info.filename, url, exc)
                continue
            yield info.filename, content


def load_discovery_cache(state: SyncState) -> Optional[ArchiveDiscoveryCache]:
    archives: Tuple[ArchiveDescriptor, ...] = ()
    raw = state.cached_archives_json
    if raw and raw.strip():
        try:
            archives = tuple(ArchiveDescriptor.from_dict(item) for item in json.loads(raw))
        except (ValueError, TypeError, KeyError) as exc:
            LOGGER.warning("Ignoring unreadable archive cache for %s: %s", state.game, exc)
            archives = ()

    etag = state.history_page_etag
    last_modified = state.history_page_last_modified
    if not etag and last_modified is None and not archives:
        return None
    return ArchiveDiscoveryCache(etag=etag, last_modified=last_modified, archives=archives)


def store_discovery(
    state: SyncState,
    discovery: ArchiveDiscoveryResult,
    synced_at: dt.datetime,
    newest_draw: dt.date,
) -> None:
    state.last_successful_sync_at = synced_at
    previous = state.last_known_draw_date
    state.last_known_draw_date = newest_draw if previous is None else max(previous, newest_draw)
    state.history_page_etag = discovery.etag
    state.history_page_last_modified = discovery.last_modified
    state.cached_archives_json = json.dumps([a.as_dict() for a in discovery.archives])


class DrawSyncService:
    """Reconcile the published draw archives into the canonical draw history."""

    def __init__(
        self,
        options: DrawSyncOptions,
        session_factory: sessionmaker[Session],
        *,
        locator: Optional[ArchiveLocator] = None,
        fetcher: Optional[ArchiveFetcher] = None,
        parser: EntryParser = parse_archive_entry,
        metrics: SyncMetrics = METRICS,
        clock: Callable[[], dt.datetime] = utcnow,
    ) -> None:
        self.options = options
        self.session_factory = session_factory
        self.locator = locator or ArchiveLocator(options)
        self.fetcher = fetcher or ArchiveFetcher(options)
        self.parser = parser
        self.metrics = metrics
        self.clock = clock

    def sync_all(self, trigger: str, cancel=None) -> SyncExecutionSummary:
        started_at = self.clock()
        results = [self.sync_game(game, trigger, cancel) for game in SYNC_ORDER]
        return SyncExecutionSummary(started_at=started_at, finished_at=self.clock(), games=results)

    def sync_game(self, game: LotteryGame, trigger: str, cancel=None) -> GameSyncResult:
        game = LotteryGame(game)
        started_at = self.clock()

        with self.session_factory() as session:
            check_cancelled(cancel)
            runs = SyncRunRepository(session)
            run = runs.start_run(game, trigger, started_at)

            try:
                upserted, newest, discovery = self._run(session, game, cancel)
            except SyncCancelled as exc:
                if cancel is not None and cancel.is_set():
                    session.rollback()
                    LOGGER.info("Sync %s cancelled (trigger=%s)", game.value, trigger)
                    raise
                return self._fail(session, runs, run, game, trigger, started_at, exc)
            except Exception as exc:
                return self._fail(session, runs, run, game, trigger, started_at, exc)

            finished_at = self.clock()
            check_cancelled(cancel)
            runs.finish_run(run, "success", finished_at, upserted, None)

        LOGGER.info(
            "Sync %s done (trigger=%s, archives=%d, upserts=%d, last_draw=%s, cache=%s)",
            game.value,
            trigger,
            len(discovery.archives),
            upserted,
            newest.isoformat(),
            discovery.from_cache,
        )
        self.metrics.record_run(
            game.value, trigger, "success", upserted, (finished_at - started_at).total_seconds()
        )
        return GameSyncResult(
            game=game,
            status="success",
            upserted_count=upserted,
            started_at=started_at,
            finished_at=finished_at,
            last_known_date=newest,
            error=None,
        )

    def _run(
        self, session: Session, game: LotteryGame, cancel
    ) -> Tuple[int, dt.date, ArchiveDiscoveryResult]:
        game_options = self.options.game_options(game)
        state = SyncStateRepository(session).get_or_create(game)

        discovery = self.locator.discover(game, load_discovery_cache(state), cancel)
        if not discovery.archives:
            raise NoArchivesError(f"No archive found for {game.value}")

        merged = self._collect(game, discovery.archives, game_options.rule_start_date, cancel)
        if not merged:
            raise NoDrawsError(
                f"No valid {game.value} draw on or after {game_options.rule_start_date.isoformat()}"
            )

        check_cancelled(cancel)
        upserted = DrawRepository(session).upsert(game, merged, self.clock())
        newest = max(merged)

        check_cancelled(cancel)
        store_discovery(state, discovery, self.clock(), newest)
        session.commit()
        return upserted, newest, discovery

    def _collect(
        self,
        game: LotteryGame,
        archives: Tuple[ArchiveDescriptor, ...],
        rule_start: dt.date,
        cancel,
    ) -> Dict[dt.date, Tuple[ParsedDraw, str]]:
        later_wins = self.options.merge_policy == "later_wins"
        merged: Dict[dt.date, Tuple[ParsedDraw, str]] = {}

        for archive in archives:
            payload = self.fetcher.download(archive.download_url, cancel)
            for entry_name, content in iter_archive_entries(archive.download_url, payload):
                check_cancelled(cancel)
                for draw in self.parser(game, archive.download_url, entry_name, content):
                    if draw.draw_date < rule_start:
                        continue
                    if later_wins or draw.draw_date not in merged:
                        merged[draw.draw_date] = (draw, archive.download_url)
        return merged

    def _fail(
        self,
        session: Session,
        runs: SyncRunRepository,
        run,
        game: LotteryGame,
        trigger: str,
        started_at: dt.datetime,
        exc: Exception,
    ) -> GameSyncResult:
        details = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        error = str(exc) or type(exc).__name__
        LOGGER.error("Sync %s failed (trigger=%s)", game.value, trigger, exc_info=True)

        session.rollback()
        finished_at = self.clock()
        runs.finish_run(run, "fail", finished_at, 0, details)
        self.metrics.record_run(game.value, trigger, "fail", 0, (finished_at - started_at).total_seconds())
        return GameSyncResult(
            game=game,
            status="fail",
            upserted_count=0,
            started_at=started_at,
            finished_at=finished_at,
            last_known_date=None,
            error=error,
        )


__all__ = ["DrawSyncService", "SYNC_ORDER", "iter_archive_entries", "load_discovery_cache", "entry_name_for"]
