"""Value types shared by the locator, the parser and the sync service."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .games import LotteryGame


@dataclass(frozen=True)
class ParsedDraw:
    """One validated row, before attribution to an archive."""

    draw_date: dt.date
    main_numbers: Tuple[int, ...]
    bonus_numbers: Tuple[int, ...]


@dataclass(frozen=True)
class ArchiveDescriptor:
    download_url: str
    source_page_url: str
    label: str
    period_start: Optional[dt.date] = None
    period_end: Optional[dt.date] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {
            "download_url": self.download_url,
            "source_page_url": self.source_page_url,
            "label": self.label,
            "period_start": self.period_start.isoformat() if self.period_start else None,
            "period_end": self.period_end.isoformat() if self.period_end else None,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Optional[str]]) -> "ArchiveDescriptor":
        start = raw.get("period_start")
        end = raw.get("period_end")
        return cls(
            download_url=str(raw["download_url"]),
            source_page_url=str(raw["source_page_url"]),
            label=str(raw.get("label") or ""),
            period_start=dt.date.fromisoformat(start) if start else None,
            period_end=dt.date.fromisoformat(end) if end else None,
        )


@dataclass(frozen=True)
class ArchiveDiscoveryCache:
    """HTTP validators and archive list remembered from the previous discovery."""

    etag: Optional[str] = None
    last_modified: Optional[dt.datetime] = None
    archives: Tuple[ArchiveDescriptor, ...] = ()


@dataclass(frozen=True)
class ArchiveDiscoveryResult:
    archives: Tuple[ArchiveDescriptor, ...]
    etag: Optional[str] = None
    last_modified: Optional[dt.datetime] = None
    from_cache: bool = False


@dataclass(frozen=True)
class GameSyncResult:
    game: LotteryGame
    status: str
    upserted_count: int
    started_at: dt.datetime
    finished_at: dt.datetime
    last_known_date: Optional[dt.date] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


@dataclass(frozen=True)
class SyncExecutionSummary:
    started_at: dt.datetime
    finished_at: dt.datetime
    games: List[GameSyncResult] = field(default_factory=list)

    @property
    def failed(self) -> List[GameSyncResult]:
        return [result for result in self.games if not result.succeeded]


@dataclass(frozen=True)
class GameStatus:
    """Per-game summary for status reporting."""

    game: LotteryGame
    draws_count: int
    last_draw_date: Optional[dt.date]
    last_successful_sync_at: Optional[dt.datetime]
    next_draw_date: dt.date
