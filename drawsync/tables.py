"""ORM tables owned by the draw sync.

- draws: canonical history, one row per (game, draw_date)
- sync_states: one row per game (last success, last known date, HTTP validators)
- sync_runs: append-only audit trail of sync attempts
"""

from __future__ import annotations

import datetime as dt
import uuid
from typing import List, Optional

from sqlalchemy import JSON, Date, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Declarative base for ORM models."""

    pass


class Draw(Base):
    __tablename__ = "draws"
    __table_args__ = (UniqueConstraint("game", "draw_date", name="uq_draws_game_date"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    game: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    draw_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    main_numbers: Mapped[List[int]] = mapped_column(JSON, nullable=False)
    bonus_numbers: Mapped[List[int]] = mapped_column(JSON, nullable=False)
    source: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Draw {self.game} {self.draw_date} {self.main_numbers}+{self.bonus_numbers}>"


class SyncState(Base):
    __tablename__ = "sync_states"

    game: Mapped[str] = mapped_column(String(32), primary_key=True)
    last_successful_sync_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True))
    last_known_draw_date: Mapped[Optional[dt.date]] = mapped_column(Date)
    history_page_etag: Mapped[Optional[str]] = mapped_column(String(512))
    history_page_last_modified: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True))
    cached_archives_json: Mapped[Optional[str]] = mapped_column(Text)


class SyncRun(Base):
    __tablename__ = "sync_runs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    game: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    trigger: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="fail")
    started_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    finished_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True))
    draws_upserted_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error: Mapped[Optional[str]] = mapped_column(Text)
