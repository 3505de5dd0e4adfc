"""Repository layer for draw, sync state and sync run persistence."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .games import LotteryGame, next_draw_date
from .models import GameStatus, ParsedDraw
from .tables import Draw, SyncRun, SyncState, utcnow

LOGGER = logging.getLogger(__name__)

# Keeps the IN (...) lists well below SQLite's bound parameter limit.
_DATE_CHUNK = 500


class DrawRepository:
    """Canonical draws of each game, keyed by (game, draw_date)."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_draws(self, game: LotteryGame) -> List[Draw]:
        stmt = select(Draw).where(Draw.game == game.value).order_by(Draw.draw_date.asc())
        return list(self.session.scalars(stmt).all())

    def find_by_dates(self, game: LotteryGame, dates: Iterable[dt.date]) -> Dict[dt.date, Draw]:
        wanted = sorted(set(dates))
        found: Dict[dt.date, Draw] = {}
        for i in range(0, len(wanted), _DATE_CHUNK):
            chunk = wanted[i : i + _DATE_CHUNK]
            stmt = select(Draw).where(Draw.game == game.value, Draw.draw_date.in_(chunk))
            for row in self.session.scalars(stmt):
                found[row.draw_date] = row
        return found

    def upsert(
        self,
        game: LotteryGame,
        draws_by_date: Dict[dt.date, Tuple[ParsedDraw, str]],
        now: Optional[dt.datetime] = None,
    ) -> int:
        """Insert new dates, update rows whose numbers or source changed.

        Unchanged rows are left alone. Commits once; returns inserted + updated.
        """

        stamp = now or utcnow()
        existing = self.find_by_dates(game, draws_by_date)
        inserted = updated = 0

        for draw_date, (parsed, source) in sorted(draws_by_date.items()):
            main = list(parsed.main_numbers)
            bonus = list(parsed.bonus_numbers)
            row = existing.get(draw_date)
            if row is None:
                self.session.add(
                    Draw(
                        game=game.value,
                        draw_date=draw_date,
                        main_numbers=main,
                        bonus_numbers=bonus,
                        source=source,
                        created_at=stamp,
                        updated_at=stamp,
                    )
                )
                inserted += 1
                continue

            if list(row.main_numbers) == main and list(row.bonus_numbers) == bonus and row.source == source:
                continue
            row.main_numbers = main
            row.bonus_numbers = bonus
            row.source = source
            row.updated_at = stamp
            updated += 1

        self.session.commit()
        LOGGER.debug("Upserted %s draws: inserted=%d, updated=%d", game.value, inserted, updated)
        return inserted + updated

    def count(self, game: LotteryGame) -> int:
        stmt = select(func.count()).select_from(Draw).where(Draw.game == game.value)
        return int(self.session.scalar(stmt) or 0)

    def last_draw_date(self, game: LotteryGame) -> Optional[dt.date]:
        return self.session.scalar(select(func.max(Draw.draw_date)).where(Draw.game == game.value))


class SyncStateRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, game: LotteryGame) -> Optional[SyncState]:
        return self.session.get(SyncState, game.value)

    def get_or_create(self, game: LotteryGame) -> SyncState:
        state = self.get(game)
        if state is None:
            state = SyncState(game=game.value)
            self.session.add(state)
        return state


class SyncRunRepository:
    """Append-only audit trail of sync attempts."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def start_run(self, game: LotteryGame, trigger: str, started_at: dt.datetime) -> SyncRun:
        # Persisted as a failure up front so a crash still leaves a trace.
        run = SyncRun(
            game=game.value,
            trigger=trigger,
            status="fail",
            started_at=started_at,
            draws_upserted_count=0,
        )
        self.session.add(run)
        self.session.commit()
        return run

    def finish_run(
        self,
        run: SyncRun,
        status: str,
        finished_at: dt.datetime,
        upserted_count: int = 0,
        error: Optional[str] = None,
    ) -> SyncRun:
        run.status = status
        run.finished_at = finished_at
        run.draws_upserted_count = upserted_count
        run.error = error
        self.session.commit()
        return run

    def list_recent(self, limit: int = 20, game: Optional[LotteryGame] = None) -> List[SyncRun]:
        stmt = select(SyncRun)
        if game is not None:
            stmt = stmt.where(SyncRun.game == game.value)
        stmt = stmt.order_by(SyncRun.started_at.desc()).limit(limit)
        return list(self.session.scalars(stmt).all())


def status_for(session: Session, game: LotteryGame, today: Optional[dt.date] = None) -> GameStatus:
    """Draw count, last draw, last success and next expected draw of one game."""

    draws = DrawRepository(session)
    state = SyncStateRepository(session).get(game)
    day = today or utcnow().date()
    return GameStatus(
        game=game,
        draws_count=draws.count(game),
        last_draw_date=draws.last_draw_date(game),
        last_successful_sync_at=state.last_successful_sync_at if state else None,
        next_draw_date=next_draw_date(game, day),
    )


__all__ = ["DrawRepository", "SyncStateRepository", "SyncRunRepository", "status_for"]
