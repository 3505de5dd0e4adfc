import datetime as dt

from drawsync.games import LotteryGame
from drawsync.models import ParsedDraw
from drawsync.repository import DrawRepository, SyncRunRepository, SyncStateRepository, status_for

SOURCE = "https://media.fdj.test/service-draw-info/documentations/loto.zip"
T0 = dt.datetime(2024, 3, 10, 8, 0, tzinfo=dt.timezone.utc)


def _draw(day, main=(1, 2, 3, 4, 5), bonus=(6,)):
    return ParsedDraw(day, tuple(main), tuple(bonus))


def test_upsert_inserts_updates_and_skips_unchanged(session_factory):
    d1, d2, d3 = dt.date(2024, 3, 2), dt.date(2024, 3, 4), dt.date(2024, 3, 6)

    with session_factory() as session:
        repo = DrawRepository(session)
        assert repo.upsert(LotteryGame.LOTO, {d1: (_draw(d1), SOURCE), d2: (_draw(d2), SOURCE)}, T0) == 2

    with session_factory() as session:
        repo = DrawRepository(session)
        changed = {
            d1: (_draw(d1), SOURCE),
            d2: (_draw(d2), SOURCE + "?v=2"),
            d3: (_draw(d3, bonus=(10,)), SOURCE),
        }
        assert repo.upsert(LotteryGame.LOTO, changed, T0 + dt.timedelta(hours=1)) == 2

    with session_factory() as session:
        rows = DrawRepository(session).list_draws(LotteryGame.LOTO)

    assert [r.draw_date for r in rows] == [d1, d2, d3]
    assert rows[1].source == SOURCE + "?v=2"
    assert rows[1].updated_at > rows[1].created_at
    assert rows[0].updated_at == rows[0].created_at
    assert rows[2].bonus_numbers == [10]


def test_draws_are_scoped_by_game(session_factory):
    day = dt.date(2024, 3, 5)
    with session_factory() as session:
        repo = DrawRepository(session)
        repo.upsert(LotteryGame.LOTO, {day: (_draw(day), SOURCE)}, T0)
        repo.upsert(LotteryGame.EUROMILLIONS, {day: (_draw(day, bonus=(1, 2)), SOURCE)}, T0)

        assert repo.count(LotteryGame.LOTO) == 1
        assert repo.count(LotteryGame.EUROMILLIONS) == 1
        assert list(repo.find_by_dates(LotteryGame.EUROMILLIONS, [day])) == [day]
        assert repo.list_draws(LotteryGame.EUROMILLIONS)[0].bonus_numbers == [1, 2]


def test_find_by_dates_handles_large_date_sets(session_factory):
    start = dt.date(2019, 11, 4)
    days = [start + dt.timedelta(days=i) for i in range(1200)]
    with session_factory() as session:
        repo = DrawRepository(session)
        repo.upsert(LotteryGame.LOTO, {d: (_draw(d), SOURCE) for d in days}, T0)

        assert len(repo.find_by_dates(LotteryGame.LOTO, days)) == 1200
        assert repo.last_draw_date(LotteryGame.LOTO) == days[-1]


def test_sync_runs_are_listed_newest_first(session_factory):
    with session_factory() as session:
        runs = SyncRunRepository(session)
        first = runs.start_run(LotteryGame.LOTO, "schedule", T0)
        runs.finish_run(first, "success", T0 + dt.timedelta(seconds=5), 3)
        runs.start_run(LotteryGame.EUROMILLIONS, "admin", T0 + dt.timedelta(minutes=1))

    with session_factory() as session:
        recent = SyncRunRepository(session).list_recent(10)
        only_loto = SyncRunRepository(session).list_recent(10, LotteryGame.LOTO)

    assert [(r.game, r.status, r.trigger) for r in recent] == [
        ("euromillions", "fail", "admin"),
        ("loto", "success", "schedule"),
    ]
    assert recent[0].finished_at is None
    assert recent[1].draws_upserted_count == 3
    assert [r.game for r in only_loto] == ["loto"]


def test_status_for_reports_counts_and_next_draw(session_factory):
    day = dt.date(2024, 3, 4)
    with session_factory() as session:
        DrawRepository(session).upsert(LotteryGame.LOTO, {day: (_draw(day), SOURCE)}, T0)
        state = SyncStateRepository(session).get_or_create(LotteryGame.LOTO)
        state.last_successful_sync_at = T0
        session.commit()

    with session_factory() as session:
        loto = status_for(session, LotteryGame.LOTO, dt.date(2024, 3, 5))
        euro = status_for(session, LotteryGame.EUROMILLIONS, dt.date(2024, 3, 6))

    assert loto.draws_count == 1
    assert loto.last_draw_date == day
    assert loto.last_successful_sync_at is not None
    assert loto.next_draw_date == dt.date(2024, 3, 6)
    assert euro.draws_count == 0
    assert euro.last_draw_date is None
    assert euro.last_successful_sync_at is None
    assert euro.next_draw_date == dt.date(2024, 3, 8)
