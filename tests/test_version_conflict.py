import pytest
from sqlmodel import Session

from taskboard.common.errors import Conflict
from taskboard.database import engine, session_scope
from taskboard.db_models import TaskDB
from taskboard.repository import SqlTaskStore


def _bump_version(task_id, version):
    """Simuliert einen parallelen Schreiber in einer eigenen Verbindung."""
    table = TaskDB.__table__
    with engine.begin() as conn:
        conn.execute(table.update().where(table.c.id == task_id).values(version=version))


def test_stale_version_raises_conflict_and_rolls_back(make_tasks, read_station):
    ids = make_tasks("Grob", 3)

    with pytest.raises(Conflict) as exc:
        with session_scope() as session:
            store = SqlTaskStore(session, strategy="version")
            tasks = store.find_by_station("Grob")
            _bump_version(ids[0], 5)
            for position, task in enumerate(reversed(tasks)):
                task.priority = position
            store.save_all(list(reversed(tasks)))

    assert exc.value.details["task_id"] == ids[0]
    assert read_station("Grob") == [(ids[0], 0), (ids[1], 1), (ids[2], 2)]


def test_partial_batch_is_rolled_back(make_tasks, read_station):
    ids = make_tasks("Grob", 3)

    with pytest.raises(Conflict):
        with session_scope() as session:
            store = SqlTaskStore(session, strategy="version")
            tasks = store.find_by_station("Grob")
            _bump_version(ids[2], 7)
            tasks.reverse()
            for position, task in enumerate(tasks):
                task.priority = position
            # ids[2] kommt zuletzt; die zwei Updates davor müssen mit zurückgerollt werden
            store.save_all(tasks[1:] + tasks[:1])

    assert read_station("Grob") == [(ids[0], 0), (ids[1], 1), (ids[2], 2)]


def test_versioned_save_bumps_version(make_tasks):
    ids = make_tasks("Grob", 2)

    with session_scope() as session:
        store = SqlTaskStore(session, strategy="version")
        tasks = store.find_by_station("Grob")
        tasks.reverse()
        for position, task in enumerate(tasks):
            task.priority = position
        store.save_all(tasks)
        assert [t.version for t in tasks] == [1, 1]

    with Session(engine) as session:
        assert session.get(TaskDB, ids[1]).priority == 0
        assert session.get(TaskDB, ids[1]).version == 1


def test_engine_surfaces_conflict_from_store(make_tasks, read_station, monkeypatch):
    from taskboard.ordering import OrderingEngine
    from taskboard.repository import sql_unit_of_work

    a, b, c = make_tasks("Grob", 3)
    real_find = SqlTaskStore.find_by_station

    def find_then_race(self, station):
        tasks = real_find(self, station)
        _bump_version(a, 3)
        return tasks

    monkeypatch.setattr(SqlTaskStore, "find_by_station", find_then_race)

    with pytest.raises(Conflict):
        OrderingEngine(sql_unit_of_work("version")).move(c, "Grob", 0)

    monkeypatch.undo()
    assert read_station("Grob") == [(a, 0), (b, 1), (c, 2)]


def test_lock_error_is_translated_to_conflict():
    from sqlalchemy.exc import OperationalError

    with pytest.raises(Conflict):
        with session_scope():
            raise OperationalError("UPDATE tasks", {}, Exception("database is locked"))


def test_other_store_errors_become_store_unavailable():
    from sqlalchemy.exc import OperationalError

    from taskboard.common.errors import StoreUnavailable

    with pytest.raises(StoreUnavailable):
        with session_scope():
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))


def test_delete_conflicts_with_parallel_move(make_tasks, read_station, monkeypatch):
    from taskboard.ordering import OrderingEngine
    from taskboard.repository import sql_unit_of_work

    t, g = make_tasks("Grob", 2)
    f0, f1 = make_tasks("Fein", 2)
    real_lock = SqlTaskStore.lock_station
    raced = []

    def move_then_lock(self, station):
        if not raced:
            raced.append(station)
            OrderingEngine(sql_unit_of_work("version")).move(t, "Fein", 0)
        real_lock(self, station)

    monkeypatch.setattr(SqlTaskStore, "lock_station", move_then_lock)

    with pytest.raises(Conflict):
        OrderingEngine(sql_unit_of_work("version")).remove_task(t)

    monkeypatch.undo()
    assert raced == ["Grob"]
    assert read_station("Fein") == [(t, 0), (f0, 1), (f1, 2)]
    assert read_station("Grob") == [(g, 0)]
