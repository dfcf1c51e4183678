import pytest
from sqlalchemy import delete
from sqlmodel import Session, select

from taskboard.app import create_app
from taskboard.config import Settings
from taskboard.database import engine, init_db
from taskboard.db_models import StationDB, TaskDB
from taskboard.ordering import OrderingEngine
from taskboard.repository import sql_unit_of_work

# Stationen in Board-Reihenfolge
STATIONS = ["Grob", "Fein", "Montage", "Prüfung"]


@pytest.fixture(scope="session")
def _schema():
    init_db()


@pytest.fixture(autouse=True)
def clean_db(_schema):
    with engine.begin() as conn:
        conn.execute(delete(TaskDB.__table__))
        conn.execute(delete(StationDB.__table__))
    with Session(engine) as session:
        for position, name in enumerate(STATIONS):
            session.add(StationDB(name=name, sort_order=position))
        session.commit()
    yield


@pytest.fixture
def station_ids():
    with Session(engine) as session:
        return {s.name: s.id for s in session.exec(select(StationDB)).all()}


@pytest.fixture
def make_tasks():
    """Legt Tasks direkt in der DB an, ohne die Engine (auch mit Lücken oder doppelten Prioritäten)."""

    def _make(station, count=None, priorities=None, prefix=None):
        priorities = list(priorities) if priorities is not None else list(range(count or 0))
        ids = []
        with Session(engine) as session:
            for n, priority in enumerate(priorities):
                task = TaskDB(title=f"{prefix or station}-{n}", station=station, priority=priority)
                session.add(task)
                session.flush()
                ids.append(task.id)
            session.commit()
        return ids

    return _make


@pytest.fixture
def read_station():
    """Liefert ``[(id, priority), ...]`` einer Station in Lesereihenfolge."""

    def _read(station):
        with Session(engine) as session:
            statement = select(TaskDB).where(TaskDB.station == station).order_by(TaskDB.priority, TaskDB.id)
            return [(t.id, t.priority) for t in session.exec(statement).all()]

    return _read


@pytest.fixture(params=["lock", "version"])
def ordering_engine(request):
    return OrderingEngine(sql_unit_of_work(request.param))


@pytest.fixture
def soft_engine():
    return OrderingEngine(sql_unit_of_work("lock"), soft_validation=True)


def _make_app(**overrides):
    app = create_app(Settings(**overrides), init_database=False)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def app():
    return _make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def soft_client():
    return _make_app(station_validation="soft").test_client()


@pytest.fixture
def version_client():
    return _make_app(ordering_concurrency="version").test_client()
