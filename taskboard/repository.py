import logging
import time
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

from sqlalchemy import func, inspect
from sqlalchemy.orm.attributes import set_committed_value
from sqlmodel import Session, select

from taskboard.common.errors import Conflict, StationNotFound
from taskboard.database import engine, session_scope
from taskboard.db_models import StationDB, TaskDB

logger = logging.getLogger(__name__)


class SqlTaskStore:
    """Task-Store auf einer offenen Session; alle Schreibzugriffe laufen in deren Transaktion.

    ``strategy`` legt die Nebenläufigkeitskontrolle fest:

    - ``lock``: Zeilen der Station werden für die Dauer der Transaktion gesperrt
      (``SELECT ... FOR UPDATE`` bzw. ``BEGIN IMMEDIATE`` unter SQLite).
    - ``version``: jede Zeile wird nur geschrieben, wenn ihre ``version`` noch dem
      gelesenen Stand entspricht, sonst ``Conflict``.
    """

    def __init__(self, session: Session, strategy: str = "lock"):
        self.session = session
        self.strategy = strategy
        self._sqlite_write_lock = False

    @property
    def _is_sqlite(self) -> bool:
        return self.session.get_bind().dialect.name == "sqlite"

    def find_by_id(self, task_id: int) -> Optional[TaskDB]:
        statement = select(TaskDB).where(TaskDB.id == task_id).execution_options(populate_existing=True)
        return self.session.exec(statement).first()

    def find_by_station(self, station: str) -> List[TaskDB]:
        statement = (
            select(TaskDB)
            .where(TaskDB.station == station)
            .order_by(TaskDB.priority.asc(), TaskDB.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(self.session.exec(statement).all())

    def lock_station(self, station: str) -> None:
        if self.strategy != "lock":
            return
        if self._is_sqlite:
            # SQLite kennt keine Zeilensperren; die Schreibsperre gilt für die ganze DB
            if not self._sqlite_write_lock:
                self.session.connection().exec_driver_sql("BEGIN IMMEDIATE")
                self._sqlite_write_lock = True
            return
        self.session.exec(
            select(StationDB.id).where(func.lower(StationDB.name) == station.lower()).with_for_update()
        ).all()
        self.session.exec(select(TaskDB.id).where(TaskDB.station == station).with_for_update()).all()

    def save_all(self, tasks: Sequence[TaskDB]) -> None:
        now = time.time()
        if self.strategy == "version":
            self._save_all_versioned(tasks, now)
            return
        for task in tasks:
            task.version = (task.version or 0) + 1
            task.updated_at = now
            self.session.add(task)
        self.session.flush()

    def _save_all_versioned(self, tasks: Sequence[TaskDB], now: float) -> None:
        table = TaskDB.__table__
        conn = self.session.connection()
        for task in tasks:
            expected = task.version or 0
            statement = (
                table.update()
                .where(table.c.id == task.id, table.c.version == expected)
                .values(station=task.station, priority=task.priority, version=expected + 1, updated_at=now)
            )
            result = conn.execute(statement)
            if result.rowcount != 1:
                raise Conflict(
                    "Konflikt: Liste wurde parallel geändert",
                    details={"task_id": task.id, "expected_version": expected},
                )
            # Session-Zustand an die geschriebene Zeile angleichen, ohne erneuten Flush
            set_committed_value(task, "station", task.station)
            set_committed_value(task, "priority", task.priority)
            set_committed_value(task, "version", expected + 1)
            set_committed_value(task, "updated_at", now)

    def add(self, task: TaskDB) -> TaskDB:
        self.session.add(task)
        self.session.flush()
        return task

    def delete(self, task: TaskDB) -> None:
        self.session.delete(task)
        self.session.flush()


class SqlStationDirectory:
    def __init__(self, session: Session):
        self.session = session

    def _table_exists(self) -> bool:
        return inspect(self.session.connection()).has_table(StationDB.__tablename__)

    def _by_name(self, name: str) -> Optional[StationDB]:
        statement = select(StationDB).where(func.lower(StationDB.name) == name.strip().lower())
        return self.session.exec(statement).first()

    def resolve_name(self, id_or_name: int | str) -> str:
        station: Optional[StationDB] = None
        if isinstance(id_or_name, int) or str(id_or_name).strip().isdigit():
            station = self.session.get(StationDB, int(id_or_name))
        if station is None and not isinstance(id_or_name, int):
            station = self._by_name(str(id_or_name))
        if station is None:
            raise StationNotFound(id_or_name)
        return station.name

    def exists(self, name: str) -> bool:
        if not name or not name.strip():
            return False
        if not self._table_exists():
            # Ohne Stationskatalog nicht blockieren
            logger.warning("Station table missing, accepting station '%s' unchecked", name)
            return True
        return self._by_name(name) is not None

    def get_all(self) -> List[StationDB]:
        return list(self.session.exec(select(StationDB).order_by(StationDB.sort_order, StationDB.id)).all())


class SqlUnitOfWork:
    def __init__(self, session: Session, strategy: str = "lock"):
        self.session = session
        self.tasks = SqlTaskStore(session, strategy=strategy)
        self.stations = SqlStationDirectory(session)


def sql_unit_of_work(strategy: str = "lock"):
    """Liefert eine Factory für transaktionale Units of Work auf der Standard-Engine."""

    @contextmanager
    def factory() -> Iterator[SqlUnitOfWork]:
        with session_scope() as session:
            yield SqlUnitOfWork(session, strategy=strategy)

    return factory


class TaskRepository:
    def get_all(self, station: Optional[str] = None) -> List[TaskDB]:
        with Session(engine) as session:
            statement = select(TaskDB)
            if station is not None:
                statement = statement.where(TaskDB.station == station)
            statement = statement.order_by(TaskDB.station, TaskDB.priority, TaskDB.id)
            return list(session.exec(statement).all())

    def get_by_id(self, task_id: int) -> Optional[TaskDB]:
        with Session(engine) as session:
            return session.get(TaskDB, task_id)

    def update_fields(self, task_id: int, fields: dict) -> Optional[TaskDB]:
        """Aktualisiert Stammdaten. station/priority gehören der Ordering-Engine."""
        protected = {"id", "station", "priority", "version", "created_at"}
        with session_scope() as session:
            task = session.get(TaskDB, task_id)
            if task is None:
                return None
            for key, value in fields.items():
                if key in protected:
                    continue
                setattr(task, key, value)
            # Stammdaten-Änderungen erhöhen ebenfalls die Version
            task.version = (task.version or 0) + 1
            task.updated_at = time.time()
            session.add(task)
            session.flush()
            session.refresh(task)
            return task


class StationRepository:
    def get_all(self) -> List[StationDB]:
        with Session(engine) as session:
            return SqlStationDirectory(session).get_all()

    def resolve(self, id_or_name: int | str) -> StationDB:
        with Session(engine) as session:
            name = SqlStationDirectory(session).resolve_name(id_or_name)
            return session.exec(select(StationDB).where(StationDB.name == name)).one()


task_repo = TaskRepository()
station_repo = StationRepository()
