import os
import logging
import time
from contextlib import contextmanager
from typing import Iterator

import portalocker
from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy import event, text
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from taskboard.common.errors import BoardError, Conflict, StoreUnavailable
from taskboard.config import settings

logger = logging.getLogger(__name__)

# Datenbank-URL aus zentralen Einstellungen beziehen
DATABASE_URL = settings.effective_database_url

engine_kwargs = {
    "echo": False,
    "pool_pre_ping": True,
    "pool_recycle": 3600,
}

# SQLite unterstützt kein pool_size und max_overflow in der gleichen Weise wie Postgres
if DATABASE_URL.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs["pool_size"] = settings.db_pool_size
    engine_kwargs["max_overflow"] = settings.db_max_overflow

engine = create_engine(DATABASE_URL, **engine_kwargs)

# Fehlermeldungen der Treiber, die auf eine nicht erhaltene Sperre hindeuten
_LOCK_ERROR_MARKERS = (
    "database is locked",
    "could not obtain lock",
    "lock not available",
    "deadlock detected",
    "could not serialize access",
    "lock wait timeout",
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    if DATABASE_URL.startswith("sqlite"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()


def _is_in_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite:///:memory:") or url == "sqlite://"


def is_lock_error(exc: BaseException) -> bool:
    """True, wenn ein DB-Fehler eine nicht erhaltene Sperre oder einen Serialisierungskonflikt meldet."""
    if not isinstance(exc, (OperationalError, DBAPIError)):
        return False
    msg = str(getattr(exc, "orig", None) or exc).lower()
    return any(marker in msg for marker in _LOCK_ERROR_MARKERS)


def init_db():
    # In-memory SQLite ist prozesslokal und braucht keinen Datei-Lock
    if _is_in_memory_sqlite(DATABASE_URL):
        SQLModel.metadata.create_all(engine)
        return

    os.makedirs(settings.data_dir, exist_ok=True)
    lock_file_path = os.path.join(settings.data_dir, "db_init.lock")

    max_retries = 5
    retry_delay = 5
    last_exception = None

    for i in range(max_retries):
        try:
            with open(lock_file_path, "a+") as f:
                try:
                    portalocker.lock(f, portalocker.LOCK_EX | portalocker.LOCK_NB)
                    logger.info("Database init lock acquired.")
                    try:
                        SQLModel.metadata.create_all(engine)
                        return
                    finally:
                        # portalocker gibt den Lock beim Schließen der Datei frei
                        logger.debug("Database initialization lock released")
                except (portalocker.LockException, portalocker.AlreadyLocked):
                    logger.info(
                        f"Database is being initialized by another process. Waiting... ({i + 1}/{max_retries})"
                    )
                    time.sleep(retry_delay)
                    continue

        except OperationalError as e:
            last_exception = e
            if i < max_retries - 1:
                logger.warning(
                    f"Database connection failed: {e}. Retrying in {retry_delay}s... ({i + 1}/{max_retries})"
                )
                time.sleep(retry_delay)
            else:
                logger.error("Max retries reached. Could not initialize database.")
                raise last_exception


@contextmanager
def session_scope() -> Iterator[Session]:
    """Transaktionaler Rahmen: ein Commit am Ende oder vollständiger Rollback.

    Treiberfehler werden in die Fehler-Taxonomie übersetzt: Sperr-/Serialisierungs-
    fehler als ``Conflict``, alles andere als ``StoreUnavailable``.
    """
    session = Session(engine, autoflush=False, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except BoardError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        if is_lock_error(e):
            raise Conflict("Konflikt: Station wird gerade parallel geändert", details={"reason": str(e)}) from e
        logger.error(f"Database error, transaction rolled back: {e}")
        raise StoreUnavailable("Datenbank nicht verfügbar", details={"reason": str(e)}) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_db_health() -> bool:
    """Prüft, ob die DB erreichbar ist."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Datenbank Health-Check fehlgeschlagen: {e}")
        return False
