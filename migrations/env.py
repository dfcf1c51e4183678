import logging
import os
import sys
import time
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlalchemy.exc import OperationalError

# Projekt-Root zum Pfad hinzufügen
sys.path.insert(0, os.path.realpath(os.path.join(os.path.dirname(__file__), "..")))

from sqlmodel import SQLModel  # noqa: E402
from taskboard.db_models import StationDB, TaskDB  # noqa: E402,F401 - füllt die Metadaten
from taskboard.database import DATABASE_URL  # noqa: E402

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")
target_metadata = SQLModel.metadata

MAX_CONNECT_RETRIES = 5
RETRY_DELAY = 5


def run_migrations_offline() -> None:
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    # DATABASE_URL aus den Taskboard-Settings hat Vorrang vor der .ini
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = DATABASE_URL
    connectable = engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)

    for attempt in range(1, MAX_CONNECT_RETRIES + 1):
        try:
            with connectable.connect() as connection:
                # batch mode, damit ALTER TABLE auch unter SQLite funktioniert
                context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
                with context.begin_transaction():
                    context.run_migrations()
            return
        except OperationalError as e:
            if attempt == MAX_CONNECT_RETRIES:
                logger.error("Max retries reached. Could not connect to database.")
                raise
            logger.warning(f"Database connection failed: {e}. Retrying in {RETRY_DELAY}s... ({attempt}/{MAX_CONNECT_RETRIES})")
            time.sleep(RETRY_DELAY)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
