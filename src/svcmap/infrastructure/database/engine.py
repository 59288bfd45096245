"""Database engine setup for SQLite with WAL mode.

SQLite is the record store: WAL mode for concurrent reads, foreign keys
for cascading edge cleanup, ACID transactions for all-or-nothing writes.
The DB is stored at {root}/.svcmap/{filename}.

The pysqlite driver's implicit transaction handling is disabled and
replaced with an explicit ``BEGIN`` emitted by SQLAlchemy, so that a
connection carrying the ``sqlite_begin="IMMEDIATE"`` execution option
takes the database write lock before its first read.  That is what makes
a check-then-insert atomic across processes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import Connection, create_engine, event
from sqlalchemy.engine import Engine

from svcmap.infrastructure.database.schema import metadata

STATE_DIR = ".svcmap"


def create_db_engine(db_path: Path, *, busy_timeout: float = 5.0) -> Engine:
    """Create a SQLite engine with WAL mode and foreign keys enabled."""
    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"timeout": busy_timeout},
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        # Hand transaction control to SQLAlchemy's "begin" hook below.
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _do_begin(conn: Connection) -> None:
        mode = conn.get_execution_options().get("sqlite_begin", "DEFERRED")
        conn.exec_driver_sql(f"BEGIN {mode}")

    return engine


def init_database(root: Path, *, filename: str = "catalog.db", busy_timeout: float = 5.0) -> Engine:
    """Initialize the catalog database at ``{root}/.svcmap/{filename}``.

    Creates the state directory and all tables from
    :data:`schema.metadata`.  Idempotent — safe to call on an existing
    catalog.

    Returns the engine ready for use.
    """
    state_dir = root / STATE_DIR
    state_dir.mkdir(parents=True, exist_ok=True)

    engine = create_db_engine(state_dir / filename, busy_timeout=busy_timeout)
    metadata.create_all(engine)
    return engine
