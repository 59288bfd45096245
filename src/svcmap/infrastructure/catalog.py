"""Catalog — repository with transactional, scope-locked record access.

The Catalog is the single dependency injected into every service.  It
owns the database engine and the graph engine, and exposes the record
store primitives through :class:`CatalogTransaction`:

- **insert / get / scan / update / delete** over any catalog table.
- **Exclusive scopes**: ``transaction(exclusive="...")`` serializes
  writers that check-then-insert.  In-process writers queue on a named
  lock (bounded by ``store.lock_timeout``); across processes the
  transaction opens with ``BEGIN IMMEDIATE`` so SQLite's write lock is
  held from the first read.
- **Graph**: the cached graph is invalidated when any transaction ends
  (success or failure); it is lazily rebuilt from committed state.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from svcmap.infrastructure.database.engine import init_database
from svcmap.infrastructure.database.schema import INSERTION_ORDER
from svcmap.infrastructure.graph.engine import GraphEngine

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy import ColumnElement, Connection, Table
    from sqlalchemy.engine import Engine

    from svcmap.config.settings import SvcmapSettings

logger = logging.getLogger(__name__)


class CatalogBusyError(RuntimeError):
    """An exclusive scope could not be acquired in time.

    Retryable: unlike the terminal service errors, repeating the same
    request later may succeed.
    """


# ---------------------------------------------------------------------------
# Named scope locks (process-wide, keyed by database file + scope)
# ---------------------------------------------------------------------------

_registry_guard = threading.Lock()
_scope_locks: dict[tuple[str, str], threading.Lock] = {}


def _scope_lock(db_key: str, scope: str) -> threading.Lock:
    with _registry_guard:
        return _scope_locks.setdefault((db_key, scope), threading.Lock())


@contextmanager
def _hold(lock: threading.Lock, scope: str, timeout: float) -> Iterator[None]:
    if not lock.acquire(timeout=timeout):
        msg = f"Timed out after {timeout}s waiting for exclusive scope {scope!r}"
        raise CatalogBusyError(msg)
    try:
        yield
    finally:
        lock.release()


# ---------------------------------------------------------------------------
# CatalogTransaction: yielded to callers within transaction()
# ---------------------------------------------------------------------------


@dataclass
class CatalogTransaction:
    """Active transaction with record-store primitives.

    Rows are returned as plain dicts keyed by column name.
    """

    conn: Connection
    scope: str | None = None

    def insert(self, table: Table, values: dict[str, Any]) -> str:
        """Insert a row and return its ``id``."""
        self.conn.execute(insert(table).values(**values))
        return str(values["id"])

    def get(self, table: Table, row_id: str) -> dict[str, Any] | None:
        row = self.conn.execute(select(table).where(table.c.id == row_id)).first()
        return dict(row._mapping) if row is not None else None

    def exists(self, table: Table, row_id: str) -> bool:
        return (
            self.conn.execute(select(table.c.id).where(table.c.id == row_id)).first() is not None
        )

    def scan(
        self,
        table: Table,
        *criteria: ColumnElement[bool],
        ordered: bool = True,
    ) -> list[dict[str, Any]]:
        """Return rows matching all *criteria*, in insertion order by default."""
        stmt = select(table).where(*criteria)
        if ordered:
            stmt = stmt.order_by(INSERTION_ORDER)
        return [dict(row._mapping) for row in self.conn.execute(stmt)]

    def first(self, table: Table, *criteria: ColumnElement[bool]) -> dict[str, Any] | None:
        row = self.conn.execute(select(table).where(*criteria).limit(1)).first()
        return dict(row._mapping) if row is not None else None

    def update(self, table: Table, row_id: str, values: dict[str, Any]) -> dict[str, Any] | None:
        """Apply *values* to one row; return the updated row or None if absent."""
        result = self.conn.execute(update(table).where(table.c.id == row_id).values(**values))
        if result.rowcount == 0:
            return None
        return self.get(table, row_id)

    def delete(self, table: Table, row_id: str) -> bool:
        result = self.conn.execute(delete(table).where(table.c.id == row_id))
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Catalog repository
# ---------------------------------------------------------------------------


class Catalog:
    """Repository encapsulating database and graph access.

    Constructed once per process entry point from :class:`SvcmapSettings`.
    Services receive the Catalog via their :class:`BaseService`
    constructor.
    """

    def __init__(self, settings: SvcmapSettings) -> None:
        self._settings = settings
        self._engine: Engine = init_database(
            settings.root,
            filename=settings.store.filename,
            busy_timeout=settings.store.busy_timeout,
        )
        self._db_key = str(settings.db_path.resolve())
        self._graph = GraphEngine(self._engine)

    @property
    def root(self) -> Path:
        return self._settings.root

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @property
    def graph(self) -> GraphEngine:
        """The graph engine (lazy-built from committed service links)."""
        return self._graph

    @property
    def settings(self) -> SvcmapSettings:
        return self._settings

    def close(self) -> None:
        """Release pooled connections."""
        self._graph.invalidate()
        self._engine.dispose()

    @contextmanager
    def transaction(self, *, exclusive: str | None = None) -> Iterator[CatalogTransaction]:
        """All-or-nothing unit of work against the record store.

        Commits when the block exits normally (including an early
        ``return``), rolls back on any exception.  With *exclusive*, the
        block runs while holding the named scope, so concurrent writers
        to the same scope observe each other's committed rows.

        Store failures are logged with traceback and re-raised.

        **Warning:** Do not read ``catalog.graph`` within a transaction
        block — it reflects committed state only.

        Usage::

            with catalog.transaction(exclusive="service_links:prod") as txn:
                if txn.first(service_links, ...) is None:
                    txn.insert(service_links, {...})
        """
        lock_timeout = self._settings.store.lock_timeout
        guard = (
            _hold(_scope_lock(self._db_key, exclusive), exclusive, lock_timeout)
            if exclusive
            else _nullguard()
        )
        with guard:
            try:
                with self._engine.connect() as conn:
                    if exclusive:
                        conn.execution_options(sqlite_begin="IMMEDIATE")
                    with conn.begin():
                        yield CatalogTransaction(conn=conn, scope=exclusive)
            except SQLAlchemyError:
                logger.error("Catalog transaction failed (scope=%s)", exclusive, exc_info=True)
                raise
            finally:
                self._graph.invalidate()


@contextmanager
def _nullguard() -> Iterator[None]:
    yield
