"""DatabaseService — registry of database instances."""

from __future__ import annotations

from typing import Any

from svcmap.domain.types import DatabaseType, parse_enum
from svcmap.infrastructure.database.schema import databases
from svcmap.services._helpers import new_id, now_iso
from svcmap.services.base import BaseService
from svcmap.services.result import ServiceResult
from svcmap.services.telemetry import traced

_MUTABLE = frozenset({"name", "description", "database_type", "connection_string", "config"})
_REQUIRED = frozenset({"name", "database_type", "connection_string", "config"})


class DatabaseService(BaseService):
    """Handles database instance CRUD.  Names are unique."""

    @traced
    def create_database(
        self,
        name: str,
        *,
        database_type: str,
        connection_string: str,
        description: str | None = None,
        config: dict[str, str] | None = None,
    ) -> ServiceResult:
        op = "create_database"
        try:
            engine = parse_enum(DatabaseType, database_type)
        except ValueError as exc:
            return self._invalid(op, str(exc), field="database_type")

        with self._catalog.transaction(exclusive="databases") as txn:
            if txn.first(databases, databases.c.name == name) is not None:
                return self._conflict(
                    op, "database", {"name": name}, f"Database with name '{name}' already exists"
                )
            now = now_iso()
            row = {
                "id": new_id(),
                "name": name,
                "description": description,
                "database_type": engine.value,
                "connection_string": connection_string,
                "config": dict(config or {}),
                "created_at": now,
                "updated_at": now,
            }
            txn.insert(databases, row)
        return ServiceResult(ok=True, op=op, data=row)

    @traced
    def get_database(self, database_id: str) -> ServiceResult:
        op = "get_database"
        with self._catalog.transaction() as txn:
            row = txn.get(databases, database_id)
        if row is None:
            return self._not_found(op, "database", database_id)
        return ServiceResult(ok=True, op=op, data=row)

    @traced
    def list_databases(self, *, database_type: str | None = None) -> ServiceResult:
        op = "list_databases"
        criteria = []
        if database_type is not None:
            try:
                engine = parse_enum(DatabaseType, database_type)
            except ValueError as exc:
                return self._invalid(op, str(exc), field="database_type")
            criteria.append(databases.c.database_type == engine.value)

        with self._catalog.transaction() as txn:
            rows = txn.scan(databases, *criteria)
        return ServiceResult(ok=True, op=op, data={"count": len(rows), "items": rows})

    @traced
    def update_database(self, database_id: str, *, changes: dict[str, Any]) -> ServiceResult:
        op = "update_database"
        warnings = [f"Cannot change field: {k}" for k in changes if k not in _MUTABLE]
        values = {k: v for k, v in changes.items() if k in _MUTABLE}
        cleared = self._cleared(op, values, _REQUIRED)
        if cleared is not None:
            return cleared
        if "database_type" in values:
            try:
                values["database_type"] = parse_enum(DatabaseType, values["database_type"]).value
            except ValueError as exc:
                return self._invalid(op, str(exc), field="database_type")

        with self._catalog.transaction(exclusive="databases") as txn:
            if not txn.exists(databases, database_id):
                return self._not_found(op, "database", database_id)
            new_name = values.get("name")
            if new_name is not None and (
                txn.first(databases, databases.c.name == new_name, databases.c.id != database_id)
                is not None
            ):
                return self._conflict(
                    op,
                    "database",
                    {"name": new_name},
                    f"Database with name '{new_name}' already exists",
                )
            values["updated_at"] = now_iso()
            row = txn.update(databases, database_id, values)

        return ServiceResult(ok=True, op=op, data=row or {}, warnings=warnings)

    @traced
    def delete_database(self, database_id: str) -> ServiceResult:
        op = "delete_database"
        with self._catalog.transaction(exclusive="databases") as txn:
            row = txn.get(databases, database_id)
            if row is None:
                return self._not_found(op, "database", database_id)
            txn.delete(databases, database_id)
        return ServiceResult(ok=True, op=op, data={"id": database_id, "name": row["name"]})
