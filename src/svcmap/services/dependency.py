"""DependencyService — external libraries, queues, caches, and APIs.

A dependency is identified by its (name, version) pair; the same name
may be registered once per version.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from svcmap.domain.types import DependencyType, parse_enum
from svcmap.infrastructure.database.schema import dependencies
from svcmap.services._helpers import new_id, now_iso
from svcmap.services.base import BaseService
from svcmap.services.result import ServiceResult
from svcmap.services.telemetry import traced

if TYPE_CHECKING:
    from svcmap.infrastructure.catalog import CatalogTransaction

_MUTABLE = frozenset({"name", "version", "description", "dependency_type", "config"})
_REQUIRED = frozenset({"name", "version", "dependency_type", "config"})


class DependencyService(BaseService):
    """Handles dependency CRUD."""

    @traced
    def create_dependency(
        self,
        name: str,
        *,
        version: str,
        dependency_type: str,
        description: str | None = None,
        config: dict[str, str] | None = None,
    ) -> ServiceResult:
        op = "create_dependency"
        try:
            kind = parse_enum(DependencyType, dependency_type)
        except ValueError as exc:
            return self._invalid(op, str(exc), field="dependency_type")

        with self._catalog.transaction(exclusive="dependencies") as txn:
            if self._clash(txn, name, version) is not None:
                return self._duplicate(op, name, version)
            now = now_iso()
            row = {
                "id": new_id(),
                "name": name,
                "version": version,
                "description": description,
                "dependency_type": kind.value,
                "config": dict(config or {}),
                "created_at": now,
                "updated_at": now,
            }
            txn.insert(dependencies, row)
        return ServiceResult(ok=True, op=op, data=row)

    @traced
    def get_dependency(self, dependency_id: str) -> ServiceResult:
        op = "get_dependency"
        with self._catalog.transaction() as txn:
            row = txn.get(dependencies, dependency_id)
        if row is None:
            return self._not_found(op, "dependency", dependency_id)
        return ServiceResult(ok=True, op=op, data=row)

    @traced
    def list_dependencies(self, *, dependency_type: str | None = None) -> ServiceResult:
        op = "list_dependencies"
        criteria = []
        if dependency_type is not None:
            try:
                kind = parse_enum(DependencyType, dependency_type)
            except ValueError as exc:
                return self._invalid(op, str(exc), field="dependency_type")
            criteria.append(dependencies.c.dependency_type == kind.value)

        with self._catalog.transaction() as txn:
            rows = txn.scan(dependencies, *criteria)
        return ServiceResult(ok=True, op=op, data={"count": len(rows), "items": rows})

    @traced
    def update_dependency(self, dependency_id: str, *, changes: dict[str, Any]) -> ServiceResult:
        """Partial update; renaming or re-versioning re-checks the (name, version) key."""
        op = "update_dependency"
        warnings = [f"Cannot change field: {k}" for k in changes if k not in _MUTABLE]
        values = {k: v for k, v in changes.items() if k in _MUTABLE}
        cleared = self._cleared(op, values, _REQUIRED)
        if cleared is not None:
            return cleared
        if "dependency_type" in values:
            try:
                values["dependency_type"] = parse_enum(
                    DependencyType, values["dependency_type"]
                ).value
            except ValueError as exc:
                return self._invalid(op, str(exc), field="dependency_type")

        with self._catalog.transaction(exclusive="dependencies") as txn:
            current = txn.get(dependencies, dependency_id)
            if current is None:
                return self._not_found(op, "dependency", dependency_id)

            if "name" in values or "version" in values:
                name = values.get("name", current["name"])
                version = values.get("version", current["version"])
                if self._clash(txn, name, version, exclude=dependency_id) is not None:
                    return self._duplicate(op, name, version)

            values["updated_at"] = now_iso()
            row = txn.update(dependencies, dependency_id, values)

        return ServiceResult(ok=True, op=op, data=row or {}, warnings=warnings)

    @traced
    def delete_dependency(self, dependency_id: str) -> ServiceResult:
        """Delete a dependency together with every edge that uses it."""
        op = "delete_dependency"
        with self._catalog.transaction(exclusive="dependencies") as txn:
            row = txn.get(dependencies, dependency_id)
            if row is None:
                return self._not_found(op, "dependency", dependency_id)
            txn.delete(dependencies, dependency_id)
        return ServiceResult(ok=True, op=op, data={"id": dependency_id, "name": row["name"]})

    # ------------------------------------------------------------------

    @staticmethod
    def _clash(
        txn: CatalogTransaction, name: str, version: str, *, exclude: str | None = None
    ) -> dict[str, Any] | None:
        criteria = [dependencies.c.name == name, dependencies.c.version == version]
        if exclude is not None:
            criteria.append(dependencies.c.id != exclude)
        return txn.first(dependencies, *criteria)

    def _duplicate(self, op: str, name: str, version: str) -> ServiceResult:
        return self._conflict(
            op,
            "dependency",
            {"name": name, "version": version},
            f"Dependency '{name}' version '{version}' already exists",
        )
