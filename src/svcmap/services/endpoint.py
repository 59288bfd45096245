"""EndpointService — HTTP operations exposed by a service.

An endpoint is keyed by (service, method, path).  ``create_endpoint``
may declare the endpoint's dependency calls and database accesses in
the same request; they are written in one transaction, so a missing
dependency or database leaves no endpoint behind.

``replace_endpoint`` is the overwrite-allowed upsert used by ingestion
producers that re-import an interface description.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from svcmap.domain.types import CallType, EndpointMethod, OperationType, parse_enum
from svcmap.infrastructure.database.schema import (
    databases as database_instances,
    dependencies,
    endpoint_databases,
    endpoint_dependencies,
    endpoints,
    services,
)
from svcmap.services._helpers import new_id, now_iso
from svcmap.services.base import BaseService, Rejected
from svcmap.services.result import ServiceResult
from svcmap.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from svcmap.infrastructure.catalog import CatalogTransaction

logger = logging.getLogger(__name__)

_DOCUMENT_FIELDS = (
    "summary",
    "request_schema",
    "response_schemas",
    "auth",
    "rate_limit",
    "metadata",
)
_MUTABLE = frozenset({"method", "path", *_DOCUMENT_FIELDS})
_REQUIRED = frozenset({"method", "path"})


class EndpointService(BaseService):
    """Handles endpoint CRUD and endpoint edge bundles."""

    @traced
    def create_endpoint(
        self,
        service_id: str,
        *,
        method: str,
        path: str,
        summary: str = "",
        request_schema: dict[str, Any] | None = None,
        response_schemas: dict[str, Any] | None = None,
        auth: dict[str, Any] | None = None,
        rate_limit: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
        calls: list[dict[str, Any]] | None = None,
        databases: list[dict[str, Any]] | None = None,
    ) -> ServiceResult:
        """Create an endpoint and, optionally, its outgoing edges.

        Each entry in *calls* is ``{"dependency_id", "call_type", "config"?}``;
        each entry in *databases* is
        ``{"database_id", "operation_type", "table_names"?, "config"?}``.
        """
        op = "create_endpoint"
        try:
            verb = self._method(op, method)
            self._check_path(op, path)
            with self._catalog.transaction(exclusive="endpoints") as txn:
                if not txn.exists(services, service_id):
                    raise Rejected(self._not_found(op, "service", service_id))
                self._ensure_unique(txn, op, service_id, verb, path)

                now = now_iso()
                row = {
                    "id": new_id(),
                    "service_id": service_id,
                    "method": verb,
                    "path": path,
                    "summary": summary,
                    "request_schema": request_schema,
                    "response_schemas": response_schemas,
                    "auth": auth,
                    "rate_limit": rate_limit,
                    "metadata": metadata,
                    "created_at": now,
                    "updated_at": now,
                }
                txn.insert(endpoints, row)

                with trace_span("endpoint_edges") as span:
                    call_rows = self._insert_calls(txn, op, row["id"], calls or [], now)
                    db_rows = self._insert_databases(txn, op, row["id"], databases or [], now)
                    if span:
                        span.annotate("calls", len(call_rows))
                        span.annotate("databases", len(db_rows))
        except Rejected as exc:
            return exc.result

        logger.debug("Created endpoint %s %s on %s", verb, path, service_id)
        return ServiceResult(
            ok=True, op=op, data={**row, "calls": call_rows, "databases": db_rows}
        )

    @traced
    def get_endpoint(self, endpoint_id: str) -> ServiceResult:
        op = "get_endpoint"
        with self._catalog.transaction() as txn:
            row = txn.get(endpoints, endpoint_id)
        if row is None:
            return self._not_found(op, "endpoint", endpoint_id)
        return ServiceResult(ok=True, op=op, data=row)

    @traced
    def list_endpoints(self, service_id: str, *, method: str | None = None) -> ServiceResult:
        op = "list_endpoints"
        criteria = [endpoints.c.service_id == service_id]
        if method is not None:
            try:
                criteria.append(endpoints.c.method == self._method(op, method))
            except Rejected as exc:
                return exc.result

        with self._catalog.transaction() as txn:
            if not txn.exists(services, service_id):
                return self._not_found(op, "service", service_id)
            rows = txn.scan(endpoints, *criteria)
        return ServiceResult(
            ok=True, op=op, data={"service_id": service_id, "count": len(rows), "items": rows}
        )

    @traced
    def update_endpoint(self, endpoint_id: str, *, changes: dict[str, Any]) -> ServiceResult:
        """Partial update; a new method or path re-checks the endpoint key."""
        op = "update_endpoint"
        warnings = [f"Cannot change field: {k}" for k in changes if k not in _MUTABLE]
        values = {k: v for k, v in changes.items() if k in _MUTABLE}
        cleared = self._cleared(op, values, _REQUIRED)
        if cleared is not None:
            return cleared
        if "summary" in values:
            values["summary"] = values["summary"] or ""
        try:
            if "method" in values:
                values["method"] = self._method(op, values["method"])
            if "path" in values:
                self._check_path(op, values["path"])

            with self._catalog.transaction(exclusive="endpoints") as txn:
                current = txn.get(endpoints, endpoint_id)
                if current is None:
                    raise Rejected(self._not_found(op, "endpoint", endpoint_id))
                if "method" in values or "path" in values:
                    self._ensure_unique(
                        txn,
                        op,
                        current["service_id"],
                        values.get("method", current["method"]),
                        values.get("path", current["path"]),
                        exclude=endpoint_id,
                    )
                values["updated_at"] = now_iso()
                row = txn.update(endpoints, endpoint_id, values)
        except Rejected as exc:
            return exc.result

        return ServiceResult(ok=True, op=op, data=row or {}, warnings=warnings)

    @traced
    def delete_endpoint(self, endpoint_id: str) -> ServiceResult:
        op = "delete_endpoint"
        with self._catalog.transaction(exclusive="endpoints") as txn:
            row = txn.get(endpoints, endpoint_id)
            if row is None:
                return self._not_found(op, "endpoint", endpoint_id)
            txn.delete(endpoints, endpoint_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": endpoint_id, "method": row["method"], "path": row["path"]},
        )

    @traced
    def replace_endpoint(
        self,
        service_id: str,
        method: str,
        path: str,
        fields: dict[str, Any],
    ) -> ServiceResult:
        """Create or overwrite the endpoint at (service, method, path).

        Document fields (summary, schemas, auth, rate limit, metadata)
        are replaced wholesale; fields absent from *fields* are cleared.
        Edges of an existing endpoint are kept.
        """
        op = "replace_endpoint"
        unknown = sorted(set(fields) - set(_DOCUMENT_FIELDS))
        if unknown:
            return self._invalid(
                op, f"Unknown endpoint field(s): {', '.join(unknown)}", field=unknown[0]
            )
        try:
            verb = self._method(op, method)
            self._check_path(op, path)
        except Rejected as exc:
            return exc.result

        document = {name: fields.get(name) for name in _DOCUMENT_FIELDS}
        document["summary"] = document["summary"] or ""

        with self._catalog.transaction(exclusive="endpoints") as txn:
            if not txn.exists(services, service_id):
                return self._not_found(op, "service", service_id)
            existing = self._lookup(txn, service_id, verb, path)
            now = now_iso()
            if existing is not None:
                row = txn.update(endpoints, existing["id"], {**document, "updated_at": now})
                created = False
            else:
                row = {
                    "id": new_id(),
                    "service_id": service_id,
                    "method": verb,
                    "path": path,
                    **document,
                    "created_at": now,
                    "updated_at": now,
                }
                txn.insert(endpoints, row)
                created = True

        return ServiceResult(ok=True, op=op, data={**(row or {}), "created": created})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _method(self, op: str, method: str) -> str:
        try:
            return parse_enum(EndpointMethod, method).value
        except ValueError as exc:
            raise Rejected(self._invalid(op, str(exc), field="method")) from None

    def _check_path(self, op: str, path: str) -> None:
        if not path.startswith("/"):
            raise Rejected(
                self._invalid(op, f"Endpoint path must start with '/': {path!r}", field="path")
            )

    @staticmethod
    def _lookup(
        txn: CatalogTransaction, service_id: str, method: str, path: str
    ) -> dict[str, Any] | None:
        return txn.first(
            endpoints,
            endpoints.c.service_id == service_id,
            endpoints.c.method == method,
            endpoints.c.path == path,
        )

    def _ensure_unique(
        self,
        txn: CatalogTransaction,
        op: str,
        service_id: str,
        method: str,
        path: str,
        *,
        exclude: str | None = None,
    ) -> None:
        clash = self._lookup(txn, service_id, method, path)
        if clash is not None and clash["id"] != exclude:
            raise Rejected(
                self._conflict(
                    op,
                    "endpoint",
                    {"service_id": service_id, "method": method, "path": path},
                    f"Endpoint {method} {path} already exists on service {service_id}",
                )
            )

    def _insert_calls(
        self,
        txn: CatalogTransaction,
        op: str,
        endpoint_id: str,
        calls: list[dict[str, Any]],
        now: str,
    ) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        seen: set[str] = set()
        for call in calls:
            dependency_id = call.get("dependency_id")
            if not dependency_id:
                raise Rejected(self._invalid(op, "Each call needs a dependency_id", field="calls"))
            try:
                call_type = parse_enum(CallType, call.get("call_type") or "")
            except ValueError as exc:
                raise Rejected(self._invalid(op, str(exc), field="call_type")) from None
            if not txn.exists(dependencies, dependency_id):
                raise Rejected(self._not_found(op, "dependency", dependency_id))
            if dependency_id in seen:
                raise Rejected(
                    self._conflict(
                        op,
                        "endpoint_dependency",
                        {"endpoint_id": endpoint_id, "dependency_id": dependency_id},
                        f"Dependency {dependency_id} listed twice for one endpoint",
                    )
                )
            seen.add(dependency_id)
            row = {
                "id": new_id(),
                "endpoint_id": endpoint_id,
                "dependency_id": dependency_id,
                "call_type": call_type.value,
                "config": call.get("config"),
                "created_at": now,
                "updated_at": now,
            }
            txn.insert(endpoint_dependencies, row)
            rows.append(row)
        return rows

    def _insert_databases(
        self,
        txn: CatalogTransaction,
        op: str,
        endpoint_id: str,
        accesses: list[dict[str, Any]],
        now: str,
    ) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        seen: set[str] = set()
        for access in accesses:
            database_id = access.get("database_id")
            if not database_id:
                raise Rejected(
                    self._invalid(op, "Each database access needs a database_id", field="databases")
                )
            try:
                operation = parse_enum(OperationType, access.get("operation_type") or "")
            except ValueError as exc:
                raise Rejected(self._invalid(op, str(exc), field="operation_type")) from None
            if not txn.exists(database_instances, database_id):
                raise Rejected(self._not_found(op, "database", database_id))
            if database_id in seen:
                raise Rejected(
                    self._conflict(
                        op,
                        "endpoint_database",
                        {"endpoint_id": endpoint_id, "database_id": database_id},
                        f"Database {database_id} listed twice for one endpoint",
                    )
                )
            seen.add(database_id)
            row = {
                "id": new_id(),
                "endpoint_id": endpoint_id,
                "database_id": database_id,
                "operation_type": operation.value,
                "table_names": access.get("table_names"),
                "config": access.get("config"),
                "created_at": now,
                "updated_at": now,
            }
            txn.insert(endpoint_databases, row)
            rows.append(row)
        return rows
