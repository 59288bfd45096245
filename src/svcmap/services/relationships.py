"""RelationshipService — the five edge collections of the catalog.

Edge kinds (see :class:`EdgeKind`):

- ``service``             consumer service -> provider service, env-scoped
- ``dependency``          service -> external dependency, env-scoped
- ``database``            service -> database instance, env-scoped
- ``endpoint_dependency`` endpoint -> external dependency
- ``endpoint_database``   endpoint -> database instance

Every write runs its existence, uniqueness, and (for service links)
acyclicity checks in the same exclusive transaction as the insert.
Service links lock one scope per environment code, so writers in
different environments never wait on each other.

Composite keys are immutable: ``update_link`` only touches metadata, so
the topology (and therefore acyclicity) cannot change after insert.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from svcmap.domain.cycles import build_adjacency, cycle_if_linked
from svcmap.domain.environments import normalize_environment, scope_label
from svcmap.domain.types import (
    CallType,
    EdgeKind,
    LinkDirection,
    OperationType,
    ServiceLinkType,
    parse_enum,
)
from svcmap.infrastructure.database.schema import (
    databases,
    dependencies,
    endpoint_databases,
    endpoint_dependencies,
    endpoints,
    service_db_links,
    service_dependencies,
    service_links,
    services,
)
from svcmap.services._helpers import endpoint_summary, new_id, now_iso, service_summary
from svcmap.services.base import BaseService, Rejected
from svcmap.services.result import ErrorCode, ServiceError, ServiceResult
from svcmap.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement, Table

    from svcmap.infrastructure.catalog import CatalogTransaction

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Edge descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _End:
    """One side of an edge: the column on the edge row and the entity it names."""

    column: str
    table: Table
    kind: str
    summarize: Callable[[dict[str, Any]], dict[str, Any]]


@dataclass(frozen=True)
class _EdgeSpec:
    kind: EdgeKind
    label: str
    table: Table
    source: _End
    target: _End
    scoped: bool
    defaults: Mapping[str, Any]
    enums: Mapping[str, type[StrEnum]]

    @property
    def key_fields(self) -> frozenset[str]:
        fields = {"id", self.source.column, self.target.column}
        if self.scoped:
            fields.add("environment_code")
        return frozenset(fields)

    def lock_scope(self, environment_code: str | None) -> str:
        # Service links partition by environment; everything else by table.
        if self.kind is EdgeKind.SERVICE:
            return f"{self.table.name}:{scope_label(environment_code)}"
        return self.table.name


def _full(row: dict[str, Any]) -> dict[str, Any]:
    return row


_SERVICE = ("service", services, service_summary)
_DEPENDENCY = ("dependency", dependencies, _full)
_DATABASE = ("database", databases, _full)
_ENDPOINT = ("endpoint", endpoints, endpoint_summary)


def _end(column: str, entity: tuple[str, Table, Callable[..., dict[str, Any]]]) -> _End:
    kind, table, summarize = entity
    return _End(column=column, table=table, kind=kind, summarize=summarize)


EDGE_SPECS: dict[EdgeKind, _EdgeSpec] = {
    EdgeKind.SERVICE: _EdgeSpec(
        kind=EdgeKind.SERVICE,
        label="service_link",
        table=service_links,
        source=_end("consumer_service_id", _SERVICE),
        target=_end("provider_service_id", _SERVICE),
        scoped=True,
        defaults={"dependency_type": None, "description": None, "config": {}},
        enums={"dependency_type": ServiceLinkType},
    ),
    EdgeKind.DEPENDENCY: _EdgeSpec(
        kind=EdgeKind.DEPENDENCY,
        label="service_dependency",
        table=service_dependencies,
        source=_end("service_id", _SERVICE),
        target=_end("dependency_id", _DEPENDENCY),
        scoped=True,
        defaults={"config_override": {}},
        enums={},
    ),
    EdgeKind.DATABASE: _EdgeSpec(
        kind=EdgeKind.DATABASE,
        label="service_db_link",
        table=service_db_links,
        source=_end("service_id", _SERVICE),
        target=_end("database_id", _DATABASE),
        scoped=True,
        defaults={"schema_name": None, "connection_override": {}},
        enums={},
    ),
    EdgeKind.ENDPOINT_DEPENDENCY: _EdgeSpec(
        kind=EdgeKind.ENDPOINT_DEPENDENCY,
        label="endpoint_dependency",
        table=endpoint_dependencies,
        source=_end("endpoint_id", _ENDPOINT),
        target=_end("dependency_id", _DEPENDENCY),
        scoped=False,
        defaults={"call_type": None, "config": None},
        enums={"call_type": CallType},
    ),
    EdgeKind.ENDPOINT_DATABASE: _EdgeSpec(
        kind=EdgeKind.ENDPOINT_DATABASE,
        label="endpoint_database",
        table=endpoint_databases,
        source=_end("endpoint_id", _ENDPOINT),
        target=_end("database_id", _DATABASE),
        scoped=False,
        defaults={"operation_type": None, "table_names": None, "config": None},
        enums={"operation_type": OperationType},
    ),
}


def scope_clause(column: Any, environment_code: str | None) -> ColumnElement[bool]:
    """Nil-or-exact match on an environment column."""
    if environment_code is None:
        return column.is_(None)
    return column == environment_code


# ---------------------------------------------------------------------------
# RelationshipService
# ---------------------------------------------------------------------------


class RelationshipService(BaseService):
    """Link, unlink, list, and update edges of every kind."""

    # ------------------------------------------------------------------
    # Typed link entry points
    # ------------------------------------------------------------------

    def link_service(
        self,
        consumer_id: str,
        provider_id: str,
        *,
        dependency_type: str,
        environment_code: str | None = None,
        description: str | None = None,
        config: dict[str, str] | None = None,
    ) -> ServiceResult:
        """Declare that *consumer_id* depends on *provider_id* in one scope."""
        return self.link(
            EdgeKind.SERVICE,
            consumer_id,
            provider_id,
            environment_code=environment_code,
            fields={
                "dependency_type": dependency_type,
                "description": description,
                "config": config or {},
            },
        )

    def link_dependency(
        self,
        service_id: str,
        dependency_id: str,
        *,
        environment_code: str | None = None,
        config_override: dict[str, str] | None = None,
    ) -> ServiceResult:
        return self.link(
            EdgeKind.DEPENDENCY,
            service_id,
            dependency_id,
            environment_code=environment_code,
            fields={"config_override": config_override or {}},
        )

    def link_database(
        self,
        service_id: str,
        database_id: str,
        *,
        environment_code: str | None = None,
        schema_name: str | None = None,
        connection_override: dict[str, str] | None = None,
    ) -> ServiceResult:
        return self.link(
            EdgeKind.DATABASE,
            service_id,
            database_id,
            environment_code=environment_code,
            fields={"schema_name": schema_name, "connection_override": connection_override or {}},
        )

    def link_endpoint_dependency(
        self,
        endpoint_id: str,
        dependency_id: str,
        *,
        call_type: str,
        config: dict[str, Any] | None = None,
    ) -> ServiceResult:
        return self.link(
            EdgeKind.ENDPOINT_DEPENDENCY,
            endpoint_id,
            dependency_id,
            fields={"call_type": call_type, "config": config},
        )

    def link_endpoint_database(
        self,
        endpoint_id: str,
        database_id: str,
        *,
        operation_type: str,
        table_names: list[str] | None = None,
        config: dict[str, Any] | None = None,
    ) -> ServiceResult:
        return self.link(
            EdgeKind.ENDPOINT_DATABASE,
            endpoint_id,
            database_id,
            fields={"operation_type": operation_type, "table_names": table_names, "config": config},
        )

    # ------------------------------------------------------------------
    # link
    # ------------------------------------------------------------------

    @traced
    def link(
        self,
        kind: str,
        source_id: str,
        target_id: str,
        *,
        environment_code: str | None = None,
        fields: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """Create one edge of *kind* from *source_id* to *target_id*.

        Fails with NOT_FOUND naming whichever endpoint is missing,
        CONFLICT when the composite key already exists (metadata is
        ignored when comparing), INVALID_REQUEST for a self-link or a
        malformed request, and CYCLE_DETECTED when a service link would
        close a loop within its environment scope.
        """
        op = "link"
        try:
            spec = self._spec(op, kind)
            env = self._environment(op, spec, environment_code)
            values = self._metadata(op, spec, fields or {}, creating=True)
        except Rejected as exc:
            return exc.result

        if spec.kind is EdgeKind.SERVICE and source_id == target_id:
            return self._invalid(op, f"A service cannot depend on itself: {source_id}")

        key = {spec.source.column: source_id, spec.target.column: target_id}
        if spec.scoped:
            key["environment_code"] = env

        with self._catalog.transaction(exclusive=spec.lock_scope(env)) as txn:
            for end, entity_id in ((spec.source, source_id), (spec.target, target_id)):
                if not txn.exists(end.table, entity_id):
                    return self._not_found(op, end.kind, entity_id)

            if self._find(txn, spec, source_id, target_id, env) is not None:
                return self._conflict(
                    op,
                    spec.label,
                    key,
                    f"{spec.label.replace('_', ' ').capitalize()} already exists: "
                    f"{source_id} -> {target_id} in {scope_label(env)}",
                )

            if spec.kind is EdgeKind.SERVICE:
                rejected = self._check_cycle(txn, source_id, target_id, env)
                if rejected is not None:
                    return rejected

            now = now_iso()
            row = {"id": new_id(), **key, **values, "created_at": now, "updated_at": now}
            txn.insert(spec.table, row)

        logger.debug(
            "Linked %s %s -> %s in %s", spec.label, source_id, target_id, scope_label(env)
        )
        return ServiceResult(ok=True, op=op, data={"kind": spec.kind.value, **row})

    def _check_cycle(
        self,
        txn: CatalogTransaction,
        consumer_id: str,
        provider_id: str,
        env: str | None,
    ) -> ServiceResult | None:
        """Reject ``consumer -> provider`` if provider already reaches consumer."""
        with trace_span("cycle_check") as span:
            rows = txn.scan(
                service_links,
                scope_clause(service_links.c.environment_code, env),
                ordered=False,
            )
            adjacency = build_adjacency(
                (r["consumer_service_id"], r["provider_service_id"]) for r in rows
            )
            cycle = cycle_if_linked(adjacency, consumer_id, provider_id)
            if span:
                span.annotate("edges_in_scope", len(rows))
                span.annotate("cycle", cycle is not None)

        if cycle is None:
            return None

        names = []
        for service_id in cycle:
            row = txn.get(services, service_id)
            names.append(row["name"] if row else service_id)
        logger.info("Rejected service link closing cycle in %s: %s", scope_label(env), names)
        return ServiceResult(
            ok=False,
            op="link",
            error=ServiceError(
                code=ErrorCode.CYCLE_DETECTED,
                message=(
                    f"Linking would create a dependency cycle in {scope_label(env)}: "
                    + " -> ".join(names)
                ),
                detail={
                    "consumer_id": consumer_id,
                    "provider_id": provider_id,
                    "environment_code": env,
                    "path": cycle[1:],
                },
            ),
        )

    # ------------------------------------------------------------------
    # unlink / remove
    # ------------------------------------------------------------------

    @traced
    def unlink(
        self,
        kind: str,
        source_id: str,
        target_id: str,
        *,
        environment_code: str | None = None,
    ) -> ServiceResult:
        """Delete the edge with exactly this composite key.

        An unset environment only matches edges with no environment.
        """
        op = "unlink"
        try:
            spec = self._spec(op, kind)
            env = self._environment(op, spec, environment_code)
        except Rejected as exc:
            return exc.result

        with self._catalog.transaction(exclusive=spec.lock_scope(env)) as txn:
            row = self._find(txn, spec, source_id, target_id, env)
            if row is None:
                return self._not_found(
                    op, spec.label, f"{source_id} -> {target_id} in {scope_label(env)}"
                )
            txn.delete(spec.table, row["id"])

        logger.debug("Unlinked %s %s", spec.label, row["id"])
        return ServiceResult(ok=True, op=op, data={"kind": spec.kind.value, **row})

    @traced
    def remove_link(self, kind: str, edge_id: str) -> ServiceResult:
        """Delete an edge by its id."""
        op = "remove_link"
        try:
            spec = self._spec(op, kind)
        except Rejected as exc:
            return exc.result

        with self._catalog.transaction(exclusive=spec.table.name) as txn:
            row = txn.get(spec.table, edge_id)
            if row is None:
                return self._not_found(op, spec.label, edge_id)
            txn.delete(spec.table, edge_id)

        return ServiceResult(ok=True, op=op, data={"kind": spec.kind.value, **row})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @traced
    def get_link(self, kind: str, edge_id: str) -> ServiceResult:
        op = "get_link"
        try:
            spec = self._spec(op, kind)
        except Rejected as exc:
            return exc.result

        with self._catalog.transaction() as txn:
            row = txn.get(spec.table, edge_id)
            if row is None:
                return self._not_found(op, spec.label, edge_id)
            source = txn.get(spec.source.table, row[spec.source.column])
            target = txn.get(spec.target.table, row[spec.target.column])

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "kind": spec.kind.value,
                **row,
                "source": spec.source.summarize(source) if source else None,
                "target": spec.target.summarize(target) if target else None,
            },
        )

    @traced
    def list_links(
        self,
        kind: str,
        entity_id: str,
        *,
        direction: str = LinkDirection.OUTGOING,
        environment_code: str | None = None,
    ) -> ServiceResult:
        """List edges touching *entity_id*, with the counterpart resolved.

        ``outgoing`` lists edges owned by the entity (it is the source);
        ``incoming`` lists edges pointing at it.  *environment_code*
        narrows scoped kinds to one environment; None lists all scopes.
        Edges come back in insertion order.
        """
        op = "list_links"
        try:
            spec = self._spec(op, kind)
            way = parse_enum(LinkDirection, direction)
            env = self._environment(op, spec, environment_code)
        except ValueError as exc:
            return self._invalid(op, str(exc), field="direction")
        except Rejected as exc:
            return exc.result

        if way is LinkDirection.OUTGOING:
            mine, other = spec.source, spec.target
        else:
            mine, other = spec.target, spec.source
        criteria = [spec.table.c[mine.column] == entity_id]
        if spec.scoped and env is not None:
            criteria.append(spec.table.c.environment_code == env)

        with self._catalog.transaction() as txn:
            if not txn.exists(mine.table, entity_id):
                return self._not_found(op, mine.kind, entity_id)
            items = []
            for row in txn.scan(spec.table, *criteria):
                counterpart = txn.get(other.table, row[other.column])
                items.append(
                    {**row, other.kind: other.summarize(counterpart) if counterpart else None}
                )

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "kind": spec.kind.value,
                "entity_id": entity_id,
                "direction": way.value,
                "environment_code": env,
                "count": len(items),
                "items": items,
            },
        )

    # ------------------------------------------------------------------
    # update_link
    # ------------------------------------------------------------------

    @traced
    def update_link(self, kind: str, edge_id: str, *, changes: dict[str, Any]) -> ServiceResult:
        """Change edge metadata.  Key fields are rejected with INVALID_REQUEST."""
        op = "update_link"
        try:
            spec = self._spec(op, kind)
            for key in changes:
                if key in spec.key_fields:
                    raise Rejected(
                        self._invalid(
                            op,
                            f"Cannot change key field '{key}' of a {spec.label}; "
                            "unlink and link again instead",
                            field=key,
                        )
                    )
            values = self._metadata(op, spec, changes, creating=False)
        except Rejected as exc:
            return exc.result

        with self._catalog.transaction(exclusive=spec.table.name) as txn:
            if not txn.exists(spec.table, edge_id):
                return self._not_found(op, spec.label, edge_id)
            row = txn.update(spec.table, edge_id, {**values, "updated_at": now_iso()})

        return ServiceResult(
            ok=True,
            op=op,
            data={"kind": spec.kind.value, **(row or {}), "fields_changed": sorted(values)},
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _spec(self, op: str, kind: str) -> _EdgeSpec:
        try:
            return EDGE_SPECS[parse_enum(EdgeKind, kind)]
        except ValueError as exc:
            raise Rejected(self._invalid(op, str(exc), field="kind")) from None

    def _environment(self, op: str, spec: _EdgeSpec, code: str | None) -> str | None:
        if code is not None and not spec.scoped:
            raise Rejected(
                self._invalid(
                    op, f"{spec.label} edges are not environment-scoped", field="environment_code"
                )
            )
        try:
            return normalize_environment(code)
        except ValueError as exc:
            raise Rejected(self._invalid(op, str(exc), field="environment_code")) from None

    def _metadata(
        self, op: str, spec: _EdgeSpec, fields: dict[str, Any], *, creating: bool
    ) -> dict[str, Any]:
        """Validate metadata fields; fill defaults and require enum fields on create."""
        unknown = sorted(set(fields) - set(spec.defaults))
        if unknown:
            raise Rejected(
                self._invalid(
                    op, f"Unknown {spec.label} field(s): {', '.join(unknown)}", field=unknown[0]
                )
            )

        values = {**spec.defaults, **fields} if creating else dict(fields)
        for name, enum_cls in spec.enums.items():
            if name not in values:
                continue
            if values[name] is None:
                if creating:
                    raise Rejected(self._invalid(op, f"{name} is required", field=name))
                raise Rejected(self._invalid(op, f"{name} cannot be cleared", field=name))
            try:
                values[name] = parse_enum(enum_cls, values[name]).value
            except ValueError as exc:
                raise Rejected(self._invalid(op, str(exc), field=name)) from None
        return values

    @staticmethod
    def _find(
        txn: CatalogTransaction,
        spec: _EdgeSpec,
        source_id: str,
        target_id: str,
        env: str | None,
    ) -> dict[str, Any] | None:
        criteria = [
            spec.table.c[spec.source.column] == source_id,
            spec.table.c[spec.target.column] == target_id,
        ]
        if spec.scoped:
            criteria.append(scope_clause(spec.table.c.environment_code, env))
        return txn.first(spec.table, *criteria)
