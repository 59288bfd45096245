"""GraphService — read-only composite views over the catalog.

Four assembler views resolve edges into hydrated payloads with explicit
lookups, one transaction per call:

- ``global_graph``          every service plus service links (optionally
                            external dependencies too)
- ``service_neighborhood``  one service's providers and consumers
- ``service_detail``        one service's external dependencies, including
                            those declared by its endpoints
- ``endpoint_detail``       one endpoint's dependencies and databases

Two analyses run on the NetworkX graph (``self._catalog.graph``), one
environment scope at a time:

- ``deployment_order``  providers-before-consumers layering
- ``impact``            transitive consumers of one service

Edge sequences follow insertion order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import networkx as nx

from svcmap.domain.environments import normalize_environment, scope_label
from svcmap.infrastructure.database.schema import (
    databases,
    dependencies,
    endpoint_databases,
    endpoint_dependencies,
    endpoints,
    service_dependencies,
    service_links,
    services,
)
from svcmap.services._helpers import database_info, dependency_info, now_iso, service_summary
from svcmap.services.base import BaseService, Rejected
from svcmap.services.result import ServiceResult
from svcmap.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from svcmap.infrastructure.catalog import CatalogTransaction


class GraphService(BaseService):
    """Handles dependency-graph views and analyses."""

    def _scope(self, op: str, environment_code: str | None) -> str | None:
        try:
            return normalize_environment(environment_code)
        except ValueError as exc:
            raise Rejected(self._invalid(op, str(exc), field="environment_code")) from None

    # ------------------------------------------------------------------
    # global_graph
    # ------------------------------------------------------------------

    @traced
    def global_graph(
        self,
        environment_code: str | None = None,
        *,
        include_external: bool = False,
    ) -> ServiceResult:
        """Every service as a node, plus the service links in scope.

        The node set never depends on the filter: a service with no edges
        in scope is still listed.  With *environment_code* None all
        scopes are included.  *include_external* adds Dependency nodes
        and ``service_dependency`` edges.
        """
        op = "global_graph"
        try:
            env = self._scope(op, environment_code)
        except Rejected as exc:
            return exc.result

        nodes: list[dict[str, Any]] = []
        edges: list[dict[str, Any]] = []
        with self._catalog.transaction() as txn:
            service_rows = txn.scan(services)
            for row in service_rows:
                nodes.append(
                    {
                        "id": row["id"],
                        "name": row["name"],
                        "type": "service",
                        "service_type": row["service_type"],
                        "metadata": {
                            "description": row["description"] or "",
                            "owner": row["owner"],
                            "tags": row["tags"] or [],
                        },
                    }
                )

            link_filter = [] if env is None else [service_links.c.environment_code == env]
            for link in txn.scan(service_links, *link_filter):
                edges.append(
                    {
                        "id": link["id"],
                        "from": link["consumer_service_id"],
                        "to": link["provider_service_id"],
                        "type": "service_link",
                        "environment_code": link["environment_code"],
                        "metadata": {
                            "dependency_type": link["dependency_type"],
                            "description": link["description"],
                        },
                    }
                )

            if include_external:
                with trace_span("external_dependencies") as span:
                    self._add_external(txn, env, nodes, edges)
                    if span:
                        span.annotate("nodes", len(nodes) - len(service_rows))

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "nodes": nodes,
                "edges": edges,
                "metadata": {
                    "environment_code": env,
                    "total_services": len(service_rows),
                    "total_edges": len(edges),
                    "generated_at": now_iso(),
                },
            },
        )

    @staticmethod
    def _add_external(
        txn: CatalogTransaction,
        env: str | None,
        nodes: list[dict[str, Any]],
        edges: list[dict[str, Any]],
    ) -> None:
        link_filter = [] if env is None else [service_dependencies.c.environment_code == env]
        seen: set[str] = set()
        for link in txn.scan(service_dependencies, *link_filter):
            dep = txn.get(dependencies, link["dependency_id"])
            if dep is None:
                continue
            if dep["id"] not in seen:
                seen.add(dep["id"])
                nodes.append(
                    {
                        "id": dep["id"],
                        "name": dep["name"],
                        "type": "dependency",
                        "service_type": None,
                        "metadata": {"dependency_type": dep["dependency_type"]},
                    }
                )
            edges.append(
                {
                    "id": link["id"],
                    "from": link["service_id"],
                    "to": dep["id"],
                    "type": "service_dependency",
                    "environment_code": link["environment_code"],
                    "metadata": {
                        "dependency_type": dep["dependency_type"],
                        "version": dep["version"],
                    },
                }
            )

    # ------------------------------------------------------------------
    # service_neighborhood
    # ------------------------------------------------------------------

    @traced
    def service_neighborhood(
        self, service_id: str, environment_code: str | None = None
    ) -> ServiceResult:
        """Providers (dependencies) and consumers (dependents) of one service.

        *environment_code* None includes every scope.
        """
        op = "service_neighborhood"
        try:
            env = self._scope(op, environment_code)
        except Rejected as exc:
            return exc.result

        scope = [] if env is None else [service_links.c.environment_code == env]
        with self._catalog.transaction() as txn:
            service = txn.get(services, service_id)
            if service is None:
                return self._not_found(op, "service", service_id)

            outgoing = txn.scan(
                service_links, service_links.c.consumer_service_id == service_id, *scope
            )
            incoming = txn.scan(
                service_links, service_links.c.provider_service_id == service_id, *scope
            )
            deps = [self._neighbor(txn, link, "provider_service_id") for link in outgoing]
            dependents = [self._neighbor(txn, link, "consumer_service_id") for link in incoming]

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "service": service_summary(service),
                "environment_code": env,
                "dependencies": deps,
                "dependents": dependents,
            },
        )

    @staticmethod
    def _neighbor(txn: CatalogTransaction, link: dict[str, Any], column: str) -> dict[str, Any]:
        other = txn.get(services, link[column])
        return {
            "link_id": link["id"],
            "environment_code": link["environment_code"],
            "dependency_type": link["dependency_type"],
            "description": link["description"],
            "service": service_summary(other) if other else None,
        }

    # ------------------------------------------------------------------
    # service_detail / endpoint_detail
    # ------------------------------------------------------------------

    @traced
    def service_detail(self, service_id: str) -> ServiceResult:
        """External dependencies of a service and of each of its endpoints."""
        op = "service_detail"
        with self._catalog.transaction() as txn:
            service = txn.get(services, service_id)
            if service is None:
                return self._not_found(op, "service", service_id)

            service_deps = []
            for link in txn.scan(
                service_dependencies, service_dependencies.c.service_id == service_id
            ):
                dep = txn.get(dependencies, link["dependency_id"])
                if dep is not None:
                    service_deps.append(
                        {**dependency_info(dep), "environment_code": link["environment_code"]}
                    )

            endpoint_deps = []
            for endpoint in txn.scan(endpoints, endpoints.c.service_id == service_id):
                for call in txn.scan(
                    endpoint_dependencies, endpoint_dependencies.c.endpoint_id == endpoint["id"]
                ):
                    dep = txn.get(dependencies, call["dependency_id"])
                    if dep is None:
                        continue
                    endpoint_deps.append(
                        {
                            "endpoint_id": endpoint["id"],
                            "endpoint_path": endpoint["path"],
                            "endpoint_method": endpoint["method"],
                            "call_type": call["call_type"],
                            "dependency": dependency_info(dep),
                        }
                    )

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "service_id": service_id,
                "service_name": service["name"],
                "service_dependencies": service_deps,
                "endpoint_dependencies": endpoint_deps,
            },
        )

    @traced
    def endpoint_detail(self, endpoint_id: str) -> ServiceResult:
        """Dependencies and databases one endpoint touches, fully hydrated."""
        op = "endpoint_detail"
        with self._catalog.transaction() as txn:
            endpoint = txn.get(endpoints, endpoint_id)
            if endpoint is None:
                return self._not_found(op, "endpoint", endpoint_id)

            deps = []
            for call in txn.scan(
                endpoint_dependencies, endpoint_dependencies.c.endpoint_id == endpoint_id
            ):
                dep = txn.get(dependencies, call["dependency_id"])
                if dep is not None:
                    deps.append({**dependency_info(dep), "call_type": call["call_type"]})

            dbs = []
            for access in txn.scan(
                endpoint_databases, endpoint_databases.c.endpoint_id == endpoint_id
            ):
                db = txn.get(databases, access["database_id"])
                if db is not None:
                    dbs.append(
                        {
                            **database_info(db),
                            "operation_type": access["operation_type"],
                            "table_names": access["table_names"] or [],
                        }
                    )

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "endpoint_id": endpoint_id,
                "service_id": endpoint["service_id"],
                "path": endpoint["path"],
                "method": endpoint["method"],
                "summary": endpoint["summary"],
                "dependencies": deps,
                "databases": dbs,
            },
        )

    # ------------------------------------------------------------------
    # deployment_order: topological generations of one scope
    # ------------------------------------------------------------------

    @traced
    def deployment_order(self, environment_code: str | None = None) -> ServiceResult:
        """Layer services so every provider comes before its consumers.

        *environment_code* selects exactly one scope; None is the global
        (unset) scope.  Services within a layer are sorted by name.
        """
        op = "deployment_order"
        try:
            env = self._scope(op, environment_code)
        except Rejected as exc:
            return exc.result

        g = self._catalog.graph.scope_graph(env)
        try:
            # Edges run consumer -> provider, so reverse to put providers first.
            generations = list(nx.topological_generations(g.reverse(copy=False)))
        except nx.NetworkXUnfeasible:
            return self._invalid(
                op,
                f"Scope {scope_label(env)} contains a dependency cycle; run 'svcmap check'",
                field="environment_code",
            )

        layers = [
            sorted(
                ({"id": n, "name": g.nodes[n].get("name", "")} for n in layer),
                key=lambda item: item["name"],
            )
            for layer in generations
        ]
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "environment_code": env,
                "count": g.number_of_nodes(),
                "layers": layers,
            },
        )

    # ------------------------------------------------------------------
    # impact: transitive consumers
    # ------------------------------------------------------------------

    @traced
    def impact(self, service_id: str, environment_code: str | None = None) -> ServiceResult:
        """Services that directly or transitively depend on *service_id*.

        ``depth`` is the shortest number of links from the consumer down
        to *service_id*.  None selects the global (unset) scope.
        """
        op = "impact"
        try:
            env = self._scope(op, environment_code)
        except Rejected as exc:
            return exc.result

        g = self._catalog.graph.scope_graph(env)
        if service_id not in g:
            return self._not_found(op, "service", service_id)

        distances = nx.single_source_shortest_path_length(g.reverse(copy=False), service_id)
        items = sorted(
            (
                {"id": node, "name": g.nodes[node].get("name", ""), "depth": depth}
                for node, depth in distances.items()
                if node != service_id
            ),
            key=lambda item: (item["depth"], item["name"]),
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "service_id": service_id,
                "environment_code": env,
                "count": len(items),
                "items": items,
            },
        )
