"""GraphEngine — lazy-built NetworkX graph of service-to-service links.

Rebuilt per invocation, no cross-invocation cache, and invalidated by
the Catalog whenever a transaction ends.  Commands that don't need graph
analytics never build it.

The graph is a ``MultiDiGraph`` keyed by link id: the same consumer ->
provider pair may appear once per environment scope.  Edges point from
consumer to provider.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import networkx as nx

from svcmap.domain.environments import same_scope

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

type _Graph = nx.MultiDiGraph


class GraphEngine:
    """Lazy-loading graph engine backed by the ``service_links`` table."""

    def __init__(self, db: Engine) -> None:
        self._db = db
        self._graph: _Graph | None = None

    @property
    def graph(self) -> _Graph:
        """Return the full multi-scope graph, building from DB on first access."""
        if self._graph is None:
            self._graph = self._build_from_db()
        return self._graph

    def invalidate(self) -> None:
        """Clear the cached graph, forcing rebuild on next access."""
        self._graph = None

    def scopes(self) -> list[str | None]:
        """Distinct environment codes present on links (None = global)."""
        seen: dict[str | None, None] = {}
        for _, _, env in self.graph.edges(data="environment_code"):
            seen.setdefault(env, None)
        return list(seen)

    def scope_graph(self, environment_code: str | None) -> nx.DiGraph:
        """Simple DiGraph of one environment scope (exact match on code).

        Every service is present as a node, so isolated services appear
        in layerings and dependent sets.
        """
        g = self.graph
        scoped = nx.DiGraph()
        scoped.add_nodes_from(g.nodes(data=True))
        for consumer, provider, attrs in g.edges(data=True):
            if same_scope(attrs.get("environment_code"), environment_code):
                scoped.add_edge(consumer, provider, **attrs)
        return scoped

    def _build_from_db(self) -> _Graph:
        """Load all services as nodes, then every link as a keyed edge."""
        from sqlalchemy import select

        from svcmap.infrastructure.database.schema import INSERTION_ORDER, service_links, services

        g: _Graph = nx.MultiDiGraph()
        with self._db.connect() as conn:
            for row in conn.execute(
                select(services.c.id, services.c.name, services.c.service_type).order_by(
                    INSERTION_ORDER
                )
            ):
                g.add_node(row.id, name=row.name, service_type=row.service_type)

            for row in conn.execute(select(service_links).order_by(INSERTION_ORDER)):
                g.add_edge(
                    row.consumer_service_id,
                    row.provider_service_id,
                    key=row.id,
                    environment_code=row.environment_code,
                    dependency_type=row.dependency_type,
                )
        return g
