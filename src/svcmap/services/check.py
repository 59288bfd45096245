"""CheckService — read-only integrity report.

The relationship engine keeps the catalog consistent on its own; these
checks find damage done by rows written around it (manual SQL, imports
with foreign keys off).  Three categories:

- graph health: directed cycles and self-loops per environment scope
- edge keys: duplicate composite keys the store cannot reject itself
  (SQLite treats NULL environment codes as distinct)
- references: edges pointing at entities that no longer exist
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any

import networkx as nx

from svcmap.domain.environments import scope_label
from svcmap.services.base import BaseService
from svcmap.services.relationships import EDGE_SPECS
from svcmap.services.result import ServiceResult
from svcmap.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from svcmap.infrastructure.catalog import CatalogTransaction

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"

CAT_GRAPH = "graph_health"
CAT_KEYS = "edge_keys"
CAT_REFERENCES = "references"


class CheckService(BaseService):
    """Handles catalog integrity checking."""

    @traced
    def check(self) -> ServiceResult:
        """Report integrity issues without modifying anything."""
        issues: list[dict[str, Any]] = []
        with self._catalog.transaction() as txn:
            with trace_span("edge_keys"):
                issues.extend(self._check_edge_keys(txn))
            with trace_span("references"):
                issues.extend(self._check_references(txn))
        # The graph reflects committed state, so it is read after the block.
        with trace_span("graph_health") as span:
            graph_issues = self._check_graph_health()
            if span:
                span.annotate("scopes", len(self._catalog.graph.scopes()))
        issues.extend(graph_issues)

        return ServiceResult(
            ok=True,
            op="check",
            data={
                "issues": issues,
                "count": len(issues),
                "errors": sum(1 for i in issues if i["severity"] == SEVERITY_ERROR),
            },
        )

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def _check_graph_health(self) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        engine = self._catalog.graph
        for env in engine.scopes():
            g = engine.scope_graph(env)
            for node, _ in nx.selfloop_edges(g):
                issues.append(
                    {
                        "category": CAT_GRAPH,
                        "severity": SEVERITY_ERROR,
                        "environment_code": env,
                        "service_ids": [node],
                        "message": (
                            f"Service {g.nodes[node].get('name', node)} depends on itself "
                            f"in {scope_label(env)}"
                        ),
                    }
                )

            g.remove_edges_from(list(nx.selfloop_edges(g)))
            for component in nx.strongly_connected_components(g):
                if len(component) < 2:
                    continue
                cycle = [u for u, _ in nx.find_cycle(g.subgraph(component))]
                names = [g.nodes[n].get("name", n) for n in cycle]
                issues.append(
                    {
                        "category": CAT_GRAPH,
                        "severity": SEVERITY_ERROR,
                        "environment_code": env,
                        "service_ids": cycle,
                        "message": (
                            f"Dependency cycle in {scope_label(env)}: "
                            + " -> ".join([*names, names[0]])
                        ),
                    }
                )
        return issues

    @staticmethod
    def _check_edge_keys(txn: CatalogTransaction) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        for spec in EDGE_SPECS.values():
            columns = [spec.source.column, spec.target.column]
            if spec.scoped:
                columns.append("environment_code")
            counts = Counter(
                tuple(row[c] for c in columns) for row in txn.scan(spec.table, ordered=False)
            )
            for key, count in counts.items():
                if count < 2:
                    continue
                issues.append(
                    {
                        "category": CAT_KEYS,
                        "severity": SEVERITY_ERROR,
                        "kind": spec.kind.value,
                        "key": dict(zip(columns, key, strict=True)),
                        "message": (
                            f"{count} {spec.label} rows share one key: "
                            + " / ".join(map(str, key))
                        ),
                    }
                )
        return issues

    @staticmethod
    def _check_references(txn: CatalogTransaction) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        known: dict[str, set[str]] = {}
        for spec in EDGE_SPECS.values():
            for end in (spec.source, spec.target):
                if end.table.name not in known:
                    known[end.table.name] = {
                        row["id"] for row in txn.scan(end.table, ordered=False)
                    }
            for row in txn.scan(spec.table):
                for end in (spec.source, spec.target):
                    if row[end.column] in known[end.table.name]:
                        continue
                    issues.append(
                        {
                            "category": CAT_REFERENCES,
                            "severity": SEVERITY_WARNING,
                            "kind": spec.kind.value,
                            "edge_id": row["id"],
                            "message": (
                                f"{spec.label} {row['id']} points at missing "
                                f"{end.kind} {row[end.column]}"
                            ),
                        }
                    )
        return issues
