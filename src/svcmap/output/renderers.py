"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from svcmap.domain.environments import scope_label
from svcmap.output.console import create_console, get_output, style_for_service_type

if TYPE_CHECKING:
    from collections.abc import Callable

    from rich.console import Console

    from svcmap.services.result import ServiceResult

    type Renderer = Callable[..., None]


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
        if verbose:
            _render_meta(console, result)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode: ids, one per line."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    if result.op == "generate_openapi":
        if "content" not in result.data:
            return str(result.data.get("output_file", ""))
        return str(result.data["content"]).rstrip("\n")

    items = result.data.get("items")
    if isinstance(items, list):
        return "\n".join(
            str(item["id"]) for item in items if isinstance(item, dict) and "id" in item
        )
    if "id" in result.data:
        return str(result.data["id"])
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text.assemble(("OK", "svc.ok"), (f"  {result.op}", "svc.op")))


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="svc.key")
    if isinstance(value, (dict, list)):
        v = Text(json.dumps(value, separators=(",", ":")))
    elif key == "id" or key.endswith("_id"):
        v = Text(str(value), style="svc.id")
    elif key == "name":
        v = Text(str(value), style="svc.name")
    elif key == "environment_code":
        v = Text(scope_label(value), style="svc.env")
    else:
        v = Text(str(value))
    console.print(Text.assemble(k, v))


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(console: Console, span_data: dict[str, Any], indent: int = 4) -> None:
    prefix = " " * indent
    duration = span_data.get("duration_ms", 0.0)
    style = "bold red" if duration > 1000 else "yellow" if duration > 100 else "dim"
    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {span_data.get('name', '?')}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    console.print(line)
    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _table(*columns: str) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    for col in columns:
        if col == "ID":
            table.add_column(col, style="svc.id", no_wrap=True)
        elif col == "Name":
            table.add_column(col, style="svc.name")
        elif col == "Env":
            table.add_column(col, style="svc.env")
        else:
            table.add_column(col)
    return table


def _heading(console: Console, name: Any, entity_id: Any) -> None:
    console.print(Text(str(name), style="svc.name"), Text(str(entity_id), style="svc.id"))


def _footer(console: Console, count: int, noun: str, plural: str | None = None) -> None:
    console.print(f"\n{count} {noun if count == 1 else plural or noun + 's'}")


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    code = f" [{err.code}]" if err else ""
    console.print(
        Text("ERROR", style="svc.error"),
        Text(f"  {result.op}{code}", style="svc.op"),
        "—",
        Text(msg),
    )

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Mutation / record renderers ───────────────────────────────────────


_RECORD_SKIP = frozenset({"created_at", "updated_at"})


def _render_record(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Status line plus every field; timestamps only in verbose mode."""
    _status_line(console, result)
    for key, value in result.data.items():
        if key in _RECORD_SKIP and not verbose:
            continue
        if value is None and not verbose:
            continue
        _field(console, key, value)


def _render_service(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render one service as a panel."""
    d = result.data
    lines = [
        f"type: {d.get('service_type')}",
        f"owner: {d.get('owner')}",
    ]
    if d.get("description"):
        lines.append(f"description: {d['description']}")
    if d.get("tags"):
        lines.append(f"tags: {', '.join(d['tags'])}")
    flags = [name for name in ("supports_database", "proxy") if d.get(name)]
    if flags:
        lines.append(f"flags: {', '.join(flags)}")
    if verbose:
        lines.append(f"created: {d.get('created_at')}")
        lines.append(f"updated: {d.get('updated_at')}")

    style = style_for_service_type(str(d.get("service_type", "")))
    console.print(
        Panel(
            "\n".join(lines),
            title=f"{d.get('name', '?')} — {d.get('id', '?')}",
            border_style=style or "dim",
            expand=False,
        )
    )


# ── List renderers ────────────────────────────────────────────────────


def _render_services(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    table = _table("ID", "Name", "Type", "Owner", "Tags")
    for item in items:
        service_type = str(item.get("service_type", ""))
        table.add_row(
            str(item["id"]),
            str(item["name"]),
            Text(service_type, style=style_for_service_type(service_type)),
            str(item.get("owner", "")),
            ", ".join(item.get("tags") or []),
        )
    console.print(table)
    _footer(console, result.data.get("count", len(items)), "service")


def _render_environments(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    table = _table("Env", "Display Name", "Host", "Status")
    for item in items:
        table.add_row(item["code"], item["display_name"], item["host"], item["status"])
    console.print(table)
    _footer(console, len(items), "environment")


def _render_dependencies(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    table = _table("ID", "Name", "Version", "Type")
    for item in items:
        table.add_row(item["id"], item["name"], item["version"], item["dependency_type"])
    console.print(table)
    _footer(console, len(items), "dependency", "dependencies")


def _render_databases(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    table = _table("ID", "Name", "Type", "Connection")
    for item in items:
        table.add_row(item["id"], item["name"], item["database_type"], item["connection_string"])
    console.print(table)
    _footer(console, len(items), "database")


def _render_endpoints(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    table = _table("ID", "Method", "Path", "Summary")
    for item in items:
        table.add_row(item["id"], item["method"], item["path"], item.get("summary") or "")
    console.print(table)
    _footer(console, len(items), "endpoint")


def _counterpart_label(item: dict[str, Any]) -> str:
    for key in ("service", "dependency", "database", "endpoint"):
        other = item.get(key)
        if isinstance(other, dict):
            if key == "endpoint":
                return f"{other['method']} {other['path']}"
            if key == "dependency":
                return f"{other['name']}@{other['version']}"
            return str(other["name"])
    return "?"


def _render_links(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    items = d.get("items", [])
    arrow = "->" if d.get("direction") == "outgoing" else "<-"
    console.print(
        f"[bold]{d.get('kind')}[/bold] links {arrow} [svc.id]{d.get('entity_id')}[/svc.id]"
    )
    table = _table("ID", "Counterpart", "Env", "Type")
    for item in items:
        edge_type = (
            item.get("dependency_type") or item.get("call_type") or item.get("operation_type") or ""
        )
        table.add_row(
            item["id"],
            _counterpart_label(item),
            scope_label(item.get("environment_code")),
            str(edge_type),
        )
    console.print(table)
    _footer(console, len(items), "link")


# ── Graph renderers ───────────────────────────────────────────────────


def _render_global_graph(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    names = {node["id"]: node["name"] for node in d.get("nodes", [])}
    meta = d.get("metadata", {})
    table = _table("From", "To", "Env", "Kind", "Type")
    for edge in d.get("edges", []):
        table.add_row(
            names.get(edge["from"], edge["from"]),
            names.get(edge["to"], edge["to"]),
            scope_label(edge.get("environment_code")),
            edge["type"],
            str(edge["metadata"].get("dependency_type", "")),
        )
    console.print(table)
    total = meta.get("total_services", len(names))
    summary = f"\n{total} services, {meta.get('total_edges', 0)} edges"
    if meta.get("environment_code") is not None:
        summary += f" in [svc.env]{meta['environment_code']}[/svc.env]"
    console.print(summary)


def _neighbor_rows(console: Console, title: str, neighbors: list[dict[str, Any]]) -> None:
    console.print(f"\n[bold]{title}[/bold] ({len(neighbors)})")
    for n in neighbors:
        svc = n.get("service") or {}
        console.print(
            f"  [svc.name]{svc.get('name', '?')}[/svc.name]  "
            f"{n.get('dependency_type')}  "
            f"[svc.env]{scope_label(n.get('environment_code'))}[/svc.env]"
        )


def _render_neighborhood(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    service = d.get("service", {})
    _heading(console, service.get("name"), service.get("id"))
    _neighbor_rows(console, "depends on", d.get("dependencies", []))
    _neighbor_rows(console, "used by", d.get("dependents", []))


def _render_service_detail(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    d = result.data
    _heading(console, d.get("service_name"), d.get("service_id"))
    deps = d.get("service_dependencies", [])
    console.print(f"\n[bold]service dependencies[/bold] ({len(deps)})")
    for dep in deps:
        console.print(
            f"  {dep['name']}@{dep['version']}  {dep['type']}  "
            f"[svc.env]{scope_label(dep.get('environment_code'))}[/svc.env]"
        )
    calls = d.get("endpoint_dependencies", [])
    console.print(f"\n[bold]endpoint dependencies[/bold] ({len(calls)})")
    for call in calls:
        dep = call["dependency"]
        console.print(
            f"  {call['endpoint_method']} {call['endpoint_path']}  ->  "
            f"{dep['name']}@{dep['version']}  {call.get('call_type', '')}"
        )


def _render_endpoint_detail(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    d = result.data
    console.print(f"[bold]{d.get('method')} {d.get('path')}[/bold]  {d.get('summary') or ''}")
    deps = d.get("dependencies", [])
    console.print(f"\n[bold]dependencies[/bold] ({len(deps)})")
    for dep in deps:
        console.print(
            f"  {dep['name']}@{dep['version']}  {dep['type']}  {dep.get('call_type', '')}"
        )
    dbs = d.get("databases", [])
    console.print(f"\n[bold]databases[/bold] ({len(dbs)})")
    for db in dbs:
        tables = ", ".join(db.get("table_names") or [])
        console.print(
            f"  {db['name']}  {db['type']}  {db.get('operation_type', '')}"
            + (escape(f"  [{tables}]") if tables else "")
        )


def _render_deployment_order(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    d = result.data
    scope = scope_label(d.get("environment_code"))
    console.print(f"Deployment order for [svc.env]{scope}[/svc.env]")
    for index, layer in enumerate(d.get("layers", []), start=1):
        names = ", ".join(item["name"] for item in layer)
        console.print(f"  {index:>3}. {names}")


def _render_impact(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    items = d.get("items", [])
    if not items:
        console.print(f"Nothing depends on [svc.id]{d.get('service_id')}[/svc.id].")
        return
    table = _table("ID", "Name", "Depth")
    for item in items:
        table.add_row(item["id"], item["name"], str(item["depth"]))
    console.print(table)
    _footer(console, len(items), "affected service")


# ── Check / export renderers ──────────────────────────────────────────


def _render_check(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render check results with issues grouped by category."""
    issues = result.data.get("issues", [])
    if not issues:
        console.print("[svc.ok]OK[/svc.ok]  No issues found.")
        return

    severity_styles = {"error": "svc.error", "warning": "svc.warning"}
    by_category: dict[str, list[dict[str, Any]]] = {}
    for issue in issues:
        by_category.setdefault(str(issue.get("category", "unknown")), []).append(issue)

    for cat, cat_issues in by_category.items():
        console.print(f"\n[bold]{cat}[/bold]")
        for issue in cat_issues:
            sev = str(issue.get("severity", "warning"))
            style = severity_styles.get(sev, "")
            prefix = f"[{style}]{sev}[/{style}]" if style else sev
            console.print(f"  {prefix}: {escape(str(issue.get('message', '')))}")

    errors = sum(1 for i in issues if i.get("severity") == "error")
    console.print(f"\n{errors} errors, {len(issues) - errors} warnings")


def _render_openapi(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    if "content" not in result.data:
        _status_line(console, result)
        for key in ("service_id", "environment_code", "format", "endpoints", "output_file"):
            _field(console, key, result.data.get(key))
        return
    # Raw document, no markup: the output is meant to be redirected to a file.
    console.print(
        str(result.data["content"]).rstrip("\n"),
        markup=False,
        emoji=False,
        highlight=False,
        soft_wrap=True,
    )


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Renderer] = {
    # Registry
    "create_service": _render_record,
    "update_service": _render_record,
    "delete_service": _render_record,
    "get_service": _render_service,
    "list_services": _render_services,
    "set_environment": _render_record,
    "get_environment": _render_record,
    "delete_environment": _render_record,
    "list_environments": _render_environments,
    "create_dependency": _render_record,
    "get_dependency": _render_record,
    "update_dependency": _render_record,
    "delete_dependency": _render_record,
    "list_dependencies": _render_dependencies,
    "create_database": _render_record,
    "get_database": _render_record,
    "update_database": _render_record,
    "delete_database": _render_record,
    "list_databases": _render_databases,
    "create_endpoint": _render_record,
    "get_endpoint": _render_record,
    "update_endpoint": _render_record,
    "delete_endpoint": _render_record,
    "replace_endpoint": _render_record,
    "list_endpoints": _render_endpoints,
    # Relationships
    "link": _render_record,
    "unlink": _render_record,
    "remove_link": _render_record,
    "update_link": _render_record,
    "get_link": _render_record,
    "list_links": _render_links,
    # Graph
    "global_graph": _render_global_graph,
    "service_neighborhood": _render_neighborhood,
    "service_detail": _render_service_detail,
    "endpoint_detail": _render_endpoint_detail,
    "deployment_order": _render_deployment_order,
    "impact": _render_impact,
    # Check / export
    "check": _render_check,
    "generate_openapi": _render_openapi,
}
