"""Command group: service endpoints."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import click

from svcmap.commands._base import SvcGroup, parse_json_object, present
from svcmap.domain.types import EndpointMethod
from svcmap.services.endpoint import EndpointService

if TYPE_CHECKING:
    from svcmap.commands._context import AppContext

_METHODS = click.Choice([m.value for m in EndpointMethod], case_sensitive=False)

_ENDPOINT_EXAMPLES = """\
  svcmap endpoint add 6f1c... POST /orders --summary "Place an order" \\
      --call 0b7e...=external --db 9a3d...=write:orders,order_items
  svcmap endpoint add 6f1c... GET /orders/{id} --auth '{"type": "bearer"}'
  svcmap endpoint list 6f1c... --method get
  svcmap endpoint replace 6f1c... GET /health --summary "Liveness probe"
  svcmap endpoint update 41aa... --path /v2/orders"""


def _parse_calls(
    _ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> list[dict[str, Any]]:
    calls = []
    for item in values:
        dependency_id, sep, call_type = item.partition("=")
        if not sep or not dependency_id or not call_type:
            raise click.BadParameter(f"expected DEPENDENCY_ID=CALL_TYPE, got {item!r}", param=param)
        calls.append({"dependency_id": dependency_id, "call_type": call_type})
    return calls


def _parse_db_access(
    _ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> list[dict[str, Any]]:
    accesses = []
    for item in values:
        database_id, sep, rest = item.partition("=")
        if not sep or not database_id or not rest:
            raise click.BadParameter(
                f"expected DATABASE_ID=OPERATION[:TABLE,...], got {item!r}", param=param
            )
        operation, _, tables = rest.partition(":")
        accesses.append(
            {
                "database_id": database_id,
                "operation_type": operation,
                "table_names": [t for t in tables.split(",") if t] or None,
            }
        )
    return accesses


def _document_options[**P, R](func: Callable[P, R]) -> Callable[P, R]:
    """Apply the document fields shared by ``add``, ``update``, and ``replace``."""
    func = click.option("--metadata", callback=parse_json_object, help="JSON object.")(func)
    func = click.option("--rate-limit", callback=parse_json_object, help="JSON object.")(func)
    func = click.option("--auth", callback=parse_json_object, help="JSON object.")(func)
    func = click.option(
        "--response-schemas",
        callback=parse_json_object,
        help='JSON object keyed by status code, e.g. \'{"200": {...}}\'.',
    )(func)
    func = click.option("--request-schema", callback=parse_json_object, help="JSON object.")(func)
    func = click.option("--summary", default=None)(func)
    return func


@click.group(cls=SvcGroup, examples=_ENDPOINT_EXAMPLES)
def endpoint() -> None:
    """Manage the endpoints a service exposes."""


@endpoint.command()
@click.argument("service_id")
@click.argument("method", type=_METHODS, metavar="METHOD")
@click.argument("path")
@_document_options
@click.option(
    "--call",
    "calls",
    multiple=True,
    callback=_parse_calls,
    help="Dependency call DEPENDENCY_ID=internal|external (repeatable).",
)
@click.option(
    "--db",
    "databases",
    multiple=True,
    callback=_parse_db_access,
    help="Database access DATABASE_ID=read|write|read_write[:TABLE,...] (repeatable).",
)
@click.pass_obj
def add(
    app: AppContext,
    service_id: str,
    method: str,
    path: str,
    calls: list[dict[str, Any]],
    databases: list[dict[str, Any]],
    **document: Any,
) -> None:
    """Add an endpoint, optionally with its dependency calls and database accesses."""
    app.emit(
        EndpointService(app.catalog).create_endpoint(
            service_id,
            method=method,
            path=path,
            calls=calls,
            databases=databases,
            **{**present(**document), "summary": document["summary"] or ""},
        )
    )


@endpoint.command()
@click.argument("endpoint_id")
@click.pass_obj
def get(app: AppContext, endpoint_id: str) -> None:
    """Show one endpoint."""
    app.emit(EndpointService(app.catalog).get_endpoint(endpoint_id))


@endpoint.command("list")
@click.argument("service_id")
@click.option("--method", type=_METHODS, default=None)
@click.pass_obj
def list_cmd(app: AppContext, service_id: str, method: str | None) -> None:
    """List a service's endpoints."""
    app.emit(EndpointService(app.catalog).list_endpoints(service_id, method=method))


@endpoint.command()
@click.argument("endpoint_id")
@click.option("--method", type=_METHODS, default=None)
@click.option("--path", default=None)
@_document_options
@click.pass_obj
def update(
    app: AppContext,
    endpoint_id: str,
    method: str | None,
    path: str | None,
    **document: Any,
) -> None:
    """Change fields of an endpoint."""
    changes = present(method=method, path=path, **document)
    if not changes:
        raise click.UsageError("Nothing to update; pass at least one option.")
    app.emit(EndpointService(app.catalog).update_endpoint(endpoint_id, changes=changes))


@endpoint.command()
@click.argument("service_id")
@click.argument("method", type=_METHODS, metavar="METHOD")
@click.argument("path")
@_document_options
@click.pass_obj
def replace(app: AppContext, service_id: str, method: str, path: str, **document: Any) -> None:
    """Create or overwrite the endpoint at METHOD PATH; omitted fields are cleared."""
    app.emit(
        EndpointService(app.catalog).replace_endpoint(
            service_id, method, path, present(**document)
        )
    )


@endpoint.command()
@click.argument("endpoint_id")
@click.pass_obj
def delete(app: AppContext, endpoint_id: str) -> None:
    """Delete an endpoint and its links."""
    app.emit(EndpointService(app.catalog).delete_endpoint(endpoint_id))
