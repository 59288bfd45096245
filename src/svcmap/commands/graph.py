"""Command group: dependency-graph views and analysis."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from svcmap.commands._base import SvcGroup
from svcmap.services.graph import GraphService

if TYPE_CHECKING:
    from svcmap.commands._context import AppContext

_GRAPH_EXAMPLES = """\
  svcmap graph global --env prod
  svcmap graph global --external
  svcmap graph neighborhood 6f1c... --env prod
  svcmap graph service 6f1c...
  svcmap graph endpoint 41aa...
  svcmap graph order --env prod
  svcmap graph impact 9d02... --env prod"""


@click.group(cls=SvcGroup, examples=_GRAPH_EXAMPLES)
def graph() -> None:
    """View and analyze the service dependency graph."""


@graph.command(
    "global",
    examples="""\
  svcmap graph global
  svcmap graph global --env staging --external
  svcmap --json graph global > graph.json""",
)
@click.option("--env", "environment_code", default=None, help="Only this scope (default: all).")
@click.option("--external", is_flag=True, help="Include external dependencies as nodes.")
@click.pass_obj
def global_cmd(app: AppContext, environment_code: str | None, external: bool) -> None:
    """Every service plus the links between them."""
    app.emit(
        GraphService(app.catalog).global_graph(environment_code, include_external=external)
    )


@graph.command()
@click.argument("service_id")
@click.option("--env", "environment_code", default=None, help="Only this scope (default: all).")
@click.pass_obj
def neighborhood(app: AppContext, service_id: str, environment_code: str | None) -> None:
    """Direct providers and consumers of one service."""
    app.emit(GraphService(app.catalog).service_neighborhood(service_id, environment_code))


@graph.command("service")
@click.argument("service_id")
@click.pass_obj
def service_cmd(app: AppContext, service_id: str) -> None:
    """External dependencies used by a service and by its endpoints."""
    app.emit(GraphService(app.catalog).service_detail(service_id))


@graph.command("endpoint")
@click.argument("endpoint_id")
@click.pass_obj
def endpoint_cmd(app: AppContext, endpoint_id: str) -> None:
    """Dependencies and databases one endpoint touches."""
    app.emit(GraphService(app.catalog).endpoint_detail(endpoint_id))


@graph.command(
    examples="""\
  svcmap graph order
  svcmap graph order --env prod""",
)
@click.option(
    "--env", "environment_code", default=None, help="Scope to order (default: the global scope)."
)
@click.pass_obj
def order(app: AppContext, environment_code: str | None) -> None:
    """Deployment layers: providers before the services that consume them."""
    app.emit(GraphService(app.catalog).deployment_order(environment_code))


@graph.command()
@click.argument("service_id")
@click.option(
    "--env", "environment_code", default=None, help="Scope to walk (default: the global scope)."
)
@click.pass_obj
def impact(app: AppContext, service_id: str, environment_code: str | None) -> None:
    """Services that directly or transitively depend on SERVICE_ID."""
    app.emit(GraphService(app.catalog).impact(service_id, environment_code))
