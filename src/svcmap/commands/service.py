"""Command group: service registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from svcmap.commands._base import SvcGroup, present
from svcmap.domain.types import ServiceType
from svcmap.services.catalog import CatalogService

if TYPE_CHECKING:
    from svcmap.commands._context import AppContext

_SERVICE_TYPES = click.Choice([t.value for t in ServiceType], case_sensitive=False)

_SERVICE_EXAMPLES = """\
  svcmap service add checkout --owner payments-team --tag web --tag critical
  svcmap service add auth-lib --owner platform --type library
  svcmap service list --owner payments-team
  svcmap service get 6f1c...
  svcmap service update 6f1c... --name checkout-v2
  svcmap service delete 6f1c..."""


@click.group(cls=SvcGroup, examples=_SERVICE_EXAMPLES)
def service() -> None:
    """Register and manage services."""


@service.command(
    examples="""\
  svcmap service add checkout --owner payments-team
  svcmap service add edge --owner infra --type proxy --proxy
  svcmap --json service add reports --owner data --type job --tag nightly"""
)
@click.argument("name")
@click.option("--owner", required=True, help="Owning team or person.")
@click.option(
    "--type", "service_type", type=_SERVICE_TYPES, default="APPLICATION", help="Service type."
)
@click.option("--description", default=None, help="Free-text description.")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable).")
@click.option("--supports-database", is_flag=True, help="Service owns a database.")
@click.option("--proxy", is_flag=True, help="Service fronts other services.")
@click.pass_obj
def add(
    app: AppContext,
    name: str,
    owner: str,
    service_type: str,
    description: str | None,
    tags: tuple[str, ...],
    supports_database: bool,
    proxy: bool,
) -> None:
    """Register a new service."""
    app.emit(
        CatalogService(app.catalog).create_service(
            name,
            owner=owner,
            service_type=service_type,
            description=description,
            tags=list(tags),
            supports_database=supports_database,
            proxy=proxy,
        )
    )


@service.command()
@click.argument("service_id")
@click.pass_obj
def get(app: AppContext, service_id: str) -> None:
    """Show one service."""
    app.emit(CatalogService(app.catalog).get_service(service_id))


@service.command(
    "list",
    examples="""\
  svcmap service list
  svcmap service list --type job
  svcmap -q service list --tag critical""",
)
@click.option("--type", "service_type", type=_SERVICE_TYPES, default=None, help="Filter by type.")
@click.option("--owner", default=None, help="Filter by owner.")
@click.option("--tag", default=None, help="Filter by tag.")
@click.pass_obj
def list_cmd(
    app: AppContext, service_type: str | None, owner: str | None, tag: str | None
) -> None:
    """List services."""
    app.emit(
        CatalogService(app.catalog).list_services(service_type=service_type, owner=owner, tag=tag)
    )


@service.command(
    examples="""\
  svcmap service update 6f1c... --name checkout-v2
  svcmap service update 6f1c... --tag web --tag beta
  svcmap service update 6f1c... --no-proxy"""
)
@click.argument("service_id")
@click.option("--name", default=None, help="New unique name.")
@click.option("--owner", default=None)
@click.option("--type", "service_type", type=_SERVICE_TYPES, default=None)
@click.option("--description", default=None)
@click.option("--tag", "tags", multiple=True, help="Replace tags (repeatable).")
@click.option("--supports-database/--no-supports-database", default=None)
@click.option("--proxy/--no-proxy", default=None)
@click.pass_obj
def update(
    app: AppContext,
    service_id: str,
    name: str | None,
    owner: str | None,
    service_type: str | None,
    description: str | None,
    tags: tuple[str, ...],
    supports_database: bool | None,
    proxy: bool | None,
) -> None:
    """Change fields of a service."""
    changes = present(
        name=name,
        owner=owner,
        service_type=service_type,
        description=description,
        tags=list(tags) if tags else None,
        supports_database=supports_database,
        proxy=proxy,
    )
    if not changes:
        raise click.UsageError("Nothing to update; pass at least one option.")
    app.emit(CatalogService(app.catalog).update_service(service_id, changes=changes))


@service.command()
@click.argument("service_id")
@click.pass_obj
def delete(app: AppContext, service_id: str) -> None:
    """Delete a service with its environments, endpoints, and links."""
    app.emit(CatalogService(app.catalog).delete_service(service_id))
