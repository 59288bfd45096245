"""Command group: relationships between services, dependencies, and databases."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from svcmap.commands._base import SvcGroup, parse_assignments, parse_pairs
from svcmap.domain.types import (
    CallType,
    EdgeKind,
    LinkDirection,
    OperationType,
    ServiceLinkType,
)
from svcmap.services.relationships import RelationshipService

if TYPE_CHECKING:
    from svcmap.commands._context import AppContext


def _choice(enum_cls: type) -> click.Choice:
    return click.Choice([m.value for m in enum_cls], case_sensitive=False)


_KINDS = _choice(EdgeKind)
_env_option = click.option(
    "--env",
    "environment_code",
    default=None,
    help="Environment scope (omit for the global scope).",
)

_LINK_EXAMPLES = """\
  svcmap link service <checkout-id> <inventory-id> --type api_call --env prod
  svcmap link dependency <checkout-id> <redis-id> --env prod --override ttl=60
  svcmap link database <checkout-id> <orders-db-id> --schema public
  svcmap link endpoint-dependency <endpoint-id> <stripe-id> --call-type external
  svcmap link endpoint-database <endpoint-id> <orders-db-id> --operation write --table orders
  svcmap link list service <checkout-id> --direction incoming --env prod
  svcmap link unlink service <checkout-id> <inventory-id> --env prod
  svcmap link update service <link-id> --set description="Stock lookups\""""


@click.group(cls=SvcGroup, examples=_LINK_EXAMPLES)
def link() -> None:
    """Create, inspect, and remove relationships."""


# ---------------------------------------------------------------------------
# One create command per edge kind
# ---------------------------------------------------------------------------


@link.command(
    "service",
    examples="""\
  svcmap link service <checkout-id> <inventory-id> --type api_call --env prod
  svcmap link service <web-id> <auth-id> --type authentication""",
)
@click.argument("consumer_id")
@click.argument("provider_id")
@click.option(
    "--type",
    "dependency_type",
    type=_choice(ServiceLinkType),
    default="API_CALL",
    show_default=True,
)
@_env_option
@click.option("--description", default=None)
@click.option("--config", "config", multiple=True, callback=parse_pairs, help="KEY=VALUE")
@click.pass_obj
def service_link(
    app: AppContext,
    consumer_id: str,
    provider_id: str,
    dependency_type: str,
    environment_code: str | None,
    description: str | None,
    config: dict[str, str] | None,
) -> None:
    """CONSUMER_ID depends on PROVIDER_ID (rejected if it would close a cycle)."""
    app.emit(
        RelationshipService(app.catalog).link_service(
            consumer_id,
            provider_id,
            dependency_type=dependency_type,
            environment_code=environment_code,
            description=description,
            config=config,
        )
    )


@link.command("dependency")
@click.argument("service_id")
@click.argument("dependency_id")
@_env_option
@click.option("--override", "overrides", multiple=True, callback=parse_pairs, help="KEY=VALUE")
@click.pass_obj
def dependency_link(
    app: AppContext,
    service_id: str,
    dependency_id: str,
    environment_code: str | None,
    overrides: dict[str, str] | None,
) -> None:
    """SERVICE_ID uses the external DEPENDENCY_ID."""
    app.emit(
        RelationshipService(app.catalog).link_dependency(
            service_id,
            dependency_id,
            environment_code=environment_code,
            config_override=overrides,
        )
    )


@link.command("database")
@click.argument("service_id")
@click.argument("database_id")
@_env_option
@click.option("--schema", "schema_name", default=None)
@click.option("--override", "overrides", multiple=True, callback=parse_pairs, help="KEY=VALUE")
@click.pass_obj
def database_link(
    app: AppContext,
    service_id: str,
    database_id: str,
    environment_code: str | None,
    schema_name: str | None,
    overrides: dict[str, str] | None,
) -> None:
    """SERVICE_ID connects to DATABASE_ID."""
    app.emit(
        RelationshipService(app.catalog).link_database(
            service_id,
            database_id,
            environment_code=environment_code,
            schema_name=schema_name,
            connection_override=overrides,
        )
    )


@link.command("endpoint-dependency")
@click.argument("endpoint_id")
@click.argument("dependency_id")
@click.option("--call-type", type=_choice(CallType), required=True)
@click.pass_obj
def endpoint_dependency_link(
    app: AppContext, endpoint_id: str, dependency_id: str, call_type: str
) -> None:
    """ENDPOINT_ID calls DEPENDENCY_ID."""
    app.emit(
        RelationshipService(app.catalog).link_endpoint_dependency(
            endpoint_id, dependency_id, call_type=call_type
        )
    )


@link.command("endpoint-database")
@click.argument("endpoint_id")
@click.argument("database_id")
@click.option("--operation", "operation_type", type=_choice(OperationType), required=True)
@click.option("--table", "tables", multiple=True, help="Table touched (repeatable).")
@click.pass_obj
def endpoint_database_link(
    app: AppContext,
    endpoint_id: str,
    database_id: str,
    operation_type: str,
    tables: tuple[str, ...],
) -> None:
    """ENDPOINT_ID reads or writes DATABASE_ID."""
    app.emit(
        RelationshipService(app.catalog).link_endpoint_database(
            endpoint_id,
            database_id,
            operation_type=operation_type,
            table_names=list(tables) or None,
        )
    )


# ---------------------------------------------------------------------------
# Generic commands over any edge kind
# ---------------------------------------------------------------------------


@link.command()
@click.argument("kind", type=_KINDS)
@click.argument("source_id")
@click.argument("target_id")
@_env_option
@click.pass_obj
def unlink(
    app: AppContext, kind: str, source_id: str, target_id: str, environment_code: str | None
) -> None:
    """Remove the KIND edge SOURCE_ID -> TARGET_ID in exactly one scope."""
    app.emit(
        RelationshipService(app.catalog).unlink(
            kind, source_id, target_id, environment_code=environment_code
        )
    )


@link.command("rm")
@click.argument("kind", type=_KINDS)
@click.argument("edge_id")
@click.pass_obj
def remove(app: AppContext, kind: str, edge_id: str) -> None:
    """Remove a KIND edge by id."""
    app.emit(RelationshipService(app.catalog).remove_link(kind, edge_id))


@link.command()
@click.argument("kind", type=_KINDS)
@click.argument("edge_id")
@click.pass_obj
def show(app: AppContext, kind: str, edge_id: str) -> None:
    """Show one KIND edge with both ends resolved."""
    app.emit(RelationshipService(app.catalog).get_link(kind, edge_id))


@link.command(
    "list",
    examples="""\
  svcmap link list service <checkout-id>
  svcmap link list service <inventory-id> --direction incoming --env prod
  svcmap link list endpoint_database <orders-db-id> --direction incoming""",
)
@click.argument("kind", type=_KINDS)
@click.argument("entity_id")
@click.option(
    "--direction",
    type=_choice(LinkDirection),
    default="outgoing",
    show_default=True,
)
@click.option("--env", "environment_code", default=None, help="Only this scope (default: all).")
@click.pass_obj
def list_cmd(
    app: AppContext,
    kind: str,
    entity_id: str,
    direction: str,
    environment_code: str | None,
) -> None:
    """List KIND edges from (or, with --direction incoming, to) ENTITY_ID."""
    app.emit(
        RelationshipService(app.catalog).list_links(
            kind, entity_id, direction=direction, environment_code=environment_code
        )
    )


@link.command()
@click.argument("kind", type=_KINDS)
@click.argument("edge_id")
@click.option(
    "--set",
    "changes",
    multiple=True,
    callback=parse_assignments,
    help="FIELD=VALUE metadata change (repeatable; VALUE may be JSON).",
)
@click.pass_obj
def update(app: AppContext, kind: str, edge_id: str, changes: dict[str, object]) -> None:
    """Change metadata of a KIND edge; its endpoints and scope are fixed."""
    if not changes:
        raise click.UsageError("Nothing to update; pass at least one --set.")
    app.emit(RelationshipService(app.catalog).update_link(kind, edge_id, changes=changes))
