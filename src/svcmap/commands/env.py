"""Command group: service environments."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from svcmap.commands._base import SvcGroup, parse_pairs, present
from svcmap.domain.types import EnvironmentStatus
from svcmap.services.catalog import CatalogService

if TYPE_CHECKING:
    from svcmap.commands._context import AppContext

_ENV_EXAMPLES = """\
  svcmap env set 6f1c... prod --display-name Production --host https://checkout.example.com
  svcmap env set 6f1c... prod --display-name Production --host https://c.example.com \\
      --timeout-ms 2000 --retries 3 --override inventory=https://inv.internal
  svcmap env list 6f1c...
  svcmap env delete 6f1c... staging"""


@click.group(cls=SvcGroup, examples=_ENV_EXAMPLES)
def env() -> None:
    """Manage the environments a service runs in."""


@env.command("set")
@click.argument("service_id")
@click.argument("code")
@click.option("--display-name", required=True)
@click.option("--host", required=True, help="Base URL of the service in this environment.")
@click.option("--timeout-ms", type=click.IntRange(min=0), default=None)
@click.option("--retries", type=click.IntRange(min=0), default=None)
@click.option(
    "--override",
    "overrides",
    multiple=True,
    callback=parse_pairs,
    help="Downstream override NAME=URL (repeatable).",
)
@click.option(
    "--status",
    type=click.Choice([s.value for s in EnvironmentStatus], case_sensitive=False),
    default=None,
)
@click.pass_obj
def set_cmd(
    app: AppContext,
    service_id: str,
    code: str,
    display_name: str,
    host: str,
    timeout_ms: int | None,
    retries: int | None,
    overrides: dict[str, str] | None,
    status: str | None,
) -> None:
    """Create or replace an environment (upsert on SERVICE_ID + CODE)."""
    config = present(timeout_ms=timeout_ms, retries=retries, downstream_overrides=overrides)
    app.emit(
        CatalogService(app.catalog).set_environment(
            service_id,
            code,
            display_name=display_name,
            host=host,
            config=config or None,
            status=status,
        )
    )


@env.command()
@click.argument("service_id")
@click.argument("code")
@click.pass_obj
def get(app: AppContext, service_id: str, code: str) -> None:
    """Show one environment."""
    app.emit(CatalogService(app.catalog).get_environment(service_id, code))


@env.command("list")
@click.argument("service_id")
@click.pass_obj
def list_cmd(app: AppContext, service_id: str) -> None:
    """List a service's environments."""
    app.emit(CatalogService(app.catalog).list_environments(service_id))


@env.command()
@click.argument("service_id")
@click.argument("code")
@click.pass_obj
def delete(app: AppContext, service_id: str, code: str) -> None:
    """Remove an environment."""
    app.emit(CatalogService(app.catalog).delete_environment(service_id, code))
