"""Command group: database instances."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from svcmap.commands._base import SvcGroup, parse_pairs, present
from svcmap.domain.types import DatabaseType
from svcmap.services.database import DatabaseService

if TYPE_CHECKING:
    from svcmap.commands._context import AppContext

_DATABASE_TYPES = click.Choice([t.value for t in DatabaseType], case_sensitive=False)


@click.group(
    cls=SvcGroup,
    examples="""\
  svcmap database add orders-db --type postgresql --connection postgres://db.internal/orders
  svcmap database list --type redis
  svcmap database update 9a3d... --connection postgres://db2.internal/orders""",
)
def database() -> None:
    """Register and manage database instances."""


@database.command()
@click.argument("name")
@click.option("--type", "database_type", type=_DATABASE_TYPES, required=True)
@click.option("--connection", "connection_string", required=True, help="Connection string.")
@click.option("--description", default=None)
@click.option("--config", "config", multiple=True, callback=parse_pairs, help="KEY=VALUE")
@click.pass_obj
def add(
    app: AppContext,
    name: str,
    database_type: str,
    connection_string: str,
    description: str | None,
    config: dict[str, str] | None,
) -> None:
    """Register a database instance (NAME must be unique)."""
    app.emit(
        DatabaseService(app.catalog).create_database(
            name,
            database_type=database_type,
            connection_string=connection_string,
            description=description,
            config=config,
        )
    )


@database.command()
@click.argument("database_id")
@click.pass_obj
def get(app: AppContext, database_id: str) -> None:
    """Show one database instance."""
    app.emit(DatabaseService(app.catalog).get_database(database_id))


@database.command("list")
@click.option("--type", "database_type", type=_DATABASE_TYPES, default=None)
@click.pass_obj
def list_cmd(app: AppContext, database_type: str | None) -> None:
    """List database instances."""
    app.emit(DatabaseService(app.catalog).list_databases(database_type=database_type))


@database.command()
@click.argument("database_id")
@click.option("--name", default=None)
@click.option("--type", "database_type", type=_DATABASE_TYPES, default=None)
@click.option("--connection", "connection_string", default=None)
@click.option("--description", default=None)
@click.option("--config", "config", multiple=True, callback=parse_pairs, help="Replace config.")
@click.pass_obj
def update(
    app: AppContext,
    database_id: str,
    name: str | None,
    database_type: str | None,
    connection_string: str | None,
    description: str | None,
    config: dict[str, str] | None,
) -> None:
    """Change fields of a database instance."""
    changes = present(
        name=name,
        database_type=database_type,
        connection_string=connection_string,
        description=description,
        config=config,
    )
    if not changes:
        raise click.UsageError("Nothing to update; pass at least one option.")
    app.emit(DatabaseService(app.catalog).update_database(database_id, changes=changes))


@database.command()
@click.argument("database_id")
@click.pass_obj
def delete(app: AppContext, database_id: str) -> None:
    """Delete a database instance and every link to it."""
    app.emit(DatabaseService(app.catalog).delete_database(database_id))
