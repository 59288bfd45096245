"""Command group: external dependencies."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from svcmap.commands._base import SvcGroup, parse_pairs, present
from svcmap.domain.types import DependencyType
from svcmap.services.dependency import DependencyService

if TYPE_CHECKING:
    from svcmap.commands._context import AppContext

_DEPENDENCY_TYPES = click.Choice([t.value for t in DependencyType], case_sensitive=False)


@click.group(
    cls=SvcGroup,
    examples="""\
  svcmap dependency add redis --version 7.2 --type cache
  svcmap dependency add stripe-api --version 2023-10 --type external_api --config region=eu
  svcmap dependency list --type queue
  svcmap dependency update 0b7e... --version 7.4""",
)
def dependency() -> None:
    """Register and manage external dependencies."""


@dependency.command()
@click.argument("name")
@click.option("--version", "version", required=True)
@click.option("--type", "dependency_type", type=_DEPENDENCY_TYPES, required=True)
@click.option("--description", default=None)
@click.option("--config", "config", multiple=True, callback=parse_pairs, help="KEY=VALUE")
@click.pass_obj
def add(
    app: AppContext,
    name: str,
    version: str,
    dependency_type: str,
    description: str | None,
    config: dict[str, str] | None,
) -> None:
    """Register a dependency (NAME + VERSION must be unique)."""
    app.emit(
        DependencyService(app.catalog).create_dependency(
            name,
            version=version,
            dependency_type=dependency_type,
            description=description,
            config=config,
        )
    )


@dependency.command()
@click.argument("dependency_id")
@click.pass_obj
def get(app: AppContext, dependency_id: str) -> None:
    """Show one dependency."""
    app.emit(DependencyService(app.catalog).get_dependency(dependency_id))


@dependency.command("list")
@click.option("--type", "dependency_type", type=_DEPENDENCY_TYPES, default=None)
@click.pass_obj
def list_cmd(app: AppContext, dependency_type: str | None) -> None:
    """List dependencies."""
    app.emit(DependencyService(app.catalog).list_dependencies(dependency_type=dependency_type))


@dependency.command()
@click.argument("dependency_id")
@click.option("--name", default=None)
@click.option("--version", "version", default=None)
@click.option("--type", "dependency_type", type=_DEPENDENCY_TYPES, default=None)
@click.option("--description", default=None)
@click.option("--config", "config", multiple=True, callback=parse_pairs, help="Replace config.")
@click.pass_obj
def update(
    app: AppContext,
    dependency_id: str,
    name: str | None,
    version: str | None,
    dependency_type: str | None,
    description: str | None,
    config: dict[str, str] | None,
) -> None:
    """Change fields of a dependency."""
    changes = present(
        name=name,
        version=version,
        dependency_type=dependency_type,
        description=description,
        config=config,
    )
    if not changes:
        raise click.UsageError("Nothing to update; pass at least one option.")
    app.emit(DependencyService(app.catalog).update_dependency(dependency_id, changes=changes))


@dependency.command()
@click.argument("dependency_id")
@click.pass_obj
def delete(app: AppContext, dependency_id: str) -> None:
    """Delete a dependency and every link to it."""
    app.emit(DependencyService(app.catalog).delete_dependency(dependency_id))
