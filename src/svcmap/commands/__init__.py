"""Subcommand modules for svcmap.

Provides register_commands() which uses deferred imports to keep
``svcmap --help`` fast as the codebase grows.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root CLI group.

    Uses deferred imports so modules are only loaded when actually invoked.
    """
    # --- Groups ---
    from svcmap.commands.database import database
    from svcmap.commands.dependency import dependency
    from svcmap.commands.endpoint import endpoint
    from svcmap.commands.env import env
    from svcmap.commands.export import export
    from svcmap.commands.graph import graph
    from svcmap.commands.link import link
    from svcmap.commands.service import service

    cli.add_command(service)
    cli.add_command(env)
    cli.add_command(dependency)
    cli.add_command(database)
    cli.add_command(endpoint)
    cli.add_command(link)
    cli.add_command(graph)
    cli.add_command(export)

    # --- Standalone commands ---
    from svcmap.commands.check import check

    cli.add_command(check)
