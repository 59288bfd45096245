"""Command: catalog integrity checking."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from svcmap.commands._base import SvcCommand

if TYPE_CHECKING:
    from svcmap.commands._context import AppContext


@click.command(
    cls=SvcCommand,
    examples="""\
  svcmap check
  svcmap --json check""",
)
@click.pass_obj
def check(app: AppContext) -> None:
    """Report dependency cycles, duplicate edges, and dangling references."""
    from svcmap.services.check import CheckService

    app.emit(CheckService(app.catalog).check())
