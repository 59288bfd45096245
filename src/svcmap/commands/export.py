"""Command group: catalog export (OpenAPI documents)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from svcmap.commands._base import SvcGroup
from svcmap.services.openapi import FORMATS

if TYPE_CHECKING:
    from svcmap.commands._context import AppContext

_EXPORT_EXAMPLES = """\
  svcmap export openapi 6f1c... --env prod
  svcmap export openapi 6f1c... --env staging --format yaml --output openapi.yaml"""


@click.group(cls=SvcGroup, examples=_EXPORT_EXAMPLES)
def export() -> None:
    """Export catalog content in other formats."""


@export.command(
    examples="""\
  svcmap export openapi 6f1c... --env prod
  svcmap export openapi 6f1c... --env prod --format yaml --output openapi.yaml
  svcmap --json export openapi 6f1c... --env prod"""
)
@click.argument("service_id")
@click.option("--env", "environment_code", required=True, help="Environment providing servers.")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(FORMATS, case_sensitive=False),
    default=None,
    help="Document format (default from [export] config).",
)
@click.option(
    "--output",
    "output_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Output file (omit to print to stdout).",
)
@click.pass_obj
def openapi(
    app: AppContext,
    service_id: str,
    environment_code: str,
    fmt: str | None,
    output_file: str | None,
) -> None:
    """Generate an OpenAPI 3 document for a service in one environment."""
    from svcmap.services.openapi import OpenApiService

    result = OpenApiService(app.catalog).generate(service_id, environment_code, fmt)

    if not result.ok or not output_file:
        app.emit(result)
        return

    Path(output_file).write_text(result.data["content"], encoding="utf-8")
    # Summary without the document body for the renderer
    data = {k: v for k, v in result.data.items() if k not in ("document", "content")}
    app.emit(result.model_copy(update={"data": {**data, "output_file": output_file}}))
