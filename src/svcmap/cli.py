"""Root CLI group for svcmap with global flags and command registration."""

from __future__ import annotations

import click

from svcmap import __version__
from svcmap.commands import register_commands
from svcmap.commands._base import SvcGroup
from svcmap.commands._context import AppContext
from svcmap.config.settings import SvcmapSettings


@click.group(
    cls=SvcGroup,
    invoke_without_command=True,
    examples="""\
  svcmap service add checkout --owner payments-team
  svcmap link service <checkout-id> <inventory-id> --env prod
  svcmap graph order --env prod
  svcmap --json graph global""",
)
@click.version_option(version=__version__, prog_name="svcmap")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """svcmap — service dependency catalog."""
    settings = SvcmapSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
