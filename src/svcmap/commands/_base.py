"""Custom Click base classes and shared option parsers.

SvcCommand and SvcGroup accept an ``examples`` parameter: ``--examples``
prints usage examples and exits, keeping ``--help`` concise.  SvcGroup
also turns a busy catalog into a retryable exit status instead of a
traceback.
"""

from __future__ import annotations

import json
from typing import Any

import click

from svcmap.infrastructure.catalog import CatalogBusyError

# sysexits.h EX_TEMPFAIL: the caller may retry the same command.
EXIT_BUSY = 75


class CatalogBusy(click.ClickException):
    exit_code = EXIT_BUSY


def _add_examples_option(cmd: click.Command | click.Group, examples: str) -> None:
    """Attach an eager ``--examples`` flag to a Click command or group."""

    def show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(examples)
        ctx.exit(0)

    cmd.params.append(
        click.Option(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=show_examples,
            help="Show usage examples.",
        )
    )


class SvcCommand(click.Command):
    """Click Command subclass that supports an ``--examples`` flag."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


class SvcGroup(click.Group):
    """Click Group subclass that supports an ``--examples`` flag.

    Sets ``command_class = SvcCommand`` so all subcommands accept the
    ``examples`` parameter without explicit ``cls=`` each time.
    """

    command_class = SvcCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except CatalogBusyError as exc:
            raise CatalogBusy(f"{exc}; retry later") from exc


# ---------------------------------------------------------------------------
# Option value parsers (used as Click callbacks)
# ---------------------------------------------------------------------------


def parse_pairs(
    _ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> dict[str, str] | None:
    """``KEY=VALUE`` options (``multiple=True``) into a dict; None when absent."""
    if not values:
        return None
    pairs: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {item!r}", param=param)
        pairs[key] = value
    return pairs


def parse_json_object(
    _ctx: click.Context, param: click.Parameter, value: str | None
) -> dict[str, Any] | None:
    """A JSON object given inline on the command line."""
    if value is None:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"invalid JSON: {exc.msg}", param=param) from exc
    if not isinstance(parsed, dict):
        raise click.BadParameter("expected a JSON object", param=param)
    return parsed


def parse_assignments(
    _ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> dict[str, Any]:
    """``FIELD=VALUE`` updates; VALUE is read as JSON when it parses, else as text."""
    changes: dict[str, Any] = {}
    for item in values:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected FIELD=VALUE, got {item!r}", param=param)
        try:
            changes[key] = json.loads(raw)
        except json.JSONDecodeError:
            changes[key] = raw
    return changes


def present(**options: Any) -> dict[str, Any]:
    """Keep only the options the user actually supplied."""
    return {key: value for key, value in options.items() if value is not None}
