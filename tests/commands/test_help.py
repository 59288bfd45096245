"""Parametrized help and ``--examples`` tests for all CLI commands."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from svcmap.cli import cli

# (CLI args, expected keywords in output)
HELP_COMMANDS: list[tuple[list[str], list[str]]] = [
    # -- registry --
    (["service", "--help"], ["add", "get", "list", "update", "delete"]),
    (["service", "add", "--help"], ["NAME", "--owner", "--type", "--tag", "--proxy"]),
    (["env", "--help"], ["set", "get", "list", "delete"]),
    (["env", "set", "--help"], ["SERVICE_ID", "CODE", "--host", "--override", "--status"]),
    (["dependency", "--help"], ["add", "get", "list", "update", "delete"]),
    (["dependency", "add", "--help"], ["--version", "--type", "--config"]),
    (["database", "--help"], ["add", "get", "list", "update", "delete"]),
    (["database", "add", "--help"], ["--type", "--connection"]),
    (["endpoint", "--help"], ["add", "get", "list", "update", "replace", "delete"]),
    (["endpoint", "add", "--help"], ["METHOD", "PATH", "--call", "--db", "--rate-limit"]),
    (["endpoint", "replace", "--help"], ["SERVICE_ID", "METHOD", "PATH"]),
    # -- relationships --
    (
        ["link", "--help"],
        ["service", "dependency", "database", "endpoint-dependency", "unlink", "rm", "list"],
    ),
    (["link", "service", "--help"], ["CONSUMER_ID", "PROVIDER_ID", "--type", "--env"]),
    (["link", "endpoint-database", "--help"], ["--operation", "--table"]),
    (["link", "list", "--help"], ["KIND", "ENTITY_ID", "--direction", "--env"]),
    (["link", "update", "--help"], ["KIND", "EDGE_ID", "--set"]),
    # -- graph --
    (["graph", "--help"], ["global", "neighborhood", "service", "endpoint", "order", "impact"]),
    (["graph", "global", "--help"], ["--env", "--external"]),
    (["graph", "impact", "--help"], ["SERVICE_ID", "--env"]),
    # -- check / export --
    (["check", "--help"], ["cycles"]),
    (["export", "--help"], ["openapi"]),
    (["export", "openapi", "--help"], ["SERVICE_ID", "--env", "--format", "--output"]),
]


def _help_id(args_keywords: tuple[list[str], list[str]]) -> str:
    args, _ = args_keywords
    return "_".join(a for a in args if a != "--help")


@pytest.mark.parametrize(
    "args,expected_keywords",
    HELP_COMMANDS,
    ids=[_help_id(item) for item in HELP_COMMANDS],
)
def test_command_help(cli_runner: CliRunner, args: list[str], expected_keywords: list[str]) -> None:
    result = cli_runner.invoke(cli, args)
    assert result.exit_code == 0
    for kw in expected_keywords:
        assert kw in result.output, f"Expected '{kw}' in help output for {args}"


@pytest.mark.parametrize(
    "args",
    [
        ["--examples"],
        ["link", "--examples"],
        ["link", "service", "--examples"],
        ["graph", "global", "--examples"],
        ["export", "openapi", "--examples"],
        ["check", "--examples"],
    ],
    ids=lambda args: "_".join(args[:-1]) or "root",
)
def test_examples_flag(cli_runner: CliRunner, args: list[str]) -> None:
    result = cli_runner.invoke(cli, args)
    assert result.exit_code == 0
    assert result.output.startswith("Examples for ")
    assert "svcmap " in result.output


def test_examples_listed_in_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["link", "--help"])
    assert "--examples" in result.output
