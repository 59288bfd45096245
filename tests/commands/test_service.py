"""Tests for the service and env command groups."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from svcmap.cli import cli
from tests.conftest import add_service, invoke_json


@pytest.mark.usefixtures("_isolated_catalog")
class TestServiceCommands:
    def test_add_human_output(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["service", "add", "checkout", "--owner", "payments"])
        assert result.exit_code == 0
        assert "OK" in result.output
        assert "checkout" in result.output

    def test_add_quiet_prints_id(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-q", "service", "add", "checkout", "--owner", "p"])
        assert result.exit_code == 0
        service_id = result.stdout.strip()
        payload = invoke_json(cli_runner, "service", "get", service_id)
        assert payload["data"]["name"] == "checkout"

    def test_add_with_tags_and_type(self, cli_runner: CliRunner) -> None:
        payload = invoke_json(
            cli_runner,
            "service",
            "add",
            "reports",
            "--owner",
            "data",
            "--type",
            "job",
            "--tag",
            "nightly",
            "--tag",
            "batch",
        )
        assert payload["data"]["service_type"] == "JOB"
        assert payload["data"]["tags"] == ["nightly", "batch"]

    def test_duplicate_name_conflicts(self, cli_runner: CliRunner) -> None:
        add_service(cli_runner, "checkout")
        result = cli_runner.invoke(
            cli, ["--json", "service", "add", "checkout", "--owner", "other"]
        )
        assert result.exit_code == 1
        assert result.stdout == ""
        assert json.loads(result.stderr)["error"]["code"] == "CONFLICT"

    def test_get_missing(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "service", "get", "nope"])
        assert result.exit_code == 1
        error = json.loads(result.stderr)["error"]
        assert error["code"] == "NOT_FOUND"
        assert error["detail"] == {"kind": "service", "id": "nope"}

    def test_list_and_filter(self, cli_runner: CliRunner) -> None:
        add_service(cli_runner, "checkout", "--tag", "core")
        add_service(cli_runner, "search")
        payload = invoke_json(cli_runner, "service", "list", "--tag", "core")
        assert [item["name"] for item in payload["data"]["items"]] == ["checkout"]

    def test_update_and_delete(self, cli_runner: CliRunner) -> None:
        service_id = add_service(cli_runner, "checkout")
        payload = invoke_json(cli_runner, "service", "update", service_id, "--owner", "new-team")
        assert payload["data"]["owner"] == "new-team"

        invoke_json(cli_runner, "service", "delete", service_id)
        result = cli_runner.invoke(cli, ["--json", "service", "get", service_id])
        assert result.exit_code == 1


@pytest.mark.usefixtures("_isolated_catalog")
class TestEnvCommands:
    def test_set_get_list_delete(self, cli_runner: CliRunner) -> None:
        service_id = add_service(cli_runner, "checkout")
        invoke_json(
            cli_runner,
            "env",
            "set",
            service_id,
            "prod",
            "--display-name",
            "Production",
            "--host",
            "https://checkout.example.com",
        )
        payload = invoke_json(cli_runner, "env", "get", service_id, "prod")
        assert payload["data"]["host"] == "https://checkout.example.com"

        payload = invoke_json(cli_runner, "env", "list", service_id)
        assert [item["code"] for item in payload["data"]["items"]] == ["prod"]

        invoke_json(cli_runner, "env", "delete", service_id, "prod")
        result = cli_runner.invoke(cli, ["--json", "env", "get", service_id, "prod"])
        assert result.exit_code == 1

    def test_unknown_service(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli,
            ["--json", "env", "set", "ghost", "prod", "--display-name", "P", "--host", "h"],
        )
        assert result.exit_code == 1
        assert json.loads(result.stderr)["error"]["code"] == "NOT_FOUND"
