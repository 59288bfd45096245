"""End-to-end tests for verbose telemetry.

Validates the full pipeline:
  CLI flag (-v) -> AppContext -> enable_telemetry() -> @traced service methods
  -> span tree in ServiceResult.meta -> renderer outputs hierarchical span tree.
"""

from __future__ import annotations

import json
from collections.abc import Generator

import pytest
from click.testing import CliRunner

from svcmap.cli import cli
from svcmap.services.telemetry import _current_span, disable_telemetry
from tests.conftest import add_service, invoke_json


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Generator[None]:
    """The -v flag sets a ContextVar; reset it so state does not leak across tests."""
    yield
    disable_telemetry()
    _current_span.set(None)


@pytest.mark.usefixtures("_isolated_catalog")
class TestVerboseTelemetry:
    def setup_method(self) -> None:
        self.runner = CliRunner()

    def test_verbose_create_shows_telemetry(self) -> None:
        result = self.runner.invoke(cli, ["-v", "service", "add", "checkout", "--owner", "p"])
        assert result.exit_code == 0
        assert "meta:" in result.output
        assert "CatalogService.create_service" in result.output
        assert "ms" in result.output

    def test_non_verbose_has_no_telemetry(self) -> None:
        result = self.runner.invoke(cli, ["service", "add", "checkout", "--owner", "p"])
        assert result.exit_code == 0
        assert "meta:" not in result.output
        assert "CatalogService" not in result.output

    def test_link_shows_cycle_check_stage(self) -> None:
        a = add_service(self.runner, "web")
        b = add_service(self.runner, "auth")
        result = self.runner.invoke(cli, ["-v", "link", "service", a, b, "--env", "prod"])
        assert result.exit_code == 0
        assert "cycle_check" in result.output
        assert "edges_in_scope=0" in result.output

    def test_verbose_json_includes_telemetry_in_meta(self) -> None:
        result = self.runner.invoke(cli, ["-v", "--json", "service", "list"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        telemetry = payload["meta"]["telemetry"]
        assert telemetry["name"] == "CatalogService.list_services"
        assert telemetry["duration_ms"] >= 0

    def test_json_without_verbose_has_no_meta(self) -> None:
        payload = invoke_json(self.runner, "service", "list")
        assert payload["meta"] is None
