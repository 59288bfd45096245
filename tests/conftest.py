"""Shared pytest fixtures and test helpers for svcmap tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from svcmap.config.settings import SvcmapSettings
from svcmap.infrastructure.catalog import Catalog
from svcmap.infrastructure.database.engine import init_database


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Engine:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def catalog(tmp_path: Path) -> Catalog:
    """Fully initialized catalog on a temp directory."""
    settings = SvcmapSettings.from_cli(root=tmp_path)
    c = Catalog(settings)
    try:
        yield c
    finally:
        c.close()


@pytest.fixture
def _isolated_catalog(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp directory so the CLI creates an isolated catalog.

    Use via ``@pytest.mark.usefixtures("_isolated_catalog")`` on command
    test classes.
    """
    monkeypatch.delenv("SVCMAP_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Shared test helpers (used across service test modules)
# ---------------------------------------------------------------------------


def create_service(catalog: Catalog, name: str, **kwargs: Any) -> dict[str, Any]:
    """Create a service via CatalogService, asserting success."""
    from svcmap.services.catalog import CatalogService

    kwargs.setdefault("owner", "platform-team")
    result = CatalogService(catalog).create_service(name, **kwargs)
    assert result.ok, result.error
    return result.data


def create_dependency(catalog: Catalog, name: str, **kwargs: Any) -> dict[str, Any]:
    """Create a dependency via DependencyService, asserting success."""
    from svcmap.services.dependency import DependencyService

    kwargs.setdefault("version", "1.0")
    kwargs.setdefault("dependency_type", "EXTERNAL_API")
    result = DependencyService(catalog).create_dependency(name, **kwargs)
    assert result.ok, result.error
    return result.data


def create_database(catalog: Catalog, name: str, **kwargs: Any) -> dict[str, Any]:
    """Create a database via DatabaseService, asserting success."""
    from svcmap.services.database import DatabaseService

    kwargs.setdefault("database_type", "POSTGRESQL")
    kwargs.setdefault("connection_string", f"postgresql://db/{name}")
    result = DatabaseService(catalog).create_database(name, **kwargs)
    assert result.ok, result.error
    return result.data


def create_endpoint(
    catalog: Catalog, service_id: str, method: str, path: str, **kwargs: Any
) -> dict[str, Any]:
    """Create an endpoint via EndpointService, asserting success."""
    from svcmap.services.endpoint import EndpointService

    result = EndpointService(catalog).create_endpoint(
        service_id, method=method, path=path, **kwargs
    )
    assert result.ok, result.error
    return result.data


def link_services(
    catalog: Catalog, consumer_id: str, provider_id: str, env: str | None = None
) -> dict[str, Any]:
    """Link two services via RelationshipService, asserting success."""
    from svcmap.services.relationships import RelationshipService

    result = RelationshipService(catalog).link_service(
        consumer_id, provider_id, dependency_type="API_CALL", environment_code=env
    )
    assert result.ok, result.error
    return result.data


def invoke_json(runner: CliRunner, *args: str) -> dict[str, Any]:
    """Run ``svcmap --json ARGS`` and return the parsed success payload."""
    from svcmap.cli import cli

    result = runner.invoke(cli, ["--json", *args])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def add_service(runner: CliRunner, name: str, *extra: str) -> str:
    """Create a service through the CLI and return its id."""
    payload = invoke_json(runner, "service", "add", name, "--owner", "platform-team", *extra)
    return payload["data"]["id"]
