"""Tests for OpenAPI document generation."""

from __future__ import annotations

import json
from pathlib import Path

from ruamel.yaml import YAML

from svcmap.config.models import ExportConfig
from svcmap.config.settings import SvcmapSettings
from svcmap.infrastructure.catalog import Catalog
from svcmap.services.catalog import CatalogService
from svcmap.services.openapi import OpenApiService, build_operation
from tests.conftest import create_endpoint, create_service


def _seed(catalog: Catalog) -> str:
    svc = create_service(catalog, "checkout", description="Checkout API")
    CatalogService(catalog).set_environment(
        svc["id"], "prod", display_name="Production", host="https://checkout.example.com"
    )
    create_endpoint(
        catalog,
        svc["id"],
        "GET",
        "/orders/{id}",
        summary="Fetch order",
        response_schemas={"200": {"type": "object"}, "404": {"type": "object"}},
        auth={"type": "bearer"},
    )
    create_endpoint(
        catalog,
        svc["id"],
        "POST",
        "/orders/{id}",
        request_schema={"type": "object"},
        rate_limit={"rpm": 60},
    )
    return svc["id"]


class TestBuildOperation:
    def _endpoint(self, **overrides: object) -> dict[str, object]:
        row: dict[str, object] = {
            "method": "GET",
            "path": "/health",
            "summary": "",
            "request_schema": None,
            "response_schemas": None,
            "auth": None,
            "rate_limit": None,
        }
        row.update(overrides)
        return row

    def test_defaults(self) -> None:
        op = build_operation(self._endpoint())
        assert op["operationId"] == "get_health"
        assert op["responses"] == {"200": {"description": "Success"}}
        assert "security" not in op
        assert "requestBody" not in op

    def test_security_and_rate_limit(self) -> None:
        op = build_operation(self._endpoint(auth={"type": "apiKey"}, rate_limit={"rpm": 5}))
        assert op["security"] == [{"apiKey": []}]
        assert op["x-rate-limit"] == {"rpm": 5}


class TestGenerate:
    def test_json_document(self, catalog: Catalog) -> None:
        service_id = _seed(catalog)
        result = OpenApiService(catalog).generate(service_id, "prod")
        assert result.ok
        assert result.data["format"] == "json"
        assert result.data["endpoints"] == 2

        doc = json.loads(result.data["content"])
        assert doc["openapi"] == "3.0.0"
        assert doc["info"] == {
            "title": "checkout",
            "description": "Checkout API",
            "version": "1.0.0",
        }
        assert doc["servers"] == [
            {"url": "https://checkout.example.com", "description": "prod environment"}
        ]
        path = doc["paths"]["/orders/{id}"]
        assert set(path) == {"get", "post"}
        assert set(path["get"]["responses"]) == {"200", "404"}
        assert path["post"]["requestBody"]["content"]["application/json"]["schema"] == {
            "type": "object"
        }

    def test_yaml_document(self, catalog: Catalog) -> None:
        service_id = _seed(catalog)
        result = OpenApiService(catalog).generate(service_id, "prod", "yaml")
        doc = YAML(typ="safe").load(result.data["content"])
        assert doc["info"]["title"] == "checkout"
        assert doc == result.data["document"]

    def test_config_defaults(self, tmp_path: Path) -> None:
        settings = SvcmapSettings.from_cli(
            root=tmp_path,
            export=ExportConfig(
                openapi_version="3.1.0", api_version="2.0.0", default_format="yaml"
            ),
        )
        c = Catalog(settings)
        try:
            service_id = _seed(c)
            result = OpenApiService(c).generate(service_id, "prod")
        finally:
            c.close()
        assert result.data["format"] == "yaml"
        assert result.data["document"]["openapi"] == "3.1.0"
        assert result.data["document"]["info"]["version"] == "2.0.0"

    def test_no_endpoints(self, catalog: Catalog) -> None:
        svc = create_service(catalog, "empty")
        CatalogService(catalog).set_environment(svc["id"], "dev", display_name="Dev", host="h")
        result = OpenApiService(catalog).generate(svc["id"], "dev")
        assert result.data["document"]["paths"] == {}

    def test_missing_environment(self, catalog: Catalog) -> None:
        service_id = _seed(catalog)
        result = OpenApiService(catalog).generate(service_id, "staging")
        assert result.error.code == "NOT_FOUND"
        assert result.error.detail["kind"] == "environment"

    def test_missing_service(self, catalog: Catalog) -> None:
        result = OpenApiService(catalog).generate("ghost", "prod")
        assert result.error.detail == {"kind": "service", "id": "ghost"}

    def test_unknown_format(self, catalog: Catalog) -> None:
        result = OpenApiService(catalog).generate("ghost", "prod", "xml")
        assert result.error.code == "INVALID_REQUEST"
        assert result.error.detail["field"] == "format"
