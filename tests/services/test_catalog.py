"""Tests for CatalogService — services and their environments."""

from __future__ import annotations

import pytest

from svcmap.infrastructure.catalog import Catalog
from svcmap.services.catalog import CatalogService
from svcmap.services.relationships import RelationshipService
from tests.conftest import create_endpoint, create_service, link_services


class TestCreateService:
    def test_defaults(self, catalog: Catalog) -> None:
        result = CatalogService(catalog).create_service("checkout", owner="payments")
        assert result.ok
        assert result.op == "create_service"
        assert result.data["service_type"] == "APPLICATION"
        assert result.data["tags"] == []
        assert result.data["supports_database"] is False
        assert result.data["id"]

    def test_all_fields(self, catalog: Catalog) -> None:
        result = CatalogService(catalog).create_service(
            "edge-proxy",
            owner="infra",
            service_type="proxy",
            description="Front door",
            tags=["edge", "critical"],
            proxy=True,
        )
        assert result.ok
        assert result.data["service_type"] == "PROXY"
        assert result.data["proxy"] is True
        assert result.data["tags"] == ["edge", "critical"]

    def test_duplicate_name_conflicts(self, catalog: Catalog) -> None:
        create_service(catalog, "checkout")
        result = CatalogService(catalog).create_service("checkout", owner="other")
        assert not result.ok
        assert result.error.code == "CONFLICT"
        assert result.error.detail == {"kind": "service", "key": {"name": "checkout"}}

    def test_invalid_type(self, catalog: Catalog) -> None:
        result = CatalogService(catalog).create_service("x", owner="o", service_type="lambda")
        assert result.error.code == "INVALID_REQUEST"
        assert result.error.detail["field"] == "service_type"


class TestGetAndList:
    def test_get(self, catalog: Catalog) -> None:
        svc = create_service(catalog, "checkout")
        result = CatalogService(catalog).get_service(svc["id"])
        assert result.ok
        assert result.data["name"] == "checkout"

    def test_get_missing(self, catalog: Catalog) -> None:
        result = CatalogService(catalog).get_service("nope")
        assert result.error.code == "NOT_FOUND"
        assert result.error.detail == {"kind": "service", "id": "nope"}

    def test_list_filters(self, catalog: Catalog) -> None:
        create_service(catalog, "a", owner="team-a", tags=["web"])
        create_service(catalog, "b", owner="team-b", service_type="JOB")
        create_service(catalog, "c", owner="team-a", tags=["web", "edge"])
        svc = CatalogService(catalog)

        assert svc.list_services().data["count"] == 3
        assert [r["name"] for r in svc.list_services(owner="team-a").data["items"]] == ["a", "c"]
        assert [r["name"] for r in svc.list_services(service_type="job").data["items"]] == ["b"]
        assert [r["name"] for r in svc.list_services(tag="edge").data["items"]] == ["c"]

    def test_list_invalid_type(self, catalog: Catalog) -> None:
        result = CatalogService(catalog).list_services(service_type="nope")
        assert result.error.code == "INVALID_REQUEST"


class TestUpdateService:
    def test_partial_update(self, catalog: Catalog) -> None:
        svc = create_service(catalog, "checkout")
        result = CatalogService(catalog).update_service(
            svc["id"], changes={"owner": "new-team", "tags": ["x"]}
        )
        assert result.ok
        assert result.data["owner"] == "new-team"
        assert result.data["tags"] == ["x"]
        assert result.data["name"] == "checkout"
        assert result.data["fields_changed"] == ["owner", "tags"]

    def test_unknown_field_warns(self, catalog: Catalog) -> None:
        svc = create_service(catalog, "checkout")
        result = CatalogService(catalog).update_service(
            svc["id"], changes={"id": "hijack", "owner": "o2"}
        )
        assert result.ok
        assert result.warnings == ["Cannot change field: id"]
        assert result.data["id"] == svc["id"]

    def test_rename_conflict(self, catalog: Catalog) -> None:
        create_service(catalog, "taken")
        svc = create_service(catalog, "checkout")
        result = CatalogService(catalog).update_service(svc["id"], changes={"name": "taken"})
        assert result.error.code == "CONFLICT"

    def test_rename_to_own_name(self, catalog: Catalog) -> None:
        svc = create_service(catalog, "checkout")
        result = CatalogService(catalog).update_service(svc["id"], changes={"name": "checkout"})
        assert result.ok

    def test_missing(self, catalog: Catalog) -> None:
        result = CatalogService(catalog).update_service("nope", changes={"owner": "x"})
        assert result.error.code == "NOT_FOUND"

    @pytest.mark.parametrize("field", ["name", "owner", "service_type", "proxy"])
    def test_required_field_cannot_be_cleared(self, catalog: Catalog, field: str) -> None:
        svc = create_service(catalog, "checkout")
        result = CatalogService(catalog).update_service(svc["id"], changes={field: None})
        assert result.error.code == "INVALID_REQUEST"
        assert result.error.detail["field"] == field
        assert CatalogService(catalog).get_service(svc["id"]).data["owner"] == "platform-team"

    def test_description_can_be_cleared(self, catalog: Catalog) -> None:
        svc = create_service(catalog, "checkout", description="Order intake")
        result = CatalogService(catalog).update_service(
            svc["id"], changes={"description": None}
        )
        assert result.ok
        assert result.data["description"] is None


class TestDeleteService:
    def test_delete_cascades(self, catalog: Catalog) -> None:
        a = create_service(catalog, "a")
        b = create_service(catalog, "b")
        link_services(catalog, a["id"], b["id"], "prod")
        create_endpoint(catalog, b["id"], "GET", "/health")
        CatalogService(catalog).set_environment(
            b["id"], "prod", display_name="Production", host="https://b"
        )

        result = CatalogService(catalog).delete_service(b["id"])
        assert result.ok
        assert result.data == {"id": b["id"], "name": "b"}

        links = RelationshipService(catalog).list_links("service", a["id"])
        assert links.data["count"] == 0
        assert CatalogService(catalog).list_environments(b["id"]).error.code == "NOT_FOUND"

    def test_delete_missing(self, catalog: Catalog) -> None:
        assert CatalogService(catalog).delete_service("nope").error.code == "NOT_FOUND"


class TestEnvironments:
    def test_create(self, catalog: Catalog) -> None:
        svc = create_service(catalog, "checkout")
        result = CatalogService(catalog).set_environment(
            svc["id"],
            "prod",
            display_name="Production",
            host="https://checkout.example.com",
            config={"timeoutMs": 3000, "downstreamOverrides": {"payments": "https://pay"}},
        )
        assert result.ok
        assert result.data["created"] is True
        assert result.data["status"] == "ACTIVE"
        assert result.data["config"] == {
            "timeout_ms": 3000,
            "retries": None,
            "downstream_overrides": {"payments": "https://pay"},
        }

    def test_upsert_replaces(self, catalog: Catalog) -> None:
        svc = create_service(catalog, "checkout")
        envs = CatalogService(catalog)
        first = envs.set_environment(
            svc["id"], "prod", display_name="Prod", host="https://a", config={"retries": 3}
        )
        second = envs.set_environment(
            svc["id"], "prod", display_name="Production", host="https://b"
        )
        assert second.ok
        assert second.data["created"] is False
        assert second.data["id"] == first.data["id"]
        assert second.data["host"] == "https://b"
        assert second.data["config"] is None
        assert second.data["status"] == "ACTIVE"
        assert envs.list_environments(svc["id"]).data["count"] == 1

    def test_status_change(self, catalog: Catalog) -> None:
        svc = create_service(catalog, "checkout")
        envs = CatalogService(catalog)
        envs.set_environment(svc["id"], "dev", display_name="Dev", host="http://dev")
        result = envs.set_environment(
            svc["id"], "dev", display_name="Dev", host="http://dev", status="inactive"
        )
        assert result.data["status"] == "INACTIVE"

    @pytest.mark.parametrize("code", ["", "pro d"])
    def test_malformed_code(self, catalog: Catalog, code: str) -> None:
        svc = create_service(catalog, "checkout")
        result = CatalogService(catalog).set_environment(
            svc["id"], code, display_name="x", host="h"
        )
        assert result.error.code == "INVALID_REQUEST"
        assert result.error.detail["field"] == "code"

    def test_invalid_config(self, catalog: Catalog) -> None:
        svc = create_service(catalog, "checkout")
        result = CatalogService(catalog).set_environment(
            svc["id"], "prod", display_name="x", host="h", config={"retries": -1}
        )
        assert result.error.code == "INVALID_REQUEST"
        assert result.error.detail["field"] == "config"

    def test_unknown_service(self, catalog: Catalog) -> None:
        result = CatalogService(catalog).set_environment(
            "nope", "prod", display_name="x", host="h"
        )
        assert result.error.code == "NOT_FOUND"

    def test_get_and_delete(self, catalog: Catalog) -> None:
        svc = create_service(catalog, "checkout")
        envs = CatalogService(catalog)
        envs.set_environment(svc["id"], "prod", display_name="Prod", host="https://a")
        assert envs.get_environment(svc["id"], "prod").data["host"] == "https://a"
        assert envs.delete_environment(svc["id"], "prod").ok
        assert envs.get_environment(svc["id"], "prod").error.code == "NOT_FOUND"
        assert envs.delete_environment(svc["id"], "prod").error.code == "NOT_FOUND"
