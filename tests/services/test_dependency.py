"""Tests for DependencyService."""

from svcmap.infrastructure.catalog import Catalog
from svcmap.services.dependency import DependencyService
from svcmap.services.relationships import RelationshipService
from tests.conftest import create_dependency, create_service


class TestCreateDependency:
    def test_create(self, catalog: Catalog) -> None:
        result = DependencyService(catalog).create_dependency(
            "redis", version="7.2", dependency_type="cache", config={"ttl": "60"}
        )
        assert result.ok
        assert result.data["dependency_type"] == "CACHE"
        assert result.data["config"] == {"ttl": "60"}

    def test_same_name_new_version_allowed(self, catalog: Catalog) -> None:
        create_dependency(catalog, "stripe", version="2023-10")
        result = DependencyService(catalog).create_dependency(
            "stripe", version="2024-06", dependency_type="EXTERNAL_API"
        )
        assert result.ok

    def test_duplicate_name_version(self, catalog: Catalog) -> None:
        create_dependency(catalog, "stripe", version="2024-06")
        result = DependencyService(catalog).create_dependency(
            "stripe", version="2024-06", dependency_type="EXTERNAL_API"
        )
        assert result.error.code == "CONFLICT"
        assert result.error.detail["key"] == {"name": "stripe", "version": "2024-06"}

    def test_invalid_type(self, catalog: Catalog) -> None:
        result = DependencyService(catalog).create_dependency(
            "x", version="1", dependency_type="mainframe"
        )
        assert result.error.code == "INVALID_REQUEST"


class TestListAndUpdate:
    def test_list_by_type(self, catalog: Catalog) -> None:
        create_dependency(catalog, "redis", dependency_type="CACHE")
        create_dependency(catalog, "kafka", dependency_type="QUEUE")
        result = DependencyService(catalog).list_dependencies(dependency_type="queue")
        assert [r["name"] for r in result.data["items"]] == ["kafka"]

    def test_reversion_conflict(self, catalog: Catalog) -> None:
        create_dependency(catalog, "stripe", version="2")
        dep = create_dependency(catalog, "stripe", version="1")
        result = DependencyService(catalog).update_dependency(dep["id"], changes={"version": "2"})
        assert result.error.code == "CONFLICT"

    def test_update_description(self, catalog: Catalog) -> None:
        dep = create_dependency(catalog, "stripe")
        result = DependencyService(catalog).update_dependency(
            dep["id"], changes={"description": "Payments API", "created_at": "x"}
        )
        assert result.ok
        assert result.data["description"] == "Payments API"
        assert result.warnings == ["Cannot change field: created_at"]

    def test_version_cannot_be_cleared(self, catalog: Catalog) -> None:
        dep = create_dependency(catalog, "stripe")
        result = DependencyService(catalog).update_dependency(
            dep["id"], changes={"version": None}
        )
        assert result.error.code == "INVALID_REQUEST"
        assert result.error.detail == {"reason": "version cannot be cleared", "field": "version"}
        assert DependencyService(catalog).get_dependency(dep["id"]).data["version"] == "1.0"

    def test_get_missing(self, catalog: Catalog) -> None:
        assert DependencyService(catalog).get_dependency("nope").error.code == "NOT_FOUND"


class TestDeleteDependency:
    def test_delete_removes_edges(self, catalog: Catalog) -> None:
        svc = create_service(catalog, "checkout")
        dep = create_dependency(catalog, "stripe")
        rel = RelationshipService(catalog)
        assert rel.link_dependency(svc["id"], dep["id"], environment_code="prod").ok

        result = DependencyService(catalog).delete_dependency(dep["id"])
        assert result.ok
        assert rel.list_links("dependency", svc["id"]).data["count"] == 0
