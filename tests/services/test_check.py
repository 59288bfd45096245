"""Tests for CheckService — integrity report."""

from __future__ import annotations

import json
import sqlite3

from svcmap.infrastructure.catalog import Catalog
from svcmap.infrastructure.database.schema import service_links
from svcmap.services.check import CAT_GRAPH, CAT_KEYS, CAT_REFERENCES, CheckService
from tests.conftest import create_service, link_services


def _raw_link(
    catalog: Catalog, link_id: str, consumer: str, provider: str, env: str | None
) -> None:
    with catalog.transaction() as txn:
        txn.insert(
            service_links,
            {
                "id": link_id,
                "consumer_service_id": consumer,
                "provider_service_id": provider,
                "environment_code": env,
                "dependency_type": "API_CALL",
                "config": {},
                "created_at": "t",
                "updated_at": "t",
            },
        )


class TestCheck:
    def test_clean_catalog(self, catalog: Catalog) -> None:
        a = create_service(catalog, "a")
        b = create_service(catalog, "b")
        link_services(catalog, a["id"], b["id"], "prod")
        result = CheckService(catalog).check()
        assert result.ok
        assert result.data == {"issues": [], "count": 0, "errors": 0}

    def test_cycle_reported(self, catalog: Catalog) -> None:
        a = create_service(catalog, "a")
        b = create_service(catalog, "b")
        link_services(catalog, a["id"], b["id"], "prod")
        _raw_link(catalog, "raw", b["id"], a["id"], "prod")

        issues = CheckService(catalog).check().data["issues"]
        assert [i["category"] for i in issues] == [CAT_GRAPH]
        assert issues[0]["environment_code"] == "prod"
        assert set(issues[0]["service_ids"]) == {a["id"], b["id"]}
        assert "Dependency cycle in prod" in issues[0]["message"]

    def test_self_loop_reported(self, catalog: Catalog) -> None:
        a = create_service(catalog, "a")
        _raw_link(catalog, "raw", a["id"], a["id"], None)
        issues = CheckService(catalog).check().data["issues"]
        assert len(issues) == 1
        assert "depends on itself in (global)" in issues[0]["message"]

    def test_duplicate_global_key(self, catalog: Catalog) -> None:
        a = create_service(catalog, "a")
        b = create_service(catalog, "b")
        link_services(catalog, a["id"], b["id"])
        _raw_link(catalog, "raw", a["id"], b["id"], None)

        result = CheckService(catalog).check()
        keys = [i for i in result.data["issues"] if i["category"] == CAT_KEYS]
        assert len(keys) == 1
        assert keys[0]["kind"] == "service"
        assert keys[0]["key"]["environment_code"] is None
        assert result.data["errors"] == 1

    def test_dangling_reference_is_warning(self, catalog: Catalog) -> None:
        a = create_service(catalog, "a")
        conn = sqlite3.connect(catalog.settings.db_path)
        try:
            conn.execute(
                "INSERT INTO service_links (id, consumer_service_id, provider_service_id,"
                " environment_code, dependency_type, config, created_at, updated_at)"
                " VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                ("raw", a["id"], "ghost", "prod", "API_CALL", json.dumps({}), "t", "t"),
            )
            conn.commit()
        finally:
            conn.close()

        result = CheckService(catalog).check()
        refs = [i for i in result.data["issues"] if i["category"] == CAT_REFERENCES]
        assert len(refs) == 1
        assert refs[0]["severity"] == "warning"
        assert "ghost" in refs[0]["message"]
        assert result.data["errors"] == 0
