"""OpenApiService — OpenAPI 3 documents generated from the catalog.

One document per (service, environment): ``info`` comes from the
service, ``servers`` from the environment host, and ``paths`` from the
service's endpoints.
"""

from __future__ import annotations

import io
import json
from typing import Any

from ruamel.yaml import YAML

from svcmap.infrastructure.database.schema import endpoints, service_environments, services
from svcmap.services.base import BaseService
from svcmap.services.result import ServiceResult
from svcmap.services.telemetry import traced

FORMATS = ("json", "yaml")


def _new_yaml() -> YAML:
    """Fresh emitter per dump; the YAML object keeps state between calls."""
    y = YAML()
    y.default_flow_style = False
    return y


def render_document(document: dict[str, Any], fmt: str) -> str:
    """Serialize *document* as pretty JSON or block-style YAML."""
    if fmt == "yaml":
        buf = io.StringIO()
        _new_yaml().dump(document, buf)
        return buf.getvalue()
    return json.dumps(document, indent=2) + "\n"


def build_operation(endpoint: dict[str, Any]) -> dict[str, Any]:
    """OpenAPI operation object for one endpoint row."""
    method = endpoint["method"].lower()
    operation: dict[str, Any] = {
        "summary": endpoint["summary"],
        "operationId": f"{method}{endpoint['path'].replace('/', '_')}",
    }

    if endpoint["request_schema"]:
        operation["requestBody"] = {
            "required": True,
            "content": {"application/json": {"schema": endpoint["request_schema"]}},
        }

    responses: dict[str, Any] = {}
    for status, schema in (endpoint["response_schemas"] or {}).items():
        responses[str(status)] = {
            "description": f"Response for status {status}",
            "content": {"application/json": {"schema": schema}},
        }
    operation["responses"] = responses or {"200": {"description": "Success"}}

    auth = endpoint["auth"] or {}
    if "type" in auth:
        scheme = auth["type"] if isinstance(auth["type"], str) else "bearer"
        operation["security"] = [{scheme: []}]

    if endpoint["rate_limit"]:
        operation["x-rate-limit"] = endpoint["rate_limit"]
    return operation


class OpenApiService(BaseService):
    """Generates OpenAPI documents for cataloged services."""

    @traced
    def generate(
        self,
        service_id: str,
        environment_code: str,
        fmt: str | None = None,
    ) -> ServiceResult:
        """Build the document for *service_id* as deployed in *environment_code*.

        *fmt* is ``json`` or ``yaml``; None uses ``export.default_format``.
        The rendered text is returned under ``content`` and the raw
        mapping under ``document``.
        """
        op = "generate_openapi"
        export = self._catalog.settings.export
        fmt = (fmt or export.default_format).lower()
        if fmt not in FORMATS:
            return self._invalid(
                op, f"Unknown format {fmt!r}; expected one of: {', '.join(FORMATS)}", field="format"
            )

        with self._catalog.transaction() as txn:
            service = txn.get(services, service_id)
            if service is None:
                return self._not_found(op, "service", service_id)
            environment = txn.first(
                service_environments,
                service_environments.c.service_id == service_id,
                service_environments.c.code == environment_code,
            )
            if environment is None:
                return self._not_found(op, "environment", f"{service_id}/{environment_code}")
            rows = txn.scan(endpoints, endpoints.c.service_id == service_id)

        paths: dict[str, dict[str, Any]] = {}
        for row in rows:
            paths.setdefault(row["path"], {})[row["method"].lower()] = build_operation(row)

        document = {
            "openapi": export.openapi_version,
            "info": {
                "title": service["name"],
                "description": service["description"] or "",
                "version": export.api_version,
            },
            "servers": [
                {
                    "url": environment["host"],
                    "description": f"{environment['code']} environment",
                }
            ],
            "paths": paths,
        }
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "service_id": service_id,
                "environment_code": environment_code,
                "format": fmt,
                "endpoints": len(rows),
                "document": document,
                "content": render_document(document, fmt),
            },
        )
