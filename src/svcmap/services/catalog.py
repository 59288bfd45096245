"""CatalogService — registry of services and their runtime environments.

Service names are unique catalog-wide; renames re-check uniqueness
against every other row.  Environments are keyed by (service, code) and
written with upsert semantics.  Deleting a service cascades to its
environments, endpoints, and every edge that references it.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from svcmap.domain.environments import EnvironmentConfig, normalize_environment
from svcmap.domain.types import EnvironmentStatus, ServiceType, parse_enum
from svcmap.infrastructure.database.schema import service_environments, services
from svcmap.services._helpers import new_id, now_iso
from svcmap.services.base import BaseService
from svcmap.services.result import ServiceResult
from svcmap.services.telemetry import traced

logger = logging.getLogger(__name__)

_SERVICE_FIELDS = frozenset(
    {"name", "description", "owner", "tags", "service_type", "supports_database", "proxy"}
)
_SERVICE_REQUIRED = frozenset({"name", "owner", "service_type", "supports_database", "proxy"})


class CatalogService(BaseService):
    """Handles service and environment CRUD."""

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    @traced
    def create_service(
        self,
        name: str,
        *,
        owner: str,
        service_type: str = ServiceType.APPLICATION,
        description: str | None = None,
        tags: list[str] | None = None,
        supports_database: bool = False,
        proxy: bool = False,
    ) -> ServiceResult:
        """Register a new service.  Fails with CONFLICT if the name is taken."""
        op = "create_service"
        try:
            kind = parse_enum(ServiceType, service_type)
        except ValueError as exc:
            return self._invalid(op, str(exc), field="service_type")

        with self._catalog.transaction(exclusive="services") as txn:
            if txn.first(services, services.c.name == name) is not None:
                return self._conflict(
                    op, "service", {"name": name}, f"Service with name '{name}' already exists"
                )
            now = now_iso()
            row = {
                "id": new_id(),
                "name": name,
                "description": description,
                "owner": owner,
                "tags": list(tags or []),
                "service_type": kind.value,
                "supports_database": supports_database,
                "proxy": proxy,
                "created_at": now,
                "updated_at": now,
            }
            txn.insert(services, row)

        logger.debug("Created service %s (%s)", name, row["id"])
        return ServiceResult(ok=True, op=op, data=row)

    @traced
    def get_service(self, service_id: str) -> ServiceResult:
        op = "get_service"
        with self._catalog.transaction() as txn:
            row = txn.get(services, service_id)
        if row is None:
            return self._not_found(op, "service", service_id)
        return ServiceResult(ok=True, op=op, data=row)

    @traced
    def list_services(
        self,
        *,
        service_type: str | None = None,
        owner: str | None = None,
        tag: str | None = None,
    ) -> ServiceResult:
        """List services, optionally filtered by type, owner, or tag."""
        op = "list_services"
        criteria = []
        if service_type is not None:
            try:
                criteria.append(
                    services.c.service_type == parse_enum(ServiceType, service_type).value
                )
            except ValueError as exc:
                return self._invalid(op, str(exc), field="service_type")
        if owner is not None:
            criteria.append(services.c.owner == owner)

        with self._catalog.transaction() as txn:
            rows = txn.scan(services, *criteria)

        if tag is not None:
            rows = [r for r in rows if tag in (r["tags"] or [])]
        return ServiceResult(ok=True, op=op, data={"count": len(rows), "items": rows})

    @traced
    def update_service(self, service_id: str, *, changes: dict[str, Any]) -> ServiceResult:
        """Apply a partial update.  Unknown or immutable fields become warnings."""
        op = "update_service"
        cleared = self._cleared(op, changes, _SERVICE_REQUIRED)
        if cleared is not None:
            return cleared
        warnings: list[str] = []
        values: dict[str, Any] = {}

        for key, value in changes.items():
            if key not in _SERVICE_FIELDS:
                warnings.append(f"Cannot change field: {key}")
                continue
            if key == "service_type":
                try:
                    value = parse_enum(ServiceType, value).value
                except ValueError as exc:
                    return self._invalid(op, str(exc), field=key)
            elif key == "tags":
                value = list(value or [])
            values[key] = value

        with self._catalog.transaction(exclusive="services") as txn:
            if not txn.exists(services, service_id):
                return self._not_found(op, "service", service_id)

            new_name = values.get("name")
            if new_name is not None:
                clash = txn.first(
                    services, services.c.name == new_name, services.c.id != service_id
                )
                if clash is not None:
                    return self._conflict(
                        op,
                        "service",
                        {"name": new_name},
                        f"Service with name '{new_name}' already exists",
                    )

            values["updated_at"] = now_iso()
            row = txn.update(services, service_id, values)

        return ServiceResult(
            ok=True,
            op=op,
            data={**(row or {}), "fields_changed": sorted(k for k in values if k != "updated_at")},
            warnings=warnings,
        )

    @traced
    def delete_service(self, service_id: str) -> ServiceResult:
        """Delete a service; its environments, endpoints, and edges cascade."""
        op = "delete_service"
        with self._catalog.transaction(exclusive="services") as txn:
            row = txn.get(services, service_id)
            if row is None:
                return self._not_found(op, "service", service_id)
            txn.delete(services, service_id)

        logger.info("Deleted service %s (%s) with dependent rows", row["name"], service_id)
        return ServiceResult(ok=True, op=op, data={"id": service_id, "name": row["name"]})

    # ------------------------------------------------------------------
    # Environments
    # ------------------------------------------------------------------

    @traced
    def set_environment(
        self,
        service_id: str,
        code: str,
        *,
        display_name: str,
        host: str,
        config: dict[str, Any] | None = None,
        status: str | None = None,
    ) -> ServiceResult:
        """Create or replace the (service, code) environment.

        On update, display name, host, and config are replaced wholesale;
        status changes only when supplied.  On create, status defaults to
        ACTIVE.
        """
        op = "set_environment"
        try:
            code = normalize_environment(code) or ""
        except ValueError as exc:
            return self._invalid(op, str(exc), field="code")
        if not code:
            return self._invalid(op, "Environment code is required", field="code")

        env_config: dict[str, Any] | None = None
        if config is not None:
            try:
                env_config = EnvironmentConfig.model_validate(config).model_dump()
            except ValidationError as exc:
                return self._invalid(op, f"Invalid environment config: {exc}", field="config")

        env_status: EnvironmentStatus | None = None
        if status is not None:
            try:
                env_status = parse_enum(EnvironmentStatus, status)
            except ValueError as exc:
                return self._invalid(op, str(exc), field="status")

        with self._catalog.transaction(exclusive="service_environments") as txn:
            if not txn.exists(services, service_id):
                return self._not_found(op, "service", service_id)

            existing = txn.first(
                service_environments,
                service_environments.c.service_id == service_id,
                service_environments.c.code == code,
            )
            now = now_iso()
            if existing is not None:
                values: dict[str, Any] = {
                    "display_name": display_name,
                    "host": host,
                    "config": env_config,
                    "updated_at": now,
                }
                if env_status is not None:
                    values["status"] = env_status.value
                row = txn.update(service_environments, existing["id"], values) or existing
                created = False
            else:
                row = {
                    "id": new_id(),
                    "service_id": service_id,
                    "code": code,
                    "display_name": display_name,
                    "host": host,
                    "config": env_config,
                    "status": (env_status or EnvironmentStatus.ACTIVE).value,
                    "created_at": now,
                    "updated_at": now,
                }
                txn.insert(service_environments, row)
                created = True

        return ServiceResult(ok=True, op=op, data={**row, "created": created})

    @traced
    def get_environment(self, service_id: str, code: str) -> ServiceResult:
        op = "get_environment"
        with self._catalog.transaction() as txn:
            if not txn.exists(services, service_id):
                return self._not_found(op, "service", service_id)
            row = txn.first(
                service_environments,
                service_environments.c.service_id == service_id,
                service_environments.c.code == code,
            )
        if row is None:
            return self._not_found(op, "environment", f"{service_id}/{code}")
        return ServiceResult(ok=True, op=op, data=row)

    @traced
    def list_environments(self, service_id: str) -> ServiceResult:
        op = "list_environments"
        with self._catalog.transaction() as txn:
            if not txn.exists(services, service_id):
                return self._not_found(op, "service", service_id)
            rows = txn.scan(service_environments, service_environments.c.service_id == service_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={"service_id": service_id, "count": len(rows), "items": rows},
        )

    @traced
    def delete_environment(self, service_id: str, code: str) -> ServiceResult:
        op = "delete_environment"
        with self._catalog.transaction(exclusive="service_environments") as txn:
            row = txn.first(
                service_environments,
                service_environments.c.service_id == service_id,
                service_environments.c.code == code,
            )
            if row is None:
                return self._not_found(op, "environment", f"{service_id}/{code}")
            txn.delete(service_environments, row["id"])
        return ServiceResult(ok=True, op=op, data={"service_id": service_id, "code": code})
