"""Shared service-layer helper functions."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime


def now_iso() -> str:
    """Current UTC time as standard ISO 8601 (created_at / updated_at)."""
    return datetime.now(UTC).isoformat()


def new_id() -> str:
    """Server-assigned identifier for entities and edges."""
    return str(uuid.uuid4())


def service_summary(row: dict[str, object]) -> dict[str, object]:
    """Counterpart view of a service embedded in edge payloads."""
    return {
        "id": row["id"],
        "name": row["name"],
        "description": row.get("description"),
        "service_type": row["service_type"],
        "owner": row["owner"],
    }


def dependency_info(row: dict[str, object]) -> dict[str, object]:
    """Compact dependency view used by graph payloads."""
    return {
        "dependency_id": row["id"],
        "name": row["name"],
        "type": row["dependency_type"],
        "version": row["version"],
    }


def database_info(row: dict[str, object]) -> dict[str, object]:
    """Compact database view used by graph payloads."""
    return {
        "database_id": row["id"],
        "name": row["name"],
        "type": row["database_type"],
        "host": row["connection_string"],
    }


def endpoint_summary(row: dict[str, object]) -> dict[str, object]:
    """Counterpart view of an endpoint embedded in edge payloads."""
    return {
        "id": row["id"],
        "service_id": row["service_id"],
        "method": row["method"],
        "path": row["path"],
        "summary": row["summary"],
    }
