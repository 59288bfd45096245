"""SQLite record store: engine and schema via SQLAlchemy Core."""

from svcmap.infrastructure.database.engine import create_db_engine, init_database
from svcmap.infrastructure.database.schema import (
    databases,
    dependencies,
    endpoint_databases,
    endpoint_dependencies,
    endpoints,
    metadata,
    service_db_links,
    service_dependencies,
    service_environments,
    service_links,
    services,
)

__all__ = [
    "create_db_engine",
    "databases",
    "dependencies",
    "endpoint_databases",
    "endpoint_dependencies",
    "endpoints",
    "init_database",
    "metadata",
    "service_db_links",
    "service_dependencies",
    "service_environments",
    "service_links",
    "services",
]
