"""SQLAlchemy Core table definitions for the catalog database.

Entity tables carry string UUID primary keys.  Edge tables reference
them with ``ON DELETE CASCADE`` so that deleting a service, endpoint,
dependency, or database removes every edge that points at it.

Composite uniqueness on environment-scoped edges is declared here for
documentation and for the non-NULL case; SQLite treats NULLs as
distinct, so the relationship engine performs the authoritative check
under an exclusive scope.
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Index,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    literal_column,
)

metadata = MetaData()

# Insertion order for edge listings (SQLite implicit rowid).
INSERTION_ORDER = literal_column("rowid")


def _timestamps() -> list[Column[str]]:
    return [
        Column("created_at", Text, nullable=False),
        Column("updated_at", Text, nullable=False),
    ]


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

services = Table(
    "services",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", Text, nullable=False, unique=True),
    Column("description", Text),
    Column("owner", Text, nullable=False),
    Column("tags", JSON, nullable=False, default=list),
    Column("service_type", Text, nullable=False),
    Column("supports_database", Boolean, nullable=False, default=False),
    Column("proxy", Boolean, nullable=False, default=False),
    *_timestamps(),
)

service_environments = Table(
    "service_environments",
    metadata,
    Column("id", Text, primary_key=True),
    Column("service_id", Text, ForeignKey("services.id", ondelete="CASCADE"), nullable=False),
    Column("code", Text, nullable=False),
    Column("display_name", Text, nullable=False),
    Column("host", Text, nullable=False),
    Column("config", JSON),  # EnvironmentConfig
    Column("status", Text, nullable=False),
    *_timestamps(),
    UniqueConstraint("service_id", "code"),
)

dependencies = Table(
    "dependencies",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", Text, nullable=False),
    Column("description", Text),
    Column("version", Text, nullable=False),
    Column("dependency_type", Text, nullable=False),
    Column("config", JSON, nullable=False, default=dict),
    *_timestamps(),
    UniqueConstraint("name", "version"),
)

databases = Table(
    "databases",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", Text, nullable=False, unique=True),
    Column("description", Text),
    Column("database_type", Text, nullable=False),
    Column("connection_string", Text, nullable=False),
    Column("config", JSON, nullable=False, default=dict),
    *_timestamps(),
)

endpoints = Table(
    "endpoints",
    metadata,
    Column("id", Text, primary_key=True),
    Column("service_id", Text, ForeignKey("services.id", ondelete="CASCADE"), nullable=False),
    Column("method", Text, nullable=False),
    Column("path", Text, nullable=False),
    Column("summary", Text, nullable=False, default=""),
    Column("request_schema", JSON),
    Column("response_schemas", JSON),
    Column("auth", JSON),
    Column("rate_limit", JSON),
    Column("metadata", JSON),
    *_timestamps(),
    UniqueConstraint("service_id", "method", "path"),
)

# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------

service_links = Table(
    "service_links",
    metadata,
    Column("id", Text, primary_key=True),
    Column(
        "consumer_service_id",
        Text,
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "provider_service_id",
        Text,
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("environment_code", Text),
    Column("dependency_type", Text, nullable=False),
    Column("description", Text),
    Column("config", JSON, nullable=False, default=dict),
    *_timestamps(),
    UniqueConstraint("consumer_service_id", "provider_service_id", "environment_code"),
)

service_dependencies = Table(
    "service_dependencies",
    metadata,
    Column("id", Text, primary_key=True),
    Column("service_id", Text, ForeignKey("services.id", ondelete="CASCADE"), nullable=False),
    Column(
        "dependency_id",
        Text,
        ForeignKey("dependencies.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("environment_code", Text),
    Column("config_override", JSON, nullable=False, default=dict),
    *_timestamps(),
    UniqueConstraint("service_id", "dependency_id", "environment_code"),
)

service_db_links = Table(
    "service_db_links",
    metadata,
    Column("id", Text, primary_key=True),
    Column("service_id", Text, ForeignKey("services.id", ondelete="CASCADE"), nullable=False),
    Column("database_id", Text, ForeignKey("databases.id", ondelete="CASCADE"), nullable=False),
    Column("environment_code", Text),
    Column("schema_name", Text),
    Column("connection_override", JSON, nullable=False, default=dict),
    *_timestamps(),
    UniqueConstraint("service_id", "database_id", "environment_code"),
)

endpoint_dependencies = Table(
    "endpoint_dependencies",
    metadata,
    Column("id", Text, primary_key=True),
    Column("endpoint_id", Text, ForeignKey("endpoints.id", ondelete="CASCADE"), nullable=False),
    Column(
        "dependency_id",
        Text,
        ForeignKey("dependencies.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("call_type", Text, nullable=False),
    Column("config", JSON),
    *_timestamps(),
    UniqueConstraint("endpoint_id", "dependency_id"),
)

endpoint_databases = Table(
    "endpoint_databases",
    metadata,
    Column("id", Text, primary_key=True),
    Column("endpoint_id", Text, ForeignKey("endpoints.id", ondelete="CASCADE"), nullable=False),
    Column("database_id", Text, ForeignKey("databases.id", ondelete="CASCADE"), nullable=False),
    Column("operation_type", Text, nullable=False),
    Column("table_names", JSON),
    Column("config", JSON),
    *_timestamps(),
    UniqueConstraint("endpoint_id", "database_id"),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_environments_service", service_environments.c.service_id)
Index("ix_endpoints_service", endpoints.c.service_id)
Index("ix_service_links_consumer", service_links.c.consumer_service_id)
Index("ix_service_links_provider", service_links.c.provider_service_id)
Index("ix_service_links_env", service_links.c.environment_code)
Index("ix_service_deps_service", service_dependencies.c.service_id)
Index("ix_service_deps_dependency", service_dependencies.c.dependency_id)
Index("ix_service_db_links_service", service_db_links.c.service_id)
Index("ix_endpoint_deps_endpoint", endpoint_dependencies.c.endpoint_id)
Index("ix_endpoint_dbs_endpoint", endpoint_databases.c.endpoint_id)
