"""Closed enumerations for catalog entities and edges.

Entity and edge-metadata values are the upper-case wire strings stored
in the database and returned in every ServiceResult payload.  EdgeKind
and LinkDirection are request vocabulary and stay lower-case.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TypeVar


class ServiceType(StrEnum):
    """Kind of deployable unit."""

    APPLICATION = "APPLICATION"
    LIBRARY = "LIBRARY"
    JOB = "JOB"
    PROXY = "PROXY"


class EnvironmentStatus(StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class DependencyType(StrEnum):
    """Kind of external dependency a service or endpoint uses."""

    DATABASE = "DATABASE"
    CACHE = "CACHE"
    QUEUE = "QUEUE"
    STORAGE = "STORAGE"
    EXTERNAL_API = "EXTERNAL_API"
    LIBRARY = "LIBRARY"


class DatabaseType(StrEnum):
    POSTGRESQL = "POSTGRESQL"
    MYSQL = "MYSQL"
    MONGODB = "MONGODB"
    REDIS = "REDIS"
    ELASTICSEARCH = "ELASTICSEARCH"
    CASSANDRA = "CASSANDRA"
    SQLITE = "SQLITE"
    ORACLE = "ORACLE"
    MSSQL = "MSSQL"


class EndpointMethod(StrEnum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class ServiceLinkType(StrEnum):
    """Nature of a consumer -> provider service relationship."""

    API_CALL = "API_CALL"
    EVENT_SUBSCRIPTION = "EVENT_SUBSCRIPTION"
    DATA_SHARING = "DATA_SHARING"
    AUTHENTICATION = "AUTHENTICATION"
    PROXY = "PROXY"
    LIBRARY_USAGE = "LIBRARY_USAGE"


class CallType(StrEnum):
    INTERNAL = "INTERNAL"
    EXTERNAL = "EXTERNAL"


class OperationType(StrEnum):
    READ = "READ"
    WRITE = "WRITE"
    READ_WRITE = "READ_WRITE"


class EdgeKind(StrEnum):
    """The five relationship collections owned by the relationship engine."""

    SERVICE = "service"
    DEPENDENCY = "dependency"
    DATABASE = "database"
    ENDPOINT_DEPENDENCY = "endpoint_dependency"
    ENDPOINT_DATABASE = "endpoint_database"


class LinkDirection(StrEnum):
    OUTGOING = "outgoing"
    INCOMING = "incoming"


_E = TypeVar("_E", bound=StrEnum)


def parse_enum(enum_cls: type[_E], value: str | _E) -> _E:
    """Coerce *value* to a member of *enum_cls*.

    Matching is case-insensitive and accepts ``-`` for ``_`` so that CLI
    input like ``api-call`` resolves to ``API_CALL``.

    Raises:
        ValueError: If *value* names no member.

    Examples:
        >>> parse_enum(CallType, "internal")
        <CallType.INTERNAL: 'INTERNAL'>
    """
    if isinstance(value, enum_cls):
        return value
    normalized = str(value).strip().upper().replace("-", "_")
    for candidate in (normalized, normalized.lower()):
        try:
            return enum_cls(candidate)
        except ValueError:
            continue
    allowed = ", ".join(m.value for m in enum_cls)
    msg = f"Invalid {enum_cls.__name__} {value!r}; expected one of: {allowed}"
    raise ValueError(msg)
