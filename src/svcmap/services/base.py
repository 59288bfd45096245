"""BaseService — abstract foundation for all svcmap services.

Every service receives a :class:`Catalog` at construction time.  The
Catalog provides transactional access to the record store and the graph
engine.  Services own their transaction boundaries via
``self._catalog.transaction()``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from svcmap.services.result import ErrorCode, ServiceError, ServiceResult

if TYPE_CHECKING:
    from svcmap.infrastructure.catalog import Catalog

logger = logging.getLogger(__name__)


class BaseService:
    """Abstract base for all service-layer classes.

    Usage::

        class DependencyService(BaseService):
            def create_dependency(self, name: str, ...) -> ServiceResult:
                with self._catalog.transaction(exclusive="dependencies") as txn:
                    ...
    """

    def __init__(self, catalog: Catalog) -> None:
        self._catalog = catalog

    # ------------------------------------------------------------------
    # Failure constructors (one per error kind)
    # ------------------------------------------------------------------

    @staticmethod
    def _not_found(op: str, kind: str, entity_id: str) -> ServiceResult:
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(
                code=ErrorCode.NOT_FOUND,
                message=f"{kind.replace('_', ' ').capitalize()} not found: {entity_id}",
                detail={"kind": kind, "id": entity_id},
            ),
        )

    @staticmethod
    def _conflict(op: str, kind: str, key: dict[str, Any], message: str) -> ServiceResult:
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(
                code=ErrorCode.CONFLICT,
                message=message,
                detail={"kind": kind, "key": key},
            ),
        )

    @staticmethod
    def _invalid(op: str, reason: str, *, field: str | None = None) -> ServiceResult:
        detail: dict[str, Any] = {"reason": reason}
        if field is not None:
            detail["field"] = field
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(code=ErrorCode.INVALID_REQUEST, message=reason, detail=detail),
        )

    @classmethod
    def _cleared(
        cls, op: str, values: dict[str, Any], required: frozenset[str]
    ) -> ServiceResult | None:
        """INVALID_REQUEST for the first required field a partial update sets to None."""
        for name in sorted(required & values.keys()):
            if values[name] is None:
                return cls._invalid(op, f"{name} cannot be cleared", field=name)
        return None


class Rejected(Exception):  # noqa: N818
    """Carries a failed ServiceResult out of a nested helper.

    Raising inside ``catalog.transaction()`` rolls back everything the
    block wrote so far; the caller catches it and returns ``result``.
    """

    def __init__(self, result: ServiceResult) -> None:
        super().__init__(result.error.message if result.error else result.op)
        self.result = result
