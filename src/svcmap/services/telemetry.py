"""Span timing for service operations under ``--verbose``.

``@traced`` opens a root span around a public service method and copies
the finished tree into ``ServiceResult.meta["telemetry"]``.  Inside it,
``trace_span`` records named phases (cycle checks, edge loads) with
free-form annotations.  With verbose off, both cost one ContextVar read.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from svcmap.services.result import ServiceResult

log = structlog.get_logger("svcmap.telemetry")

_verbose_enabled: ContextVar[bool] = ContextVar("_verbose_enabled", default=False)
_current_span: ContextVar[Span | None] = ContextVar("_current_span", default=None)


@dataclass
class Span:
    name: str
    children: list[Span] = field(default_factory=list)
    annotations: dict[str, Any] = field(default_factory=dict)
    elapsed_ms: float | None = None
    _started: float = field(default_factory=time.perf_counter, repr=False)

    @property
    def duration_ms(self) -> float:
        return self.elapsed_ms or 0.0

    def end(self) -> None:
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        """Nested dict for ``meta``; empty annotations and children are omitted."""
        out: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            out["annotations"] = self.annotations
        if self.children:
            out["children"] = [c.to_dict() for c in self.children]
        return out


@contextmanager
def _active(span: Span) -> Generator[Span]:
    """Make *span* the current span until the block exits, then close it."""
    token = _current_span.set(span)
    try:
        yield span
    finally:
        span.end()
        _current_span.reset(token)


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Record a phase under the current span.

    Yields None when verbose is off or no ``@traced`` call is running,
    so callers guard their ``annotate`` calls with ``if span``.
    """
    parent = _current_span.get() if _verbose_enabled.get() else None
    if parent is None:
        yield None
        return

    child = Span(name=name)
    parent.children.append(child)
    with _active(child):
        yield child


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Time a service method and attach its span tree to the returned result."""

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _verbose_enabled.get():
            return func(*args, **kwargs)

        span = Span(name=func.__qualname__)
        try:
            with _active(span):
                result = func(*args, **kwargs)
        except Exception:
            log.debug("span.failed", span_name=span.name, exc_info=True)
            raise

        if not isinstance(result, ServiceResult):
            return result
        log.debug(
            "span.complete",
            span_name=span.name,
            op=result.op,
            ok=result.ok,
            duration_ms=round(span.duration_ms, 2),
        )
        # ServiceResult is frozen
        meta = {**(result.meta or {}), "telemetry": span.to_dict()}
        return result.model_copy(update={"meta": meta})  # type: ignore[return-value]

    return wrapper


def enable_telemetry() -> None:
    """Turn on span collection for this context (``--verbose``)."""
    _verbose_enabled.set(True)


def disable_telemetry() -> None:
    _verbose_enabled.set(False)
