"""Tests for telemetry primitives: Span, trace_span, @traced."""

from __future__ import annotations

import time
from collections.abc import Generator

import pytest

from svcmap.infrastructure.catalog import Catalog
from svcmap.services.relationships import RelationshipService
from svcmap.services.result import ServiceResult
from svcmap.services.telemetry import (
    Span,
    _current_span,
    disable_telemetry,
    enable_telemetry,
    trace_span,
    traced,
)
from tests.conftest import create_service


@pytest.fixture(autouse=True)
def _reset_telemetry_state() -> Generator[None]:
    """Ensure clean telemetry state for every test."""
    yield
    disable_telemetry()
    _current_span.set(None)


class TestSpan:
    def test_duration_before_end_is_zero(self) -> None:
        assert Span(name="test").duration_ms == 0.0

    def test_duration_after_end(self) -> None:
        span = Span(name="test")
        time.sleep(0.005)
        span.end()
        assert span.duration_ms > 0

    def test_to_dict_minimal(self) -> None:
        span = Span(name="root")
        span.end()
        d = span.to_dict()
        assert d["name"] == "root"
        assert "children" not in d
        assert "annotations" not in d

    def test_to_dict_nested_with_annotations(self) -> None:
        root = Span(name="root")
        child = Span(name="cycle_check")
        child.annotate("edges_in_scope", 3)
        root.children.append(child)
        child.end()
        root.end()
        d = root.to_dict()
        assert d["children"][0]["annotations"] == {"edges_in_scope": 3}


class TestTraceSpan:
    def test_disabled_yields_none(self) -> None:
        with trace_span("test") as span:
            assert span is None

    def test_no_root_yields_none(self) -> None:
        enable_telemetry()
        with trace_span("test") as span:
            assert span is None

    def test_nested_spans(self) -> None:
        enable_telemetry()
        root = Span(name="root")
        token = _current_span.set(root)
        try:
            with trace_span("a"), trace_span("b"):
                pass
            assert root.children[0].name == "a"
            assert root.children[0].children[0].name == "b"
            assert root.children[0].elapsed_ms is not None
        finally:
            _current_span.reset(token)

    def test_span_closed_when_block_raises(self) -> None:
        enable_telemetry()
        root = Span(name="root")
        token = _current_span.set(root)
        try:
            with pytest.raises(ValueError), trace_span("edges"):
                raise ValueError("bad row")
            assert root.children[0].elapsed_ms is not None
            assert _current_span.get() is root
        finally:
            _current_span.reset(token)


class TestTracedDecorator:
    def test_noop_when_disabled(self) -> None:
        @traced
        def my_func() -> ServiceResult:
            return ServiceResult(ok=True, op="test")

        assert my_func().meta is None

    def test_injects_meta_when_enabled(self) -> None:
        @traced
        def my_func() -> ServiceResult:
            return ServiceResult(ok=True, op="test", meta={"existing": "data"})

        enable_telemetry()
        result = my_func()
        assert result.meta is not None
        assert result.meta["existing"] == "data"
        assert result.meta["telemetry"]["duration_ms"] >= 0

    def test_exception_propagates(self) -> None:
        @traced
        def boom() -> ServiceResult:
            raise RuntimeError("store down")

        enable_telemetry()
        with pytest.raises(RuntimeError, match="store down"):
            boom()
        assert _current_span.get() is None

    def test_cycle_check_span_recorded(self, catalog: Catalog) -> None:
        a = create_service(catalog, "a")
        b = create_service(catalog, "b")
        enable_telemetry()
        result = RelationshipService(catalog).link_service(
            a["id"], b["id"], dependency_type="API_CALL", environment_code="prod"
        )
        assert result.ok
        children = result.meta["telemetry"]["children"]
        check = next(c for c in children if c["name"] == "cycle_check")
        assert check["annotations"] == {"edges_in_scope": 0, "cycle": False}
