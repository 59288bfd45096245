"""Tests for environment scoping rules."""

import pytest
from pydantic import ValidationError

from svcmap.domain.environments import (
    EnvironmentConfig,
    normalize_environment,
    same_scope,
    scope_label,
)


class TestNormalizeEnvironment:
    def test_none_is_global(self) -> None:
        assert normalize_environment(None) is None

    def test_code_unchanged(self) -> None:
        assert normalize_environment("prod") == "prod"

    def test_case_is_significant(self) -> None:
        assert normalize_environment("Prod") == "Prod"

    @pytest.mark.parametrize("code", ["", " ", "prod ", "us east", "\tprod"])
    def test_malformed_rejected(self, code: str) -> None:
        with pytest.raises(ValueError, match="Malformed environment code"):
            normalize_environment(code)


class TestSameScope:
    def test_unset_matches_unset(self) -> None:
        assert same_scope(None, None)

    def test_unset_never_matches_named(self) -> None:
        assert not same_scope(None, "prod")
        assert not same_scope("prod", None)

    def test_exact_match(self) -> None:
        assert same_scope("prod", "prod")
        assert not same_scope("prod", "staging")


class TestScopeLabel:
    def test_labels(self) -> None:
        assert scope_label("prod") == "prod"
        assert scope_label(None) == "(global)"


class TestEnvironmentConfig:
    def test_defaults(self) -> None:
        config = EnvironmentConfig()
        assert config.timeout_ms is None
        assert config.retries is None
        assert config.downstream_overrides == {}

    def test_camel_case_aliases(self) -> None:
        config = EnvironmentConfig.model_validate(
            {"timeoutMs": 1500, "downstreamOverrides": {"payments": "http://pay.local"}}
        )
        assert config.timeout_ms == 1500
        assert config.downstream_overrides == {"payments": "http://pay.local"}

    def test_field_names_accepted(self) -> None:
        config = EnvironmentConfig.model_validate({"timeout_ms": 10, "retries": 2})
        assert config.retries == 2

    def test_negative_timeout_rejected(self) -> None:
        with pytest.raises(ValidationError):
            EnvironmentConfig.model_validate({"timeout_ms": -1})
