"""Environment scoping rules.

An environment code partitions the relationship graph: two edges with
different codes never interact, and ``None`` (unset / global) is its own
partition that only matches other unset edges.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field

_WHITESPACE = re.compile(r"\s")


class EnvironmentConfig(BaseModel):
    """Per-environment runtime overrides for a service."""

    model_config = {"frozen": True, "populate_by_name": True}

    timeout_ms: int | None = Field(default=None, ge=0, alias="timeoutMs")
    retries: int | None = Field(default=None, ge=0)
    downstream_overrides: dict[str, str] = Field(
        default_factory=dict, alias="downstreamOverrides"
    )


def normalize_environment(code: str | None) -> str | None:
    """Validate an environment code used as part of an edge key.

    ``None`` passes through unchanged.  A supplied code must be non-empty
    and contain no whitespace; it is never trimmed, because scoping is
    exact-match and a silently altered key would address a different
    partition.

    Raises:
        ValueError: If the code is blank or contains whitespace.
    """
    if code is None:
        return None
    if code == "" or _WHITESPACE.search(code):
        msg = f"Malformed environment code: {code!r}"
        raise ValueError(msg)
    return code


def same_scope(a: str | None, b: str | None) -> bool:
    """Nil-or-exact equality: unset matches only unset."""
    return a == b


def scope_label(code: str | None) -> str:
    """Human-readable name for an environment scope."""
    return code if code is not None else "(global)"
