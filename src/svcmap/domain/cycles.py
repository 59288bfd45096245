"""Reachability search over consumer -> provider adjacency.

Used by the relationship engine before inserting a service edge: the
edge ``consumer -> provider`` closes a cycle exactly when ``provider``
can already reach ``consumer`` within the same environment scope.

The search is an explicit-stack depth-first walk with a mutable visited
set, so it terminates after touching each in-scope edge at most once
and never grows the Python call stack.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

type Adjacency = Mapping[str, Iterable[str]]


def find_path(adjacency: Adjacency, start: str, target: str) -> list[str] | None:
    """Return one directed path from *start* to *target*, or None.

    The first path found is returned; no ordering or shortest-path
    guarantee is made.

    Examples:
        >>> find_path({"a": ["b"], "b": ["c"]}, "a", "c")
        ['a', 'b', 'c']
        >>> find_path({"a": ["b"]}, "b", "a") is None
        True
    """
    if start == target:
        return [start]

    # parent pointers double as the visited set
    parents: dict[str, str | None] = {start: None}
    stack: list[str] = [start]
    while stack:
        node = stack.pop()
        for nxt in adjacency.get(node, ()):
            if nxt in parents:
                continue
            parents[nxt] = node
            if nxt == target:
                return _unwind(parents, target)
            stack.append(nxt)
    return None


def cycle_if_linked(adjacency: Adjacency, consumer: str, provider: str) -> list[str] | None:
    """Return the cycle that edge ``consumer -> provider`` would close.

    The returned list starts and ends with *consumer*:
    ``[consumer, provider, ..., consumer]``.  None means the edge is safe.
    """
    path = find_path(adjacency, provider, consumer)
    if path is None:
        return None
    return [consumer, *path]


def build_adjacency(pairs: Iterable[tuple[str, str]]) -> dict[str, list[str]]:
    """Group ``(consumer, provider)`` pairs into an adjacency mapping."""
    adjacency: dict[str, list[str]] = {}
    for consumer, provider in pairs:
        adjacency.setdefault(consumer, []).append(provider)
    return adjacency


def _unwind(parents: dict[str, str | None], node: str) -> list[str]:
    path: list[str] = []
    current: str | None = node
    while current is not None:
        path.append(current)
        current = parents[current]
    path.reverse()
    return path
