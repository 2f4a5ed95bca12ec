"""
Dependency Extraction - Which generator nodes a node waits on.

A generator depends on another generator when an edge connects them
directly, or when an image node relays the upstream generator's output
into it. Only one image relay is crossed by default; longer relay chains
need `passthrough_depth=None`.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Iterable

from prompt_canvas.core.graph import Edge, GraphSnapshot, Node, NodeKind

logger = logging.getLogger(__name__)


DependencyFn = Callable[[str], set[str]]


def dependencies_of(
    node_id: str,
    nodes: Iterable[Node],
    edges: Iterable[Edge],
    *,
    passthrough_depth: int | None = 1,
) -> set[str]:
    """
    Get the generator nodes that `node_id` depends on.

    Args:
        node_id: The node to inspect
        nodes: All nodes of the graph
        edges: All edges of the graph
        passthrough_depth: How many image relays to cross between two
            generators. None follows relay chains of any length.

    Returns:
        Set of generator node IDs. Edges pointing at missing nodes are
        ignored.
    """
    by_id = {node.id: node for node in nodes}
    incoming: dict[str, list[str]] = defaultdict(list)
    for edge in edges:
        incoming[edge.target].append(edge.source)
    return _collect(node_id, by_id, incoming, passthrough_depth)


def dependency_resolver(
    snapshot: GraphSnapshot,
    *,
    passthrough_depth: int | None = 1,
) -> DependencyFn:
    """
    Build a memoized dependency function for one run.

    Edges are indexed by target once, and each node's dependencies are
    computed at most once.
    """
    by_id = snapshot.node_by_id()
    incoming: dict[str, list[str]] = defaultdict(list)
    for edge in snapshot.edges:
        incoming[edge.target].append(edge.source)

    if passthrough_depth is None:
        logger.debug("Following image relay chains of any length")

    cache: dict[str, set[str]] = {}

    def deps_of(node_id: str) -> set[str]:
        if node_id not in cache:
            cache[node_id] = _collect(node_id, by_id, incoming, passthrough_depth)
        return set(cache[node_id])

    return deps_of


def _collect(
    node_id: str,
    by_id: dict[str, Node],
    incoming: dict[str, list[str]],
    passthrough_depth: int | None,
) -> set[str]:
    deps: set[str] = set()
    # relay id -> fewest relays crossed to reach it
    seen_relays: dict[str, int] = {}
    # (node whose inputs to scan, relays crossed to reach it)
    to_visit: list[tuple[str, int]] = [(node_id, 0)]

    while to_visit:
        current, crossed = to_visit.pop()
        for source_id in incoming.get(current, ()):
            source = by_id.get(source_id)
            if source is None:
                continue
            if source.kind is NodeKind.GENERATOR:
                deps.add(source_id)
            elif source.kind is NodeKind.PASS_THROUGH_IMAGE:
                if passthrough_depth is not None and crossed >= passthrough_depth:
                    continue
                if seen_relays.get(source_id, crossed + 2) <= crossed + 1:
                    continue
                seen_relays[source_id] = crossed + 1
                to_visit.append((source_id, crossed + 1))

    return deps
