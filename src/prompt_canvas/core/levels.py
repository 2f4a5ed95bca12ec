"""
Level Scheduling - Group sorted generator nodes into parallel tiers.

A node's level is 0 when it has no dependencies, otherwise one more than
the highest level among its dependencies. Nodes sharing a level never
depend on each other and can run at the same time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Sequence

from prompt_canvas.core.graph import GraphSnapshot, Node
from prompt_canvas.core.toposort import topological_sort


@dataclass(frozen=True)
class ExecutionLevel:
    """All nodes assigned to one level."""
    level: int
    nodes: tuple[Node, ...]

    @property
    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes]


@dataclass(frozen=True)
class ExecutionPlan:
    """Level-by-level plan for one run."""
    order: tuple[Node, ...] = ()
    levels: tuple[ExecutionLevel, ...] = ()
    level_of: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.order)

    def as_ids(self) -> list[list[str]]:
        return [level.node_ids for level in self.levels]


def compute_levels(
    sorted_nodes: Sequence[Node],
    deps_of: Callable[[str], Iterable[str]],
) -> dict[str, int]:
    """
    Assign a level to every node.

    Levels are memoized by node id, so shared upstream nodes are computed
    once no matter how many nodes fan in on them. Dependencies missing
    from `sorted_nodes` do not count. The input must be acyclic.

    Returns:
        Mapping of node ID to level.
    """
    present = {node.id for node in sorted_nodes}
    deps_cache: dict[str, list[str]] = {}
    levels: dict[str, int] = {}

    def present_deps(node_id: str) -> list[str]:
        if node_id not in deps_cache:
            deps_cache[node_id] = [d for d in deps_of(node_id) if d in present]
        return deps_cache[node_id]

    for node in sorted_nodes:
        if node.id in levels:
            continue
        stack = [node.id]
        while stack:
            current = stack[-1]
            missing = [d for d in present_deps(current) if d not in levels]
            if missing:
                stack.extend(missing)
                continue
            stack.pop()
            if current in levels:
                continue
            deps = present_deps(current)
            levels[current] = 1 + max(levels[d] for d in deps) if deps else 0

    return levels


def group_by_level(
    sorted_nodes: Sequence[Node],
    levels: dict[str, int],
) -> list[ExecutionLevel]:
    """Bucket nodes by level, ascending. Nodes keep their sorted order."""
    buckets: dict[int, list[Node]] = {}
    for node in sorted_nodes:
        buckets.setdefault(levels[node.id], []).append(node)
    return [ExecutionLevel(level, tuple(buckets[level])) for level in sorted(buckets)]


def plan_execution(
    snapshot: GraphSnapshot,
    deps_of: Callable[[str], Iterable[str]],
) -> ExecutionPlan:
    """
    Sort the snapshot's generator nodes and group them into levels.

    Raises:
        CycleDetectedError: If the generators depend on each other in a loop.
    """
    order = topological_sort(snapshot.generator_nodes(), deps_of)
    level_of = compute_levels(order, deps_of)
    return ExecutionPlan(
        order=tuple(order),
        levels=tuple(group_by_level(order, level_of)),
        level_of=level_of,
    )
