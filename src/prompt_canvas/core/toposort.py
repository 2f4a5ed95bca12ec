"""
Topological Sort - Dependency-first ordering of generator nodes.

Uses a depth-first post-order walk with three states per node
(unvisited, in progress, done). The walk keeps its own stack, so deep
chains of generators do not hit the interpreter's recursion limit.
"""

from __future__ import annotations

from typing import Callable, Iterable, Iterator, Sequence

from prompt_canvas.core.errors import CycleDetectedError
from prompt_canvas.core.graph import Node


_IN_PROGRESS = 1
_DONE = 2


def topological_sort(
    nodes: Sequence[Node],
    deps_of: Callable[[str], Iterable[str]],
) -> list[Node]:
    """
    Order nodes so that every dependency comes before its dependents.

    Args:
        nodes: Nodes to order. Dependencies outside this set are ignored.
        deps_of: Returns the ids a node depends on.

    Returns:
        Nodes in execution order. Ties keep the input order.

    Raises:
        CycleDetectedError: With the chain of ids on the active path,
            closed on the node that was revisited (e.g. a → b → a).
    """
    by_id = {node.id: node for node in nodes}
    position = {node.id: i for i, node in enumerate(nodes)}

    def ordered_deps(node_id: str) -> Iterator[str]:
        present = [dep for dep in set(deps_of(node_id)) if dep in by_id]
        return iter(sorted(present, key=position.__getitem__))

    state: dict[str, int] = {}
    result: list[Node] = []

    for root in nodes:
        if root.id in state:
            continue

        state[root.id] = _IN_PROGRESS
        path: list[str] = [root.id]
        stack: list[tuple[str, Iterator[str]]] = [(root.id, ordered_deps(root.id))]

        while stack:
            node_id, pending = stack[-1]
            for dep in pending:
                dep_state = state.get(dep)
                if dep_state == _IN_PROGRESS:
                    start = path.index(dep)
                    raise CycleDetectedError(path[start:] + [dep])
                if dep_state is None:
                    state[dep] = _IN_PROGRESS
                    path.append(dep)
                    stack.append((dep, ordered_deps(dep)))
                    break
            else:
                stack.pop()
                path.pop()
                state[node_id] = _DONE
                result.append(by_id[node_id])

    return result
