"""
Workflow Graph Model - Nodes, edges, and the live graph store.

This module defines the graph the canvas edits and the engine reads:
- NodeKind: Role of a node in execution (generator, image relay, input, ...)
- Node: A canvas node with a type tag and an opaque data payload
- Edge: A directed "source feeds target" link
- GraphSnapshot: Immutable point-in-time copy used for planning a run
- GraphView: Live, mutable view consulted while a run is dispatching
- WorkflowGraph: The live graph store
"""

from __future__ import annotations

import copy
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import uuid4


class NodeKind(Enum):
    """Execution role of a node."""
    GENERATOR = "generator"
    PASS_THROUGH_IMAGE = "pass_through_image"
    INPUT = "input"
    ANNOTATION = "annotation"
    OTHER = "other"

    @classmethod
    def from_type_name(cls, type_name: str | None) -> NodeKind:
        """Map a canvas node type string (e.g. "promptNode") to a kind."""
        return _KIND_BY_TYPE_NAME.get(type_name or "", cls.OTHER)


# Canvas type strings as stored in workspace files
GENERATOR_TYPE = "promptNode"
IMAGE_TYPE = "imageNode"
CODE_TYPE = "codeNode"

_KIND_BY_TYPE_NAME: dict[str, NodeKind] = {
    GENERATOR_TYPE: NodeKind.GENERATOR,
    IMAGE_TYPE: NodeKind.PASS_THROUGH_IMAGE,
    "textInputNode": NodeKind.INPUT,
    "captureNode": NodeKind.INPUT,
    "stickyNoteNode": NodeKind.ANNOTATION,
}

_DEFAULT_TYPE_NAME: dict[NodeKind, str] = {
    NodeKind.GENERATOR: GENERATOR_TYPE,
    NodeKind.PASS_THROUGH_IMAGE: IMAGE_TYPE,
    NodeKind.INPUT: "textInputNode",
    NodeKind.ANNOTATION: "stickyNoteNode",
    NodeKind.OTHER: CODE_TYPE,
}


class NodeStatus:
    """Execution status values stored in a generator's payload."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class Point2D:
    """2D point for node positioning on the canvas."""
    x: float = 0.0
    y: float = 0.0


@dataclass
class Node:
    """
    A single node on the canvas.

    The payload in `data` is owned by whoever edits the node. For generator
    nodes it carries `title`, `prompt`, `model` and `status`; image nodes
    carry `image_url`; code nodes carry `content` and `language`.
    """
    id: str
    kind: NodeKind
    type_name: str = ""
    position: Point2D = field(default_factory=Point2D)
    data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.type_name:
            self.type_name = _DEFAULT_TYPE_NAME[self.kind]

    @classmethod
    def create(
        cls,
        kind: NodeKind,
        data: dict[str, Any] | None = None,
        position: Point2D | None = None,
        node_id: str | None = None,
    ) -> Node:
        """Factory method to create a new node with a generated id."""
        type_name = _DEFAULT_TYPE_NAME[kind]
        return cls(
            id=node_id or f"{type_name.removesuffix('Node')}-{uuid4()}",
            kind=kind,
            type_name=type_name,
            position=position or Point2D(),
            data=dict(data or {}),
        )

    @property
    def is_generator(self) -> bool:
        return self.kind is NodeKind.GENERATOR

    @property
    def title(self) -> str | None:
        value = self.data.get("title")
        return value if isinstance(value, str) and value else None

    @property
    def label(self) -> str | None:
        value = self.data.get("label")
        return value if isinstance(value, str) and value else None

    @property
    def prompt(self) -> str:
        value = self.data.get("prompt")
        return value if isinstance(value, str) else ""

    @property
    def model(self) -> str:
        value = self.data.get("model")
        return value if isinstance(value, str) else ""

    @property
    def status(self) -> str:
        return self.data.get("status", NodeStatus.IDLE)

    def display_name(self, default: str = "Untitled") -> str:
        """Human-readable name: title, then label, then `default`."""
        return self.title or self.label or default


@dataclass(frozen=True)
class Edge:
    """A directed edge: `source` feeds `target`."""
    source: str
    target: str
    id: str = ""

    @classmethod
    def create(cls, source: str, target: str) -> Edge:
        return cls(source=source, target=target, id=f"e-{source}-{target}-{uuid4().hex[:8]}")


@dataclass(frozen=True)
class GraphSnapshot:
    """
    Immutable copy of the graph taken when a run starts.

    Node payloads are deep-copied, so edits made to the live graph while
    a run is in flight never reach the snapshot.
    """
    nodes: tuple[Node, ...]
    edges: tuple[Edge, ...]
    taken_at: float = field(default_factory=time.time)

    def node_by_id(self) -> dict[str, Node]:
        return {node.id: node for node in self.nodes}

    def generator_nodes(self) -> list[Node]:
        return [node for node in self.nodes if node.is_generator]


@dataclass(frozen=True)
class GraphView:
    """
    Live view of the graph at the moment it is read.

    The lists are copies but the nodes are the store's own objects, so
    outputs written by an executor are visible to later reads.
    """
    nodes: list[Node]
    edges: list[Edge]


class WorkflowGraph:
    """
    The live graph store for a canvas.

    Holds nodes and edges, accepts mutations, and hands out the two views
    the execution engine needs: `snapshot()` for planning a run and
    `live_state()` for reading fresh inputs while it dispatches.
    """

    def __init__(self, name: str = "Untitled"):
        self.name: str = name
        self._nodes: dict[str, Node] = {}
        self._edges: list[Edge] = []

    # --- Node operations ---

    @property
    def nodes(self) -> dict[str, Node]:
        """Get all nodes (read-only view)."""
        return self._nodes.copy()

    def add_node(self, node: Node) -> None:
        """Add a node to the graph, replacing any node with the same id."""
        self._nodes[node.id] = node

    def remove_node(self, node_id: str) -> Node | None:
        """
        Remove a node and all its edges.

        Returns the removed node, or None if not found.
        """
        node = self._nodes.pop(node_id, None)
        if node:
            self._edges = [
                edge for edge in self._edges
                if edge.source != node_id and edge.target != node_id
            ]
        return node

    def get_node(self, node_id: str) -> Node | None:
        """Get a node by ID."""
        return self._nodes.get(node_id)

    def update_node_data(self, node_id: str, **changes: Any) -> bool:
        """
        Merge `changes` into a node's payload.

        Returns False if the node no longer exists.
        """
        node = self._nodes.get(node_id)
        if node is None:
            return False
        node.data.update(changes)
        return True

    # --- Edge operations ---

    @property
    def edges(self) -> list[Edge]:
        """Get all edges (read-only copy)."""
        return self._edges.copy()

    def add_edge(self, edge: Edge) -> bool:
        """
        Add an edge to the graph.

        Returns False if either endpoint is missing or the edge is a
        self-loop. Cycles through other nodes are allowed here and are
        reported when the workflow is validated or run.
        """
        if edge.source not in self._nodes or edge.target not in self._nodes:
            return False
        if edge.source == edge.target:
            return False
        self._edges.append(edge)
        return True

    def connect(self, source: str, target: str) -> Edge | None:
        """Create and add an edge between two nodes."""
        edge = Edge.create(source, target)
        return edge if self.add_edge(edge) else None

    def remove_edge(self, edge_id: str) -> Edge | None:
        """Remove an edge by ID."""
        for i, edge in enumerate(self._edges):
            if edge.id == edge_id:
                return self._edges.pop(i)
        return None

    def incoming(self, node_id: str) -> list[Edge]:
        return [edge for edge in self._edges if edge.target == node_id]

    def outgoing(self, node_id: str) -> list[Edge]:
        return [edge for edge in self._edges if edge.source == node_id]

    # --- Views ---

    def snapshot(self) -> GraphSnapshot:
        """Take an immutable copy of the current nodes and edges."""
        return GraphSnapshot(
            nodes=tuple(copy.deepcopy(node) for node in self._nodes.values()),
            edges=tuple(self._edges),
        )

    def live_state(self) -> GraphView:
        """Return the current nodes and edges as they are right now."""
        return GraphView(nodes=list(self._nodes.values()), edges=list(self._edges))

    # --- Utility ---

    def clear(self) -> None:
        """Remove all nodes and edges."""
        self._nodes.clear()
        self._edges.clear()

    def __len__(self) -> int:
        """Return the number of nodes."""
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        """Check if a node exists in the graph."""
        return node_id in self._nodes
