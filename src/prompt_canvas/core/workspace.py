"""
Workspace Persistence - Save and load workflow graphs to/from disk.

Format:

    {
        "version": 1,
        "name": "...",
        "saved_at": "2026-01-01T00:00:00",
        "nodes": [{"id": "...", "type": "promptNode", "x": 0, "y": 0, "data": {...}}],
        "edges": [{"id": "...", "source": "...", "target": "..."}]
    }

Image nodes may carry `image_path` instead of `image_url`; the file is
read and embedded as a PNG data URL on load. Relative paths resolve
against the workspace file's directory.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from prompt_canvas.core.data_types import WorkflowImage
from prompt_canvas.core.graph import Edge, Node, NodeKind, Point2D, WorkflowGraph

logger = logging.getLogger(__name__)


WORKSPACE_VERSION = 1


def load_workspace(path: Path) -> WorkflowGraph:
    """
    Load a workspace from disk.

    Raises:
        FileNotFoundError: If workspace file doesn't exist
        ValueError: If workspace format is invalid
    """
    if not path.exists():
        raise FileNotFoundError(f"Workspace not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse workspace: {path}: {e}") from e

    if (
        not isinstance(data, dict)
        or "version" not in data
        or not isinstance(data.get("nodes"), list)
    ):
        raise ValueError(f"Invalid workspace format: {path}")

    graph = WorkflowGraph(name=data.get("name", path.stem))

    try:
        for node_data in data["nodes"]:
            if not isinstance(node_data, dict):
                raise TypeError(f"node entry must be an object, got {type(node_data).__name__}")
            graph.add_node(_node_from_dict(node_data, path.parent))
        edges = [
            Edge(source=e["source"], target=e["target"], id=e.get("id", ""))
            for e in data.get("edges", [])
        ]
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"Invalid workspace format: {path}: {e}") from e

    for edge in edges:
        if not graph.add_edge(edge):
            logger.warning(
                "Skipping edge %s -> %s: endpoint missing or self-loop",
                edge.source, edge.target,
            )

    return graph


def _node_from_dict(node_data: dict[str, Any], base_dir: Path) -> Node:
    type_name = node_data.get("type", "")
    raw_data = node_data.get("data", {})
    if not isinstance(raw_data, dict):
        raise TypeError(f"data of node {node_data.get('id')} must be an object")
    payload = dict(raw_data)

    image_path = payload.pop("image_path", None)
    if image_path and not payload.get("image_url"):
        full_path = Path(image_path)
        if not full_path.is_absolute():
            full_path = base_dir / full_path
        try:
            payload["image_url"] = WorkflowImage.from_file(full_path).url
        except OSError as e:
            raise ValueError(f"Invalid image for node {node_data.get('id')}: {e}") from e

    return Node(
        id=node_data["id"],
        kind=NodeKind.from_type_name(type_name),
        type_name=type_name,
        position=Point2D(node_data.get("x", 0.0), node_data.get("y", 0.0)),
        data=payload,
    )


def save_workspace(graph: WorkflowGraph, path: Path) -> Path:
    """Save a graph to disk and return the path written."""
    nodes_data = [
        {
            "id": node.id,
            "type": node.type_name,
            "x": node.position.x,
            "y": node.position.y,
            "data": node.data,
        }
        for node in graph.nodes.values()
    ]
    edges_data = [
        {"id": edge.id, "source": edge.source, "target": edge.target}
        for edge in graph.edges
    ]
    workspace_data = {
        "version": WORKSPACE_VERSION,
        "name": graph.name,
        "saved_at": datetime.now().isoformat(),
        "nodes": nodes_data,
        "edges": edges_data,
    }

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(workspace_data, f, indent=2, default=str)

    return path
