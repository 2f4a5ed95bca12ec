"""
Input Resolution - Gather the artifacts currently connected to a node.

These functions read whatever graph state they are given. The runner
passes the live graph at dispatch time, so outputs written by nodes in
earlier levels of the same run are picked up.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from prompt_canvas.core.data_types import TextInput, WorkflowImage
from prompt_canvas.core.graph import CODE_TYPE, Edge, Node, NodeKind


@dataclass
class NodeInputs:
    """All inputs available to a node."""
    images: list[WorkflowImage] = field(default_factory=list)
    text_inputs: list[TextInput] = field(default_factory=list)


def _input_nodes(node_id: str, nodes: Iterable[Node], edges: Iterable[Edge]) -> list[Node]:
    by_id = {node.id: node for node in nodes}
    sources = [edge.source for edge in edges if edge.target == node_id]
    return [by_id[source] for source in sources if source in by_id]


def input_images_for(
    node_id: str,
    nodes: Iterable[Node],
    edges: Iterable[Edge],
) -> list[WorkflowImage]:
    """Collect images from image nodes connected directly to `node_id`."""
    images: list[WorkflowImage] = []
    for source in _input_nodes(node_id, nodes, edges):
        url = source.data.get("image_url")
        if source.kind is NodeKind.PASS_THROUGH_IMAGE and url:
            images.append(WorkflowImage.from_url(url))
    return images


def text_inputs_for(
    node_id: str,
    nodes: Iterable[Node],
    edges: Iterable[Edge],
) -> list[TextInput]:
    """
    Collect text from connected code nodes and upstream generators.

    Upstream generators contribute their `last_text_output`, which lets
    text results chain from one prompt to the next.
    """
    text_inputs: list[TextInput] = []
    for source in _input_nodes(node_id, nodes, edges):
        if source.type_name == CODE_TYPE and source.data.get("content"):
            text_inputs.append(TextInput(
                content=source.data["content"],
                language=source.data.get("language"),
                label=source.label or "Code Input",
            ))
        if source.is_generator and source.data.get("last_text_output"):
            text_inputs.append(TextInput(
                content=source.data["last_text_output"],
                label=source.title or "Text Input",
            ))
    return text_inputs


def all_inputs_for(
    node_id: str,
    nodes: Iterable[Node],
    edges: Iterable[Edge],
) -> NodeInputs:
    """Collect both images and text inputs for a node."""
    nodes = list(nodes)
    edges = list(edges)
    return NodeInputs(
        images=input_images_for(node_id, nodes, edges),
        text_inputs=text_inputs_for(node_id, nodes, edges),
    )
