"""
Collaborator Interfaces - What the workflow runner calls out to.

- GraphSource: Hands out the run-start snapshot and the live graph
- Validator: Pre-flight workflow check
- InputResolver: Finds the images available to a node right now
- NodeExecutor: Runs one generator node
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Protocol, Sequence, Union, runtime_checkable

from prompt_canvas.core.data_types import WorkflowImage
from prompt_canvas.core.graph import Edge, GraphSnapshot, GraphView, Node
from prompt_canvas.core.validation import ValidationResult


@dataclass
class NodeExecutionResult:
    """What a node produced. Either field may be empty."""
    image_url: str | None = None
    text: str | None = None


@runtime_checkable
class GraphSource(Protocol):
    """Source of graph state for a run."""

    def snapshot(self) -> GraphSnapshot:
        """Immutable copy, taken once when a run starts."""
        ...

    def live_state(self) -> GraphView:
        """Current graph, read each time a node is dispatched."""
        ...


class Validator(Protocol):
    def __call__(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
    ) -> Union[ValidationResult, Awaitable[ValidationResult]]:
        ...


class InputResolver(Protocol):
    def __call__(
        self,
        node_id: str,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
    ) -> list[WorkflowImage]:
        ...


@runtime_checkable
class NodeExecutor(Protocol):
    """Performs one generation call for a node; raises on failure."""

    async def execute(
        self,
        node_id: str,
        prompt: str,
        model: str,
        inputs: list[WorkflowImage],
    ) -> NodeExecutionResult | None:
        ...
