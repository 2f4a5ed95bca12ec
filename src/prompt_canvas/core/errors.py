"""
Workflow Errors - Exceptions raised by the execution engine.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base exception for workflow engine errors."""
    pass


class CycleDetectedError(WorkflowError):
    """
    Raised when the generator dependency graph contains a cycle.

    `cycle_node_ids` is a closed chain: the first and last ids are the
    same node, e.g. ["a", "b", "a"].
    """

    def __init__(self, cycle_node_ids: list[str]):
        self.cycle_node_ids = list(cycle_node_ids)
        super().__init__(f"Cycle detected in workflow: {' → '.join(self.cycle_node_ids)}")


class NodeExecutionError(WorkflowError):
    """A single node could not be executed."""

    def __init__(self, node_id: str, message: str):
        self.node_id = node_id
        super().__init__(message)
