"""
Core module - Graph model, scheduling, and the workflow execution engine.

This module provides the building blocks for running a canvas workflow:
- Graph: Nodes, edges, snapshots and the live graph store
- Dependencies / Toposort / Levels: Turning the graph into a level plan
- Execution: The single-flight workflow runner
- Validation / Inputs / Notifications: The runner's default collaborators
"""

from prompt_canvas.core.graph import (
    Edge,
    GraphSnapshot,
    GraphView,
    Node,
    NodeKind,
    NodeStatus,
    Point2D,
    WorkflowGraph,
)

from prompt_canvas.core.data_types import (
    TextInput,
    WorkflowImage,
    detect_media_type,
)

from prompt_canvas.core.errors import (
    CycleDetectedError,
    NodeExecutionError,
    WorkflowError,
)

from prompt_canvas.core.dependencies import (
    dependencies_of,
    dependency_resolver,
)

from prompt_canvas.core.toposort import topological_sort

from prompt_canvas.core.levels import (
    ExecutionLevel,
    ExecutionPlan,
    compute_levels,
    group_by_level,
    plan_execution,
)

from prompt_canvas.core.validation import (
    ValidationIssue,
    ValidationResult,
    validate_node_for_execution,
    validate_workflow,
)

from prompt_canvas.core.inputs import (
    NodeInputs,
    all_inputs_for,
    input_images_for,
    text_inputs_for,
)

from prompt_canvas.core.notifications import (
    LoggingNotifier,
    Notification,
    NotificationLevel,
    Notifier,
    RecordingNotifier,
)

from prompt_canvas.core.interfaces import (
    GraphSource,
    NodeExecutionResult,
    NodeExecutor,
)

from prompt_canvas.core.execution import (
    ExecutionProgress,
    RunOutcome,
    RunState,
    RunStatus,
    WorkflowRunner,
)


__all__ = [
    # graph.py
    "Edge",
    "GraphSnapshot",
    "GraphView",
    "Node",
    "NodeKind",
    "NodeStatus",
    "Point2D",
    "WorkflowGraph",
    # data_types.py
    "TextInput",
    "WorkflowImage",
    "detect_media_type",
    # errors.py
    "CycleDetectedError",
    "NodeExecutionError",
    "WorkflowError",
    # dependencies.py
    "dependencies_of",
    "dependency_resolver",
    # toposort.py
    "topological_sort",
    # levels.py
    "ExecutionLevel",
    "ExecutionPlan",
    "compute_levels",
    "group_by_level",
    "plan_execution",
    # validation.py
    "ValidationIssue",
    "ValidationResult",
    "validate_node_for_execution",
    "validate_workflow",
    # inputs.py
    "NodeInputs",
    "all_inputs_for",
    "input_images_for",
    "text_inputs_for",
    # notifications.py
    "LoggingNotifier",
    "Notification",
    "NotificationLevel",
    "Notifier",
    "RecordingNotifier",
    # interfaces.py
    "GraphSource",
    "NodeExecutionResult",
    "NodeExecutor",
    # execution.py
    "ExecutionProgress",
    "RunOutcome",
    "RunState",
    "RunStatus",
    "WorkflowRunner",
]
