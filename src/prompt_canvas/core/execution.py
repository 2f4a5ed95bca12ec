"""
Execution Engine - Run a canvas workflow level by level.

The runner plans every run from a snapshot of the graph taken when the
run starts, then dispatches generator nodes one level at a time. Nodes
within a level run concurrently; a level only starts after every node
in the previous level has settled. Inputs are resolved against the live
graph at dispatch time so outputs from earlier levels are visible.

Only one run may be in flight per runner. A second request while a run
is active is rejected, not queued.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable
from uuid import UUID, uuid4

from prompt_canvas.core import notifications
from prompt_canvas.core.dependencies import dependency_resolver
from prompt_canvas.core.errors import CycleDetectedError
from prompt_canvas.core.graph import GraphSnapshot, Node
from prompt_canvas.core.inputs import input_images_for
from prompt_canvas.core.interfaces import (
    GraphSource,
    InputResolver,
    NodeExecutionResult,
    NodeExecutor,
    Validator,
)
from prompt_canvas.core.levels import ExecutionLevel, ExecutionPlan, plan_execution
from prompt_canvas.core.notifications import LoggingNotifier, Notification, Notifier
from prompt_canvas.core.validation import ValidationResult, validate_workflow

logger = logging.getLogger(__name__)


class RunState(Enum):
    """Where a run is in its lifecycle."""
    IDLE = auto()
    VALIDATING = auto()
    REJECTED = auto()
    SORTING = auto()
    CYCLE_ABORTED = auto()
    SCHEDULED = auto()
    RUNNING = auto()
    FAILED = auto()
    COMPLETED = auto()


class RunStatus(Enum):
    """How a run ended."""
    ALREADY_RUNNING = "already_running"
    INVALID = "invalid"
    CYCLE = "cycle"
    COMPLETED = "completed"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass
class ExecutionProgress:
    """Progress information for a run."""
    run_id: UUID
    state: RunState
    level: int | None = None
    current_nodes: list[str] = field(default_factory=list)
    nodes_completed: int = 0
    nodes_total: int = 0
    message: str = ""
    error: str | None = None

    @property
    def progress_percent(self) -> float:
        if self.nodes_total == 0:
            return 0.0
        return (self.nodes_completed / self.nodes_total) * 100


@dataclass
class RunOutcome:
    """
    Summary of one `run_workflow()` call.

    Attributes:
        status: How the run ended
        completed: Nodes whose executor call succeeded
        attempted: Nodes dispatched before the run ended
        total: Generator nodes in the plan
        failed_node_id: First failing node of the stopping level
        failed_node_title: Title of that node
        failure: Error message of that node, or of an internal error
        levels: Planned node ids per level, ascending
        errors: Blocking validation messages
        warnings: Validation warning messages
        cycle: Node ids of a detected dependency cycle
    """
    status: RunStatus
    completed: int = 0
    attempted: int = 0
    total: int = 0
    failed_node_id: str | None = None
    failed_node_title: str | None = None
    failure: str | None = None
    levels: list[list[str]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    cycle: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status is RunStatus.COMPLETED


class _RunLock:
    """Single-flight flag owned by one runner."""

    def __init__(self) -> None:
        self._held = False

    def try_acquire(self) -> bool:
        if self._held:
            return False
        self._held = True
        return True

    def release(self) -> None:
        self._held = False


class WorkflowRunner:
    """
    Runs every generator node of a workflow in dependency order.

    Features:
    - Single-flight runs per runner instance
    - Pre-flight validation and cycle detection
    - Level-parallel dispatch with a barrier between levels
    - Stops at the first level containing a failure
    - Progress reporting and user notifications
    """

    def __init__(
        self,
        graph_source: GraphSource,
        executor: NodeExecutor,
        *,
        validator: Validator = validate_workflow,
        input_resolver: InputResolver = input_images_for,
        notifier: Notifier | None = None,
        passthrough_depth: int | None = 1,
        on_progress: Callable[[ExecutionProgress], None] | None = None,
    ):
        self._graph_source = graph_source
        self._executor = executor
        self._validator = validator
        self._input_resolver = input_resolver
        self._notifier: Notifier = notifier or LoggingNotifier()
        self._passthrough_depth = passthrough_depth
        self._on_progress = on_progress
        self._lock = _RunLock()

    def set_progress_callback(
        self,
        callback: Callable[[ExecutionProgress], None],
    ) -> None:
        """Set the progress callback."""
        self._on_progress = callback

    async def run_workflow(self) -> RunOutcome:
        """
        Run the workflow and wait until it reaches a terminal state.

        Never raises for workflow problems: validation errors, cycles,
        node failures and internal errors all come back as a RunOutcome
        and a notification.
        """
        if not self._lock.try_acquire():
            self._notify(notifications.info("Workflow is already running"))
            return RunOutcome(status=RunStatus.ALREADY_RUNNING)

        run_id = uuid4()
        try:
            return await self._run(run_id)
        except Exception as e:
            logger.exception("Workflow run failed", extra={"run_id": str(run_id)})
            self._report_state(run_id, RunState.FAILED, error=str(e))
            self._notify(notifications.error("Workflow failed", str(e)))
            return RunOutcome(status=RunStatus.ERROR, failure=str(e))
        finally:
            self._lock.release()

    async def _run(self, run_id: UUID) -> RunOutcome:
        snapshot = self._graph_source.snapshot()
        by_id = snapshot.node_by_id()

        # Validation
        self._report_state(run_id, RunState.VALIDATING)
        validation = await self._validate(snapshot)
        blocking = validation.blocking
        warnings = validation.warnings

        if blocking or not validation.valid:
            messages = [issue.message for issue in blocking] or ["Workflow validation failed"]
            self._report_state(run_id, RunState.REJECTED)
            self._notify(notifications.error("Cannot run workflow", "; ".join(messages)))
            logger.info("Workflow rejected by validation", extra={"errors": messages})
            return RunOutcome(
                status=RunStatus.INVALID,
                errors=messages,
                warnings=[w.message for w in warnings],
            )

        for issue in warnings:
            self._notify(notifications.warning(issue.message, issue.details))

        # Ordering
        self._report_state(run_id, RunState.SORTING)
        deps_of = dependency_resolver(snapshot, passthrough_depth=self._passthrough_depth)
        try:
            plan = plan_execution(snapshot, deps_of)
        except CycleDetectedError as e:
            titles = [
                (by_id[node_id].title if node_id in by_id else None) or node_id
                for node_id in e.cycle_node_ids
            ]
            self._report_state(run_id, RunState.CYCLE_ABORTED)
            self._notify(notifications.error(
                "Circular dependency detected",
                f"Workflow cannot execute: {' → '.join(titles)}",
                duration_ms=8000,
            ))
            logger.error(
                "Cycle detected",
                extra={"cycle_node_ids": e.cycle_node_ids, "cycle_node_titles": titles},
            )
            return RunOutcome(
                status=RunStatus.CYCLE,
                cycle=e.cycle_node_ids,
                warnings=[w.message for w in warnings],
            )

        self._report_state(run_id, RunState.SCHEDULED, nodes_total=plan.total)
        logger.debug("Execution plan: %s", plan.as_ids())

        return await self._execute_plan(run_id, plan, [w.message for w in warnings])

    async def _validate(self, snapshot: GraphSnapshot) -> ValidationResult:
        result = self._validator(list(snapshot.nodes), list(snapshot.edges))
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _execute_plan(
        self,
        run_id: UUID,
        plan: ExecutionPlan,
        warnings: list[str],
    ) -> RunOutcome:
        completed = 0
        attempted = 0

        for level in plan.levels:
            self._report(ExecutionProgress(
                run_id=run_id,
                state=RunState.RUNNING,
                level=level.level,
                current_nodes=level.node_ids,
                nodes_completed=completed,
                nodes_total=plan.total,
                message=f"Running level {level.level}",
            ))

            failures = await self._execute_level(level)
            attempted += len(level.nodes)
            completed += len(level.nodes) - len(failures)

            if failures:
                failed_node, exc = failures[0]
                title = failed_node.title or "Untitled"
                self._report_state(
                    run_id, RunState.FAILED,
                    nodes_completed=completed, nodes_total=plan.total, error=str(exc),
                )
                self._notify(notifications.error(
                    "Workflow stopped",
                    f'Failed at node "{title}". {completed} of {attempted} nodes completed.',
                ))
                return RunOutcome(
                    status=RunStatus.STOPPED,
                    completed=completed,
                    attempted=attempted,
                    total=plan.total,
                    failed_node_id=failed_node.id,
                    failed_node_title=title,
                    failure=str(exc),
                    levels=plan.as_ids(),
                    warnings=warnings,
                )

        self._report_state(
            run_id, RunState.COMPLETED, nodes_completed=completed, nodes_total=plan.total,
        )
        if completed > 0:
            noun = "node" if completed == 1 else "nodes"
            self._notify(notifications.success(
                "Workflow completed",
                f"Successfully generated {completed} {noun}.",
            ))
        return RunOutcome(
            status=RunStatus.COMPLETED,
            completed=completed,
            attempted=attempted,
            total=plan.total,
            levels=plan.as_ids(),
            warnings=warnings,
        )

    async def _execute_level(
        self,
        level: ExecutionLevel,
    ) -> list[tuple[Node, BaseException]]:
        """Run every node of a level and return the failures, in level order."""
        results = await asyncio.gather(
            *(self._dispatch(node) for node in level.nodes),
            return_exceptions=True,
        )

        failures: list[tuple[Node, BaseException]] = []
        for node, result in zip(level.nodes, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Node execution failed: %s",
                    result,
                    extra={
                        "node_id": node.id,
                        "node_title": node.title or "Untitled",
                        "level": level.level,
                    },
                )
                failures.append((node, result))
        return failures

    async def _dispatch(self, node: Node) -> NodeExecutionResult | None:
        """Execute one node with inputs read from the live graph."""
        live = self._graph_source.live_state()
        inputs = self._input_resolver(node.id, live.nodes, live.edges)
        logger.debug("Dispatching node %s with %d input image(s)", node.id, len(inputs))
        return await self._executor.execute(node.id, node.prompt, node.model, inputs)

    def _report_state(
        self,
        run_id: UUID,
        state: RunState,
        *,
        nodes_completed: int = 0,
        nodes_total: int = 0,
        error: str | None = None,
    ) -> None:
        self._report(ExecutionProgress(
            run_id=run_id,
            state=state,
            nodes_completed=nodes_completed,
            nodes_total=nodes_total,
            message=state.name.lower(),
            error=error,
        ))

    def _report(self, progress: ExecutionProgress) -> None:
        if self._on_progress is None:
            return
        try:
            self._on_progress(progress)
        except Exception:
            logger.exception("Progress callback failed")

    def _notify(self, notification: Notification) -> None:
        try:
            self._notifier.notify(notification)
        except Exception:
            logger.exception("Notifier failed to deliver %r", notification.title)
