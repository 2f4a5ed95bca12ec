"""
Node Execution - Run a single generator node against a provider.

The executor validates the node, sends one request per connected output
(every image node gets its own variation, a connected code node gets a
text request), writes results back into the live graph, and updates the
node's status. It raises when the node fails so the workflow runner can
stop the run.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from prompt_canvas.core import notifications
from prompt_canvas.core.data_types import WorkflowImage
from prompt_canvas.core.errors import NodeExecutionError
from prompt_canvas.core.graph import CODE_TYPE, NodeKind, NodeStatus, WorkflowGraph
from prompt_canvas.core.inputs import all_inputs_for
from prompt_canvas.core.interfaces import NodeExecutionResult
from prompt_canvas.core.notifications import LoggingNotifier, Notifier
from prompt_canvas.core.validation import validate_node_for_execution
from prompt_canvas.providers.base import (
    GenerationProvider,
    GenerationRequest,
    GenerationResult,
    RateLimitError,
)

logger = logging.getLogger(__name__)


@dataclass
class _Target:
    """One output a generator writes to."""
    node_id: str
    is_code: bool
    language: str | None = None


class GenerationNodeExecutor:
    """Executes generator nodes of a WorkflowGraph through a provider."""

    def __init__(
        self,
        graph: WorkflowGraph,
        provider: GenerationProvider,
        *,
        notifier: Notifier | None = None,
        session_id: str | None = None,
    ):
        self._graph = graph
        self._provider = provider
        self._notifier: Notifier = notifier or LoggingNotifier()
        self._session_id = session_id

    async def execute(
        self,
        node_id: str,
        prompt: str,
        model: str,
        inputs: list[WorkflowImage],
    ) -> NodeExecutionResult | None:
        """
        Run one generator node.

        Args:
            node_id: Generator to run
            prompt: Prompt text
            model: Model identifier
            inputs: Input images; when empty, images connected in the
                live graph are used instead

        Returns:
            The first generated image URL and any text, or None if the
            node was deleted before it could start.

        Raises:
            NodeExecutionError: Validation failed
            ProviderError: Every request for the node failed
        """
        if node_id not in self._graph:
            logger.warning("Cannot run deleted node", extra={"node_id": node_id})
            self._notify(notifications.warning("Node was deleted during execution"))
            return None

        live = self._graph.live_state()
        validation = validate_node_for_execution(node_id, live.nodes, live.edges)
        if not validation.valid:
            messages = [issue.message for issue in validation.blocking]
            self._notify(notifications.error("Cannot run node", ", ".join(messages)))
            raise NodeExecutionError(node_id, "; ".join(messages))

        for issue in validation.warnings:
            self._notify(notifications.warning(issue.message, issue.details))

        all_inputs = all_inputs_for(node_id, live.nodes, live.edges)
        images = inputs or all_inputs.images
        targets = self._output_targets(node_id)

        self._graph.update_node_data(node_id, status=NodeStatus.RUNNING)

        try:
            results = await self._generate_all(prompt, model, images, all_inputs.text_inputs, targets)
        except Exception as e:
            self._graph.update_node_data(node_id, status=NodeStatus.ERROR)
            self._notify_failure(e)
            raise

        return self._apply_results(node_id, targets, results)

    def _output_targets(self, node_id: str) -> list[_Target]:
        targets: list[_Target] = []
        code_target: _Target | None = None
        for edge in self._graph.outgoing(node_id):
            target = self._graph.get_node(edge.target)
            if target is None:
                continue
            if target.kind is NodeKind.PASS_THROUGH_IMAGE:
                targets.append(_Target(target.id, is_code=False))
            elif target.type_name == CODE_TYPE and code_target is None:
                code_target = _Target(
                    target.id,
                    is_code=True,
                    language=target.data.get("language") or "css",
                )
        # One text request serves the code output
        if code_target is not None:
            targets.insert(0, code_target)
        return targets

    async def _generate_all(self, prompt, model, images, text_inputs, targets):
        """Send every request concurrently; tolerate partial failure."""
        requests = [
            GenerationRequest(
                prompt=prompt,
                model=model,
                images=list(images),
                text_inputs=list(text_inputs),
                target_language=target.language if target.is_code else None,
                session_id=self._session_id,
            )
            for target in targets
        ]
        settled = await asyncio.gather(
            *(self._provider.generate(request) for request in requests),
            return_exceptions=True,
        )

        errors = [r for r in settled if isinstance(r, Exception)]
        if errors and len(errors) == len(settled):
            raise errors[0]
        if errors:
            logger.warning(
                "Partial failure: generation requests failed",
                extra={"failed_count": len(errors), "total_count": len(settled)},
            )
            ok = len(settled) - len(errors)
            self._notify(notifications.warning(
                "Partial generation failure",
                f"{ok} of {len(settled)} outputs generated. {len(errors)} failed: {errors[0]}",
                duration_ms=8000,
            ))

        return [
            (target, result)
            for target, result in zip(targets, settled)
            if isinstance(result, GenerationResult)
        ]

    def _apply_results(
        self,
        node_id: str,
        targets: list[_Target],
        results: list[tuple[_Target, GenerationResult]],
    ) -> NodeExecutionResult:
        first_image: str | None = None
        text: str | None = None

        for target, result in results:
            if not result.success:
                continue
            if target.is_code and result.text:
                text = result.text
                self._graph.update_node_data(
                    target.node_id,
                    content=result.text,
                    structured_output=result.structured_output,
                )
            elif not target.is_code and result.image_url:
                first_image = first_image or result.image_url
                self._graph.update_node_data(target.node_id, image_url=result.image_url)

        changes: dict[str, object] = {"status": NodeStatus.COMPLETE}
        if text:
            changes["last_text_output"] = text
        self._graph.update_node_data(node_id, **changes)

        node = self._graph.get_node(node_id)
        variations = sum(1 for t in targets if not t.is_code)
        suffix = f" ({variations} variations)" if variations > 1 else ""
        self._notify(notifications.success(
            "Generation complete",
            f'Node "{node.title if node and node.title else "Untitled"}" completed{suffix}',
        ))

        return NodeExecutionResult(image_url=first_image, text=text)

    def _notify_failure(self, exc: Exception) -> None:
        message = str(exc) or "Generation failed"
        if isinstance(exc, RateLimitError):
            title, duration = "Rate limit exceeded", 10000
        elif message.startswith("Network error"):
            title, duration = "Network error", 5000
        else:
            title, duration = "Generation failed", 5000
        self._notify(notifications.error(title, message, duration_ms=duration))

    def _notify(self, notification: notifications.Notification) -> None:
        try:
            self._notifier.notify(notification)
        except Exception:
            logger.exception("Notifier failed to deliver %r", notification.title)
